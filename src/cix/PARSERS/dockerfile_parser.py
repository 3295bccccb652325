# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Parser for Dockerfiles, extracting the base images of every build stage.
"""
import logging
import re
from typing import Dict, List, Optional, Sequence
from ..MODELS.file_paths import FilePath
from ..MODELS.image_model import ImageLocation, ImageModel, ImageOrigin
from ..MANAGERS.environment_manager import EnvironmentManager
from ..UTILS.image_names import DEFAULT_TAG
from ..UTILS.string_interpolation import EnvironmentInterpolator
from .base_parser import ImageExtractor, log_found_images

logger = logging.getLogger(__name__)


class DockerfileParser(ImageExtractor):
    """
    Line oriented parser for FROM, ARG and ENV instructions.

    Stages referenced by their ``AS`` alias are not reported as images, and
    the location of the last reported base image is marked as the final stage.
    """
    ARG_ENV_PATTERN = re.compile(r'^\s*(ARG|ENV)\s+(\w+)=(\S+)', re.ASCII)
    FROM_STAGE_PATTERN = re.compile(
        r'^\s*FROM\s+(?:--platform=\S+\s+)?([\w./-]+(?::[\w.-]+)?)(?:\s+(?i:AS)\s+([\w.-]+))?', re.ASCII)
    FROM_IMAGE_PATTERN = re.compile(
        r'^\s*FROM\s+(?:--platform=\S+\s+)?([\w./-]+)(?::([\w.-]+))?\b', re.ASCII)
    FROM_SPAN_PATTERN = re.compile(r'FROM\s+(?:--platform=\S+\s+)?(\S+)')

    SCRATCH = "scratch"

    def extract(self, files: Sequence[FilePath],
                env_files: Optional[Dict[str, Dict[str, str]]] = None) -> List[ImageModel]:
        """
        Extracts images from a batch of Dockerfiles.

        :param files: Dockerfiles to scan.
        :param env_files: Mapping of directory to variables from .env files.
        :return: One ImageModel per FROM image, in file then line order.
        """
        environment = EnvironmentManager(env_files)
        images: List[ImageModel] = []
        for file_path in files:
            logger.debug("Going to extract images from dockerfile %s", file_path.relative_path)
            try:
                file_images = self.parse(file_path, environment.resolve(file_path.full_path))
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Could not extract images from dockerfile %s: %s", file_path.full_path, e)
                file_images = []
            log_found_images(file_path.relative_path, file_images)
            images.extend(file_images)
        return images

    def extract_with_positions(self, files: Sequence[FilePath],
                               env_files: Optional[Dict[str, Dict[str, str]]] = None) -> List[ImageModel]:
        # Dockerfile locations always carry their line and span.
        return self.extract(files, env_files)

    def parse(self, file_path: FilePath, env: Optional[Dict[str, str]] = None) -> List[ImageModel]:
        """
        Parses a Dockerfile from disk.

        :param file_path: The Dockerfile to read.
        :param env: Variables resolved from .env files for this Dockerfile.
        :return: Images in the order their FROM lines appear.
        :raises OSError: If the file cannot be read.
        """
        with open(file_path.full_path, 'r', encoding='utf-8') as f:
            content = f.read()
        return self.parse_from_string(content, file_path.relative_path, env)

    def parse_from_string(self, content: str, relative_path: str = "",
                          env: Optional[Dict[str, str]] = None) -> List[ImageModel]:
        """
        Parses Dockerfile content.

        :param content: The Dockerfile text.
        :param relative_path: Path reported in every location.
        :param env: Variables resolved from .env files.
        :return: Images in the order their FROM lines appear.
        """
        env = env or {}
        aliases: Dict[str, str] = {}
        args_and_env: Dict[str, str] = {}
        images: List[ImageModel] = []

        for line_number, line in enumerate(content.split('\n')):
            line = line.rstrip('\r')

            match = self.ARG_ENV_PATTERN.match(line)
            if match:
                args_and_env[match.group(2)] = match.group(3)

            line = EnvironmentInterpolator.replace_placeholders(line, env, args_and_env)

            if line.strip().startswith('#'):
                continue

            stage = self.FROM_STAGE_PATTERN.match(line)
            if stage:
                image, alias = stage.group(1), stage.group(2)
                if image == self.SCRATCH:
                    continue
                if alias:
                    aliases[alias] = self._resolve_alias(image, aliases)

            match = self.FROM_IMAGE_PATTERN.match(line)
            if not match:
                continue

            image, tag = match.group(1), match.group(2) or DEFAULT_TAG
            if image == self.SCRATCH:
                continue

            real_name = aliases.get(image)
            if real_name is not None and real_name != image:
                # FROM <stage>: builds on an earlier stage, not an external image
                continue

            start_index, end_index = self._image_span(line)
            logger.debug("Found image %s:%s at line %d", image, tag, line_number)
            images.append(ImageModel(
                name=f"{image}:{tag}",
                image_locations=[ImageLocation(
                    origin=ImageOrigin.DOCKERFILE,
                    path=relative_path,
                    final_stage=False,
                    line=line_number,
                    start_index=start_index,
                    end_index=end_index,
                )],
            ))

        if images:
            locations = images[-1].image_locations
            locations[-1] = locations[-1].model_copy(update={"final_stage": True})

        return images

    def _image_span(self, line: str):
        match = self.FROM_SPAN_PATTERN.search(line)
        if not match:
            return 0, 0
        return match.start(1), match.end(1)

    @staticmethod
    def _resolve_alias(name: str, aliases: Dict[str, str]) -> str:
        """
        Follows alias to target links until a real image name is reached.

        A cycle stops at the first name seen twice.
        """
        visited = set()
        while name in aliases and name not in visited:
            visited.add(name)
            target = aliases[name]
            if target == name:
                break
            name = target
        return name
