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
Parsers for Docker Compose YAML files, extracting service images.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple
import yaml
from yaml.nodes import MappingNode, ScalarNode
from ..MODELS.file_paths import FilePath
from ..MODELS.image_model import ImageLocation, ImageModel, ImageOrigin
from ..MANAGERS.environment_manager import EnvironmentManager
from ..UTILS.image_names import normalize_image_name
from ..UTILS.string_interpolation import EnvironmentInterpolator
from .base_parser import ImageExtractor, log_found_images

logger = logging.getLogger(__name__)


class ComposeParser(ImageExtractor):
    """
    Parser for docker-compose.yml files.

    ``parse`` decodes the document and interpolates variables into each
    service image. ``parse_with_positions`` walks the YAML node tree instead,
    so each image keeps the line and span it was written at, uninterpolated.
    """

    def extract(self, files: Sequence[FilePath],
                env_files: Optional[Dict[str, Dict[str, str]]] = None) -> List[ImageModel]:
        """
        Extracts interpolated images from a batch of compose files.

        :param files: Compose files to scan.
        :param env_files: Mapping of directory to variables from .env files.
        :return: One ImageModel per service that declares an image.
        """
        environment = EnvironmentManager(env_files)
        images: List[ImageModel] = []
        for file_path in files:
            logger.debug("Going to extract images from docker compose file %s", file_path.relative_path)
            try:
                file_images = self.parse(file_path, environment.resolve(file_path.full_path))
            except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
                logger.warning("Could not extract images from docker compose file %s: %s", file_path.full_path, e)
                file_images = []
            log_found_images(file_path.relative_path, file_images)
            images.extend(file_images)
        return images

    def extract_with_positions(self, files: Sequence[FilePath],
                               env_files: Optional[Dict[str, Dict[str, str]]] = None) -> List[ImageModel]:
        """
        Extracts images with their line and span from a batch of compose files.

        ``env_files`` is accepted for interface compatibility and ignored.
        """
        images: List[ImageModel] = []
        for file_path in files:
            try:
                file_images = self.parse_with_positions(file_path)
            except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
                logger.warning("Could not extract images from docker compose file %s: %s", file_path.full_path, e)
                file_images = []
            log_found_images(file_path.relative_path, file_images)
            images.extend(file_images)
        return images

    def parse(self, file_path: FilePath, env: Optional[Dict[str, str]] = None) -> List[ImageModel]:
        """
        Parses a compose file from a path.

        :param file_path: The compose file.
        :param env: Variables resolved from .env files for this compose file.
        :return: Images declared by its services.
        :raises yaml.YAMLError: If the file is not valid YAML.
        """
        with open(file_path.full_path, 'r', encoding='utf-8') as f:
            content = f.read()
        return self.parse_from_string(content, file_path.relative_path, env)

    def parse_from_string(self, content: str, relative_path: str = "",
                          env: Optional[Dict[str, str]] = None) -> List[ImageModel]:
        """
        Parses a compose file from a string.

        :param content: YAML content of the compose file.
        :param relative_path: Path reported in every location.
        :param env: Variables used to interpolate image names.
        :return: Images declared by its services, without positions.
        """
        env = env or {}
        data = yaml.safe_load(content)
        images: List[ImageModel] = []

        for name, spec in self._services(data).items():
            image = self._image_of(name, spec)
            if not image:
                continue

            full_name = normalize_image_name(EnvironmentInterpolator.process_env_vars(image, env))
            images.append(ImageModel(
                name=full_name,
                image_locations=[ImageLocation(origin=ImageOrigin.DOCKER_COMPOSE, path=relative_path)],
            ))

        return images

    def parse_with_positions(self, file_path: FilePath) -> List[ImageModel]:
        """
        Parses a compose file from a path, tracking image positions.

        :param file_path: The compose file.
        :return: Images declared by its services, with line and span.
        :raises yaml.YAMLError: If the file is not valid YAML.
        """
        with open(file_path.full_path, 'r', encoding='utf-8') as f:
            content = f.read()
        return self.parse_with_positions_from_string(content, file_path.relative_path)

    def parse_with_positions_from_string(self, content: str, relative_path: str = "") -> List[ImageModel]:
        """
        Parses a compose file from a string, tracking image positions.

        No variable interpolation is applied.
        """
        root = yaml.compose(content)
        lines = content.split('\n')
        images: List[ImageModel] = []

        services = self._mapping_value(root, "services")
        if not isinstance(services, MappingNode):
            return images

        for _, service in services.value:
            if not isinstance(service, MappingNode):
                continue
            image_node = self._mapping_value(service, "image")
            if not isinstance(image_node, ScalarNode) or not image_node.value:
                continue

            line_number = image_node.start_mark.line
            start_index, end_index = self._value_span(lines, image_node)
            images.append(ImageModel(
                name=normalize_image_name(image_node.value),
                image_locations=[ImageLocation(
                    origin=ImageOrigin.DOCKER_COMPOSE,
                    path=relative_path,
                    line=line_number,
                    start_index=start_index,
                    end_index=end_index,
                )],
            ))

        return images

    @staticmethod
    def _services(data: Any) -> Dict[str, Any]:
        if not isinstance(data, dict):
            return {}
        services = data.get('services')
        return services if isinstance(services, dict) else {}

    @staticmethod
    def _image_of(name: str, spec: Any) -> str:
        """
        Returns the image of a service, logging services that only build.
        """
        if not isinstance(spec, dict):
            spec = {}
        image = spec.get('image')
        image = '' if image is None else str(image)

        build = spec.get('build')
        context = build.get('context') if isinstance(build, dict) else build

        if image:
            logger.debug("Service: %s, Image: %s", name, image)
        elif context:
            logger.debug("Service: %s, Build Context: %s (no image specified)", name, context)
        else:
            logger.debug("Service: %s, No image or build context specified", name)
        return image

    @staticmethod
    def _mapping_value(node: Any, key: str) -> Optional[Any]:
        if not isinstance(node, MappingNode):
            return None
        for key_node, value_node in node.value:
            if isinstance(key_node, ScalarNode) and key_node.value == key:
                return value_node
        return None

    @staticmethod
    def _value_span(lines: List[str], node: ScalarNode) -> Tuple[int, int]:
        """
        Locates the scalar's text on its source line.

        Quoted scalars are found past the opening quote. Falls back to the
        node start column when the text is not on that line.
        """
        line_number = node.start_mark.line
        raw_line = lines[line_number] if line_number < len(lines) else ""
        start = raw_line.find(node.value, node.start_mark.column)
        if start == -1:
            start = raw_line.find(node.value)
        if start == -1:
            start = node.start_mark.column
        return start, start + len(node.value)
