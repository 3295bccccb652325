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
Facade tying discovery, the three extractors, merging and persistence together.
"""
import json
import logging
import os
from typing import Dict, List, Optional, Tuple
from ..MODELS.file_paths import FileImages, HelmChartInfo
from ..MODELS.image_model import ImageModel
from ..PARSERS.compose_parser import ComposeParser
from ..PARSERS.dockerfile_parser import DockerfileParser
from ..PARSERS.env_parser import EnvParser
from ..PARSERS.helm_parser import HelmParser
from ..UTILS.archive import extract_compressed_path
from ..UTILS.file_discovery import TEMPLATES_DIR, discover_files, find_helm_directory, find_helm_files_in_directory
from .image_merger import merge_images

logger = logging.getLogger(__name__)

RESULT_FILE_NAME = "containers-resolution.json"


class ImagesExtractor:
    """
    Finds the images used by a project tree.
    """
    def __init__(self, helm_binary: str = "helm"):
        """
        Initializes the extractors.

        :param helm_binary: Name or path of the helm executable used to render charts.
        """
        self.dockerfile_parser = DockerfileParser()
        self.compose_parser = ComposeParser()
        self.helm_parser = HelmParser(helm_binary=helm_binary)

    def extract_files(self, scan_path: str) -> Tuple[FileImages, Dict[str, Dict[str, str]], str]:
        """
        Discovers the files of a directory or archive.

        :param scan_path: A directory, or a .zip/.tar/.tar.gz/.tgz archive.
        :return: The categorized files, the parsed .env variables by
            directory, and the directory that was scanned.
        :raises UnsupportedArchiveError: If the path is not a directory or a
            supported archive.
        """
        files_path = extract_compressed_path(scan_path)
        files, env_file_paths = discover_files(files_path)
        if not files.helm:
            files.helm = self.find_enclosing_helm_chart(files_path)
        env_files = EnvParser.parse_env_files(env_file_paths)
        return files, env_files, files_path

    @staticmethod
    def find_enclosing_helm_chart(files_path: str) -> List[HelmChartInfo]:
        """
        Falls back to the nearest ``*helm*`` ancestor holding a templates
        directory, for scan paths that point inside a chart.
        """
        helm_dir = find_helm_directory(files_path)
        if helm_dir is None or not os.path.isdir(os.path.join(helm_dir, TEMPLATES_DIR)):
            return []
        logger.debug("Using enclosing helm directory %s", helm_dir)
        return find_helm_files_in_directory(files_path)

    def extract_and_merge_images_from_files(self, files: FileImages,
                                            images: Optional[List[ImageModel]] = None,
                                            env_files: Optional[Dict[str, Dict[str, str]]] = None) -> List[ImageModel]:
        """
        Runs the bulk extractors and merges their output with the seed images.

        :param files: Files to extract from.
        :param images: Seed images, e.g. declared by the user.
        :param env_files: Mapping of directory to variables from .env files.
        :return: Unique images with all of their locations.
        """
        dockerfile_images = self.dockerfile_parser.extract(files.dockerfile, env_files)
        compose_images = self.compose_parser.extract(files.docker_compose, env_files)
        helm_images = self.helm_parser.extract(files.helm)
        return merge_images(images, dockerfile_images, compose_images, helm_images)

    def extract_and_merge_images_with_positions(self, files: FileImages,
                                                images: Optional[List[ImageModel]] = None,
                                                env_files: Optional[Dict[str, Dict[str, str]]] = None) -> List[ImageModel]:
        """
        Like extract_and_merge_images_from_files, but every location carries
        its line and character span. Compose and Helm images are reported as
        written, without variable interpolation or chart rendering.
        """
        dockerfile_images = self.dockerfile_parser.extract_with_positions(files.dockerfile, env_files)
        compose_images = self.compose_parser.extract_with_positions(files.docker_compose, env_files)
        helm_images = self.helm_parser.extract_with_positions(files.helm)
        return merge_images(images, dockerfile_images, compose_images, helm_images)

    def save_object_to_file(self, folder_path: str, images: List[ImageModel]) -> str:
        """
        Writes the images as JSON to containers-resolution.json.

        :param folder_path: Existing folder to write into.
        :param images: Images to persist.
        :return: Full path of the written file.
        """
        result_path = os.path.join(folder_path, RESULT_FILE_NAME)
        logger.debug("%s full path is: %s", RESULT_FILE_NAME, result_path)
        payload = [image.model_dump(mode="json", by_alias=True) for image in images]
        with open(result_path, 'w', encoding='utf-8') as f:
            json.dump(payload, f)
        return result_path
