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
Common interface shared by the image extractors.
"""
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence, Any
from ..MODELS.image_model import ImageModel

logger = logging.getLogger(__name__)


class ImageExtractor(ABC):
    """
    An extractor offers two strategies over a batch of files.

    ``extract`` is the bulk strategy: it resolves environment variables and
    canonicalizes names but may not track positions. ``extract_with_positions``
    reports the exact line and character span of each reference and performs
    no substitution. A file that fails is logged and skipped in both.
    """

    @abstractmethod
    def extract(self, files: Sequence[Any],
                env_files: Optional[Dict[str, Dict[str, str]]] = None) -> List[ImageModel]:
        """Extracts images from every file in the batch."""

    @abstractmethod
    def extract_with_positions(self, files: Sequence[Any],
                               env_files: Optional[Dict[str, Dict[str, str]]] = None) -> List[ImageModel]:
        """Extracts images with accurate line and character positions."""


def log_found_images(source: str, images: List[ImageModel]) -> None:
    """Logs the images found in one file or chart at debug level."""
    if images:
        logger.debug("Found images in %s: %s", source, ", ".join(image.name for image in images))
    else:
        logger.debug("Could not find any images in %s", source)
