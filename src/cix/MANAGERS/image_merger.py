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
Merging of image lists from several sources into unique images.
"""
from typing import Dict, List, Optional
from ..MODELS.image_model import ImageModel


def merge_images(images: Optional[List[ImageModel]],
                 dockerfile_images: Optional[List[ImageModel]] = None,
                 docker_compose_images: Optional[List[ImageModel]] = None,
                 helm_images: Optional[List[ImageModel]] = None) -> List[ImageModel]:
    """
    Combines seed images with the output of the three extractors.

    Sources are concatenated in a fixed order, seed first, then Dockerfile,
    Docker Compose and Helm, before duplicates are merged.
    """
    combined: List[ImageModel] = []
    for source in (images, dockerfile_images, docker_compose_images, helm_images):
        if source:
            combined.extend(source)
    return merge_duplicates(combined)


def merge_duplicates(image_models: List[ImageModel]) -> List[ImageModel]:
    """
    Collapses images sharing a name into one entry.

    Locations are unioned in first seen order, dropping exact duplicates.
    ``is_sha`` comes from the first model that introduced the name. The
    input models are left unchanged.

    :param image_models: Images in discovery order.
    :return: One image per name, in order of first discovery.
    """
    merged: Dict[str, ImageModel] = {}
    for image in image_models:
        existing = merged.get(image.name)
        if existing is None:
            merged[image.name] = ImageModel(name=image.name, image_locations=[], is_sha=image.is_sha)
            existing = merged[image.name]

        for location in image.image_locations:
            if location not in existing.image_locations:
                existing.image_locations.append(location)

    return list(merged.values())
