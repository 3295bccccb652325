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
Image name normalization.
"""
import re

DEFAULT_TAG = "latest"

IMAGE_NAME_PATTERN = re.compile(r'^([^:@\s]+)(?::([^@\s]+))?$')
DIGEST_PATTERN = re.compile(r'@[A-Za-z][A-Za-z0-9]*(?:[+._-][A-Za-z][A-Za-z0-9]*)*:[0-9a-fA-F]{32,}$')


def normalize_image_name(image: str) -> str:
    """
    Canonicalizes an image reference to ``name:tag``.

    References that do not look like ``name[:tag]`` (digests, unresolved
    placeholders with spaces, empty strings) are returned unchanged.
    """
    match = IMAGE_NAME_PATTERN.match(image)
    if not match:
        return image
    name, tag = match.group(1), match.group(2)
    return f"{name}:{tag or DEFAULT_TAG}"


def is_sha_reference(image: str) -> bool:
    """True if the reference pins the image by digest, e.g. ``nginx@sha256:...``."""
    return bool(DIGEST_PATTERN.search(image))
