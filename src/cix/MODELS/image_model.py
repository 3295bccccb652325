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
Models representing discovered container images and where they were found.
"""
from enum import Enum
from typing import List
from pydantic import BaseModel, ConfigDict, Field

NO_FILE_PATH = "NONE"


class ImageOrigin(str, Enum):
    """
    Kind of source an image reference was discovered in.
    """
    USER_INPUT = "UserInput"
    DOCKERFILE = "Dockerfile"
    DOCKER_COMPOSE = "DockerCompose"
    HELM = "Helm"


class ImageLocation(BaseModel):
    """
    A single occurrence of an image reference.

    Line and indices are zero based. They are all zero when the extractor
    that produced the location does not track positions.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    origin: ImageOrigin = Field(alias="Origin")
    path: str = Field(default="", alias="Path")
    final_stage: bool = Field(default=False, alias="FinalStage")
    line: int = Field(default=0, alias="Line")
    start_index: int = Field(default=0, alias="StartIndex")
    end_index: int = Field(default=0, alias="EndIndex")


class ImageModel(BaseModel):
    """
    A container image, unique by name, with every location it was seen at.
    """
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(alias="Name")
    image_locations: List[ImageLocation] = Field(default_factory=list, alias="ImageLocations")
    is_sha: bool = Field(default=False, alias="IsSha")
