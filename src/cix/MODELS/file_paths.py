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
Models describing the files handed to the extractors.
"""
from typing import List
from pydantic import BaseModel


class FilePath(BaseModel):
    """
    A discovered file: where to read it and how to report it.
    """
    full_path: str
    relative_path: str


class HelmChartInfo(BaseModel):
    """
    A Helm chart directory with its template files.
    """
    directory: str
    template_files: List[FilePath] = []


class FileImages(BaseModel):
    """
    Categorized lists of files that may declare container images.
    """
    dockerfile: List[FilePath] = []
    docker_compose: List[FilePath] = []
    helm: List[HelmChartInfo] = []

    def is_empty(self) -> bool:
        return not (self.dockerfile or self.docker_compose or self.helm)
