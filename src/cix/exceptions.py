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
Exceptions raised by the extractors.
"""


class CixError(Exception):
    """Base class for all errors raised by cix."""


class UnsupportedArchiveError(CixError, ValueError):
    """The scan path is neither a directory nor a supported archive."""


class HelmRenderError(CixError):
    """A chart could not be rendered by the helm executable."""

    def __init__(self, chart_directory: str, message: str):
        self.chart_directory = chart_directory
        super().__init__(f"Could not render helm chart {chart_directory}: {message}")


class ManifestParseError(CixError):
    """A rendered manifest document is not valid YAML or not a mapping."""


class HelmDirectoryError(CixError):
    """No usable helm directory was found for a scan path."""
