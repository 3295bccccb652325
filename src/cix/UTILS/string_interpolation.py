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
Utilities for substituting environment variables into image references.
"""
import re
from typing import Dict


class EnvironmentInterpolator:
    """
    Substitutes known variables into Dockerfile lines and Compose image strings.

    Unknown placeholders are left untouched.
    """
    DEFAULT_VALUE_PATTERN = re.compile(r':-(.+)}')

    @staticmethod
    def replace_placeholders(line: str, *contexts: Dict[str, str]) -> str:
        """
        Replaces ${VAR} and $VAR placeholders in a Dockerfile line.

        Contexts are applied in order, so a placeholder still present after an
        earlier context can be resolved by a later one.

        :param line: The raw line.
        :param contexts: Variable mappings, applied first to last.
        :return: The line with every known placeholder replaced.
        """
        for context in contexts:
            for name, value in context.items():
                line = line.replace(f"${{{name}}}", value)
                line = line.replace(f"${name}", value)
        return line

    @staticmethod
    def process_env_vars(image: str, context: Dict[str, str]) -> str:
        """
        Resolves ${VAR}, {{VAR}} and ${VAR:-default} forms in a Compose image.

        After every known variable is substituted, a remaining ``:-default}``
        construct makes its default the whole result.

        :param image: The image string as written in the compose file.
        :param context: The resolved environment for the compose file.
        :return: The interpolated image string.
        """
        for name, value in context.items():
            quoted = re.escape(name)
            pattern = re.compile(r'(\{\{' + quoted + r'\}\}|\$\{' + quoted + r'\})')
            image = pattern.sub(lambda _: value, image)

            with_default = re.compile(r'\$\{' + quoted + r':-[^}]*\}')
            image = with_default.sub(lambda _: value, image)

        match = EnvironmentInterpolator.DEFAULT_VALUE_PATTERN.search(image)
        if match:
            return match.group(1)

        return image
