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
Parsers for .env files, grouped by the directory they live in.
"""
import io
import logging
from typing import Dict, List
from dotenv import dotenv_values

logger = logging.getLogger(__name__)


class EnvParser:
    """
    Parser for .env files.
    """
    @staticmethod
    def parse(env_path: str) -> Dict[str, str]:
        """
        Parses an .env file from a path.

        Args:
            env_path (str): Path to the .env file.

        Returns:
            Dict[str, str]: Dictionary of environment variables.
        """
        with open(env_path, 'r', encoding='utf-8') as f:
            content = f.read()
        return EnvParser.parse_from_string(content)

    @staticmethod
    def parse_from_string(content: str) -> Dict[str, str]:
        """
        Parses environment variables from a string.
        Blank lines and comments are ignored, as are keys without a value.
        Values are taken literally, no ${VAR} expansion happens here.
        """
        values = dotenv_values(stream=io.StringIO(content), interpolate=False)
        return {key: value for key, value in values.items() if value is not None}

    @staticmethod
    def parse_env_files(env_files: Dict[str, List[str]]) -> Dict[str, Dict[str, str]]:
        """
        Parses every .env file and merges the results per directory.

        Files later in a directory's list override earlier ones. A file that
        cannot be read is skipped.

        Args:
            env_files: Mapping of directory to the .env files found in it.

        Returns:
            Mapping of directory to its merged variables.
        """
        env_vars: Dict[str, Dict[str, str]] = {}
        for directory, paths in env_files.items():
            for path in paths:
                try:
                    file_vars = EnvParser.parse(path)
                except (OSError, UnicodeDecodeError) as e:
                    logger.warning("Could not parse env file %s: %s", path, e)
                    continue
                env_vars.setdefault(directory, {}).update(file_vars)
        return env_vars
