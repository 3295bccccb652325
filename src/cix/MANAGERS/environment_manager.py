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
Managers for resolving environment variables from .env files by directory.
"""
import os
from typing import Dict, List, Optional


class EnvironmentManager:
    """
    Resolves the variables visible to a file from .env files found in its
    directory and every ancestor directory.
    """
    def __init__(self, env_files: Optional[Dict[str, Dict[str, str]]] = None):
        """
        Initializes the environment manager.

        :param env_files: Mapping of directory to the variables defined there.
        """
        self.env_files = env_files or {}

    def resolve(self, file_path: str) -> Dict[str, str]:
        """
        Flattens the variables visible to a file.

        A variable defined in a closer directory wins over one defined
        further up the hierarchy.

        :param file_path: Full path of the source file.
        :return: The merged variables.
        """
        resolved: Dict[str, str] = {}
        for directory in self.dirs_for_hierarchy(file_path):
            for name, value in self.env_files.get(directory, {}).items():
                resolved.setdefault(name, value)
        return resolved

    @staticmethod
    def dirs_for_hierarchy(file_path: str) -> List[str]:
        """
        Lists the directories from the file's own directory up to, but not
        including, the filesystem root.
        """
        dirs = []
        directory = os.path.dirname(file_path)
        while directory not in ("", ".", "/"):
            if EnvironmentManager._is_root_dir(directory):
                break
            dirs.append(directory)
            parent = os.path.dirname(directory)
            if parent == directory:
                break
            directory = parent
        return dirs

    @staticmethod
    def _is_root_dir(directory: str) -> bool:
        # Windows drive roots (C:\) and UNC shares (\\server\share)
        return (len(directory) == 3 and directory.endswith(":\\")) or directory.startswith("\\\\")
