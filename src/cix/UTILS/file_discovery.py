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
Discovery of Dockerfiles, Compose files, .env files and Helm charts in a tree.
"""
import logging
import os
import re
from typing import Dict, List, Tuple
from ..exceptions import HelmDirectoryError
from ..MODELS.file_paths import FileImages, FilePath, HelmChartInfo

logger = logging.getLogger(__name__)

DOCKERFILE_PATTERN = re.compile(r'^Dockerfile(?:-[a-zA-Z0-9]+|\.[a-zA-Z0-9.]+|[a-zA-Z0-9.]+)?$')
DOCKER_COMPOSE_PATTERN = re.compile(r'docker-compose(-[a-zA-Z0-9]+)?(\.yml|\.yaml)$')
ENV_FILE_SUFFIXES = (".env", ".env_cxcontainers")

CHART_FILE = "Chart.yaml"
VALUES_FILE = "values.yaml"
TEMPLATES_DIR = "templates"


def discover_files(files_path: str) -> Tuple[FileImages, Dict[str, List[str]]]:
    """
    Walks a tree collecting candidate files.

    :param files_path: Root of the project tree.
    :return: The categorized files and a mapping of directory to .env files.
    """
    files_path = os.path.normpath(files_path)
    files = FileImages()
    env_files: Dict[str, List[str]] = {}

    def on_error(error: OSError) -> None:
        logger.warning("Could not walk %s: %s", error.filename, error)

    for root, dirs, names in os.walk(files_path, onerror=on_error):
        dirs.sort()
        for name in sorted(names):
            path = os.path.join(root, name)
            if DOCKERFILE_PATTERN.match(name):
                files.dockerfile.append(FilePath(full_path=path, relative_path=get_relative_path(files_path, path)))
            if DOCKER_COMPOSE_PATTERN.search(name):
                files.docker_compose.append(FilePath(full_path=path, relative_path=get_relative_path(files_path, path)))
            if name.endswith(ENV_FILE_SUFFIXES):
                env_files.setdefault(os.path.dirname(path), []).append(path)

    files.helm = find_helm_charts(files_path)

    _log_file_paths(files.dockerfile, "Successfully found dockerfiles")
    _log_file_paths(files.docker_compose, "Successfully found docker compose files")
    return files, env_files


def find_helm_charts(base_dir: str) -> List[HelmChartInfo]:
    """
    Finds chart directories, those holding Chart.yaml, values.yaml and a
    templates directory, and collects their YAML templates recursively.
    """
    charts = []
    for root, dirs, _ in os.walk(base_dir):
        dirs.sort()
        if not is_helm_chart(root):
            continue

        templates_dir = os.path.join(root, TEMPLATES_DIR)
        template_files = []
        for template_root, template_dirs, template_names in os.walk(templates_dir):
            template_dirs.sort()
            for name in sorted(template_names):
                path = os.path.join(template_root, name)
                if is_yaml_file(path):
                    template_files.append(FilePath(full_path=path, relative_path=get_relative_path(base_dir, path)))

        charts.append(HelmChartInfo(directory=root, template_files=template_files))
    return charts


def find_helm_files_in_directory(scan_path: str) -> List[HelmChartInfo]:
    """
    Collects the Helm templates of the nearest ancestor directory named like
    ``*helm*``, for scan paths that sit inside a chart rather than above it.

    Returns no chart when that directory has neither templates nor values files.

    :raises HelmDirectoryError: If the path is missing, is not a directory
        or has no helm directory above it.
    """
    if not os.path.exists(scan_path):
        raise HelmDirectoryError(f"directory does not exist: {scan_path}")

    helm_dir = find_helm_directory(scan_path)
    if helm_dir is None:
        raise HelmDirectoryError(f"no helm directory found in path hierarchy: {scan_path}")
    if not os.path.isdir(scan_path):
        raise HelmDirectoryError(f"scan path must be a directory: {scan_path}")

    values_files, template_files = _collect_helm_files(helm_dir)
    if not values_files and not template_files:
        return []

    # values files are picked up from the chart directory by the helm parser
    return [HelmChartInfo(directory=helm_dir, template_files=template_files)]


def find_helm_directory(dir_path: str):
    current = os.path.abspath(dir_path)
    while True:
        if "helm" in os.path.basename(current).lower():
            return current
        parent = os.path.dirname(current)
        if parent == current:
            return None
        current = parent


def _collect_helm_files(helm_dir: str) -> Tuple[List[str], List[FilePath]]:
    values_files: List[str] = []
    template_files: List[FilePath] = []
    for root, dirs, names in os.walk(helm_dir):
        dirs.sort()
        for name in sorted(names):
            path = os.path.join(root, name)
            if not is_yaml_file(path) or name == CHART_FILE:
                continue
            relative_path = get_relative_path(helm_dir, path)
            relative_dir = os.path.dirname(relative_path)
            if root == helm_dir and "values" in name.lower():
                values_files.append(relative_path)
            elif relative_dir.startswith(TEMPLATES_DIR):
                template_files.append(FilePath(full_path=path, relative_path=relative_path))
    return values_files, template_files


def is_helm_chart(directory: str) -> bool:
    return (os.path.isfile(os.path.join(directory, CHART_FILE))
            and os.path.isfile(os.path.join(directory, VALUES_FILE))
            and os.path.isdir(os.path.join(directory, TEMPLATES_DIR)))


def is_yaml_file(file_path: str) -> bool:
    return os.path.splitext(file_path)[1].lower() in (".yml", ".yaml")


def get_relative_path(base_dir: str, file_path: str) -> str:
    """Path of a file relative to the scan root, always with forward slashes."""
    try:
        relative_path = os.path.relpath(file_path, base_dir)
    except ValueError:
        return file_path
    return relative_path.replace(os.sep, "/")


def _log_file_paths(files: List[FilePath], message: str) -> None:
    if files:
        logger.debug("%s. files: %s", message, ", ".join(f.relative_path for f in files))
