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
Extraction of zipped and tarred project trees into a working directory.
"""
import logging
import os
import shutil
import tarfile
import tempfile
import zipfile
from ..exceptions import UnsupportedArchiveError

logger = logging.getLogger(__name__)

ZIP_SUFFIXES = (".zip",)
TAR_SUFFIXES = (".tar", ".tar.gz", ".tgz")


def extract_compressed_path(input_path: str) -> str:
    """
    Returns a directory holding the files of a scan path.

    Directories are returned as they are; archives are extracted into a new
    temporary directory which the caller owns.

    :raises UnsupportedArchiveError: For any other kind of path.
    """
    if os.path.isdir(input_path):
        return input_path
    if input_path.endswith(ZIP_SUFFIXES):
        return extract_zip(input_path)
    if input_path.endswith(TAR_SUFFIXES):
        return extract_tar(input_path)
    raise UnsupportedArchiveError(f"unsupported file type: {input_path}")


def extract_zip(zip_path: str) -> str:
    """
    Extracts a zip archive, dropping a single top level folder prefix.

    macOS resource fork entries are skipped.
    """
    extract_dir = tempfile.mkdtemp(prefix="cix-zip-")
    try:
        _unzip(zip_path, extract_dir)
    except (OSError, zipfile.BadZipFile, UnsupportedArchiveError):
        shutil.rmtree(extract_dir, ignore_errors=True)
        raise

    logger.debug("Extracted zip %s to %s", zip_path, extract_dir)
    return extract_dir


def _unzip(zip_path: str, extract_dir: str) -> None:
    with zipfile.ZipFile(zip_path) as archive:
        members = archive.infolist()
        prefix = ""
        if members and "/" in members[0].filename:
            prefix = members[0].filename.split("/", 1)[0] + "/"

        for member in members:
            if member.filename.startswith("__MACOSX"):
                continue
            name = member.filename[len(prefix):] if prefix and member.filename.startswith(prefix) else member.filename
            if not name:
                continue
            target = _safe_target(extract_dir, name)
            if member.is_dir():
                os.makedirs(target, exist_ok=True)
                continue
            os.makedirs(os.path.dirname(target), exist_ok=True)
            with archive.open(member) as src, open(target, "wb") as dest:
                shutil.copyfileobj(src, dest)


def extract_tar(tar_path: str) -> str:
    """Extracts a plain or gzipped tar archive."""
    extract_dir = tempfile.mkdtemp(prefix="cix-tar-")
    try:
        with tarfile.open(tar_path, "r:*") as archive:
            archive.extractall(extract_dir, filter="data")
    except (OSError, tarfile.TarError):
        shutil.rmtree(extract_dir, ignore_errors=True)
        raise
    logger.debug("Extracted tar %s to %s", tar_path, extract_dir)
    return extract_dir


def delete_directory(dir_path: str) -> None:
    shutil.rmtree(dir_path)


def _safe_target(root: str, name: str) -> str:
    target = os.path.realpath(os.path.join(root, name))
    if os.path.commonpath([os.path.realpath(root), target]) != os.path.realpath(root):
        raise UnsupportedArchiveError(f"archive entry escapes extraction directory: {name}")
    return target
