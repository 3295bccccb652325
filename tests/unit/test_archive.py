import io
import os
import tarfile
import zipfile
import pytest
from cix.UTILS.archive import delete_directory, extract_compressed_path
from cix.exceptions import UnsupportedArchiveError


def make_zip(path, entries):
    with zipfile.ZipFile(path, "w") as archive:
        for name, content in entries.items():
            archive.writestr(name, content)
    return str(path)


def make_tar(path, entries, mode="w:gz"):
    with tarfile.open(path, mode) as archive:
        for name, content in entries.items():
            data = content.encode()
            info = tarfile.TarInfo(name)
            info.size = len(data)
            archive.addfile(info, io.BytesIO(data))
    return str(path)


def test_directory_returned_as_is(tmp_path):
    assert extract_compressed_path(str(tmp_path)) == str(tmp_path)


def test_zip_strips_top_level_folder(tmp_path):
    zip_path = make_zip(tmp_path / "project.zip", {
        "project/Dockerfile": "FROM alpine\n",
        "project/app/docker-compose.yml": "services: {}\n",
        "__MACOSX/project/._Dockerfile": "junk",
    })
    extracted = extract_compressed_path(zip_path)
    try:
        assert os.path.isfile(os.path.join(extracted, "Dockerfile"))
        assert os.path.isfile(os.path.join(extracted, "app", "docker-compose.yml"))
        assert not os.path.exists(os.path.join(extracted, "__MACOSX"))
        assert not os.path.exists(os.path.join(extracted, "project"))
    finally:
        delete_directory(extracted)


def test_zip_without_folder(tmp_path):
    zip_path = make_zip(tmp_path / "flat.zip", {"Dockerfile": "FROM alpine\n"})
    extracted = extract_compressed_path(zip_path)
    try:
        with open(os.path.join(extracted, "Dockerfile")) as f:
            assert f.read() == "FROM alpine\n"
    finally:
        delete_directory(extracted)


@pytest.mark.parametrize("name,mode", [("project.tar.gz", "w:gz"), ("project.tgz", "w:gz"), ("project.tar", "w")])
def test_tar_archives(tmp_path, name, mode):
    tar_path = make_tar(tmp_path / name, {"Dockerfile": "FROM alpine\n"}, mode)
    extracted = extract_compressed_path(tar_path)
    try:
        assert os.path.isfile(os.path.join(extracted, "Dockerfile"))
    finally:
        delete_directory(extracted)


def test_unsupported_file(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("hello")
    with pytest.raises(UnsupportedArchiveError):
        extract_compressed_path(str(path))


def test_corrupt_zip(tmp_path):
    path = tmp_path / "broken.zip"
    path.write_bytes(b"not a zip")
    with pytest.raises(zipfile.BadZipFile):
        extract_compressed_path(str(path))
