from cix.MODELS.file_paths import FilePath
from cix.MODELS.image_model import ImageOrigin
from cix.PARSERS.dockerfile_parser import DockerfileParser

MULTI_STAGE = "\n".join([
    "ARG DOTNET_VERSION=6.0",
    "FROM mcr.microsoft.com/dotnet/sdk:${DOTNET_VERSION} AS build-env",
    "WORKDIR /app",
    "COPY . ./",
    "RUN dotnet publish -c Release -o out",
    "",
    "FROM build-env AS test",
    "RUN dotnet test",
    "",
    "FROM mcr.microsoft.com/dotnet/aspnet:6.0",
    "COPY --from=build-env /app/out .",
])


def test_multi_stage_dockerfile():
    parser = DockerfileParser()
    images = parser.parse_from_string(MULTI_STAGE, "Dockerfile")

    assert [i.name for i in images] == [
        "mcr.microsoft.com/dotnet/sdk:6.0",
        "mcr.microsoft.com/dotnet/aspnet:6.0",
    ]

    sdk = images[0].image_locations[0]
    assert sdk.origin == ImageOrigin.DOCKERFILE
    assert sdk.path == "Dockerfile"
    assert (sdk.line, sdk.start_index, sdk.end_index) == (1, 5, 37)
    assert sdk.final_stage is False

    aspnet = images[1].image_locations[0]
    assert (aspnet.line, aspnet.start_index, aspnet.end_index) == (9, 5, 40)
    assert aspnet.final_stage is True


def test_stage_alias_is_not_reported():
    content = "\n".join([
        "FROM golang:1.21 AS builder",
        "FROM builder AS tester",
        "FROM tester",
    ])
    images = DockerfileParser().parse_from_string(content)

    assert [i.name for i in images] == ["golang:1.21"]
    assert images[0].image_locations[0].final_stage is True


def test_alias_named_like_its_image_is_reported():
    content = "\n".join([
        "FROM node AS node",
        "FROM node",
    ])
    images = DockerfileParser().parse_from_string(content)

    assert [i.name for i in images] == ["node:latest", "node:latest"]
    assert [i.image_locations[0].final_stage for i in images] == [False, True]


def test_lowercase_as_registers_alias():
    content = "FROM python:3.12 as base\nFROM base\n"
    images = DockerfileParser().parse_from_string(content)
    assert [i.name for i in images] == ["python:3.12"]


def test_exactly_one_final_stage():
    content = "\n".join([
        "FROM alpine:3.18 AS a",
        "FROM debian:12 AS b",
        "FROM alpine:3.18",
    ])
    images = DockerfileParser().parse_from_string(content)

    locations = [loc for image in images for loc in image.image_locations]
    assert [loc.final_stage for loc in locations] == [False, False, True]


def test_scratch_is_skipped():
    content = "FROM scratch AS base\nFROM scratch\nCOPY app /app\n"
    assert DockerfileParser().parse_from_string(content) == []


def test_default_tag_and_platform():
    content = "FROM --platform=linux/amd64 node:18 AS deps\nFROM ubuntu\n"
    images = DockerfileParser().parse_from_string(content)

    assert [i.name for i in images] == ["node:18", "ubuntu:latest"]
    node = images[0].image_locations[0]
    assert (node.start_index, node.end_index) == (28, 35)


def test_comments_are_ignored():
    content = "# FROM ubuntu:20.04\n  # FROM debian\nFROM alpine:3.18\n"
    images = DockerfileParser().parse_from_string(content)
    assert [i.name for i in images] == ["alpine:3.18"]
    assert images[0].image_locations[0].line == 2


def test_env_file_variables_are_substituted():
    content = "FROM ${REGISTRY}/base:$TAG\n"
    images = DockerfileParser().parse_from_string(content, env={"REGISTRY": "myreg.io", "TAG": "2.1"})
    assert [i.name for i in images] == ["myreg.io/base:2.1"]


def test_args_only_apply_to_following_lines():
    content = "\n".join([
        "FROM node:${VERSION}",
        "ARG VERSION=20",
        "FROM node:${VERSION}",
        "ENV VERSION=21",
        "FROM node:${VERSION}",
    ])
    images = DockerfileParser().parse_from_string(content)
    assert [i.name for i in images] == ["node:latest", "node:20", "node:21"]


def test_resolve_alias_stops_on_cycle():
    aliases = {"a": "b", "b": "a"}
    assert DockerfileParser._resolve_alias("a", aliases) in ("a", "b")
    assert DockerfileParser._resolve_alias("golang:1.21", aliases) == "golang:1.21"


def test_parse_from_file(tmp_path):
    dockerfile = tmp_path / "Dockerfile"
    dockerfile.write_text("FROM nginx:1.25\r\n")

    images = DockerfileParser().parse(FilePath(full_path=str(dockerfile), relative_path="Dockerfile"))
    assert images[0].name == "nginx:1.25"
    assert images[0].image_locations[0].end_index == 15


def test_extract_skips_unreadable_files(tmp_path):
    good = tmp_path / "app" / "Dockerfile"
    good.parent.mkdir()
    good.write_text("FROM python:${PY}\n")

    files = [
        FilePath(full_path=str(tmp_path / "missing" / "Dockerfile"), relative_path="missing/Dockerfile"),
        FilePath(full_path=str(good), relative_path="app/Dockerfile"),
    ]
    env_files = {str(tmp_path): {"PY": "3.11"}}

    images = DockerfileParser().extract(files, env_files)
    assert [i.name for i in images] == ["python:3.11"]
    assert images[0].image_locations[0].path == "app/Dockerfile"
