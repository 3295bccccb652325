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
Command Line Interface for CIX.
"""
import logging
import os
import tarfile
import zipfile
import click
from ..exceptions import UnsupportedArchiveError
from ..MANAGERS.images_extractor import ImagesExtractor
from ..MODELS.image_model import NO_FILE_PATH, ImageLocation, ImageModel, ImageOrigin
from ..UTILS.archive import delete_directory
from ..UTILS.image_names import is_sha_reference, normalize_image_name

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
def cli(verbose):
    """
    CIX - Container Image eXtractor.

    Finds the container images referenced by Dockerfiles, Docker Compose
    files and Helm charts of a project.
    """
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format=LOG_FORMAT)


@cli.command()
@click.argument('scan_path', type=click.Path(exists=True))
@click.option('--output', '-o', default='.', type=click.Path(file_okay=False),
              help='Folder to write containers-resolution.json to')
@click.option('--image', '-i', 'images', multiple=True, help='Additional image to include, may be repeated')
@click.option('--with-positions', is_flag=True,
              help='Report exact positions instead of interpolating variables and rendering charts')
@click.option('--helm-binary', default='helm', envvar='CIX_HELM_BINARY', show_default=True,
              help='Helm executable used to render charts')
def extract(scan_path, output, images, with_positions, helm_binary):
    """Extract images from a directory or archive."""
    extractor = ImagesExtractor(helm_binary=helm_binary)
    try:
        files, env_files, files_path = extractor.extract_files(scan_path)
    except (UnsupportedArchiveError, OSError, zipfile.BadZipFile, tarfile.TarError) as e:
        raise click.ClickException(f"Could not read {scan_path}: {e}")

    if files.is_empty():
        click.echo(f"No Dockerfiles, Docker Compose files or Helm charts found in {scan_path}")

    seed = [user_image(name) for name in images]
    try:
        if with_positions:
            merged = extractor.extract_and_merge_images_with_positions(files, seed, env_files)
        else:
            merged = extractor.extract_and_merge_images_from_files(files, seed, env_files)
    finally:
        if files_path != scan_path:
            delete_directory(files_path)

    os.makedirs(output, exist_ok=True)
    result_path = extractor.save_object_to_file(output, merged)

    click.echo(f"Found {len(merged)} image(s), written to {result_path}")
    for image in merged:
        click.echo(f"  {image.name} ({len(image.image_locations)} location(s))")


@cli.command()
@click.argument('scan_path', type=click.Path(exists=True, file_okay=False))
def files(scan_path):
    """List the files that would be scanned."""
    extractor = ImagesExtractor()
    found, env_files, _ = extractor.extract_files(scan_path)

    click.echo("Dockerfiles:")
    for file_path in found.dockerfile:
        click.echo(f"  {file_path.relative_path}")
    click.echo("Docker Compose files:")
    for file_path in found.docker_compose:
        click.echo(f"  {file_path.relative_path}")
    click.echo("Helm charts:")
    for chart in found.helm:
        click.echo(f"  {chart.directory} ({len(chart.template_files)} template(s))")
    click.echo(f"Directories with .env files: {len(env_files)}")


def user_image(name: str) -> ImageModel:
    """Builds a seed image for a name given on the command line."""
    return ImageModel(
        name=normalize_image_name(name),
        image_locations=[ImageLocation(origin=ImageOrigin.USER_INPUT, path=NO_FILE_PATH)],
        is_sha=is_sha_reference(name),
    )


def main():
    """
    Main entry point for the CLI.
    """
    cli()


if __name__ == '__main__':
    main()
