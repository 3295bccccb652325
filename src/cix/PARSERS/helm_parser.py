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
Parsers for Helm charts: rendered manifests and raw template/values scanning.
"""
import glob
import logging
import os
import re
import subprocess
from typing import Any, Dict, List, Optional, Sequence
import yaml
from ..exceptions import HelmRenderError, ManifestParseError
from ..MODELS.file_paths import FilePath, HelmChartInfo
from ..MODELS.image_model import ImageLocation, ImageModel, ImageOrigin
from .base_parser import ImageExtractor, log_found_images

logger = logging.getLogger(__name__)


class HelmParser(ImageExtractor):
    """
    Extracts images from Helm charts.

    ``extract`` renders each chart with ``helm template`` and reads
    ``spec.image`` from every rendered document. ``extract_with_positions``
    scans template and values files line by line for ``image: repo:tag``.
    """
    DOCUMENT_SEPARATOR = re.compile(r'^---[ \t]*$', re.MULTILINE)
    SOURCE_PATTERN = re.compile(r'#\s*Source:\s*([^\n]+)')
    IMAGE_LINE_PATTERN = re.compile(r'^\s*image:\s*([^\s#]+:[^\s#]+)\s*$')
    VALUES_FILE_PATTERNS = ("values.yaml", "values-*.yaml", "values.yml", "values-*.yml")

    def __init__(self, helm_binary: str = "helm", release_name: str = "temp-release"):
        """
        :param helm_binary: Name or path of the helm executable.
        :param release_name: Release name used for the dry-run render.
        """
        self.helm_binary = helm_binary
        self.release_name = release_name

    def extract(self, files: Sequence[HelmChartInfo],
                env_files: Optional[Dict[str, Dict[str, str]]] = None) -> List[ImageModel]:
        """
        Renders every chart and extracts the images of its manifests.

        A chart that cannot be rendered or parsed is skipped.
        """
        images: List[ImageModel] = []
        for chart in files:
            logger.info("Going to extract images from helm directory %s", chart.directory)
            try:
                manifest = self.render_templates(chart)
            except HelmRenderError as e:
                logger.error("%s", e)
                continue

            try:
                chart_images = self.extract_image_info(manifest)
            except ManifestParseError as e:
                logger.error("Could not extract images from helm directory %s: %s", chart.directory, e)
                continue

            log_found_images(chart.directory, chart_images)
            images.extend(chart_images)
        return images

    def extract_with_positions(self, files: Sequence[HelmChartInfo],
                               env_files: Optional[Dict[str, Dict[str, str]]] = None) -> List[ImageModel]:
        """
        Scans template files and values files of every chart for image lines.

        Only ``image: <repo>:<tag>`` lines with nothing after the tag match.
        """
        images: List[ImageModel] = []
        for chart in files:
            for template_file in chart.template_files:
                images.extend(self._scan_or_skip(template_file))

            try:
                values_files = self.find_values_files(chart.directory)
            except OSError as e:
                logger.error("Could not find values files in chart directory %s: %s", chart.directory, e)
                continue
            for values_file in values_files:
                images.extend(self._scan_or_skip(values_file))
        return images

    def render_templates(self, chart: HelmChartInfo) -> str:
        """
        Renders a chart locally with its default values.

        :param chart: The chart to render.
        :return: The rendered multi-document manifest.
        :raises HelmRenderError: If helm is missing or the render fails.
        """
        chart_path = os.path.abspath(chart.directory)
        command = [self.helm_binary, "template", self.release_name, chart_path]
        try:
            result = subprocess.run(command, capture_output=True, text=True, check=True)
        except subprocess.CalledProcessError as e:
            raise HelmRenderError(chart.directory, (e.stderr or "").strip() or str(e)) from e
        except OSError as e:
            raise HelmRenderError(chart.directory, str(e)) from e
        return result.stdout

    def extract_image_info(self, manifest: str) -> List[ImageModel]:
        """
        Reads ``spec.image`` from every document of a rendered manifest.

        :param manifest: Rendered manifest text.
        :return: One ImageModel per document that names an image.
        :raises ManifestParseError: If a document is not valid YAML or not a mapping.
        """
        images: List[ImageModel] = []
        for document in self.DOCUMENT_SEPARATOR.split(manifest):
            if not document.strip():
                continue

            # BaseLoader keeps every scalar a string, so tags like 1.10 survive
            try:
                data = yaml.load(document, Loader=yaml.BaseLoader)
            except yaml.YAMLError as e:
                raise ManifestParseError(f"Invalid manifest document: {e}") from e
            if data is None:
                continue
            if not isinstance(data, dict):
                raise ManifestParseError(f"Expected a mapping document, got {type(data).__name__}")

            name = self._image_name(data)
            if not name:
                continue

            images.append(ImageModel(
                name=name,
                image_locations=[ImageLocation(origin=ImageOrigin.HELM, path=self._source(document))],
            ))
        return images

    @classmethod
    def find_values_files(cls, chart_directory: str) -> List[FilePath]:
        """Lists values files directly inside a chart directory."""
        values_files = []
        for pattern in cls.VALUES_FILE_PATTERNS:
            for match in sorted(glob.glob(os.path.join(glob.escape(chart_directory), pattern))):
                values_files.append(FilePath(full_path=match, relative_path=os.path.basename(match)))
        return values_files

    def scan_file(self, file_path: FilePath) -> List[ImageModel]:
        """
        Scans one file for image lines.

        :raises OSError: If the file cannot be read.
        """
        images: List[ImageModel] = []
        with open(file_path.full_path, 'r', encoding='utf-8') as f:
            for line_number, line in enumerate(f):
                line = line.rstrip('\r\n')
                trimmed = line.strip()
                if not trimmed or trimmed.startswith('#'):
                    continue

                match = self.IMAGE_LINE_PATTERN.match(line)
                if not match:
                    continue

                images.append(ImageModel(
                    name=match.group(1),
                    image_locations=[ImageLocation(
                        origin=ImageOrigin.HELM,
                        path=file_path.relative_path,
                        line=line_number,
                        start_index=match.start(1),
                        end_index=match.end(1),
                    )],
                ))
        return images

    def _scan_or_skip(self, file_path: FilePath) -> List[ImageModel]:
        try:
            images = self.scan_file(file_path)
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Could not extract images with line info from %s: %s", file_path.full_path, e)
            return []
        log_found_images(file_path.relative_path, images)
        return images

    @staticmethod
    def _image_name(data: Dict[str, Any]) -> str:
        spec = data.get('spec')
        image = spec.get('image') if isinstance(spec, dict) else None
        if not isinstance(image, dict):
            return ""

        name = image.get('name') or ""
        if not isinstance(name, str) or not name:
            return ""

        registry = image.get('registry') or ""
        tag = image.get('tag') or ""
        prefix = f"{registry}/" if isinstance(registry, str) and registry else ""
        return f"{prefix}{name}:{tag if isinstance(tag, str) else ''}"

    def _source(self, document: str) -> str:
        match = self.SOURCE_PATTERN.search(document)
        return match.group(1).strip() if match else ""
