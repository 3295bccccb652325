import subprocess
import pytest
from cix.exceptions import HelmRenderError, ManifestParseError
from cix.MODELS.file_paths import FilePath, HelmChartInfo
from cix.MODELS.image_model import ImageOrigin
from cix.PARSERS.helm_parser import HelmParser

MANIFEST = """---
# Source: containers/templates/image-insights.yaml
kind: Role
apiVersion: rbac.authorization.k8s.io/v1
metadata:
  name: release-name-containers-image-insights
rules:
  - apiGroups: [""]
    resources: ["pods"]
    verbs: ["get"]
---
# Source: containers/templates/containers-image-risks.yaml
apiVersion: ast.checkmarx.com/v1
kind: Microservice
metadata:
  name: release-name-containers-containers-image-risks
spec:
  component: "containers"
  image:
    registry:
    name: nginx
    pullPolicy: IfNotPresent # Overrides the image tag whose default is the chart appVersion.
    tag: latest
    imagePullSecrets: [ ]
---
# Source: containers/templates/containers-worker.yaml
apiVersion: ast.checkmarx.com/v1
kind: Microservice
spec:
  image:
    registry: checkmarx.jfrog.io/ast-docker
    name: containers-worker
    tag: b201b1f
"""


class TestExtractImageInfo:
    """Tests for reading images from rendered manifests."""

    def test_reads_spec_image(self):
        images = HelmParser().extract_image_info(MANIFEST)

        assert [i.name for i in images] == [
            "nginx:latest",
            "checkmarx.jfrog.io/ast-docker/containers-worker:b201b1f",
        ]
        location = images[0].image_locations[0]
        assert location.origin == ImageOrigin.HELM
        assert location.path == "containers/templates/containers-image-risks.yaml"
        assert (location.line, location.start_index, location.end_index) == (0, 0, 0)

    def test_tags_stay_strings(self):
        manifest = "spec:\n  image:\n    name: app\n    tag: 1.10\n"
        images = HelmParser().extract_image_info(manifest)
        assert images[0].name == "app:1.10"
        assert images[0].image_locations[0].path == ""

    def test_invalid_document_raises(self):
        with pytest.raises(ManifestParseError):
            HelmParser().extract_image_info("invalid yaml string")
        with pytest.raises(ManifestParseError):
            HelmParser().extract_image_info("spec: [unclosed\n")

    def test_empty_manifest(self):
        assert HelmParser().extract_image_info("") == []
        assert HelmParser().extract_image_info("---\n# only a comment\n---\n") == []


class TestRender:
    """Tests for chart rendering through the helm executable."""

    def test_missing_helm_binary(self, tmp_path):
        parser = HelmParser(helm_binary=str(tmp_path / "no-such-helm"))
        with pytest.raises(HelmRenderError):
            parser.render_templates(HelmChartInfo(directory=str(tmp_path)))

    def test_failed_render(self, tmp_path, monkeypatch):
        def fail(command, **kwargs):
            raise subprocess.CalledProcessError(1, command, stderr="Error: Chart.yaml file is missing")

        monkeypatch.setattr(subprocess, "run", fail)
        with pytest.raises(HelmRenderError, match="Chart.yaml file is missing"):
            HelmParser().render_templates(HelmChartInfo(directory=str(tmp_path)))

    def test_render_command(self, tmp_path, monkeypatch):
        calls = []

        def run(command, **kwargs):
            calls.append(command)
            return subprocess.CompletedProcess(command, 0, stdout=MANIFEST, stderr="")

        monkeypatch.setattr(subprocess, "run", run)
        manifest = HelmParser(helm_binary="/opt/helm").render_templates(HelmChartInfo(directory=str(tmp_path)))

        assert manifest == MANIFEST
        assert calls == [["/opt/helm", "template", "temp-release", str(tmp_path)]]

    def test_extract_skips_broken_charts(self, monkeypatch):
        parser = HelmParser()

        def render(chart):
            if chart.directory == "broken":
                raise HelmRenderError(chart.directory, "boom")
            if chart.directory == "garbage":
                return "just a string"
            return MANIFEST

        monkeypatch.setattr(parser, "render_templates", render)
        charts = [HelmChartInfo(directory=d) for d in ("broken", "garbage", "good")]

        images = parser.extract(charts)
        assert [i.name for i in images] == [
            "nginx:latest",
            "checkmarx.jfrog.io/ast-docker/containers-worker:b201b1f",
        ]


@pytest.fixture
def chart(tmp_path):
    templates = tmp_path / "templates"
    templates.mkdir()
    (templates / "valid-image.yaml").write_text(
        "apiVersion: v1\n"
        "kind: Pod\n"
        "metadata:\n"
        "  name: test\n"
        "spec:\n"
        "  containers:\n"
        "    - name: app\n"
        "      image: myrepo/valid:1.0.0\n"
    )
    (templates / "skipped.yaml").write_text(
        "spec:\n"
        "  containers:\n"
        "    - name: a\n"
        "      # image: myrepo/commented:2.0.0\n"
        "      image: myrepo/extratext:3.0.0 # pinned\n"
        "      image: myrepo/notag\n"
    )
    (tmp_path / "values.yaml").write_text("image: myrepo/valuesimage:1.2.3\n")
    (tmp_path / "values-extra.yaml").write_text("\n# image: myrepo/commented:7.8.9\nimage: myrepo/valuesextra:4.5.6\n")
    (tmp_path / "other.yaml").write_text("image: myrepo/ignored:1.0\n")

    return HelmChartInfo(
        directory=str(tmp_path),
        template_files=[
            FilePath(full_path=str(templates / "valid-image.yaml"), relative_path="templates/valid-image.yaml"),
            FilePath(full_path=str(templates / "skipped.yaml"), relative_path="templates/skipped.yaml"),
            FilePath(full_path=str(templates / "missing.yaml"), relative_path="templates/missing.yaml"),
        ],
    )


def test_extract_with_positions(chart):
    images = HelmParser().extract_with_positions([chart])

    found = {(i.name, loc.path, loc.line, loc.start_index, loc.end_index)
             for i in images for loc in i.image_locations}
    assert found == {
        ("myrepo/valid:1.0.0", "templates/valid-image.yaml", 7, 13, 31),
        ("myrepo/valuesimage:1.2.3", "values.yaml", 0, 7, 31),
        ("myrepo/valuesextra:4.5.6", "values-extra.yaml", 2, 7, 31),
    }


def test_find_values_files(chart):
    names = [f.relative_path for f in HelmParser.find_values_files(chart.directory)]
    assert names == ["values.yaml", "values-extra.yaml"]
