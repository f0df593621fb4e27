"""
Tests for exporting a managed project to manifests.
"""

import base64

import yaml

from wskproj.events import EventLog, EventTypes
from wskproj.export import build_manifest, code_extension, export_project


def _load(path):
    with open(path) as f:
        return yaml.safe_load(f)


class TestCodeExtension:
    """Test file extensions for exported code."""

    def test_runtimes(self):
        assert code_extension("nodejs:20") == ".js"
        assert code_extension("python:3") == ".py"
        assert code_extension("blackbox") == ".txt"

    def test_binary(self):
        assert code_extension("java:8", binary=True) == ".jar"
        assert code_extension("nodejs:20", binary=True) == ".zip"


class TestBuildManifest:
    """Test the manifest structure."""

    def test_project_manifest(self, ext_and_lib, collector, tmp_path):
        project = collector.project_assets("EXT_PROJECT")

        manifest = build_manifest(project, tmp_path)

        ext = manifest["project"]["packages"]["ext"]
        assert manifest["project"]["name"] == "EXT_PROJECT"
        assert ext["dependencies"] == {"lib1_package": {"location": "/guest/lib1_package"}}
        assert ext["actions"]["ext_hello"]["runtime"] == "nodejs:default"
        assert ext["triggers"] == {"ext_trigger": {}}
        assert ext["rules"]["ext_rule"] == {"trigger": "ext_trigger", "action": "ext/ext_hello"}

    def test_sequence_components(self, ext_and_lib, collector, tmp_path):
        project = collector.project_assets("LIB")

        manifest = build_manifest(project, tmp_path)

        sequences = manifest["project"]["packages"]["lib1_package"]["sequences"]
        assert sequences == {"lib1_seq": {"actions": "lib1_package/lib1_greeting1"}}


class TestExportProject:
    """Test writing manifests and code to disk."""

    def test_writes_project_and_dependency(self, ext_and_lib, collector, tmp_path):
        ext_and_lib.add_action("lib1_package", "lib1_greeting1", "LIB", code="function main() {}")
        ext_and_lib.add_action("ext", "ext_hello", "EXT_PROJECT", kind="python:3", code="def main(a): return a")
        target = tmp_path / "out" / "manifest.yaml"

        summary = export_project(collector, "EXT_PROJECT", str(target))

        assert summary["dependencies"] == ["LIB"]
        assert summary["manifests"] == [str(target), str(tmp_path / "out" / "dependencies" / "LIB.yaml")]

        main = _load(target)
        assert main["project"]["packages"]["ext"]["actions"]["ext_hello"]["function"] == "ext/ext_hello.py"
        assert (tmp_path / "out" / "ext" / "ext_hello.py").read_text() == "def main(a): return a"

        dep = _load(tmp_path / "out" / "dependencies" / "LIB.yaml")
        assert dep["project"]["name"] == "LIB"
        assert (tmp_path / "out" / "dependencies" / "lib1_package" / "lib1_greeting1.js").exists()

    def test_binary_code_is_decoded(self, whisk, collector, tmp_path):
        whisk.deploy("P", "pkg")
        whisk.add_action("pkg", "bin", "P", kind="java:8", code=base64.b64encode(b"PK\x03\x04").decode())
        whisk.actions.items["pkg/bin"]["exec"]["binary"] = True

        export_project(collector, "P", str(tmp_path / "manifest.yaml"))

        assert (tmp_path / "pkg" / "bin.jar").read_bytes() == b"PK\x03\x04"

    def test_unmanaged_dependency_is_not_exported(self, whisk, collector, tmp_path):
        whisk.add_package("ext", "EXT_PROJECT", ["/guest/utils"])
        whisk.add_package("utils")

        summary = export_project(collector, "EXT_PROJECT", str(tmp_path / "manifest.yaml"))

        assert summary["dependencies"] == []

    def test_export_event(self, ext_and_lib, collector, tmp_path):
        log = EventLog("EXT_PROJECT", home=tmp_path / "home")

        export_project(collector, "EXT_PROJECT", str(tmp_path / "manifest.yaml"), event_log=log)

        assert log.last()["type"] == EventTypes.EXPORTED
