"""Tests for namespace resolution."""

import json

import pytest

from apexcompile.errors import ConfigError
from apexcompile.namespace import namespace_filter, read_namespace


class TestReadNamespace:

    def test_reads_namespace(self, tmp_path):
        project = tmp_path / "sfdx-project.json"
        project.write_text(json.dumps({"packageDirectories": [{"path": "force-app"}], "namespace": "cgtpm"}))
        assert read_namespace(project) == "cgtpm"

    def test_missing_file_means_no_namespace(self, tmp_path):
        assert read_namespace(tmp_path / "sfdx-project.json") is None

    def test_empty_namespace_means_no_namespace(self, tmp_path):
        project = tmp_path / "sfdx-project.json"
        project.write_text(json.dumps({"namespace": ""}))
        assert read_namespace(project) is None

    def test_invalid_json_means_no_namespace(self, tmp_path):
        project = tmp_path / "sfdx-project.json"
        project.write_text("{not json")
        assert read_namespace(project) is None

    def test_non_object_manifest(self, tmp_path):
        project = tmp_path / "sfdx-project.json"
        project.write_text("[]")
        assert read_namespace(project) is None


class TestNamespaceFilter:

    def test_with_namespace_includes_unnamespaced(self):
        assert namespace_filter("cgtpm") == "WHERE (NamespacePrefix = 'cgtpm' OR NamespacePrefix = null)"

    def test_without_namespace(self):
        assert namespace_filter(None) == "WHERE NamespacePrefix = null"

    @pytest.mark.parametrize("bad", ["x' OR Name != '", "1abc", "ns-prefix"])
    def test_rejects_invalid_prefix(self, bad):
        with pytest.raises(ConfigError, match="Invalid namespace"):
            namespace_filter(bad)
