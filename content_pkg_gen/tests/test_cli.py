#!/usr/bin/env python3

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from content_pkg_gen.content_pkg_gen import content_pkg_gen

TEST_DATA_DIR = Path(__file__).parent / "test_data"
SCHEMA = str(TEST_DATA_DIR / "schema.json")
CACHE = str(TEST_DATA_DIR / "data-cache.json")


class TestCli:
    """Test cases for the command line entry point"""

    def test_generates_package(self, tmp_path):
        result = CliRunner().invoke(content_pkg_gen, [SCHEMA, CACHE, "--cwd", str(tmp_path)])

        assert result.exit_code == 0, result.output
        generated = tmp_path / ".contentlayer" / "generated"
        assert json.loads((generated / "Post" / "_index.json").read_text())[0]["_id"] == "1-a"
        assert "import allPosts from './Post/_index.json'" in (generated / "index.mjs").read_text()

    def test_dev_and_debug(self, tmp_path):
        result = CliRunner().invoke(content_pkg_gen, [SCHEMA, CACHE, "--cwd", str(tmp_path), "--dev", "--debug"])

        assert result.exit_code == 0, result.output
        root = tmp_path / ".contentlayer"
        assert "import { allPosts } from './Post/_index.mjs'" in (root / "generated" / "index.mjs").read_text()
        assert (root / ".cache" / "schema.json").exists()

    def test_config_file(self, tmp_path):
        config_path = tmp_path / "options.json"
        config_path.write_text(json.dumps({"packageName": "site-content", "fieldOptions": {"typeFieldName": "type"}}))

        result = CliRunner().invoke(content_pkg_gen, [SCHEMA, CACHE, "--cwd", str(tmp_path), "--config", str(config_path)])

        assert result.exit_code == 0, result.output
        package_json = json.loads((tmp_path / ".contentlayer" / "package.json").read_text())
        assert package_json["name"] == "site-content"

    def test_invalid_snapshot_reports_error(self, tmp_path):
        broken = tmp_path / "broken.json"
        broken.write_text("{not json")

        result = CliRunner().invoke(content_pkg_gen, [str(broken), CACHE, "--cwd", str(tmp_path)])

        assert result.exit_code == 1
        assert "Could not load schema" in result.output


if __name__ == "__main__":
    pytest.main([__file__])
