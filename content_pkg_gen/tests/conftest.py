"""Shared test fixtures for content_pkg_gen."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from content_pkg_gen import fs
from content_pkg_gen.bundler import Bundler, BundleResult
from content_pkg_gen.config import PluginOptions
from content_pkg_gen.plugin import SourcePlugin
from content_pkg_gen.schema import Cache, SchemaDef

TEST_DATA_DIR = Path(__file__).parent / "test_data"


class FakeSource(SourcePlugin):
    """Source returning a fixed schema and a fixed list of emissions."""

    type = "fake"

    def __init__(self, schema_def, emissions, options=None, schema_error=None):
        super().__init__(options)
        self.schema_def = schema_def
        self.emissions = list(emissions)
        self.schema_error = schema_error
        self.provided_hashes = []

    async def provide_schema(self, esbuild_hash):
        self.provided_hashes.append(esbuild_hash)
        if self.schema_error is not None:
            raise self.schema_error
        return self.schema_def

    async def fetch_data(self, schema_def, verbose=False):
        for emission in self.emissions:
            yield emission


class FakeBundler(Bundler):
    """Bundler recording its options and writing a stub bundle."""

    def __init__(self, warnings=None, error=None):
        self.calls = []
        self.warnings = warnings or []
        self.error = error
        self.generated_files_at_bundle_time = []

    async def bundle(self, options):
        self.calls.append(options)
        self.generated_files_at_bundle_time.append(sorted(p.name for p in Path(options.outfile).parent.iterdir()))
        if self.error is not None:
            raise self.error
        Path(options.outfile).write_text("// bundled\n")
        return BundleResult(warnings=list(self.warnings))


@pytest.fixture
def schema_def():
    with open(TEST_DATA_DIR / "schema.json") as f:
        return SchemaDef.from_dict(json.load(f))


@pytest.fixture
def cache():
    with open(TEST_DATA_DIR / "data-cache.json") as f:
        return Cache.from_dict(json.load(f))


@pytest.fixture
def plugin_options():
    return PluginOptions()


@pytest.fixture
def recorded_writes(monkeypatch):
    """Paths passed to fs.write_file, in call order."""
    written = []
    original_write_file = fs.write_file

    async def recording_write_file(path, content):
        written.append(Path(path))
        await original_write_file(path, content)

    monkeypatch.setattr(fs, "write_file", recording_write_file)
    return written
