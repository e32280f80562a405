"""
Tests for artifact synthesis (file contents, paths and fingerprints).
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from content_pkg_gen.artifacts import (
    get_data_dir_paths,
    make_collection_json,
    make_data_export_file,
    make_data_types,
    make_index_mjs,
    make_package_json,
    render_types,
    synthesize_artifacts,
)
from content_pkg_gen.config import ExperimentalOptions, FieldOptions, GenerationOptions, PluginOptions
from content_pkg_gen.errors import DuplicateArtifactError, JsonStringifyError
from content_pkg_gen.schema import Cache, CacheItem, DocumentTypeDef, SchemaDef

ASSERT = " with { type: 'json' }"
TARGET = Path("/project/.contentlayer")


def _by_path(artifacts):
    return {a.file_path.relative_to(TARGET).as_posix(): a for a in artifacts}


def _synthesize(schema_def, cache, options=None, is_dev=False):
    generation_options = GenerationOptions(source_plugin_type="fake", options=options or PluginOptions())
    return synthesize_artifacts(
        schema_def,
        cache,
        generation_options,
        TARGET,
        ".contentlayer/generated/dynamic-build-worker.mjs",
        is_dev=is_dev,
    )


class TestPackageJson:
    def test_version_embeds_schema_hash(self):
        package_json = json.loads(make_package_json("abc123"))
        assert package_json["version"] == "0.0.0-abc123"
        assert package_json["name"] == "dot-contentlayer"
        assert package_json["exports"] == {"./generated": {"import": "./generated/index.mjs"}}
        assert package_json["typesVersions"] == {"*": {"generated": ["./generated"]}}

    def test_custom_package_name(self):
        assert json.loads(make_package_json("x", "my-content"))["name"] == "my-content"


class TestDataExportFile:
    def test_singleton_reexports_document(self):
        doc_def = DocumentTypeDef(name="Page", is_singleton=True)
        content = make_data_export_file(doc_def, ["home"], ASSERT)
        assert "export { default as page } from './home.json' with { type: 'json' }" in content
        assert content.startswith("// NOTE This file is auto-generated")

    def test_singleton_without_document_exports_null(self):
        doc_def = DocumentTypeDef(name="Page", is_singleton=True)
        content = make_data_export_file(doc_def, [], ASSERT)
        assert "export const page = null" in content

    def test_collection_imports_every_document_in_order(self):
        doc_def = DocumentTypeDef(name="Post")
        content = make_data_export_file(doc_def, ["1-a", "blog/2-b", "日本"], ASSERT)
        assert "import _1A from './_1-a.json' with { type: 'json' }" in content
        assert "import blog__2B from './blog__2-b.json' with { type: 'json' }" in content
        assert "import Post2 from './日本.json' with { type: 'json' }" in content
        assert "export const allPosts = [_1A, blog__2B, Post2]" in content

    def test_document_named_like_the_export(self):
        content = make_data_export_file(DocumentTypeDef(name="Post"), ["all-posts", "x"], "")
        assert "import Post0 from './all-posts.json'" in content
        assert "import allPosts from" not in content
        assert "export const allPosts = [Post0, x]" in content

    def test_empty_collection(self):
        content = make_data_export_file(DocumentTypeDef(name="Post"), [], "")
        assert "export const allPosts = []" in content
        assert "import" not in content


class TestIndexMjs:
    def test_production_imports_json_aggregates(self, schema_def, plugin_options):
        content = make_index_mjs(schema_def, ASSERT, "worker.mjs", plugin_options, is_dev=False)
        assert "import page from './Page/_index.json' with { type: 'json' }" in content
        assert "import allPosts from './Post/_index.json' with { type: 'json' }" in content
        assert "export { page, allPosts }" in content
        assert "export const allDocuments = [page, ...allPosts]" in content
        assert "fetchContent" not in content

    def test_dev_imports_mjs_barrels(self, schema_def, plugin_options):
        content = make_index_mjs(schema_def, ASSERT, "worker.mjs", plugin_options, is_dev=True)
        assert "import { page } from './Page/_index.mjs'" in content
        assert "import { allPosts } from './Post/_index.mjs'" in content
        assert "_index.json" not in content

    def test_fetch_content_when_dynamic_build_enabled(self, schema_def):
        options = PluginOptions(experimental=ExperimentalOptions(enable_dynamic_build=True))
        content = make_index_mjs(schema_def, ASSERT, ".contentlayer/generated/dynamic-build-worker.mjs", options, is_dev=False)
        assert "export const fetchContent = async (sourceKey) => {" in content
        assert 'path.join(process.cwd(), ".contentlayer/generated/dynamic-build-worker.mjs")' in content
        assert "data.fatalError" in content

    def test_empty_singleton_left_out_of_all_documents(self, schema_def, plugin_options):
        content = make_index_mjs(schema_def, ASSERT, "w.mjs", plugin_options, is_dev=False, empty_singletons=frozenset({"Page"}))
        assert "export const allDocuments = [...allPosts]" in content


class TestDeclarations:
    def test_data_types(self, schema_def, plugin_options):
        content = make_data_types(schema_def, plugin_options)
        assert "import { Page, Post, DocumentTypes, DataExports } from './types'" in content
        assert "export declare const page: Page\n" in content
        assert "export declare const allPosts: Post[]\n" in content
        assert "export declare const allDocuments: DocumentTypes[]" in content
        assert "fetchContent" not in content

    def test_data_types_with_dynamic_build(self, schema_def):
        options = PluginOptions(experimental=ExperimentalOptions(enable_dynamic_build=True))
        content = make_data_types(schema_def, options)
        assert "export declare const fetchContent: (sourceKey?: string) => Promise<FetchContentResult>" in content
        assert "{ _tag: 'Data', data: DataExports }" in content

    def test_render_types(self, schema_def, plugin_options):
        content = render_types(schema_def, GenerationOptions("fake", plugin_options))
        assert "export type Post = {" in content
        assert "  type: 'Post'" in content
        assert "  title: string" in content
        assert "  date: IsoDateTimeString" in content
        assert "  body?: Markdown" in content
        assert "/** The home page */" in content
        assert "export type DocumentTypes = Page | Post" in content
        assert "export type DocumentTypeNames = 'Page' | 'Post'" in content
        assert "  allPosts: Post[]" in content
        assert "  page: Page" in content

    def test_render_types_uses_type_field_name(self, schema_def):
        options = PluginOptions(field_options=FieldOptions(type_field_name="kind"))
        content = render_types(schema_def, GenerationOptions("fake", options))
        assert "  kind: 'Post'" in content

    def test_render_types_empty_schema(self, plugin_options):
        content = render_types(SchemaDef(), GenerationOptions("fake", plugin_options))
        assert "export type DocumentTypes = never" in content


class TestCollectionJson:
    def test_fingerprint_concatenates_hashes_in_order(self):
        items = [CacheItem({"_id": "a"}, "h1"), CacheItem({"_id": "b"}, "h2")]
        content, fingerprint = make_collection_json(DocumentTypeDef(name="Post"), items)
        assert json.loads(content) == [{"_id": "a"}, {"_id": "b"}]
        assert fingerprint == "h1h2"
        assert make_collection_json(DocumentTypeDef(name="Post"), items[::-1])[1] == "h2h1"

    def test_singleton(self):
        content, fingerprint = make_collection_json(DocumentTypeDef(name="Page", is_singleton=True), [CacheItem({"_id": "home"}, "h1")])
        assert json.loads(content) == {"_id": "home"}
        assert fingerprint == "h1"

    def test_empty_singleton_is_null(self):
        content, fingerprint = make_collection_json(DocumentTypeDef(name="Page", is_singleton=True), [])
        assert content == "null"
        assert fingerprint == ""


class TestSynthesizeArtifacts:
    def test_layout(self, schema_def, cache):
        artifacts = _by_path(_synthesize(schema_def, cache))
        assert sorted(artifacts) == [
            "generated/Page/_index.json",
            "generated/Page/_index.mjs",
            "generated/Page/home.json",
            "generated/Post/_1-a.json",
            "generated/Post/_2-b.json",
            "generated/Post/_index.json",
            "generated/Post/_index.mjs",
            "generated/index.d.ts",
            "generated/index.mjs",
            "generated/types.d.ts",
            "package.json",
        ]

    def test_fingerprints_and_removal_flags(self, schema_def, cache):
        artifacts = _by_path(_synthesize(schema_def, cache))
        assert artifacts["generated/Page/home.json"].fingerprint == "h1"
        assert artifacts["generated/Post/_index.json"].fingerprint == "h2h3"
        assert artifacts["generated/Page/_index.json"].fingerprint == "h1"
        for unconditional in ["package.json", "generated/index.mjs", "generated/Post/_index.mjs", "generated/types.d.ts"]:
            assert artifacts[unconditional].fingerprint is None
        assert artifacts["generated/types.d.ts"].rm_before_write
        assert artifacts["generated/index.d.ts"].rm_before_write
        assert not artifacts["generated/index.mjs"].rm_before_write
        assert not artifacts["generated/Post/_1-a.json"].rm_before_write

    def test_document_json_is_pretty_printed(self, schema_def, cache):
        artifacts = _by_path(_synthesize(schema_def, cache))
        content = artifacts["generated/Post/_1-a.json"].content
        assert content == json.dumps(cache.cache_items_map["posts/1-a.md"].document, indent=2, ensure_ascii=False)

    def test_no_json_import_attributes(self, schema_def, cache):
        artifacts = _by_path(_synthesize(schema_def, cache, options=PluginOptions(json_import_attributes=False)))
        assert "with { type" not in artifacts["generated/index.mjs"].content
        assert "with { type" not in artifacts["generated/Post/_index.mjs"].content

    def test_type_without_documents(self, cache):
        schema = SchemaDef(
            document_type_def_map={
                "Page": DocumentTypeDef(name="Page", is_singleton=True),
                "Post": DocumentTypeDef(name="Post"),
                "Author": DocumentTypeDef(name="Author"),
            },
            hash="h",
        )
        artifacts = _by_path(_synthesize(schema, cache))
        assert artifacts["generated/Author/_index.json"].content == "[]"
        assert "export const allAuthors = []" in artifacts["generated/Author/_index.mjs"].content

    def test_duplicate_paths_rejected(self, schema_def):
        duplicated = Cache(
            cache_items_map={
                "a.md": CacheItem({"_id": "x/y", "type": "Post"}, "h1"),
                "b.md": CacheItem({"_id": "x__y", "type": "Post"}, "h2"),
            }
        )
        with pytest.raises(DuplicateArtifactError):
            _synthesize(schema_def, duplicated)

    def test_data_dir_paths(self, schema_def):
        assert get_data_dir_paths(schema_def, TARGET) == [
            TARGET / "generated",
            TARGET / "generated" / "Page",
            TARGET / "generated" / "Post",
        ]

    def test_unserializable_document(self, schema_def):
        broken = Cache(cache_items_map={"a.md": CacheItem({"_id": "a", "type": "Post", "ratio": float("nan")}, "h1")})
        with pytest.raises(JsonStringifyError) as exc_info:
            _synthesize(schema_def, broken)
        assert exc_info.value.file_path == str(TARGET / "generated" / "Post" / "a.json")
