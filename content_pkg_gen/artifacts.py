"""
Artifact synthesis for the generated dot package.

Every function here is a pure formatter: it turns the schema and the fetched
documents into file contents. Nothing is written to disk; the pipeline hands
the resulting artifacts to the write cache.

Package layout (below the target directory):

    package.json
    generated/types.d.ts
    generated/index.d.ts
    generated/index.mjs
    generated/<TypeName>/_index.mjs      barrel (dev imports)
    generated/<TypeName>/_index.json     aggregate (production imports)
    generated/<TypeName>/<file name>.json  one per document
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import jinja2

from .config import GenerationOptions, PluginOptions
from .errors import DuplicateArtifactError, JsonStringifyError
from .fs import to_json_string
from .schema import Cache, CacheItem, DocumentTypeDef, SchemaDef
from .utils import VariableNameAllocator, autogenerated_note, get_data_variable_name, id_to_file_name

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"

JSON_ASSERT_STATEMENT = " with { type: 'json' }"

# Field types of the schema -> TypeScript types
TS_TYPE_MAP = {
    "string": "string",
    "number": "number",
    "boolean": "boolean",
    "date": "IsoDateTimeString",
    "markdown": "Markdown",
    "mdx": "MDX",
    "json": "any",
    "list": "any[]",
    "enum": "string",
}

TypeRenderer = Callable[[SchemaDef, GenerationOptions], str]

_jinja_env = jinja2.Environment(
    loader=jinja2.FileSystemLoader(str(TEMPLATE_DIR)),
    lstrip_blocks=True,
    trim_blocks=True,
    keep_trailing_newline=True,
)


def render_template(name: str, /, **context: Any) -> str:
    return _jinja_env.get_template(name).render(autogenerated_note=autogenerated_note, **context)


@dataclass(frozen=True)
class Artifact:
    """One file to materialize.

    Attributes:
        file_path: Absolute target path
        content: Full file content
        fingerprint: Enables skip-on-unchanged; None means always write
        rm_before_write: Delete before writing so editors notice the change
    """

    file_path: Path
    content: str
    fingerprint: str | None = None
    rm_before_write: bool = False


def get_assert_statement(options: PluginOptions) -> str:
    return JSON_ASSERT_STATEMENT if options.json_import_attributes else ""


def get_data_type(doc_def: DocumentTypeDef) -> str:
    return doc_def.name if doc_def.is_singleton else f"{doc_def.name}[]"


def group_cache_items(schema_def: SchemaDef, cache: Cache, type_field_name: str) -> dict[str, list[CacheItem]]:
    """Group cache items by document type, keeping cache order within each type."""
    groups: dict[str, list[CacheItem]] = {name: [] for name in schema_def.document_type_def_map}
    for item in cache.cache_items_map.values():
        type_name = item.document.get(type_field_name)
        if type_name in groups:
            groups[type_name].append(item)
    return groups


def make_package_json(schema_hash: str, package_name: str = "dot-contentlayer") -> str:
    package_json = {
        "name": package_name,
        "description": "This package is auto-generated by content_pkg_gen",
        "version": f"0.0.0-{schema_hash}",
        "exports": {
            "./generated": {
                "import": "./generated/index.mjs",
            },
        },
        "typesVersions": {
            "*": {
                "generated": ["./generated"],
            },
        },
    }
    return to_json_string(package_json)


def _ts_field(field) -> dict[str, str]:
    return {
        "name": field.name,
        "description": field.description,
        "optional_marker": "" if field.required else "?",
        "ts_type": TS_TYPE_MAP.get(field.type, field.type),
    }


def render_types(schema_def: SchemaDef, generation_options: GenerationOptions) -> str:
    """Default renderer for `generated/types.d.ts`."""
    options = generation_options.options
    doc_types = [
        {
            "name": doc_def.name,
            "quoted_name": f"'{doc_def.name}'",
            "description": doc_def.description,
            "fields": [_ts_field(f) for f in doc_def.fields if f.name not in ("_id", options.field_options.type_field_name)],
            "data_variable_name": get_data_variable_name(doc_def),
            "data_type": get_data_type(doc_def),
        }
        for doc_def in schema_def.document_type_defs
    ]
    return render_template(
        "types.d.ts.jinja2",
        doc_types=doc_types,
        type_field_name=options.field_options.type_field_name,
        core_module=options.core_module,
    )


def make_data_types(schema_def: SchemaDef, options: PluginOptions) -> str:
    """Render `generated/index.d.ts`."""
    entries = [
        {"data_variable_name": get_data_variable_name(doc_def), "data_type": get_data_type(doc_def)}
        for doc_def in schema_def.document_type_defs
    ]
    return render_template(
        "index.d.ts.jinja2",
        type_names=[doc_def.name for doc_def in schema_def.document_type_defs],
        entries=entries,
        core_module=options.core_module,
        enable_dynamic_build=options.experimental.enable_dynamic_build,
    )


def make_index_mjs(
    schema_def: SchemaDef,
    assert_statement: str,
    bundle_file_path: str,
    options: PluginOptions,
    is_dev: bool,
    empty_singletons: frozenset[str] = frozenset(),
) -> str:
    """Render `generated/index.mjs`.

    Args:
        schema_def: The resolved schema
        assert_statement: Import attribute appended to JSON imports
        bundle_file_path: Worker bundle path relative to the working directory
        options: Plugin options
        is_dev: Import `.mjs` barrels (dev) instead of `.json` aggregates
        empty_singletons: Singleton types without a document (left out of `allDocuments`)

    Returns:
        Module source
    """
    entries = []
    all_documents = []
    for doc_def in schema_def.document_type_defs:
        data_variable_name = get_data_variable_name(doc_def)
        entries.append({"type_name": doc_def.name, "data_variable_name": data_variable_name})
        if not doc_def.is_singleton:
            all_documents.append(f"...{data_variable_name}")
        elif doc_def.name not in empty_singletons:
            all_documents.append(data_variable_name)

    return render_template(
        "index.mjs.jinja2",
        entries=entries,
        all_documents=all_documents,
        is_dev=is_dev,
        assert_statement=assert_statement,
        client_module=options.client_module,
        enable_dynamic_build=options.experimental.enable_dynamic_build,
        bundle_file_path=bundle_file_path,
    )


def make_data_export_file(doc_def: DocumentTypeDef, document_ids: list[str], assert_statement: str) -> str:
    """Render the `_index.mjs` barrel of one document type.

    A singleton re-exports its document's JSON; a collection imports every
    document's JSON and exports them as an array in the given order.
    """
    data_variable_name = get_data_variable_name(doc_def)

    if doc_def.is_singleton:
        return render_template(
            "data_export.mjs.jinja2",
            is_singleton=True,
            data_variable_name=data_variable_name,
            document_file_name=id_to_file_name(document_ids[0]) if document_ids else None,
            assert_statement=assert_statement,
        )

    allocator = VariableNameAllocator(doc_def.name, reserved=[data_variable_name])
    document_imports = [
        {"variable_name": allocator.allocate(document_id, file_index), "file_name": id_to_file_name(document_id)}
        for file_index, document_id in enumerate(document_ids)
    ]
    return render_template(
        "data_export.mjs.jinja2",
        is_singleton=False,
        data_variable_name=data_variable_name,
        document_imports=document_imports,
        assert_statement=assert_statement,
    )


def make_collection_json(doc_def: DocumentTypeDef, items: list[CacheItem]) -> tuple[str, str]:
    """Render the `_index.json` aggregate of one document type.

    Returns:
        (content, fingerprint) where the fingerprint concatenates the member hashes in order
    """
    documents = [item.document for item in items]
    if doc_def.is_singleton:
        json_data = documents[0] if documents else None
    else:
        json_data = documents
    return to_json_string(json_data), "".join(item.document_hash for item in items)


def _stringify(file_path: Path, value: Any) -> str:
    try:
        return to_json_string(value)
    except (TypeError, ValueError) as e:
        raise JsonStringifyError(str(file_path), e) from e


def get_data_dir_paths(schema_def: SchemaDef, target_path: Path) -> list[Path]:
    """Directories that must exist before any type-scoped file is written."""
    generated = Path(target_path) / "generated"
    return [generated, *(generated / doc_def.name for doc_def in schema_def.document_type_defs)]


def synthesize_artifacts(
    schema_def: SchemaDef,
    cache: Cache,
    generation_options: GenerationOptions,
    target_path: Path,
    bundle_file_path: str,
    is_dev: bool = False,
    type_renderer: TypeRenderer = render_types,
) -> list[Artifact]:
    """Build every artifact of one generation cycle.

    Args:
        schema_def: The resolved schema
        cache: The fetched documents
        generation_options: Options of the source plugin
        target_path: Root of the dot package
        bundle_file_path: Worker bundle path relative to the working directory
        is_dev: Whether the index imports barrels (dev) or aggregates
        type_renderer: Renders `generated/types.d.ts`

    Returns:
        Artifacts in write order

    Raises:
        DuplicateArtifactError: If two artifacts target the same file
    """
    options = generation_options.options
    type_field_name = options.field_options.type_field_name
    assert_statement = get_assert_statement(options)
    generated = Path(target_path) / "generated"

    groups = group_cache_items(schema_def, cache, type_field_name)
    empty_singletons = frozenset(doc_def.name for doc_def in schema_def.document_type_defs if doc_def.is_singleton and not groups[doc_def.name])
    for name in sorted(empty_singletons):
        logger.warning("No document found for singleton type %s, exporting null", name)

    artifacts = [
        Artifact(Path(target_path) / "package.json", make_package_json(schema_def.hash, options.package_name)),
        Artifact(generated / "types.d.ts", type_renderer(schema_def, generation_options), rm_before_write=True),
        Artifact(generated / "index.d.ts", make_data_types(schema_def, options), rm_before_write=True),
        Artifact(
            generated / "index.mjs",
            make_index_mjs(schema_def, assert_statement, bundle_file_path, options, is_dev, empty_singletons),
        ),
    ]

    for doc_def in schema_def.document_type_defs:
        document_ids = [item.document["_id"] for item in groups[doc_def.name]]
        artifacts.append(Artifact(generated / doc_def.name / "_index.mjs", make_data_export_file(doc_def, document_ids, assert_statement)))

    for item in cache.cache_items_map.values():
        document = item.document
        file_path = generated / document[type_field_name] / f"{id_to_file_name(document['_id'])}.json"
        artifacts.append(Artifact(file_path, _stringify(file_path, document), fingerprint=item.document_hash))

    for doc_def in schema_def.document_type_defs:
        file_path = generated / doc_def.name / "_index.json"
        try:
            content, fingerprint = make_collection_json(doc_def, groups[doc_def.name])
        except (TypeError, ValueError) as e:
            raise JsonStringifyError(str(file_path), e) from e
        artifacts.append(Artifact(file_path, content, fingerprint=fingerprint))

    seen: set[Path] = set()
    for artifact in artifacts:
        if artifact.file_path in seen:
            raise DuplicateArtifactError(f"Two artifacts target {artifact.file_path}")
        seen.add(artifact.file_path)

    return artifacts
