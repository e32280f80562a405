"""
Configuration for dot package generation.

Options are plain dataclasses that can be built from the camelCase dicts
found in JSON config files.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Awaitable, Callable

if TYPE_CHECKING:
    from .plugin import SourcePlugin

# Set to any non-empty value to snapshot the schema and data cache into `.cache/`
DEBUG_ENV_VAR = "CONTENT_PKG_GEN_DEBUG"

# Receives a thunk that loads the generated index module
SuccessCallback = Callable[[Callable[[], Awaitable[Any]]], Any]


@dataclass
class FieldOptions:
    """Names of special document fields."""

    # Field holding the name of the document's type
    type_field_name: str = "type"

    @staticmethod
    def from_dict(d: dict) -> FieldOptions:
        return FieldOptions(type_field_name=d.get("typeFieldName", "type"))


@dataclass
class ExperimentalOptions:
    """Feature flags."""

    # Bundle a worker script and export `fetchContent` from the index module
    enable_dynamic_build: bool = False

    @staticmethod
    def from_dict(d: dict) -> ExperimentalOptions:
        return ExperimentalOptions(enable_dynamic_build=d.get("enableDynamicBuild", False))


@dataclass
class PluginOptions:
    """Options of a source plugin that affect the generated package."""

    field_options: FieldOptions = field(default_factory=FieldOptions)

    experimental: ExperimentalOptions = field(default_factory=ExperimentalOptions)

    # Called after every successful generation cycle
    on_success: SuccessCallback | None = None

    # Emit `with { type: 'json' }` on JSON imports (required from Node 16.14 onwards)
    json_import_attributes: bool = True

    # Name of the generated package in its package.json
    package_name: str = "dot-contentlayer"

    # Snapshot schema and data cache into `.cache/` for diagnostics
    debug: bool = False

    # Runtime modules the generated code imports from
    client_module: str = "contentlayer/client"
    core_module: str = "@contentlayer/core"

    # Package scope whose imports get deduplicated when bundling the worker
    internal_scope: str = "@contentlayer"

    @property
    def debug_enabled(self) -> bool:
        return self.debug or bool(os.environ.get(DEBUG_ENV_VAR))

    @staticmethod
    def from_dict(d: dict) -> PluginOptions:
        """Create options from a dictionary (unknown keys are ignored)."""
        options = PluginOptions(
            field_options=FieldOptions.from_dict(d.get("fieldOptions", {})),
            experimental=ExperimentalOptions.from_dict(d.get("experimental", {})),
        )
        for key, attr in (
            ("jsonImportAttributes", "json_import_attributes"),
            ("packageName", "package_name"),
            ("debug", "debug"),
            ("clientModule", "client_module"),
            ("coreModule", "core_module"),
            ("internalScope", "internal_scope"),
        ):
            if key in d:
                setattr(options, attr, d[key])
        return options

    def to_dict(self) -> dict:
        return {
            "fieldOptions": {"typeFieldName": self.field_options.type_field_name},
            "experimental": {"enableDynamicBuild": self.experimental.enable_dynamic_build},
            "jsonImportAttributes": self.json_import_attributes,
            "packageName": self.package_name,
            "debug": self.debug,
            "clientModule": self.client_module,
            "coreModule": self.core_module,
            "internalScope": self.internal_scope,
        }


@dataclass(frozen=True)
class GenerationOptions:
    """Options fixed for the duration of one generation run."""

    source_plugin_type: str
    options: PluginOptions


@dataclass
class Config:
    """A resolved user configuration.

    Attributes:
        source: The source plugin providing schema and content
        esbuild_hash: Hash of the bundled user config (identifies a build)
        file_path: Path of the bundled user config module
        cwd: Working directory; the dot package lives below it
    """

    source: SourcePlugin
    esbuild_hash: str = ""
    file_path: str = ""
    cwd: Path = field(default_factory=Path.cwd)

    @property
    def generation_options(self) -> GenerationOptions:
        return GenerationOptions(source_plugin_type=self.source.type, options=self.source.options)
