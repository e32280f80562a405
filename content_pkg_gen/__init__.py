"""Content to Code Package Generator

Generates the `.contentlayer` dot package (JSON snapshots, data modules,
type declarations and a package manifest) from a resolved content schema
and fetched content documents. Repeated runs only rewrite changed files.
"""

__version__ = "0.4.0"

from .artifacts import Artifact, synthesize_artifacts
from .config import Config, GenerationOptions, PluginOptions
from .errors import GenerationError
from .pipeline import GenerateInfo, GenerateOutcome, GenerationPipeline, generate_dotpkg, generate_dotpkg_stream
from .plugin import SnapshotSource, SourcePlugin
from .schema import Cache, CacheItem, DocumentTypeDef, SchemaDef
from .write_cache import WrittenFilesCache

__all__ = [
    "generate_dotpkg",
    "generate_dotpkg_stream",
    "GenerationPipeline",
    "GenerateInfo",
    "GenerateOutcome",
    "GenerationError",
    "Config",
    "GenerationOptions",
    "PluginOptions",
    "SourcePlugin",
    "SnapshotSource",
    "SchemaDef",
    "DocumentTypeDef",
    "Cache",
    "CacheItem",
    "Artifact",
    "synthesize_artifacts",
    "WrittenFilesCache",
]
