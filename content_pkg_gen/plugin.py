"""
Source plugin interface.

A source plugin resolves the content schema and fetches content. Fetching
is modelled as an async iterator of data-cache snapshots: a one-shot build
takes the first emission, a dev/watch session consumes every emission.
"""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from pathlib import Path

from .config import PluginOptions
from .errors import SourceFetchDataError, SourceProvideSchemaError
from .schema import Cache, SchemaDef

logger = logging.getLogger(__name__)

# A failed emission is reported as a value so the stream keeps going
FetchEmission = Cache | SourceFetchDataError


class SourcePlugin(ABC):
    """Abstract base class for content sources."""

    type: str = ""

    def __init__(self, options: PluginOptions | None = None):
        self.options = options or PluginOptions()

    @abstractmethod
    async def provide_schema(self, esbuild_hash: str) -> SchemaDef:
        """
        Resolve the content schema.

        Args:
            esbuild_hash: Hash identifying the current build of the user config

        Returns:
            The resolved schema

        Raises:
            SourceProvideSchemaError: If the schema cannot be resolved
        """

    @abstractmethod
    def fetch_data(self, schema_def: SchemaDef, verbose: bool = False) -> AsyncIterator[FetchEmission]:
        """
        Fetch content for the given schema.

        Args:
            schema_def: The resolved schema
            verbose: Whether to log progress details

        Returns:
            Async iterator of cache snapshots (or per-emission fetch errors)
        """


class SnapshotSource(SourcePlugin):
    """Source replaying a schema snapshot and a data-cache snapshot from disk.

    Reads the same JSON format that debug mode writes to `.cache/`.
    """

    type = "snapshot"

    def __init__(self, schema_path: Path, cache_path: Path, options: PluginOptions | None = None):
        super().__init__(options)
        self.schema_path = Path(schema_path)
        self.cache_path = Path(cache_path)

    async def provide_schema(self, esbuild_hash: str) -> SchemaDef:
        try:
            data = await asyncio.to_thread(_read_json, self.schema_path)
            return SchemaDef.from_dict(data)
        except (OSError, ValueError, KeyError) as e:
            raise SourceProvideSchemaError(f"Could not load schema from {self.schema_path}", e) from e

    async def fetch_data(self, schema_def: SchemaDef, verbose: bool = False) -> AsyncIterator[FetchEmission]:
        try:
            data = await asyncio.to_thread(_read_json, self.cache_path)
            cache = Cache.from_dict(data)
        except (OSError, ValueError, KeyError) as e:
            yield SourceFetchDataError(f"Could not load data cache from {self.cache_path}", e)
            return

        if verbose:
            logger.info("Loaded %d documents from %s", len(cache.cache_items_map), self.cache_path)
        yield cache


def _read_json(path: Path):
    with open(path, encoding="utf-8") as f:
        return json.load(f)
