"""
Generation pipeline for the dot package.

One generation cycle:

1. Resolve inputs: the schema and the target directory (concurrently)
2. Write: synthesize all artifacts and write them as one parallel batch
   through the written-files cache
3. Bundle: the dynamic-build worker (only if enabled)
4. Callback: the user's success callback (only if configured)

`generate_dotpkg_stream` runs one cycle per data-cache emission of the
source plugin and yields every cycle's outcome, so a failed cycle never ends
a watch session. `generate_dotpkg` runs a single cycle and raises on
failure.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import os
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from . import fs
from .artifacts import TypeRenderer, get_data_dir_paths, render_types, synthesize_artifacts
from .bundler import Bundler, BundleResult, EsbuildBundler, RuntimeDeps, make_fetch_content_worker
from .config import Config, SuccessCallback
from .errors import ArtifactsDirError, GenerationError, MkdirError, SourceFetchDataError, SourceProvideSchemaError, SuccessCallbackError
from .schema import Cache, SchemaDef
from .write_cache import WrittenFilesCache

logger = logging.getLogger(__name__)

# Loads a generated module given its path (e.g. by calling into a JS runtime)
ModuleLoader = Callable[[Path], Any]


class ArtifactsDir:
    """Location of the dot package below the working directory."""

    DIR_NAME = ".contentlayer"

    @staticmethod
    def get_dir_path(cwd: Path) -> Path:
        return Path(cwd) / ArtifactsDir.DIR_NAME

    @staticmethod
    async def mkdir(cwd: Path) -> Path:
        dir_path = ArtifactsDir.get_dir_path(cwd)
        try:
            await fs.mkdirp(dir_path)
        except MkdirError as e:
            raise ArtifactsDirError(f"Could not create {dir_path}", e) from e
        return dir_path


@dataclass(frozen=True)
class GenerateInfo:
    document_count: int


@dataclass(frozen=True)
class GenerateOutcome:
    """Result of one generation cycle: either `info` or `error` is set."""

    info: GenerateInfo | None = None
    error: GenerationError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> GenerateInfo:
        if self.error is not None:
            raise self.error
        return self.info


def log_generate_info(info: GenerateInfo) -> None:
    logger.info("Generated %d documents in %s", info.document_count, ArtifactsDir.DIR_NAME)


async def gather_all(*aws: Awaitable[Any]) -> list[Any]:
    """Await all operations; once all have settled, raise the first failure (in argument order)."""
    results = await asyncio.gather(*aws, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results


class GenerationPipeline:
    """Generates the dot package for one config.

    A pipeline owns one written-files cache; reusing the same pipeline (as
    the stream does) lets later cycles skip files that haven't changed.

    Attributes:
        config: The resolved user config
        verbose: Whether source plugins should log details
        is_dev: Whether the index imports `.mjs` barrels (dev mode)
        written_files_cache: Fingerprints of files written by this pipeline
    """

    def __init__(
        self,
        config: Config,
        verbose: bool = False,
        is_dev: bool = False,
        bundler: Bundler | None = None,
        module_loader: ModuleLoader | None = None,
        type_renderer: TypeRenderer = render_types,
        runtime_deps: RuntimeDeps | None = None,
    ):
        self.config = config
        self.verbose = verbose
        self.is_dev = is_dev
        self.bundler = bundler or EsbuildBundler()
        self.module_loader = module_loader
        self.type_renderer = type_renderer
        self.runtime_deps = runtime_deps
        self.generation_options = config.generation_options
        self.written_files_cache = WrittenFilesCache()

    @property
    def options(self):
        return self.generation_options.options

    async def resolve_params(self) -> tuple[SchemaDef, Path]:
        """Resolve the schema and create the target directory concurrently."""
        schema_def, target_path = await gather_all(self._provide_schema(), ArtifactsDir.mkdir(self.config.cwd))
        return schema_def, target_path

    async def _provide_schema(self) -> SchemaDef:
        try:
            return await self.config.source.provide_schema(self.config.esbuild_hash)
        except GenerationError:
            raise
        except Exception as e:
            raise SourceProvideSchemaError(f"Schema provider failed: {e}", e) from e

    def get_bundle_file_path(self, target_path: Path) -> Path:
        return Path(target_path) / "generated" / "dynamic-build-worker.mjs"

    async def write_debug_snapshot(self, schema_def: SchemaDef, target_path: Path, cache: Cache) -> None:
        cache_dir = Path(target_path) / ".cache"
        await fs.mkdirp(cache_dir)
        await gather_all(
            fs.write_file_json(cache_dir / "schema.json", schema_def.to_dict()),
            fs.write_file_json(cache_dir / "data-cache.json", cache.to_dict()),
        )

    async def write_files_for_cache(self, schema_def: SchemaDef, target_path: Path, cache: Cache) -> None:
        """Synthesize every artifact for `cache` and write the changed ones.

        Raises:
            FileSystemError: If any directory or file operation fails (the first failure is raised
                once the whole batch has settled; files already written stay on disk)
            DuplicateArtifactError: If synthesis produced two artifacts for one path
        """
        if self.options.debug_enabled:
            await self.write_debug_snapshot(schema_def, target_path, cache)

        bundle_file_path = self.get_bundle_file_path(target_path)
        relative_bundle_file_path = Path(os.path.relpath(bundle_file_path, self.config.cwd)).as_posix()

        artifacts = synthesize_artifacts(
            schema_def,
            cache,
            self.generation_options,
            target_path,
            relative_bundle_file_path,
            is_dev=self.is_dev,
            type_renderer=self.type_renderer,
        )

        await gather_all(*(fs.mkdirp(path) for path in get_data_dir_paths(schema_def, target_path)))

        writes_before = self.written_files_cache.writes
        await gather_all(*(self.written_files_cache.write_artifact(artifact) for artifact in artifacts))
        logger.debug(
            "Wrote %d of %d files in %s",
            self.written_files_cache.writes - writes_before,
            len(artifacts),
            target_path,
        )

    async def bundle_worker(self, target_path: Path) -> BundleResult:
        return await make_fetch_content_worker(
            self.config,
            self.get_bundle_file_path(target_path),
            self.bundler,
            runtime_deps=self.runtime_deps,
        )

    async def success_callback(self, on_success: SuccessCallback | None) -> None:
        """Invoke the success callback with a thunk loading the generated index module.

        Raises:
            SuccessCallbackError: If the callback (or the module loader it calls) fails
        """
        if on_success is None:
            return

        index_path = ArtifactsDir.get_dir_path(self.config.cwd) / "generated" / "index.mjs"
        logger.debug("Running success callback for %s", index_path)

        async def load_generated():
            if self.module_loader is None:
                raise RuntimeError("No module loader configured to import generated modules")
            result = self.module_loader(index_path)
            if inspect.isawaitable(result):
                result = await result
            return result

        try:
            result = on_success(load_generated)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            raise SuccessCallbackError(f"Success callback failed: {e}", e) from e

    async def run_cycle(self, schema_def: SchemaDef, target_path: Path, emission: Cache | SourceFetchDataError) -> GenerateOutcome:
        """Run the write, bundle and callback stages for one data-cache emission."""
        if isinstance(emission, GenerationError):
            logger.error("Fetching data failed: %s", emission)
            return GenerateOutcome(error=emission)

        try:
            await self.write_files_for_cache(schema_def, target_path, emission)
            if self.options.experimental.enable_dynamic_build:
                await self.bundle_worker(target_path)
            await self.success_callback(self.options.on_success)
        except GenerationError as e:
            logger.error("Generation failed: %s", e)
            return GenerateOutcome(error=e)

        return GenerateOutcome(info=GenerateInfo(document_count=len(emission.cache_items_map)))

    async def stream(self) -> AsyncIterator[GenerateOutcome]:
        """Yield one outcome per data-cache emission of the source.

        Inputs are resolved once per stream, since the fetcher is started with
        the resolved schema; if that fails, a single failure is yielded and the
        stream ends.
        """
        try:
            schema_def, target_path = await self.resolve_params()
        except GenerationError as e:
            logger.error("Resolving inputs failed: %s", e)
            yield GenerateOutcome(error=e)
            return

        emissions = self.config.source.fetch_data(schema_def, verbose=self.verbose)
        try:
            while True:
                try:
                    emission = await anext(emissions)
                except StopAsyncIteration:
                    break
                except GenerationError as e:
                    yield GenerateOutcome(error=e)
                    break
                except Exception as e:
                    yield GenerateOutcome(error=SourceFetchDataError(f"Data fetcher failed: {e}", e))
                    break

                yield await self.run_cycle(schema_def, target_path, emission)
        finally:
            aclose = getattr(emissions, "aclose", None)
            if aclose is not None:
                await aclose()

    async def run_once(self) -> GenerateInfo:
        """Run a single cycle.

        Raises:
            GenerationError: The typed failure of the cycle
        """
        stream = self.stream()
        try:
            outcome = await anext(stream)
        except StopAsyncIteration:
            raise SourceFetchDataError("Data fetcher finished without emitting any data") from None
        finally:
            await stream.aclose()
        return outcome.unwrap()


def generate_dotpkg_stream(config: Config, verbose: bool = False, is_dev: bool = False, **kwargs) -> AsyncIterator[GenerateOutcome]:
    """Stream of cycle outcomes sharing one written-files cache (dev/watch mode)."""
    return GenerationPipeline(config, verbose=verbose, is_dev=is_dev, **kwargs).stream()


async def generate_dotpkg(config: Config, verbose: bool = False, **kwargs) -> GenerateInfo:
    """Generate the dot package once.

    Raises:
        GenerationError: The typed failure of the cycle
    """
    return await GenerationPipeline(config, verbose=verbose, is_dev=False, **kwargs).run_once()
