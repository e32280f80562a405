"""
Bundling of the dynamic-build worker.

When dynamic builds are enabled, the generated index module exports a
`fetchContent` function that runs content resolution in a worker thread.
The worker cannot see the parent's in-memory config, so its entry script
embeds the config location, build hash, tool version and working directory
as literals and is bundled into a single self-contained file.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from importlib import metadata
from pathlib import Path
from typing import Any

from .artifacts import render_template
from .config import Config
from .errors import EsbuildError, GetVersionError

logger = logging.getLogger(__name__)

DISTRIBUTION_NAME = "content_pkg_gen"

# The ESM output format lacks `require` and `__dirname`
WORKER_BANNER = """\
import { createRequire as topLevelCreateRequire } from 'module';
const require = topLevelCreateRequire(import.meta.url);
const __dirname = '__SET_BY_ESBUILD__';
"""

# Packages that can't be bundled
WORKER_EXTERNALS = [
    "@opentelemetry/exporter-trace-otlp-grpc",
    "fetch-blob",
]


@dataclass(frozen=True)
class RuntimeDeps:
    """Values captured at bundle time and embedded into the worker script."""

    version: str
    cwd: Path


@dataclass(frozen=True)
class DeduplicateImportsPlugin:
    """Resolution rewrite keeping a single copy of the tool's own packages.

    Imports of `<scope>/<package>` may resolve into a package's `src/`
    tree (TypeScript sources, e.g. in a monorepo) while other imports of the
    same package resolve into `dist/`. The bundler would then include both
    copies, so resolved `src/` paths are redirected to `dist/`.
    """

    scope: str = "@contentlayer"
    name: str = "deduplicate-internal-imports"
    namespace: str = "deduplicate-internal-imports-ns"
    source_dir: str = "/src/"
    dist_dir: str = "/dist/"

    @property
    def filter(self) -> str:
        return re.escape(self.scope) + "/[a-z-]+"

    @property
    def source_path_pattern(self) -> str:
        return f"({self.filter}){re.escape(self.source_dir)}"

    def matches(self, specifier: str) -> bool:
        return re.search(self.filter, specifier) is not None

    def rewrite(self, resolved_path: str) -> str:
        """Map a resolved path inside a package's source tree to its distribution tree."""
        if re.search(self.source_path_pattern, resolved_path) is None:
            return resolved_path
        rewritten = re.sub(self.source_path_pattern, lambda m: m.group(1) + self.dist_dir, resolved_path, count=1)
        return re.sub(r"\.ts$", ".js", rewritten)

    def to_js(self, variable_name: str) -> str:
        """Render the plugin as an esbuild plugin object assigned to `variable_name`."""
        return render_template(
            "deduplicate_plugin.mjs.jinja2",
            variable_name=variable_name,
            name=self.name,
            filter=self.filter,
            source_path_pattern=self.source_path_pattern,
            namespace=self.namespace,
            dist_dir=self.dist_dir,
        ).rstrip()


@dataclass
class BundleOptions:
    """Options of one bundler run (mirrors esbuild's build options)."""

    entry_source: str
    resolve_dir: Path
    outfile: Path
    platform: str = "node"
    target: str = "es2020"
    format: str = "esm"
    bundle: bool = True
    banner: str = ""
    loader: dict[str, str] = field(default_factory=dict)
    external: list[str] = field(default_factory=list)
    plugins: list[DeduplicateImportsPlugin] = field(default_factory=list)

    def to_esbuild_options(self) -> dict[str, Any]:
        """JSON-serializable options (plugins are passed separately)."""
        return {
            "stdin": {"contents": self.entry_source, "resolveDir": str(self.resolve_dir)},
            "platform": self.platform,
            "target": self.target,
            "format": self.format,
            "bundle": self.bundle,
            "banner": {"js": self.banner},
            "loader": dict(self.loader),
            "external": list(self.external),
            "outfile": str(self.outfile),
        }


@dataclass
class BundleResult:
    warnings: list[str] = field(default_factory=list)


class Bundler(ABC):
    """Abstract base class for bundlers."""

    @abstractmethod
    async def bundle(self, options: BundleOptions) -> BundleResult:
        """
        Bundle the entry source into a single output file.

        Args:
            options: Bundle options

        Returns:
            Non-fatal warnings reported by the bundler

        Raises:
            EsbuildError: If bundling fails
        """


class EsbuildBundler(Bundler):
    """Bundler running esbuild's JS API through `node`.

    esbuild is resolved from the `resolve_dir` of each run, i.e. the
    project's own node_modules.
    """

    def __init__(self, node_executable: str = "node", timeout: float = 120):
        self.node_executable = node_executable
        self.timeout = timeout

    def make_runner_script(self, options: BundleOptions) -> str:
        names = [f"plugin{index}" for index in range(len(options.plugins))]
        return render_template(
            "esbuild_runner.mjs.jinja2",
            plugin_sources=[plugin.to_js(name) for plugin, name in zip(options.plugins, names)],
            plugin_names=names,
        )

    async def bundle(self, options: BundleOptions) -> BundleResult:
        cmd = [self.node_executable, "--input-type=module", "--eval", self.make_runner_script(options)]
        payload = json.dumps(options.to_esbuild_options()).encode()

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                cwd=str(options.resolve_dir),
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise EsbuildError(f"Could not start {self.node_executable}", error=e) from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(payload), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise EsbuildError(f"esbuild did not finish within {self.timeout}s", error=e) from e

        try:
            result = json.loads(stdout.decode() or "{}")
        except ValueError as e:
            raise EsbuildError(f"Unexpected esbuild output: {stderr.decode().strip()}", error=e) from e

        if process.returncode != 0 or result.get("errors"):
            errors = result.get("errors") or [stderr.decode().strip()]
            raise EsbuildError("esbuild failed: " + "; ".join(errors), errors=errors)

        return BundleResult(warnings=result.get("warnings", []))


def get_tool_version() -> str:
    """Version of the installed content_pkg_gen distribution."""
    try:
        return metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError as e:
        raise GetVersionError(f"Could not determine the version of {DISTRIBUTION_NAME}", e) from e


def make_worker_script(config: Config, runtime_deps: RuntimeDeps) -> str:
    return render_template(
        "worker.mjs.jinja2",
        core_module=config.source.options.core_module,
        config_file_path=config.file_path,
        esbuild_hash=config.esbuild_hash,
        tool_version=runtime_deps.version,
        cwd=str(runtime_deps.cwd),
    )


def make_bundle_options(config: Config, bundle_file_path: Path, runtime_deps: RuntimeDeps) -> BundleOptions:
    return BundleOptions(
        entry_source=make_worker_script(config, runtime_deps),
        resolve_dir=runtime_deps.cwd,
        outfile=bundle_file_path,
        banner=WORKER_BANNER,
        loader={".node": "file"},
        external=list(WORKER_EXTERNALS),
        plugins=[DeduplicateImportsPlugin(scope=config.source.options.internal_scope)],
    )


async def make_fetch_content_worker(
    config: Config,
    bundle_file_path: Path,
    bundler: Bundler,
    runtime_deps: RuntimeDeps | None = None,
) -> BundleResult:
    """Bundle the dynamic-build worker to `bundle_file_path`.

    Raises:
        GetVersionError: If the tool version is needed and cannot be determined
        EsbuildError: If bundling fails
    """
    if runtime_deps is None:
        runtime_deps = RuntimeDeps(version=get_tool_version(), cwd=config.cwd)

    result = await bundler.bundle(make_bundle_options(config, bundle_file_path, runtime_deps))
    for warning in result.warnings:
        logger.warning("esbuild: %s", warning)
    return result
