import asyncio
import json
import logging
from pathlib import Path

import click

from .config import Config, PluginOptions
from .errors import GenerationError
from .pipeline import generate_dotpkg, generate_dotpkg_stream, log_generate_info
from .plugin import SnapshotSource


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


async def _run_dev(config: Config, verbose: bool) -> int:
    failures = 0
    async for outcome in generate_dotpkg_stream(config, verbose=verbose, is_dev=True):
        if outcome.ok:
            log_generate_info(outcome.info)
        else:
            failures += 1
            click.echo(f"Error: {outcome.error}", err=True)
    return failures


@click.command()
@click.option("--config", "-c", default=None, type=click.Path(exists=True, resolve_path=True), help="JSON file with plugin options")
@click.option("--cwd", default=".", type=click.Path(file_okay=False, resolve_path=True), help="Directory receiving .contentlayer")
@click.option("--source-module", default="", type=str, help="Config module imported by the dynamic build worker")
@click.option("--dev", is_flag=True, default=False, help="Import .mjs barrels from the index module")
@click.option("--dynamic-build", is_flag=True, default=False, help="Bundle the dynamic build worker")
@click.option("--debug", is_flag=True, default=False, help="Snapshot schema and data cache into .cache/")
@click.option("--verbose", "-v", is_flag=True, default=False)
@click.argument("schema", type=click.Path(exists=True, resolve_path=True))
@click.argument("cache", type=click.Path(exists=True, resolve_path=True))
def content_pkg_gen(config, cwd, source_module, dev, dynamic_build, debug, verbose, schema, cache):
    setup_logging(verbose)

    if config is not None:
        with open(config) as f:
            options = PluginOptions.from_dict(json.load(f))
    else:
        options = PluginOptions()

    # CLI flags override the config file
    if dynamic_build:
        options.experimental.enable_dynamic_build = True
    if debug:
        options.debug = True

    source = SnapshotSource(Path(schema), Path(cache), options)
    run_config = Config(source=source, file_path=source_module, cwd=Path(cwd))

    if dev:
        failures = asyncio.run(_run_dev(run_config, verbose))
        if failures:
            raise SystemExit(1)
        return

    try:
        info = asyncio.run(generate_dotpkg(run_config, verbose=verbose))
    except GenerationError as e:
        raise click.ClickException(str(e)) from e
    log_generate_info(info)
