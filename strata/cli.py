"""
Strata CLI.

Commands:
- strata check SPEC:         Validate a component directory
- strata order SPEC:         Show the topological order
- strata tree SPEC:          Show the dependency tree
- strata graph SPEC:         Export the dependency graph as Graphviz DOT
- strata load SPEC TARGET:   Load one component and print it

SPEC is ``module:attribute`` and names either a Loader or a directory mapping.
"""

from __future__ import annotations

from collections.abc import Mapping
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Tuple
import asyncio
import importlib
import logging
import os
import sys

import click
import yaml

from . import __version__
from . import _ui as ui
from .config import ConfigError, ConfigLoader, LoaderConfig
from .errors import LoaderError
from .loader import Loader

logger = logging.getLogger("strata.cli")


def resolve_loader(spec: str, virtual: Tuple[str, ...], config: LoaderConfig) -> Loader:
    """
    Import ``module:attribute`` and turn it into a Loader.

    Raises:
        click.BadParameter: If the spec cannot be imported or names something else.
        LoaderError: If the directory fails validation.
    """
    module_path, _, attr = spec.partition(":")
    if not module_path or not attr:
        raise click.BadParameter(f"expected 'module:attribute', got '{spec}'", param_hint="SPEC")

    cwd = os.getcwd()
    if cwd not in sys.path:
        sys.path.insert(0, cwd)

    try:
        module = importlib.import_module(module_path)
    except ImportError as e:
        raise click.BadParameter(f"cannot import '{module_path}': {e}", param_hint="SPEC") from e

    try:
        target = getattr(module, attr)
    except AttributeError as e:
        raise click.BadParameter(f"'{module_path}' has no attribute '{attr}'", param_hint="SPEC") from e

    if isinstance(target, Loader):
        if virtual:
            raise click.BadParameter(
                "--virtual only applies to directory mappings", param_hint="--virtual"
            )
        return target
    if isinstance(target, Mapping):
        return Loader(target, virtual, config=config)

    raise click.BadParameter(
        f"'{spec}' is a {type(target).__name__}, expected a Loader or a mapping",
        param_hint="SPEC",
    )


def parse_bindings(pairs: Tuple[str, ...]) -> Dict[str, Any]:
    """Turn ``name=value`` pairs into load options; values are YAML scalars."""
    options: Dict[str, Any] = {}
    for pair in pairs:
        name, sep, raw = pair.partition("=")
        if not sep or not name:
            raise click.BadParameter(f"expected name=value, got '{pair}'", param_hint="--set")
        try:
            options[name] = yaml.safe_load(raw) if raw else ""
        except yaml.YAMLError:
            options[name] = raw
    return options


@contextmanager
def _loader_errors(ctx: click.Context) -> Iterator[None]:
    """Report loader errors and exit with status 1."""
    try:
        yield
    except LoaderError as e:
        ui.error(f"{type(e).__name__}: {e}")
        if ctx.obj["verbose"] and e.__cause__ is not None:
            logger.exception("Caused by", exc_info=e.__cause__)
        ctx.exit(1)


def _spec_options(func):
    func = click.option(
        "--virtual", "virtual", multiple=True, metavar="NAME",
        help="Declare a virtual component (repeatable).",
    )(func)
    func = click.argument("spec")(func)
    return func


@click.group()
@click.option("--config", "config_path", type=click.Path(dir_okay=False), default=None,
              help="YAML config file.")
@click.option("-v", "--verbose", is_flag=True, help="Log every component as it is set up.")
@click.version_option(__version__, prog_name="strata")
@click.pass_context
def cli(ctx: click.Context, config_path: str, verbose: bool) -> None:
    """Strata - dependency-injection component loader."""
    overrides = {"log_level": "DEBUG", "trace": True} if verbose else None
    try:
        config = ConfigLoader.load(config_path, overrides=overrides)
    except ConfigError as e:
        ui.error(str(e))
        ctx.exit(2)

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper()),
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = {"config": config, "verbose": verbose}


@cli.command()
@_spec_options
@click.pass_context
def check(ctx: click.Context, spec: str, virtual: Tuple[str, ...]) -> None:
    """Validate a component directory."""
    with _loader_errors(ctx):
        loader = resolve_loader(spec, virtual, ctx.obj["config"])

    ui.success(f"{spec} is valid")
    ui.kv("Components", len(loader.order) - len(loader.virtual))
    ui.kv("Virtual", ", ".join(loader.virtual) or "-")


@cli.command()
@_spec_options
@click.pass_context
def order(ctx: click.Context, spec: str, virtual: Tuple[str, ...]) -> None:
    """Show the topological order, dependencies first."""
    with _loader_errors(ctx):
        loader = resolve_loader(spec, virtual, ctx.obj["config"])

    ui.section("Order")
    ui.numbered(list(loader.order))


@cli.command()
@_spec_options
@click.option("--root", default=None, help="Only show the tree below this component.")
@click.pass_context
def tree(ctx: click.Context, spec: str, virtual: Tuple[str, ...], root: str) -> None:
    """Show the dependency tree."""
    with _loader_errors(ctx):
        loader = resolve_loader(spec, virtual, ctx.obj["config"])

    click.echo(loader.graph.get_tree_view(root=root))


@cli.command()
@_spec_options
@click.option("-o", "--out", type=click.Path(dir_okay=False), default=None,
              help="Write the DOT text to a file instead of stdout.")
@click.pass_context
def graph(ctx: click.Context, spec: str, virtual: Tuple[str, ...], out: str) -> None:
    """Export the dependency graph as Graphviz DOT."""
    with _loader_errors(ctx):
        loader = resolve_loader(spec, virtual, ctx.obj["config"])

    dot = loader.render_graph()
    if out is None:
        click.echo(dot)
        return

    Path(out).write_text(dot + "\n")
    ui.success(f"Graph exported to {out}")
    ui.dim(f"  Visualize with: dot -Tpng {out} -o graph.png")


@cli.command()
@_spec_options
@click.argument("target")
@click.option("--set", "bindings", multiple=True, metavar="NAME=VALUE",
              help="Supply or override a component value (repeatable).")
@click.pass_context
def load(
    ctx: click.Context,
    spec: str,
    virtual: Tuple[str, ...],
    target: str,
    bindings: Tuple[str, ...],
) -> None:
    """Load TARGET and print its value."""
    options = parse_bindings(bindings)
    with _loader_errors(ctx):
        loader = resolve_loader(spec, virtual, ctx.obj["config"])
        value = asyncio.run(loader.load(target, options))

    click.echo(value if isinstance(value, str) else repr(value))


def main() -> None:
    cli(prog_name="strata")


if __name__ == "__main__":
    main()
