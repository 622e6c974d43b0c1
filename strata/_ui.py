"""
Strata CLI output primitives built on Click.

All output respects NO_COLOR / TERM=dumb through click.style.
"""

from __future__ import annotations

from typing import Sequence

import click

_L_H = "\u2500"     # ─
_CHECK = "\u2713"   # ✓
_CROSS = "\u2717"   # ✗


def success(message: str) -> None:
    """Print success message in green."""
    click.echo(click.style(f"{_CHECK} {message}", fg="green"))


def error(message: str) -> None:
    """Print error message in red, on stderr."""
    click.echo(click.style(f"{_CROSS} {message}", fg="red"), err=True)


def dim(message: str) -> None:
    """Print dimmed message."""
    click.echo(click.style(message, dim=True))


def section(title: str, *, width: int = 60, fg: str = "cyan") -> None:
    """
    Print a section header with a ruled line.

        ── Order ─────────────────────────────────
    """
    dashes = max(4, width - len(title) - 4)
    click.echo(click.style(f"{_L_H}{_L_H} {title} {_L_H * dashes}", fg=fg, bold=True))


def kv(key: str, value: object, *, key_width: int = 14, indent: int = 2) -> None:
    """
    Print an aligned key-value pair.

        Components:   8
    """
    padding = " " * max(1, key_width - len(key) - 1)
    click.echo(f"{' ' * indent}{key}:{padding}{click.style(str(value), fg='cyan')}")


def numbered(items: Sequence[str], *, indent: int = 2) -> None:
    """Print a numbered list, one item per line."""
    width = len(str(len(items)))
    for i, item in enumerate(items, 1):
        click.echo(f"{' ' * indent}{click.style(str(i).rjust(width), dim=True)}  {item}")
