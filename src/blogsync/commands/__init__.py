"""Subcommand modules for blogsync.

register_commands() imports each group lazily so ``blogsync --help``
stays fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Attach every command group to the root CLI group."""
    from blogsync.commands.article import article
    from blogsync.commands.cache import cache
    from blogsync.commands.sync import sync
    from blogsync.commands.taxonomy import category, series, tag

    cli.add_command(sync)
    cli.add_command(article)
    cli.add_command(category)
    cli.add_command(tag)
    cli.add_command(series)
    cli.add_command(cache)
