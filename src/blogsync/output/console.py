"""Rich Console factory and theme for blogsync output.

Consoles render into a StringIO buffer so renderers return plain strings.
Outside a terminal (tests, pipes) Rich drops color codes on its own.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

BLOG_THEME = Theme(
    {
        "blog.ok": "bold green",
        "blog.error": "bold red",
        "blog.warning": "bold yellow",
        "blog.op": "bold cyan",
        "blog.key": "dim",
        "blog.id": "bold blue",
        "blog.slug": "cyan",
        "blog.title": "bold",
        "blog.published": "green",
        "blog.draft": "yellow",
        "blog.count": "magenta",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    return Console(
        file=StringIO(),
        theme=BLOG_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Rendered text of a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_status(published: bool) -> str:
    return "blog.published" if published else "blog.draft"
