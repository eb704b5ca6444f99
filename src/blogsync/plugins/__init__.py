"""Extension layer — lifecycle hooks via pluggy.

INVARIANT: Plugin failures are warnings, never errors.
"""

from blogsync.plugins.hookspecs import hookimpl
from blogsync.plugins.manager import PluginManager

__all__ = ["PluginManager", "hookimpl"]
