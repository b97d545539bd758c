"""Error types raised by lazy-bump.

The versioning engine never exits the process itself. It raises one of
these and leaves the exit behaviour to the caller (the CLI turns them into
``click.ClickException``).
"""

from __future__ import annotations


class LazyBumpError(Exception):
    """Base class for all fatal lazy-bump failures."""


class ConfigurationError(LazyBumpError):
    """Invalid options: bad specifier, prefix, resolver or specifier source."""


class ResolutionError(LazyBumpError):
    """A required piece of data could not be resolved during the run.

    Examples: no matching git tag without a disk fallback, a failed registry
    lookup, or a selected project without a manifest.
    """
