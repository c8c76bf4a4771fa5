"""Error kinds raised by the channel topology index.

Every error derives from ``TopologyError`` and from the built-in exception a
caller would naturally catch for the same situation, so ``except ValueError``
and ``except IndexError`` keep working for code that does not know about
this package.
"""

from __future__ import annotations


class TopologyError(Exception):
    """Base class for all channel topology errors."""


class IndexOutOfRange(TopologyError, IndexError):
    """A channel, unit or box index is outside its valid range."""


class InvalidIdentifier(TopologyError, ValueError):
    """A channel coordinate is not part of the enumerated layout."""


class ConfigurationError(TopologyError, ValueError):
    """Layout rules or unit/box assignment are inconsistent.

    Raised only while building an index; an index that raised this error
    is never returned to the caller.
    """


class InvalidArgument(TopologyError, ValueError):
    """A query argument violates a declared bound."""
