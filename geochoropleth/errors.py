"""
Exceptions raised by the choropleth mapper.

All of them carry an optional ``index`` attribute: the position of the
offending feature when the error comes from a collection-level operation.
"""


class ChoroplethError(Exception):
    """Base class for geochoropleth errors."""

    def __init__(self, message, index=None):
        super().__init__(message)
        self.message = message
        self.index = index

    def __str__(self):
        return self.message

    def at(self, index):
        """Return a copy of this error attributed to the feature at ``index``."""
        return type(self)(f"feature at position {index}: {self.message}", index=index)


class DivisionError(ChoroplethError, ZeroDivisionError):
    """The denominator of a normalization is zero or missing."""


class InvalidInputError(ChoroplethError, ValueError):
    """Empty values, a bad class count, an unknown scheme or similar."""


class MissingAttributeError(ChoroplethError, KeyError):
    """A referenced attribute is absent on a feature."""
