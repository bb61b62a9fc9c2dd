"""
virtual_attributes/errors.py
----------------------------
Exception hierarchy for the virtual attribute engine.

Every error is raised synchronously where the violation happens and is never
swallowed by the engine itself. The API layer translates them to HTTP codes.
"""

from __future__ import annotations

from typing import Optional


class VirtualAttributeError(Exception):
    """Base class for all virtual attribute failures."""


class ConfigurationError(VirtualAttributeError):
    """A model declares a virtual attribute it cannot back (missing getter or column)."""


class ReadOnlyWriteRejected(VirtualAttributeError):
    """Assignment to a virtual attribute while the record is in read-only mode."""

    def __init__(self, name: str, message: Optional[str] = None):
        self.name = name
        super().__init__(
            message or f'You can\'t assign value to virtual attribute "{name}" in readOnly mode'
        )


class BulkMutationRejected(VirtualAttributeError):
    """Bulk update/delete on a model with virtual attributes, without an explicit opt-in."""

    def __init__(self, model_name: str, operation: str = "update"):
        self.model_name = model_name
        self.operation = operation
        super().__init__(
            f"Bulk {operation} on {model_name} rejected: it would leave the search cache "
            f"out of sync. Install a before_bulk_{operation} hook to allow it."
        )


class UnsupportedQueryEngine(VirtualAttributeError):
    """The SQL dialect cannot express substring extraction as a pure expression."""

    def __init__(self, dialect: str):
        self.dialect = dialect
        super().__init__(f'Dialect "{dialect}" cannot extract values from the packed cache field')


class UnknownVirtualAttribute(VirtualAttributeError, ValueError):
    """A name that is not a declared virtual attribute was passed where one is required."""

    def __init__(self, model_name: str, name: str):
        self.model_name = model_name
        self.name = name
        super().__init__(f'{model_name} has no virtual attribute "{name}"')
