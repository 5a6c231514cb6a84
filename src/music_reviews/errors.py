"""Errors raised by the Music Reviews domain besides Protean's own.

Messages follow Protean's shape: ``{field: [message, ...]}``.
"""

from protean.exceptions import ProteanException, ValidationError


class ConflictError(ValidationError):
    """A live record already exists for the same uniqueness key."""


class PermissionDenied(ProteanException):
    """The actor may not perform this operation on the record."""
