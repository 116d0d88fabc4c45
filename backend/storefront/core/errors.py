"""
Error taxonomy for persistence hooks.

Only ValidationError (and a fatal CascadeError) ever reaches the caller of a
write. Everything raised after the primary document is committed is logged
and reported as a warning on the write result.
"""
from typing import Iterable


class StorefrontError(Exception):
    """Base class for all storefront errors."""


class ValidationError(StorefrontError):
    """A before-persist hook rejected the document. Nothing was written."""

    def __init__(self, errors: Iterable[str]):
        self.errors = list(errors)
        super().__init__("\n".join(self.errors))


class PropagationError(StorefrontError):
    """Syncing a committed change into denormalized copies failed."""


class CascadeError(StorefrontError):
    """
    Anonymizing documents that reference a deleted entity failed.

    `fatal` is set when the cascade could not run at all (the dependents
    could not even be looked up); the delete is then aborted.
    """

    def __init__(self, message: str, errors: Iterable[str] = (), fatal: bool = False):
        self.errors = list(errors)
        self.fatal = fatal
        super().__init__(message)


class CredentialError(StorefrontError):
    """A stored password hash could not be parsed."""
