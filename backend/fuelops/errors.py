# Overview: Error taxonomy shared by services and routes.

"""
Every service failure is one of these. Routes map them to HTTP responses via
``status_code``; ``details`` carries structured context (available stock,
requested quantity, ...) for the JSON body.

Validation and precondition failures are raised before any write. Anything
raised after the first write rolls the unit of work back (see
services/concurrency.py).
"""


class ServiceError(Exception):
    """Base class for errors reported to API callers."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ValidationError(ServiceError, ValueError):
    """Missing or malformed input; nothing was attempted."""
    status_code = 400


class NotFound(ServiceError):
    """A referenced entity does not exist."""
    status_code = 404


class OwnerNotFound(NotFound):
    """The station, client, barracks or item behind an owner key is missing."""


class PreconditionFailed(ServiceError):
    """A business rule rejected the operation against current state."""
    status_code = 409


class InsufficientBalance(PreconditionFailed):
    """Stock or balance is below what the movement requires."""


class ConcurrencyConflict(ServiceError):
    """Lost the race on an owning row; the whole operation may be retried."""
    status_code = 409


class StoreError(ServiceError):
    """The underlying store failed; surfaced as an internal error."""
    status_code = 500
