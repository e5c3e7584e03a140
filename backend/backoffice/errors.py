# Overview: Domain error taxonomy shared by services and API routes.

from __future__ import annotations


class BackofficeError(Exception):
    """
    Base class for every error the core raises on purpose.

    Each subclass carries a stable ``kind`` (machine-readable) and the HTTP
    status the API layer answers with. The message is meant for humans.
    """

    kind = "error"
    http_status = 500

    def __init__(self, message: str, *, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": self.message, "kind": self.kind}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(BackofficeError, ValueError):
    """400-level input problem (missing fields, enum violations, bad amounts)."""

    kind = "invalid_input"
    http_status = 400


class ConflictError(BackofficeError):
    """409-level business rule conflict (overlapping leave, open attendance session)."""

    kind = "conflict"
    http_status = 409


class NotFoundError(BackofficeError):
    kind = "not_found"
    http_status = 404


class InvalidStateTransitionError(BackofficeError):
    """Operation not allowed in the entity's current state (paid invoice, decided leave)."""

    kind = "invalid_state_transition"
    http_status = 409


class AllocationExhaustedError(BackofficeError):
    """
    Code allocation gave up after its bounded number of attempts.

    Not a user error: it means the counter is out of step with the codes
    already stored, or contention is extreme. Treat as an operational alert.
    """

    kind = "allocation_exhausted"
    http_status = 503


class StorageError(BackofficeError):
    """Backing store failure that survived the bounded retry."""

    kind = "storage_error"
    http_status = 503
