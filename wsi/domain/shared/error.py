"""Errors raised by WSI.

Two families share the WSIError base:

- DomainError: a caller broke a rule (bad input, unknown id, illegal transition,
  a full run queue). Commands report these and exit non-zero.
- InfrastructureError: the database, an upstream API or local configuration
  let us down. Inside the pipeline these abort the current stage and the run.

A single URL failing verification, submission or inspection is not an error in
this sense; the outcome is classified and recorded on the URL instead.
"""


class WSIError(Exception):
    """Base class for all WSI errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(message)


# -----------------------------------------------------------------------------
# Domain
# -----------------------------------------------------------------------------


class DomainError(WSIError):
    pass


class NotFoundError(DomainError):
    """No URL item or service account with the given id."""


class ValidationError(DomainError):
    """Input failed validation (batch size, URL syntax, quota units)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, code="VALIDATION_ERROR")
        self.field = field


class InvalidStateError(DomainError):
    """Operation not allowed in the entity's current state."""


class IllegalTransitionError(InvalidStateError):
    """A URL was asked to move along an edge the lifecycle graph does not have."""

    def __init__(self, source: str, target: str) -> None:
        super().__init__(f"Illegal URL transition {source} -> {target}", code="ILLEGAL_TRANSITION")
        self.source = source
        self.target = target


class ConflictError(DomainError):
    """Request clashes with current capacity or existing state."""


class RunQueueFullError(ConflictError):
    def __init__(self, capacity: int) -> None:
        super().__init__(f"Run queue is full ({capacity} pending requests)", code="RUN_QUEUE_FULL")
        self.capacity = capacity


# -----------------------------------------------------------------------------
# Infrastructure
# -----------------------------------------------------------------------------


class InfrastructureError(WSIError):
    pass


class StorageUnavailableError(InfrastructureError):
    """Catalog database could not be read or written."""


class ExternalServiceError(InfrastructureError):
    """Indexing API or its token endpoint is unavailable or misbehaving."""


class ConfigurationError(InfrastructureError):
    """Local setup is wrong, e.g. an unreadable or rejected credential file."""
