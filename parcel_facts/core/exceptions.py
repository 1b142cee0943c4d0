"""Unified pipeline exception taxonomy.

Provides a shared base exception hierarchy for the resolution pipeline,
its network clients, and its providers.  Every domain exception inherits
from ``PipelineError`` and carries structured context fields that enable
consistent retry decisions and operator diagnostics.

Taxonomy categories
-------------------
- ``ValidationError``   — input/contract violations, never retryable.
- ``TransientError``    — temporary failures (network, throttle), retryable.
- ``PermanentError``    — unrecoverable domain failures, not retryable.
- ``ContractError``     — upstream schema drift, never retryable.

Concrete pipeline errors
------------------------
- ``TransportError``               — geocoder endpoint unreachable or timed out.
- ``NoMatchError``                 — geocoder found no candidate; terminal.
- ``MalformedUpstreamSchemaError`` — an upstream field has an unusable
  shape; converted to a diagnostic event and never propagated out of
  attribute normalization.

Every exception exposes ``to_error_dict()`` for a stable structured
error payload suitable for logging and API responses.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base exception for all pipeline-domain errors.

    Attributes:
        message: Human-readable error description.
        stage: Pipeline stage where the error occurred
            (e.g. ``"geocode"``, ``"parcel"``).
        code: Machine-readable error code (e.g. ``"GEOCODE_NO_MATCH"``).
        retryable: Whether the caller may retry the operation.
        correlation_id: Request correlation identifier.
    """

    #: Default stage for subclasses (override via class attribute or kwarg).
    default_stage: str = ""
    #: Default code for subclasses (override via class attribute or kwarg).
    default_code: str = ""

    def __init__(
        self,
        message: str = "",
        *,
        stage: str = "",
        code: str = "",
        retryable: bool = False,
        correlation_id: str = "",
    ) -> None:
        self.message = message
        self.stage = stage or self.default_stage
        self.code = code or self.default_code
        self.retryable = retryable
        self.correlation_id = correlation_id
        super().__init__(message)

    @property
    def category(self) -> str:
        """Return the error category based on concrete class."""
        if isinstance(self, ContractError):
            return "contract"
        if isinstance(self, ValidationError):
            return "validation"
        if isinstance(self, TransientError):
            return "transient"
        if isinstance(self, PermanentError):
            return "permanent"
        return "transient" if self.retryable else "permanent"

    def to_error_dict(self) -> dict[str, object]:
        """Return a structured error payload with stable keys."""
        return {
            "category": self.category,
            "code": self.code,
            "stage": self.stage,
            "message": self.message,
            "retryable": self.retryable,
            "correlation_id": self.correlation_id,
        }


# ---------------------------------------------------------------------------
# Category base classes
# ---------------------------------------------------------------------------


class ValidationError(PipelineError):
    """Input or domain-model validation failure. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class TransientError(PipelineError):
    """Temporary failure that may succeed on retry."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", True)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class PermanentError(PipelineError):
    """Unrecoverable domain failure. Not retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class ContractError(PipelineError):
    """Upstream payload or schema drift. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Concrete pipeline errors
# ---------------------------------------------------------------------------


class TransportError(TransientError):
    """An upstream endpoint could not be reached (connection or timeout).

    Distinct from a semantic "no match": the service never answered.

    Attributes:
        endpoint: URL of the unreachable endpoint.
    """

    default_stage = "geocode"
    default_code = "TRANSPORT_UNREACHABLE"

    def __init__(self, endpoint: str, message: str, **kwargs: object) -> None:
        self.endpoint = endpoint
        super().__init__(message, **kwargs)


class NoMatchError(PermanentError):
    """The geocoder returned no candidate for the input address.

    The only condition that aborts the pipeline before a report exists.

    Attributes:
        address: The free-text address that failed to resolve.
    """

    default_stage = "geocode"
    default_code = "GEOCODE_NO_MATCH"

    def __init__(self, address: str, **kwargs: object) -> None:
        self.address = address
        super().__init__(f"No geocoder match for address {address!r}", **kwargs)


class MalformedUpstreamSchemaError(ContractError):
    """An upstream attribute is present but has an unusable type or value.

    Attributes:
        field_name: The offending attribute name.
        value: The raw value received.
    """

    default_stage = "normalize"
    default_code = "UPSTREAM_SCHEMA_MALFORMED"

    def __init__(self, field_name: str, value: object, message: str) -> None:
        self.field_name = field_name
        self.value = value
        super().__init__(f"{field_name}={value!r}: {message}")
