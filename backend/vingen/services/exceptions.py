"""Base service exceptions.

These exceptions are raised by the service layer and should be caught
by the API and CLI layers and converted to appropriate responses.
None of them may be swallowed or turned into a default sequence value.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from vingen.services.batch.batch_service import BatchResult


class ServiceError(Exception):
    """Base service exception."""

    pass


class ValidationError(ServiceError):
    """Invalid input. Always raised before any counter is touched."""

    pass


class LengthError(ValidationError):
    """Field or code has the wrong length."""

    pass


class RangeError(ValidationError):
    """Numeric value outside its supported range."""

    pass


class ConfigurationError(ServiceError):
    """Settings do not describe a usable sequence backend."""

    pass


class SequenceStoreError(ServiceError):
    """Local sequence file cannot be read or written."""

    pass


class BackendUnavailable(ServiceError):
    """Distributed sequence store is unreachable."""

    pass


class AllocationTimeout(BackendUnavailable):
    """Store operation exceeded its deadline.

    The increment may have been applied even though no value came back,
    so a retry can skip a number but will never reuse one.
    """

    def __init__(self, prefix: str, timeout: float | None = None):
        self.prefix = prefix
        self.timeout = timeout
        after = f" after {timeout:g}s" if timeout else ""
        super().__init__(f"Sequence operation for {prefix} timed out{after}; outcome unknown")


class PartialBatchFailure(ServiceError):
    """Batch stopped after issuing some codes.

    The codes in ``result`` were durably allocated and stay valid. The
    underlying error is chained as ``__cause__``.
    """

    def __init__(self, result: "BatchResult", cause: BaseException):
        self.result = result
        self.cause = cause
        super().__init__(
            f"Batch for {result.prefix} stopped after {result.produced} of "
            f"{result.quantity} codes: {cause}"
        )


class InvariantViolation(ServiceError):
    """Assembled code failed its own checksum. Indicates a codec defect."""

    pass


class TemplateFileError(ServiceError):
    """Template could not be read or its filled copy could not be written.

    ``codes`` holds any VINs already allocated for the template. They are
    durably consumed and must be handed to the operator.
    """

    def __init__(self, message: str, codes: list[str] | None = None):
        self.codes = codes or []
        super().__init__(message)
