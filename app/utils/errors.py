"""Custom exception hierarchy for the rewards API."""

from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base application error with a stable machine-readable code."""

    def __init__(self, message: str, code: str, status_code: int = 400) -> None:
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error in the API standard shape."""
        return {"success": False, "error": self.message, "code": self.code}


class InvalidInputError(AppError):
    """Raised for request payload or parameter validation issues."""

    def __init__(self, reason: str) -> None:
        super().__init__(message=reason, code="INVALID_INPUT", status_code=422)


class UnauthorizedError(AppError):
    """Raised when the caller is not authenticated."""

    def __init__(self, reason: str = "Unauthorized") -> None:
        super().__init__(message=reason, code="UNAUTHORIZED", status_code=401)


class ProofRequiredError(AppError):
    """Raised when human verification is enabled but no token was sent."""

    def __init__(self) -> None:
        super().__init__(message="Captcha verification required", code="PROOF_REQUIRED")


class ProofFailedError(AppError):
    """Raised when the verification service rejects the proof token."""

    def __init__(self) -> None:
        super().__init__(
            message="Captcha verification failed. Please try again.",
            code="PROOF_FAILED",
        )


class BelowMinimumError(AppError):
    """Raised when a withdrawal is smaller than the method minimum."""

    def __init__(self, minimum: int, method_id: str) -> None:
        super().__init__(
            message=f"Minimum withdrawal is {minimum:,} satoshi for {method_id.upper()}",
            code="BELOW_MINIMUM",
        )


class InsufficientBalanceError(AppError):
    """Raised when the stored balance cannot cover a withdrawal."""

    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            message=(
                f"Insufficient balance. You have {available:,} sat "
                f"but tried to withdraw {required:,} sat."
            ),
            code="INSUFFICIENT_BALANCE",
        )


class AmountTooSmallAfterFeeError(AppError):
    """Raised when the fee would consume the whole withdrawal."""

    def __init__(self) -> None:
        super().__init__(message="Amount too small after fees", code="AMOUNT_TOO_SMALL")


class ProcessorRejectedError(AppError):
    """Raised when the payout processor declines a payment."""

    def __init__(self, message: str, provider_code: int | None) -> None:
        super().__init__(message=message, code="PROCESSOR_REJECTED")
        self.provider_code = provider_code

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["provider_code"] = self.provider_code
        return payload


class NetworkOrStoreError(AppError):
    """Raised when the durable store or an external service is unreachable."""

    def __init__(self, reason: str = "Upstream service unavailable") -> None:
        super().__init__(message=reason, code="UPSTREAM_ERROR", status_code=502)


class ConfigurationError(AppError):
    """Raised when required server credentials are missing."""

    def __init__(self) -> None:
        super().__init__(
            message="Server configuration error. Contact admin.",
            code="CONFIGURATION_ERROR",
            status_code=500,
        )


class NotFoundError(AppError):
    """Raised when a requested resource does not exist."""

    def __init__(self, resource: str) -> None:
        super().__init__(message=f"{resource} not found", code="NOT_FOUND", status_code=404)


class ConflictError(AppError):
    """Raised on duplicate/conflicting operations."""

    def __init__(self, reason: str, code: str = "CONFLICT") -> None:
        super().__init__(message=reason, code=code, status_code=409)


class InvalidAmountError(InvalidInputError):
    """Raised when a credited or withdrawn amount is not a positive integer."""

    def __init__(self, amount: object) -> None:
        super().__init__(f"Amount must be a positive integer, got {amount!r}")
        self.code = "INVALID_AMOUNT"


class PayoutTransportError(NetworkOrStoreError):
    """Raised when the processor call fails below the application protocol.

    ``outcome_unknown`` is False only when the request provably never reached
    the processor (the connection could not be opened).
    """

    def __init__(self, outcome_unknown: bool) -> None:
        reason = (
            "Payment status is unknown. Please contact support before retrying."
            if outcome_unknown
            else "Payment service unreachable. Please try again later."
        )
        super().__init__(reason)
        self.outcome_unknown = outcome_unknown
