"""Error types surfaced to the user by the wizard."""

from __future__ import annotations

GENERATION_FAILED_MESSAGE = (
    "Failed to get recommendations. Please check your connection and try again."
)
NO_CONTENT_MESSAGE = "No content was generated. Please try again."
STORAGE_FAILED_MESSAGE = (
    "Failed to save your session. Please ensure site data storage is allowed."
)
PAYMENT_UNVERIFIED_MESSAGE = "Unable to verify payment."


class ResumeOptimizerError(Exception):
    """Base error carrying a message that is safe to show to the user.

    ``detail`` keeps the technical cause for logs; ``user_message`` is what the
    front end displays.
    """

    user_message: str = "Something went wrong."

    def __init__(self, detail: str | None = None, *, user_message: str | None = None):
        if user_message is not None:
            self.user_message = user_message
        self.detail = detail or self.user_message
        super().__init__(self.detail)


class InputValidationError(ResumeOptimizerError):
    user_message = "Please provide your resume and career goals."


class GenerationError(ResumeOptimizerError):
    user_message = GENERATION_FAILED_MESSAGE


class PaymentNotConfiguredError(ResumeOptimizerError):
    user_message = "Payment system not configured."


class PaymentIncompleteError(ResumeOptimizerError):
    """Verification succeeded as a call but the payment is not settled."""

    user_message = "Payment not completed."

    def __init__(self, payment_status: str):
        self.payment_status = payment_status
        super().__init__(
            f"payment status is {payment_status!r}",
            user_message=f"Payment not completed (status: {payment_status}).",
        )


class PaymentVerificationError(ResumeOptimizerError):
    user_message = PAYMENT_UNVERIFIED_MESSAGE


class StorageError(ResumeOptimizerError):
    user_message = STORAGE_FAILED_MESSAGE
