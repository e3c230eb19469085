"""Pydantic models for the payment-verification endpoint."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class PaymentVerification(BaseModel):
    success: bool
    payment_status: str = "unknown"  # "paid" | "unpaid" | "no_payment_required" | ...
    customer_email: str | None = None
    amount_total: int | None = None  # minor units (cents)
    currency: str | None = None
    access_token: str | None = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @property
    def is_paid(self) -> bool:
        return self.success and self.payment_status in ("paid", "succeeded")
