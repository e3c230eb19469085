"""Data models for the resume optimizer wizard."""

from resume_optimizer.models.payment import PaymentVerification
from resume_optimizer.models.sections import PLACEHOLDERS, SectionName, SectionSnapshot
from resume_optimizer.models.subscriber import EmailSubscriber, SubscribeResult
from resume_optimizer.models.wizard import (
    STATE_VERSION,
    Step,
    View,
    WizardState,
)

__all__ = [
    "EmailSubscriber",
    "PLACEHOLDERS",
    "PaymentVerification",
    "STATE_VERSION",
    "SectionName",
    "SectionSnapshot",
    "Step",
    "SubscribeResult",
    "View",
    "WizardState",
]
