"""Wizard state-transfer object and the events that drive it."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from resume_optimizer.models.payment import PaymentVerification
from resume_optimizer.models.sections import SectionSnapshot

STATE_VERSION = 1


class Step(str, Enum):
    INPUT = "input"
    SUMMARY = "summary"
    DETAILS = "details"
    REFINED = "refined"
    COVER_LETTER = "coverLetter"


STEP_ORDER: tuple[Step, ...] = (
    Step.INPUT,
    Step.SUMMARY,
    Step.DETAILS,
    Step.REFINED,
    Step.COVER_LETTER,
)

# Steps whose content is only shown once payment is verified.
GATED_STEPS = frozenset({Step.REFINED, Step.COVER_LETTER})


class WizardState(BaseModel):
    """Snapshot persisted under ``resumeOptimizerState``.

    Serialised with camelCase keys so records written by the web front end
    load unchanged.
    """

    version: int = STATE_VERSION
    step: Step = Step.INPUT
    is_unlocked: bool = False
    summary: str = ""
    details: str = ""
    refined_copy: str = ""
    cover_letter: str = ""
    resume: str = ""
    goals: str = ""
    requirements: str = ""
    payment_timestamp: str | None = None
    session_id: str | None = None
    customer_email: str | None = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        use_enum_values=False,
    )

    @property
    def sections(self) -> SectionSnapshot:
        return SectionSnapshot(
            summary=self.summary,
            details=self.details,
            refined_copy=self.refined_copy,
            cover_letter=self.cover_letter,
        )

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_record(cls, record: dict) -> WizardState:
        # Older records carry no version and may hold nulls for text fields.
        cleaned = {k: v for k, v in record.items() if v is not None}
        cleaned.setdefault("version", STATE_VERSION)
        return cls.model_validate(cleaned)


class View(str, Enum):
    """What the front end should render for the current state."""

    INPUT = "input"
    SUMMARY = "summary"
    DETAILS = "details"
    REFINED = "refined"
    COVER_LETTER = "coverLetter"
    UNLOCK_PROMPT = "unlockPrompt"


# --- Events -----------------------------------------------------------------


@dataclass(frozen=True)
class GenerationStarted:
    resume: str
    goals: str
    requirements: str = ""


@dataclass(frozen=True)
class SummaryReady:
    pass


@dataclass(frozen=True)
class GenerationCompleted:
    sections: SectionSnapshot


@dataclass(frozen=True)
class Next:
    pass


@dataclass(frozen=True)
class Back:
    pass


@dataclass(frozen=True)
class Reset:
    pass


@dataclass(frozen=True)
class PaymentConfirmed:
    verification: PaymentVerification
    timestamp: str
    session_id: str | None = None


WizardEvent = (
    GenerationStarted
    | SummaryReady
    | GenerationCompleted
    | Next
    | Back
    | Reset
    | PaymentConfirmed
)
