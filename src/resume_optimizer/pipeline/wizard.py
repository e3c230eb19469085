"""Wizard state machine as a pure reducer.

    input ──SummaryReady──▶ summary ──Next──▶ details ──Next*──▶ refined ──Next*──▶ coverLetter
                                 ◀──Back───       ◀──Back───         ◀──Back───

``*`` requires ``is_unlocked``. ``Reset`` returns to a blank ``input`` from
anywhere; a paid ``PaymentConfirmed`` unlocks and jumps to ``details``.
"""

from __future__ import annotations

import logging

from resume_optimizer.models.wizard import (
    GATED_STEPS,
    Back,
    GenerationCompleted,
    GenerationStarted,
    Next,
    PaymentConfirmed,
    Reset,
    Step,
    SummaryReady,
    View,
    WizardEvent,
    WizardState,
)

logger = logging.getLogger(__name__)

_FORWARD: dict[Step, Step] = {
    Step.SUMMARY: Step.DETAILS,
    Step.DETAILS: Step.REFINED,
    Step.REFINED: Step.COVER_LETTER,
}
_BACKWARD: dict[Step, Step] = {
    Step.DETAILS: Step.SUMMARY,
    Step.REFINED: Step.DETAILS,
    Step.COVER_LETTER: Step.REFINED,
}


def can_advance(state: WizardState) -> bool:
    """Whether ``Next`` would move the wizard forward."""
    target = _FORWARD.get(state.step)
    if target is None:
        return False
    return state.is_unlocked or target not in GATED_STEPS


def needs_unlock(state: WizardState) -> bool:
    """True when the next step exists but is behind the paywall."""
    target = _FORWARD.get(state.step)
    return target in GATED_STEPS and not state.is_unlocked


def current_view(state: WizardState) -> View:
    """What to render: gated steps show the unlock prompt while locked."""
    if state.step in GATED_STEPS and not state.is_unlocked:
        return View.UNLOCK_PROMPT
    return View(state.step.value)


def reduce(state: WizardState, event: WizardEvent) -> WizardState:
    """Return the state after ``event``; never mutates ``state``."""
    if isinstance(event, Reset):
        return WizardState()

    if isinstance(event, GenerationStarted):
        # Fresh run: keep the unlock flag (it only clears on reset), drop old output.
        return state.model_copy(
            update={
                "step": Step.INPUT,
                "resume": event.resume,
                "goals": event.goals,
                "requirements": event.requirements,
                "summary": "",
                "details": "",
                "refined_copy": "",
                "cover_letter": "",
            }
        )

    if isinstance(event, SummaryReady):
        if state.step is Step.INPUT:
            return state.model_copy(update={"step": Step.SUMMARY})
        return state

    if isinstance(event, GenerationCompleted):
        sections = event.sections
        return state.model_copy(
            update={
                "summary": sections.summary,
                "details": sections.details,
                "refined_copy": sections.refined_copy,
                "cover_letter": sections.cover_letter,
            }
        )

    if isinstance(event, Next):
        if not can_advance(state):
            logger.debug("Next blocked at step=%s unlocked=%s", state.step.value, state.is_unlocked)
            return state
        return state.model_copy(update={"step": _FORWARD[state.step]})

    if isinstance(event, Back):
        previous = _BACKWARD.get(state.step)
        if previous is None:
            return state
        return state.model_copy(update={"step": previous})

    if isinstance(event, PaymentConfirmed):
        verification = event.verification
        if not verification.is_paid:
            return state
        return state.model_copy(
            update={
                "is_unlocked": True,
                "step": Step.DETAILS,
                "payment_timestamp": event.timestamp,
                "session_id": event.session_id or state.session_id,
                "customer_email": verification.customer_email or state.customer_email,
            }
        )

    raise TypeError(f"Unknown wizard event: {event!r}")
