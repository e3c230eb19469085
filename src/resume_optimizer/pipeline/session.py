"""Wizard session - drives generation, navigation and unlock against durable state."""

from __future__ import annotations

import logging
import sqlite3
import time
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from resume_optimizer.clients.analysis_api import AnalysisAPIClient
from resume_optimizer.clients.llm_client import LLMClient
from resume_optimizer.errors import (
    NO_CONTENT_MESSAGE,
    GenerationError,
    PaymentIncompleteError,
    ResumeOptimizerError,
)
from resume_optimizer.logging.cost_calculator import calculate_cost
from resume_optimizer.logging.models import UsageLog
from resume_optimizer.logging.usage_store import UsageStore
from resume_optimizer.models.payment import PaymentVerification
from resume_optimizer.models.sections import PLACEHOLDERS, SectionSnapshot
from resume_optimizer.models.wizard import (
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
from resume_optimizer.pipeline.feedback_writer import validate_inputs
from resume_optimizer.pipeline.reconciler import StreamingReconciler
from resume_optimizer.pipeline.wizard import current_view, needs_unlock, reduce
from resume_optimizer.storage.state_store import StateStore

logger = logging.getLogger(__name__)

FeedbackSource = Callable[[str, str, str], AsyncIterator[str]]


@dataclass
class GenerationResult:
    """Outcome of one generation run."""

    sections: SectionSnapshot  # as displayed, placeholders included
    document: str
    chunk_count: int = 0
    elapsed_seconds: float = 0.0
    missing_sections: list[str] = field(default_factory=list)


class WizardSession:
    """One user's pass through the wizard.

    State is loaded from the store once on construction and written back
    after generation, navigation and unlock. Every transition goes through
    the pure reducer in ``pipeline.wizard``.
    """

    def __init__(
        self,
        store: StateStore,
        source: FeedbackSource | None = None,
        *,
        llm: LLMClient | None = None,
        usage_store: UsageStore | None = None,
        source_name: str = "anthropic",
        model: str | None = None,
        user_id: str = "anonymous",
    ):
        self.store = store
        self.source = source
        self.llm = llm
        self.usage_store = usage_store
        self.source_name = source_name
        self.model = model
        self.user_id = user_id
        self.state = store.load() or WizardState()
        # Unlock as last written; a run saves a locked snapshot until the next payment.
        self._saved_unlocked = self.state.is_unlocked
        self.slots = self.state.sections
        self.is_generating = False
        self.error: str | None = None

    def _commit(self, event: WizardEvent) -> WizardState:
        """Apply ``event`` and persist; the in-memory state changes only if the write succeeds."""
        new_state = reduce(self.state, event)
        saved_unlocked = self._saved_unlocked or (
            isinstance(event, PaymentConfirmed) and new_state.is_unlocked
        )
        if new_state != self.state or saved_unlocked != self._saved_unlocked:
            self.store.save(
                new_state.model_copy(update={"is_unlocked": new_state.is_unlocked and saved_unlocked})
            )
        self.state = new_state
        self._saved_unlocked = saved_unlocked
        return new_state

    async def start_generation(
        self,
        resume: str,
        goals: str,
        requirements: str = "",
        *,
        on_phase: Callable[[str, str], None] | None = None,
        on_update: Callable[[SectionSnapshot], None] | None = None,
    ) -> GenerationResult:
        """Stream feedback, publish sections as they form and persist the result.

        Raises:
            InputValidationError: resume or goals missing; nothing is sent.
            GenerationError: the stream failed or produced no summary.
            StorageError: the finished run could not be saved.
        """
        if self.source is None:
            raise GenerationError("No feedback source configured")
        validate_inputs(resume, goals)

        def _notify(phase: str, detail: str = ""):
            if on_phase:
                on_phase(phase, detail)

        self.error = None
        self.state = reduce(self.state, GenerationStarted(resume, goals, requirements))
        self.slots = SectionSnapshot()
        self.is_generating = True
        start = time.monotonic()

        def _publish(snapshot: SectionSnapshot) -> None:
            self.slots = snapshot
            if on_update:
                on_update(snapshot)

        def _summary_ready() -> None:
            self.state = reduce(self.state, SummaryReady())
            _notify("summary", "Summary ready")

        reconciler = StreamingReconciler(on_update=_publish, on_summary_ready=_summary_ready)
        _notify("request", "Requesting feedback")
        try:
            await reconciler.consume(self.source(resume, goals, requirements))
        except ResumeOptimizerError as e:
            self._fail(reconciler, e, start, requirements)
            raise
        except Exception as e:
            logger.error("Feedback generation failed", exc_info=True)
            error = GenerationError(str(e))
            self._fail(reconciler, error, start, requirements)
            raise error from e
        finally:
            self.is_generating = False

        final = reconciler.finalize()
        self.slots = reconciler.slots
        missing = [name for name in PLACEHOLDERS if not getattr(final, name)]
        elapsed = time.monotonic() - start
        _notify("done", f"Received {len(reconciler.text)} chars in {elapsed:.1f}s")

        # Persist the raw extraction; the unlock flag is never saved from a run.
        snapshot = reduce(self.state, GenerationCompleted(final)).model_copy(
            update={
                "step": Step.SUMMARY if final.summary else Step.INPUT,
                "is_unlocked": False,
            }
        )
        try:
            self.store.save(snapshot)
        except ResumeOptimizerError as e:
            self.error = e.user_message
            self._record_usage(reconciler, start, requirements, missing, error=e.detail)
            raise

        self._saved_unlocked = False
        self.state = reduce(self.state, GenerationCompleted(final))
        self._record_usage(reconciler, start, requirements, missing)

        if not final.summary:
            self.error = NO_CONTENT_MESSAGE
            raise GenerationError("Stream ended without a summary", user_message=NO_CONTENT_MESSAGE)
        self.state = reduce(self.state, SummaryReady())

        return GenerationResult(
            sections=reconciler.slots,
            document=reconciler.text,
            chunk_count=reconciler.chunk_count,
            elapsed_seconds=elapsed,
            missing_sections=missing,
        )

    def _fail(
        self,
        reconciler: StreamingReconciler,
        error: ResumeOptimizerError,
        start: float,
        requirements: str,
    ) -> None:
        # Partial output stays visible; nothing is persisted.
        self.error = error.user_message
        self.state = reduce(self.state, GenerationCompleted(reconciler.slots))
        self._record_usage(reconciler, start, requirements, [], error=error.detail)

    def _record_usage(
        self,
        reconciler: StreamingReconciler,
        start: float,
        requirements: str,
        missing: list[str],
        error: str | None = None,
    ) -> None:
        if self.usage_store is None:
            return
        tokens = self.llm.get_token_summary() if self.llm else {"input": 0, "output": 0, "calls": []}
        log = UsageLog(
            session_id=self.user_id,
            source=self.source_name,
            model=self.model,
            has_requirements=bool(requirements.strip()),
            chunk_count=reconciler.chunk_count,
            output_chars=len(reconciler.text),
            missing_sections=missing,
            elapsed_seconds=round(time.monotonic() - start, 2),
            total_input_tokens=tokens["input"],
            total_output_tokens=tokens["output"],
            estimated_cost_usd=calculate_cost(tokens["calls"]),
            success=error is None,
            error_message=error,
        )
        try:
            self.usage_store.save_log(log)
        except (sqlite3.Error, OSError):
            logger.error("Failed to record usage log", exc_info=True)

    def next(self) -> View:
        """Advance one step; a move blocked by the paywall returns the unlock prompt."""
        blocked = needs_unlock(self.state)
        self._commit(Next())
        if blocked:
            return View.UNLOCK_PROMPT
        return self.view()

    def back(self) -> View:
        self._commit(Back())
        return self.view()

    def view(self) -> View:
        return current_view(self.state)

    def displayed_sections(self) -> SectionSnapshot:
        """Section texts as shown to the user, placeholders for anything missing."""
        if self.state.step is Step.INPUT and self.slots.is_empty():
            return self.slots
        return self.slots.with_placeholders()

    def confirm_payment(
        self,
        verification: PaymentVerification,
        session_id: str | None = None,
        timestamp: str | None = None,
    ) -> WizardState:
        """Unlock the gated steps for a settled payment and jump to ``details``.

        Raises:
            PaymentIncompleteError: verification came back but is not paid.
            StorageError: the unlocked state could not be saved.
        """
        if not verification.is_paid:
            logger.info("Payment not completed: status=%s", verification.payment_status)
            raise PaymentIncompleteError(verification.payment_status)
        event = PaymentConfirmed(
            verification=verification,
            timestamp=timestamp or datetime.now(timezone.utc).isoformat(),
            session_id=session_id,
        )
        state = self._commit(event)
        logger.info("Session unlocked (payment session=%s)", session_id)
        return state

    async def verify_and_unlock(
        self,
        api: AnalysisAPIClient,
        *,
        session_id: str | None = None,
        payment_intent_id: str | None = None,
        client_secret: str | None = None,
    ) -> WizardState:
        """Verify a checkout session or PaymentIntent remotely, then unlock."""
        verification = await api.verify_payment(
            session_id=session_id,
            payment_intent_id=payment_intent_id,
            client_secret=client_secret,
        )
        return self.confirm_payment(verification, session_id=session_id or payment_intent_id)

    def reset(self) -> None:
        """Forget everything, persisted state included."""
        self.store.clear()
        self.state = reduce(self.state, Reset())
        self._saved_unlocked = False
        self.slots = SectionSnapshot()
        self.error = None
