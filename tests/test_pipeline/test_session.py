"""Tests for the wizard session."""

from __future__ import annotations

from unittest.mock import patch

import httpx
import pytest

from resume_optimizer.clients.analysis_api import AnalysisAPIClient
from resume_optimizer.errors import (
    GENERATION_FAILED_MESSAGE,
    NO_CONTENT_MESSAGE,
    GenerationError,
    InputValidationError,
    PaymentIncompleteError,
    StorageError,
)
from resume_optimizer.logging.usage_store import UsageStore
from resume_optimizer.models.payment import PaymentVerification
from resume_optimizer.models.sections import PLACEHOLDERS
from resume_optimizer.models.wizard import Step, View, WizardState
from resume_optimizer.pipeline.session import WizardSession


def _source_from(text: str, size: int = 40, fail_at: int | None = None):
    calls = []

    async def source(resume, goals, requirements=""):
        calls.append((resume, goals, requirements))
        for i in range(0, len(text), size):
            if fail_at is not None and i >= fail_at:
                raise GenerationError("HTTP 502: upstream closed")
            yield text[i : i + size]

    source.calls = calls
    return source


@pytest.fixture
def usage_store(tmp_path) -> UsageStore:
    return UsageStore(tmp_path / "usage.db")


class TestStartGeneration:
    async def test_success_lands_on_summary_and_persists(
        self, state_store, usage_store, sample_feedback, sample_resume_text, sample_goals
    ):
        source = _source_from(sample_feedback)
        session = WizardSession(state_store, source, usage_store=usage_store)
        phases = []

        result = await session.start_generation(
            sample_resume_text, sample_goals, "k8s", on_phase=lambda p, d: phases.append(p)
        )

        assert phases == ["request", "summary", "done"]
        assert source.calls == [(sample_resume_text, sample_goals, "k8s")]
        assert session.state.step is Step.SUMMARY
        assert session.view() is View.SUMMARY
        assert session.state.summary.startswith("Your resume shows")
        assert result.missing_sections == []
        assert result.document == sample_feedback
        assert session.error is None
        assert not session.is_generating

        saved = state_store.load()
        assert saved.step is Step.SUMMARY
        assert saved.is_unlocked is False
        assert saved.refined_copy.startswith("# Jane Smith")
        assert saved.requirements == "k8s"

        logs = usage_store.get_logs()
        assert len(logs) == 1
        assert logs[0].success
        assert logs[0].has_requirements
        assert logs[0].output_chars == len(sample_feedback)

    async def test_on_update_sees_growing_sections(self, state_store, sample_feedback):
        session = WizardSession(state_store, _source_from(sample_feedback))
        summaries = []
        await session.start_generation("r", "g", on_update=lambda s: summaries.append(len(s.summary)))
        first = next(i for i, n in enumerate(summaries) if n)
        assert all(summaries[first:])

    async def test_persisted_snapshot_is_locked_even_when_session_is_unlocked(
        self, state_store, sample_feedback, paid_verification
    ):
        session = WizardSession(state_store, _source_from(sample_feedback))
        session.confirm_payment(paid_verification, session_id="cs_1")

        await session.start_generation("r", "g")

        assert session.state.is_unlocked
        assert state_store.load().is_unlocked is False

    async def test_missing_inputs_make_no_call(self, state_store, sample_feedback):
        source = _source_from(sample_feedback)
        session = WizardSession(state_store, source)
        with pytest.raises(InputValidationError):
            await session.start_generation("", "goals")
        assert source.calls == []
        assert session.state == WizardState()

    async def test_stream_failure_keeps_partial_output_and_persists_nothing(
        self, state_store, usage_store, sample_feedback
    ):
        session = WizardSession(
            state_store, _source_from(sample_feedback, fail_at=320), usage_store=usage_store
        )
        with pytest.raises(GenerationError):
            await session.start_generation("r", "g")

        assert session.error == GENERATION_FAILED_MESSAGE
        assert session.slots.summary.startswith("Your resume shows")
        assert session.slots.cover_letter == ""
        assert session.state.step is Step.SUMMARY
        assert state_store.load() is None
        assert not session.is_generating

        log = usage_store.get_logs()[0]
        assert log.success is False
        assert "upstream closed" in log.error_message

    async def test_unexpected_exception_becomes_generation_error(self, state_store):
        async def broken(resume, goals, requirements=""):
            yield "### Overall Summary\n"
            raise RuntimeError("socket closed")

        session = WizardSession(state_store, broken)
        with pytest.raises(GenerationError) as exc_info:
            await session.start_generation("r", "g")
        assert exc_info.value.user_message == GENERATION_FAILED_MESSAGE
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    async def test_no_summary_reports_no_content(self, state_store):
        doc = "### Section-by-Section Breakdown\nOnly details here."
        session = WizardSession(state_store, _source_from(doc))

        with pytest.raises(GenerationError) as exc_info:
            await session.start_generation("r", "g")

        assert exc_info.value.user_message == NO_CONTENT_MESSAGE
        assert session.error == NO_CONTENT_MESSAGE
        assert session.state.step is Step.INPUT
        assert session.slots.summary == PLACEHOLDERS["summary"]
        assert session.slots.details == "Only details here."
        assert state_store.load().step is Step.INPUT

    async def test_empty_stream_reports_no_content(self, state_store):
        session = WizardSession(state_store, _source_from(""))
        with pytest.raises(GenerationError, match="without a summary"):
            await session.start_generation("r", "g")

    async def test_storage_failure_aborts(self, state_store, sample_feedback):
        session = WizardSession(state_store, _source_from(sample_feedback))
        with patch.object(state_store, "save", side_effect=StorageError("disk full")):
            with pytest.raises(StorageError):
                await session.start_generation("r", "g")
        assert session.error == StorageError.user_message
        assert session.state.summary == ""

    async def test_without_source(self, state_store):
        with pytest.raises(GenerationError):
            await WizardSession(state_store).start_generation("r", "g")

    async def test_placeholders_never_reach_the_record(self, state_store):
        doc = (
            "### Overall Summary\nStrong backend profile with room for sharper metrics.\n\n"
            "### Section-by-Section Breakdown\nQuantify the latency work."
        )
        session = WizardSession(state_store, _source_from(doc))
        await session.start_generation("r", "g")

        assert session.state.refined_copy == ""
        assert session.displayed_sections().refined_copy == PLACEHOLDERS["refined_copy"]

        session.next()
        saved = state_store.load()
        assert saved.step is Step.DETAILS
        assert saved.refined_copy == ""
        assert saved.cover_letter == ""

    async def test_regenerated_session_stays_locked_on_disk_until_paid_again(
        self, state_store, sample_feedback, paid_verification
    ):
        session = WizardSession(state_store, _source_from(sample_feedback))
        session.confirm_payment(paid_verification, session_id="cs_1")
        await session.start_generation("r", "g")

        session.next()
        assert session.state.is_unlocked
        assert state_store.load().is_unlocked is False

        session.confirm_payment(paid_verification, session_id="cs_1")
        assert state_store.load().is_unlocked is True


class TestNavigationAndUnlock:
    def _summary_session(self, state_store) -> WizardSession:
        state_store.save(WizardState(step=Step.SUMMARY, summary="s", details="d", refined_copy="r"))
        return WizardSession(state_store)

    def test_rehydrates_on_construction(self, state_store):
        session = self._summary_session(state_store)
        assert session.state.step is Step.SUMMARY
        assert session.displayed_sections().cover_letter == PLACEHOLDERS["cover_letter"]

    def test_refined_blocked_until_payment(self, state_store, paid_verification):
        session = self._summary_session(state_store)
        assert session.next() is View.DETAILS
        assert session.next() is View.UNLOCK_PROMPT
        assert session.state.step is Step.DETAILS
        assert session.view() is View.DETAILS

        session.confirm_payment(paid_verification, session_id="cs_1")
        assert session.next() is View.REFINED
        assert session.next() is View.COVER_LETTER

    def test_navigation_is_persisted(self, state_store):
        session = self._summary_session(state_store)
        session.next()
        assert WizardSession(state_store).state.step is Step.DETAILS
        session.back()
        assert WizardSession(state_store).state.step is Step.SUMMARY

    def test_unlock_is_persisted(self, state_store, paid_verification):
        session = self._summary_session(state_store)
        session.confirm_payment(paid_verification, session_id="cs_1", timestamp="2026-01-05T10:00:00")

        reloaded = WizardSession(state_store).state
        assert reloaded.is_unlocked
        assert reloaded.step is Step.DETAILS
        assert reloaded.session_id == "cs_1"
        assert reloaded.payment_timestamp == "2026-01-05T10:00:00"
        assert reloaded.summary == "s"

    def test_unpaid_raises_and_leaves_state(self, state_store):
        session = self._summary_session(state_store)
        before = session.state
        with pytest.raises(PaymentIncompleteError) as exc_info:
            session.confirm_payment(PaymentVerification(success=False, payment_status="unpaid"))
        assert exc_info.value.user_message == "Payment not completed (status: unpaid)."
        assert session.state == before
        assert not state_store.load().is_unlocked

    def test_unlock_storage_failure_keeps_session_locked(self, state_store, paid_verification):
        session = self._summary_session(state_store)
        with patch.object(state_store, "save", side_effect=StorageError("readonly")):
            with pytest.raises(StorageError):
                session.confirm_payment(paid_verification)
        assert not session.state.is_unlocked

    async def test_verify_and_unlock(self, state_store):
        def handler(request):
            return httpx.Response(200, json={"success": True, "paymentStatus": "paid"})

        api = AnalysisAPIClient("https://optimizer.test", transport=httpx.MockTransport(handler))
        session = self._summary_session(state_store)
        state = await session.verify_and_unlock(api, session_id="cs_live_1")
        assert state.is_unlocked
        assert state.session_id == "cs_live_1"
        assert session.view() is View.DETAILS

    def test_reset_storage_failure_keeps_state(self, state_store):
        session = self._summary_session(state_store)
        with patch.object(state_store, "clear", side_effect=StorageError("readonly")):
            with pytest.raises(StorageError):
                session.reset()
        assert session.state.summary == "s"

    def test_blocked_next_from_locked_details_shows_unlock_prompt(self, state_store):
        state_store.save(WizardState(step=Step.DETAILS, details="d"))
        session = WizardSession(state_store)
        assert session.next() is View.UNLOCK_PROMPT
        assert state_store.load().step is Step.DETAILS

    def test_reset_clears_everything(self, state_store, paid_verification):
        session = self._summary_session(state_store)
        session.confirm_payment(paid_verification)
        session.reset()
        assert session.state == WizardState()
        assert session.view() is View.INPUT
        assert state_store.load() is None
        assert session.displayed_sections().is_empty()
