"""Tests for the persisted wizard state store."""

from __future__ import annotations

import json
import sqlite3
from unittest.mock import patch

import pytest

from resume_optimizer.errors import STORAGE_FAILED_MESSAGE, StorageError
from resume_optimizer.models.wizard import Step, WizardState
from resume_optimizer.storage.state_store import STATE_KEY, StateStore


def _write_raw(store: StateStore, value: str) -> None:
    with sqlite3.connect(str(store.db_path)) as conn:
        conn.execute(
            "INSERT OR REPLACE INTO kv_store (key, value, updated_at) VALUES (?, ?, 0)",
            (store.key, value),
        )


class TestStateStore:
    def test_load_empty(self, state_store):
        assert state_store.load() is None

    def test_save_and_load(self, state_store):
        state = WizardState(
            step=Step.DETAILS,
            summary="Summary text",
            refined_copy="# Jane",
            resume="resume",
            goals="goals",
        )
        state_store.save(state)
        assert state_store.load() == state

    def test_record_is_camel_case_json(self, state_store):
        state_store.save(WizardState(cover_letter="Dear", is_unlocked=True))
        with sqlite3.connect(str(state_store.db_path)) as conn:
            key, value = conn.execute("SELECT key, value FROM kv_store").fetchone()
        record = json.loads(value)
        assert key == STATE_KEY == "resumeOptimizerState"
        assert record["coverLetter"] == "Dear"
        assert record["isUnlocked"] is True

    def test_save_overwrites(self, state_store):
        state_store.save(WizardState(summary="first"))
        state_store.save(WizardState(summary="second"))
        assert state_store.load().summary == "second"

    def test_clear(self, state_store):
        state_store.save(WizardState(summary="x"))
        state_store.clear()
        assert state_store.load() is None

    def test_loads_record_written_by_front_end(self, state_store):
        _write_raw(
            state_store,
            json.dumps(
                {
                    "summary": "s",
                    "details": "d",
                    "refinedCopy": "r",
                    "coverLetter": "c",
                    "step": "summary",
                    "resume": "res",
                    "goals": "g",
                    "requirements": "",
                    "isUnlocked": False,
                }
            ),
        )
        state = state_store.load()
        assert state.step is Step.SUMMARY
        assert state.cover_letter == "c"

    @pytest.mark.parametrize(
        "value",
        ["{not json", "[1, 2, 3]", '{"step": "nowhere"}', '{"isUnlocked": "maybe"}'],
    )
    def test_corrupt_record_is_discarded(self, state_store, value):
        _write_raw(state_store, value)
        assert state_store.load() is None
        with sqlite3.connect(str(state_store.db_path)) as conn:
            assert conn.execute("SELECT COUNT(*) FROM kv_store").fetchone()[0] == 0

    def test_save_failure_raises_storage_error(self, state_store):
        with patch.object(state_store, "_connect", side_effect=sqlite3.OperationalError("disk I/O error")):
            with pytest.raises(StorageError) as exc_info:
                state_store.save(WizardState())
        assert exc_info.value.user_message == STORAGE_FAILED_MESSAGE
        assert "disk I/O error" in exc_info.value.detail

    def test_separate_keys_do_not_collide(self, tmp_path):
        a = StateStore(tmp_path / "shared.db", key="a")
        b = StateStore(tmp_path / "shared.db", key="b")
        a.save(WizardState(summary="from a"))
        assert b.load() is None
        assert a.load().summary == "from a"

    def test_clear_failure_raises_storage_error(self, state_store):
        state_store.save(WizardState(summary="x"))
        with patch.object(state_store, "_connect", side_effect=sqlite3.OperationalError("database is locked")):
            with pytest.raises(StorageError) as exc_info:
                state_store.clear()
        assert "database is locked" in exc_info.value.detail
        assert state_store.load().summary == "x"
