"""Tests for the local submission sink."""

from __future__ import annotations

import json
from types import SimpleNamespace

import pytest

import intake.submission_storage as submission_storage
from intake.api_client import SubmissionError
from intake.questions import Question
from intake.submission_storage import load_submissions, store_submission


def test_store_submission_writes_record(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(submission_storage.uuid, "uuid4", lambda: SimpleNamespace(hex="abc123"))
    questions = [
        Question(
            code="program",
            scoring_rules={
                "enabled": True,
                "max_score": 5,
                "conditions": [{"operator": "equals", "value": "data", "points": 5}],
            },
        )
    ]
    payload = {
        "agreement1": "agree",
        "answers": [{"question_id": "1", "question_code": "program", "answer": "data"}],
        "verification_token": "t",
        "batch_id": "demo",
    }

    response = store_submission(payload, tmp_path / "demo", questions=questions)

    assert response.success
    assert response.data == {"id": "abc123"}
    stored = json.loads((tmp_path / "demo" / "abc123.json").read_text(encoding="utf-8"))
    assert stored["batch_id"] == "demo"
    assert stored["payload"] == payload
    assert stored["score"] == {"total": 5, "max": 5}


def test_store_submission_reports_filesystem_errors(tmp_path) -> None:
    blocker = tmp_path / "occupied"
    blocker.write_text("not a directory", encoding="utf-8")

    with pytest.raises(SubmissionError):
        store_submission({"answers": []}, blocker)


def test_load_submissions_newest_first(tmp_path) -> None:
    records = {
        "old": {"id": "old", "submitted_at": "2026-01-01T08:00:00+00:00"},
        "new": {"id": "new", "submitted_at": "2026-03-01T08:00:00Z"},
        "undated": {},
    }
    for name, record in records.items():
        (tmp_path / f"{name}.json").write_text(json.dumps(record), encoding="utf-8")
    (tmp_path / "broken.json").write_text("{", encoding="utf-8")

    loaded = load_submissions(tmp_path)

    assert [record["id"] for record in loaded] == ["new", "old", "undated"]


def test_load_submissions_without_directory(tmp_path) -> None:
    assert load_submissions(tmp_path / "missing") == []
