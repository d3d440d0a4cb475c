"""Local submission sink used when no intake API is configured."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from intake.api_client import SubmissionError, SubmissionResponse
from intake.questions import Question
from intake.scoring import score_answers

logger = logging.getLogger(__name__)


def _parse_timestamp(value: Any) -> float:
    """Return a sort key for an ISO timestamp, ``0.0`` when it cannot be parsed."""

    if isinstance(value, str) and value.strip():
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00")).timestamp()
        except ValueError:
            return 0.0
    return 0.0


def store_submission(
    payload: Mapping[str, Any],
    directory: Path,
    *,
    questions: Optional[Iterable[Question]] = None,
) -> SubmissionResponse:
    """Write ``payload`` to ``directory/<id>.json`` and report success.

    When ``questions`` are given the stored record also carries the answer
    score. Filesystem failures raise :class:`SubmissionError`.
    """

    submission_id = uuid.uuid4().hex
    record: Dict[str, Any] = {
        "id": submission_id,
        "submitted_at": datetime.now(timezone.utc).isoformat(),
        "batch_id": payload.get("batch_id"),
        "payload": dict(payload),
    }
    if questions is not None:
        report = score_answers(questions, payload.get("answers") or [])
        record["score"] = {"total": report.total_score, "max": report.max_score}

    target = directory / f"{submission_id}.json"
    try:
        directory.mkdir(parents=True, exist_ok=True)
        with target.open("w", encoding="utf-8") as handle:
            json.dump(record, handle, indent=2, ensure_ascii=False)
    except OSError as exc:
        logger.warning("Unable to store submission %s: %s", target, exc)
        raise SubmissionError(f"Unable to store the application locally: {exc}") from exc

    logger.info("Stored submission %s", target)
    return SubmissionResponse(
        success=True,
        message="Application stored.",
        data={"id": submission_id},
    )


def load_submissions(directory: Path) -> List[Dict[str, Any]]:
    """Return stored submission records, newest first."""

    if not directory.exists():
        return []

    records: List[Dict[str, Any]] = []
    for path in sorted(directory.glob("*.json")):
        try:
            with path.open("r", encoding="utf-8") as handle:
                record = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Skipping unreadable submission file %s: %s", path, exc)
            continue
        if not isinstance(record, dict):
            continue
        record.setdefault("id", path.stem)
        records.append(record)

    records.sort(key=lambda item: _parse_timestamp(item.get("submitted_at")), reverse=True)
    return records


__all__ = ["load_submissions", "store_submission"]
