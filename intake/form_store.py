"""Helpers for working with local batch form configuration files."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from intake.questions import Question, parse_questions

logger = logging.getLogger(__name__)

BATCH_FILENAME = "batch.json"


@dataclass(frozen=True)
class BatchForm:
    """A batch with the questions applicants must answer."""

    key: str
    label: str
    batch_id: Optional[str] = None
    info: Dict[str, Any] = field(default_factory=dict)
    questions: List[Question] = field(default_factory=list)


def _ensure_mapping(value: Any) -> Dict[str, Any]:
    """Return ``value`` if it is a mapping, otherwise an empty dict."""

    return dict(value) if isinstance(value, Mapping) else {}


def _derive_label(key: str, info: Mapping[str, Any]) -> str:
    """Return a human-friendly label for a batch entry."""

    label = info.get("label") or info.get("name")
    if isinstance(label, str) and label.strip():
        return label.strip()
    return key.replace("_", " ").replace("-", " ").title() if key else "Batch"


def batch_from_payload(key: str, payload: Mapping[str, Any]) -> BatchForm:
    """Normalise a raw batch payload into a :class:`BatchForm`."""

    data = _ensure_mapping(payload.get("data")) or _ensure_mapping(payload)
    info = _ensure_mapping(data.get("batch_info") or data.get("batch"))
    batch_id = data.get("batch_id") or info.get("id")
    return BatchForm(
        key=key,
        label=_derive_label(key, info),
        batch_id=str(batch_id) if batch_id else None,
        info=info,
        questions=parse_questions(data.get("questions")),
    )


def discover_local_batches(root: Path) -> Dict[str, Path]:
    """Return a mapping of ``batch_key -> path`` for local batch files."""

    batches: Dict[str, Path] = {}
    if root.exists():
        for entry in sorted(root.iterdir()):
            if not entry.is_dir():
                continue
            batch_path = entry / BATCH_FILENAME
            if batch_path.exists():
                batches[entry.name] = batch_path
    return batches


def load_local_batches(root: Path) -> Dict[str, BatchForm]:
    """Load every readable batch file under ``root``."""

    batches: Dict[str, BatchForm] = {}
    for key, path in discover_local_batches(root).items():
        try:
            with path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Skipping unreadable batch file %s: %s", path, exc)
            continue
        if not isinstance(payload, Mapping):
            logger.warning("Skipping batch file %s without a JSON object", path)
            continue
        batches[key] = batch_from_payload(key, payload)
    return batches


def available_batch_keys(root: Path) -> List[str]:
    """Return the list of known local batch identifiers."""

    return list(discover_local_batches(root).keys())


__all__ = [
    "BATCH_FILENAME",
    "BatchForm",
    "available_batch_keys",
    "batch_from_payload",
    "discover_local_batches",
    "load_local_batches",
]
