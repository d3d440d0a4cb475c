"""Application settings read from Streamlit secrets and the environment."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import streamlit as st
from streamlit.errors import StreamlitAPIException

DEFAULT_TIMEOUT = 10.0
DEFAULT_BATCHES_PATH = Path("form_batches")
DEFAULT_SUBMISSIONS_PATH = Path("submissions")


@dataclass(frozen=True)
class IntakeSettings:
    """Where questions come from and where applications are sent."""

    api_url: Optional[str] = None
    batch_id: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT
    batches_path: Path = DEFAULT_BATCHES_PATH
    submissions_path: Path = DEFAULT_SUBMISSIONS_PATH

    @property
    def remote_enabled(self) -> bool:
        return bool(self.api_url)


def _secret(name: str, default: Any = None) -> Any:
    """Return a top-level secret, tolerating a missing secrets file."""

    try:
        return st.secrets.get(name, default)  # type: ignore[arg-type]
    except (FileNotFoundError, StreamlitAPIException):
        return default


def _secrets_dict(name: str) -> Dict[str, Any]:
    """Return a mapping stored under ``name`` in Streamlit secrets."""

    value = _secret(name, {})
    if isinstance(value, Mapping):
        return dict(value)
    return {}


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _timeout(value: Any) -> float:
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        return DEFAULT_TIMEOUT
    return timeout if timeout > 0 else DEFAULT_TIMEOUT


def load_settings() -> IntakeSettings:
    """Resolve settings from ``[intake]`` secrets, flat secrets, then environment."""

    secrets = _secrets_dict("intake")
    api_url = _clean(secrets.get("api_url"))
    batch_id = _clean(secrets.get("batch_id"))

    if not api_url:
        api_url = _clean(_secret("intake_api_url")) or _clean(os.environ.get("INTAKE_API_URL"))
    if not batch_id:
        batch_id = _clean(_secret("intake_batch_id")) or _clean(os.environ.get("INTAKE_BATCH_ID"))

    batches_path = _clean(secrets.get("batches_path"))
    submissions_path = _clean(secrets.get("submissions_path"))
    return IntakeSettings(
        api_url=api_url,
        batch_id=batch_id,
        timeout=_timeout(secrets.get("timeout", DEFAULT_TIMEOUT)),
        batches_path=Path(batches_path) if batches_path else DEFAULT_BATCHES_PATH,
        submissions_path=Path(submissions_path) if submissions_path else DEFAULT_SUBMISSIONS_PATH,
    )


__all__ = ["IntakeSettings", "load_settings"]
