"""Streamlit home screen summarising the configured batches and received applications."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List

import pandas as pd
import requests
import streamlit as st

from intake.api_client import IntakeApiClient
from intake.form_store import BatchForm, load_local_batches
from intake.questions import Question
from intake.schema_defaults import DEFAULT_PAGE_ICON
from intake.scoring import scoring_summary
from intake.settings import IntakeSettings, load_settings
from intake.submission_storage import load_submissions
from intake.ui_theme import apply_app_theme, page_header

QUESTION_COLUMNS = ("Order", "Code", "Label", "Type", "Required", "Active", "Conditional", "Max score")
SUBMISSION_COLUMNS = ("Submission ID", "Submitted at", "Answers", "Score")


def question_rows(questions: Iterable[Question]) -> List[Dict[str, Any]]:
    """Return one overview row per question, ordered by display order."""

    rows: List[Dict[str, Any]] = []
    for question in sorted(questions, key=lambda item: item.display_order):
        logic = question.conditional_logic
        rules = question.scoring_rules
        rows.append(
            {
                "Order": question.display_order,
                "Code": question.code,
                "Label": question.display_label,
                "Type": question.field_type.value,
                "Required": "Yes" if question.required else "No",
                "Active": "Yes" if question.is_active else "No",
                "Conditional": "Yes" if logic is not None and logic.enabled else "No",
                "Max score": rules.max_score if rules is not None and rules.enabled else 0,
            }
        )
    return rows


def submission_rows(records: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Flatten stored submission records for the overview table."""

    rows: List[Dict[str, Any]] = []
    for record in records:
        payload = record.get("payload") if isinstance(record.get("payload"), dict) else {}
        answers = payload.get("answers") if isinstance(payload.get("answers"), list) else []
        score = record.get("score") if isinstance(record.get("score"), dict) else {}
        rows.append(
            {
                "Submission ID": record.get("id", ""),
                "Submitted at": record.get("submitted_at", ""),
                "Answers": len(answers),
                "Score": f"{score.get('total', 0):g} / {score.get('max', 0):g}" if score else "—",
            }
        )
    return rows


def _load_batches(settings: IntakeSettings) -> Dict[str, BatchForm]:
    if settings.remote_enabled and settings.batch_id:
        client = IntakeApiClient(api_url=str(settings.api_url), timeout=settings.timeout)
        try:
            questions = client.fetch_batch_questions(settings.batch_id)
        except (requests.RequestException, ValueError):
            st.warning("Unable to reach the application service. Showing local batches instead.")
        else:
            key = settings.batch_id
            return {key: BatchForm(key=key, label=f"Batch {key}", batch_id=key, questions=questions)}
    return load_local_batches(settings.batches_path)


def main() -> None:
    """Render the home screen."""

    apply_app_theme(page_title="Recruitment intake", page_icon=DEFAULT_PAGE_ICON)
    page_header(
        "Recruitment intake",
        "Review batch form configurations and received applications.",
        icon=DEFAULT_PAGE_ICON,
    )

    settings = load_settings()
    batches = _load_batches(settings)
    if not batches:
        st.info(
            f"No batches configured yet. Add a batch file under {settings.batches_path}/<batch>/batch.json "
            "or configure the intake API in secrets."
        )
        return

    batch_keys = list(batches)
    selected_key = batch_keys[0]
    if len(batch_keys) > 1:
        selected_key = st.selectbox(
            "Batch",
            options=batch_keys,
            format_func=lambda key: batches[key].label,
        )
    batch = batches[selected_key]

    summary = scoring_summary(batch.questions)
    metric_col1, metric_col2, metric_col3 = st.columns(3)
    metric_col1.metric("Active questions", summary["total_questions"] or "0")
    metric_col2.metric("Scored questions", summary["scoring_questions"] or "0")
    metric_col3.metric("Maximum score", f"{summary['total_max_score']:g}")

    st.markdown("#### Questions")
    rows = question_rows(batch.questions)
    if rows:
        st.dataframe(pd.DataFrame(rows, columns=list(QUESTION_COLUMNS)), hide_index=True)
    else:
        st.caption("This batch only asks for consent.")

    if not settings.remote_enabled:
        st.markdown("#### Received applications")
        records = load_submissions(settings.submissions_path / batch.key)
        if records:
            st.dataframe(
                pd.DataFrame(submission_rows(records), columns=list(SUBMISSION_COLUMNS)),
                hide_index=True,
            )
        else:
            st.caption("No applications stored for this batch yet.")

    st.page_link("pages/01_Application_Form.py", label="Open application form", icon=DEFAULT_PAGE_ICON)


if __name__ == "__main__":
    main()
