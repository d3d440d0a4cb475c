"""Streamlit page running the two-step application wizard for a batch."""

from __future__ import annotations

import logging
import uuid
from datetime import date
from functools import partial
from html import escape as html_escape
from typing import Any, Callable, Dict, List, Optional

import requests
import streamlit as st

from intake.answers import empty_value_for
from intake.api_client import IntakeApiClient, SubmissionResponse
from intake.form_store import BatchForm, load_local_batches
from intake.questions import Question, QuestionType
from intake.schema_defaults import (
    CONSENT_STATEMENTS,
    DEFAULT_PAGE_ICON,
    DEFAULT_PAGE_TITLE,
    DEFAULT_SUBMIT_LABEL,
    DEFAULT_SUCCESS_HEADING,
    success_paragraphs_list,
)
from intake.settings import IntakeSettings, load_settings
from intake.steps import AGREE_VALUE, CONSENT_FIELDS, DISAGREE_VALUE
from intake.submission_storage import store_submission
from intake.ui_theme import apply_app_theme, error_list_markup, page_header, render_card, stepper_markup
from intake.wizard import FormWizard, Notification

logger = logging.getLogger(__name__)

WIZARD_STATE_KEY = "intake_wizards"
SELECTED_BATCH_KEY = "intake_selected_batch"
NOTIFICATIONS_KEY = "intake_notifications"
FORM_NONCE_KEY = "intake_form_nonce"
VERIFICATION_NONCE_KEY = "intake_verification_nonce"

CONSENT_LABELS = {AGREE_VALUE: "I agree", DISAGREE_VALUE: "I do not agree"}
NOTIFICATION_ICONS = {"success": "✅", "error": "⚠️", "info": "ℹ️"}


def widget_key(code: str, nonce: int) -> str:
    """Return the session-state key of the widget bound to ``code``."""

    return f"intake_field_{nonce}_{code}"


def coerce_widget_value(question: Question, raw: Any) -> Any:
    """Convert a widget return value into the form-value representation."""

    if raw is None:
        return empty_value_for(question)
    if isinstance(raw, date):
        return raw.isoformat()
    if question.is_multi_valued:
        return [str(item) for item in raw]
    return raw


def date_default(value: Any) -> Optional[date]:
    """Parse a stored ISO date for ``st.date_input``; blank or invalid gives ``None``."""

    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def number_default(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value in (None, ""):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def option_index(options: List[str], value: Any) -> Optional[int]:
    """Return the index of ``value`` in ``options`` or ``None`` for no selection."""

    text = "" if value is None else str(value)
    return options.index(text) if text in options else None


@st.cache_data(ttl=60, show_spinner=False)
def fetch_remote_questions(api_url: str, batch_id: str, timeout: float) -> List[Question]:
    """Fetch a batch configuration from the intake API."""

    return IntakeApiClient(api_url=api_url, timeout=timeout).fetch_batch_questions(batch_id)


def load_batches(settings: IntakeSettings) -> Dict[str, BatchForm]:
    """Return the batches the applicant can fill in.

    The configured API takes precedence; local batch files are used when no
    API is configured or when the remote configuration cannot be loaded.
    """

    if settings.remote_enabled and settings.batch_id:
        try:
            questions = fetch_remote_questions(settings.api_url, settings.batch_id, settings.timeout)
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Unable to load batch %s from the API: %s", settings.batch_id, exc)
            st.error(
                "Unable to load the form configuration from the application service. "
                "Showing the local form definitions instead."
            )
        else:
            key = settings.batch_id
            return {
                key: BatchForm(
                    key=key,
                    label=f"Batch {key}",
                    batch_id=settings.batch_id,
                    questions=questions,
                )
            }

    batches = load_local_batches(settings.batches_path)
    if settings.batch_id and settings.batch_id in batches:
        return {settings.batch_id: batches[settings.batch_id]}
    return batches


def make_submitter(
    settings: IntakeSettings, batch: BatchForm
) -> Callable[[Dict[str, Any]], SubmissionResponse]:
    """Return the submission sink for ``batch``."""

    if settings.remote_enabled:
        client = IntakeApiClient(api_url=str(settings.api_url), timeout=settings.timeout)
        return client.submit_form
    directory = settings.submissions_path / batch.key
    return partial(store_submission, directory=directory, questions=batch.questions)


def queue_notification(notification: Notification) -> None:
    """Keep ``notification`` until the next render so it survives ``st.rerun``."""

    st.session_state.setdefault(NOTIFICATIONS_KEY, []).append(notification)


def reset_verification_widget() -> None:
    st.session_state[VERIFICATION_NONCE_KEY] = st.session_state.get(VERIFICATION_NONCE_KEY, 0) + 1


def get_wizard(settings: IntakeSettings, batch: BatchForm) -> FormWizard:
    """Return the session's wizard for ``batch``, creating it on first use."""

    wizards: Dict[str, FormWizard] = st.session_state.setdefault(WIZARD_STATE_KEY, {})
    wizard = wizards.get(batch.key)
    if wizard is None:
        wizard = FormWizard(
            batch.questions,
            submit=make_submitter(settings, batch),
            batch_id=batch.batch_id,
            notify=queue_notification,
            on_verification_reset=reset_verification_widget,
        )
        wizards[batch.key] = wizard
    return wizard


def _flush_notifications() -> None:
    for notification in st.session_state.pop(NOTIFICATIONS_KEY, []):
        icon = NOTIFICATION_ICONS.get(notification.level, NOTIFICATION_ICONS["info"])
        st.toast(f"**{notification.title}** {notification.message}", icon=icon)


def _field_error(wizard: FormWizard, code: str) -> None:
    message = wizard.state.field_errors.get(code)
    if message and wizard.state.live_validation:
        st.markdown(f":red[{html_escape(message)}]")


def render_consent_step(wizard: FormWizard, nonce: int) -> None:
    """Render the three consent statements as agree/disagree choices."""

    options = [AGREE_VALUE, DISAGREE_VALUE]
    for number, (field, statement) in enumerate(zip(CONSENT_FIELDS, CONSENT_STATEMENTS), start=1):
        selection = st.radio(
            f"{number}. {statement}",
            options,
            index=option_index(options, wizard.values.get(field)),
            format_func=lambda value: CONSENT_LABELS.get(value, value),
            key=widget_key(field, nonce),
            horizontal=True,
        )
        value = selection or ""
        if value != wizard.values.get(field):
            wizard.set_value(field, value)
        _field_error(wizard, field)


def render_question(question: Question, wizard: FormWizard, nonce: int) -> None:
    """Render the widget for ``question`` and store its value on the wizard."""

    key = widget_key(question.code, nonce)
    field_type = question.field_type
    label = question.display_label + (" *" if question.required else "")
    current = wizard.values.get(question.code, empty_value_for(question))
    disabled = question.disabled or question.readonly
    common: Dict[str, Any] = {"key": key, "help": question.description, "disabled": disabled}

    if field_type == QuestionType.TEXTAREA:
        raw = st.text_area(label, value=str(current or ""), placeholder=question.placeholder, **common)
    elif field_type == QuestionType.NUMBER:
        raw = st.number_input(
            label, value=number_default(current), placeholder=question.placeholder, **common
        )
    elif field_type == QuestionType.DATE:
        raw = st.date_input(label, value=date_default(current), **common)
    elif field_type in (QuestionType.SELECT, QuestionType.RADIO):
        values = question.option_values()
        labels = {option.value: option.label or option.value for option in question.options}
        widget = st.selectbox if field_type == QuestionType.SELECT else st.radio
        raw = widget(
            label,
            values,
            index=option_index(values, current),
            format_func=lambda value: labels.get(value, value),
            **common,
        )
    elif field_type == QuestionType.MULTISELECT:
        values = question.option_values()
        labels = {option.value: option.label or option.value for option in question.options}
        selected = [value for value in (current or []) if value in values]
        raw = st.multiselect(
            label,
            values,
            default=selected,
            format_func=lambda value: labels.get(value, value),
            **common,
        )
    elif field_type == QuestionType.CHECKBOX:
        st.markdown(f"**{html_escape(label)}**")
        if question.description:
            st.caption(question.description)
        chosen = set(current or [])
        raw = [
            option.value
            for index, option in enumerate(question.options)
            if st.checkbox(
                option.label or option.value,
                value=option.value in chosen,
                key=f"{key}_{index}",
                disabled=disabled,
            )
        ]
    else:
        raw = st.text_input(
            label,
            value=str(current or ""),
            placeholder=question.placeholder,
            type="password" if field_type == QuestionType.PASSWORD else "default",
            **common,
        )

    value = coerce_widget_value(question, raw)
    if value != current:
        wizard.set_value(question.code, value)
    _field_error(wizard, question.code)


def _drop_hidden_widgets(wizard: FormWizard, visible: List[Question], nonce: int) -> None:
    visible_codes = {question.code for question in visible}
    for question in wizard.current_step.questions:
        if question.code in visible_codes:
            continue
        key = widget_key(question.code, nonce)
        for candidate in [key, *(f"{key}_{index}" for index in range(len(question.options)))]:
            if candidate in st.session_state:
                st.session_state.pop(candidate)


def render_verification(wizard: FormWizard) -> None:
    """Render the human-confirmation check that issues a single-use token.

    Placeholder for a real bot-check widget: ticking the box mints a local
    ``uuid4`` token that no server verifies.
    """

    nonce = st.session_state.get(VERIFICATION_NONCE_KEY, 0)
    confirmed = st.checkbox(
        "I confirm that I am submitting this application myself.",
        key=f"intake_verification_{nonce}",
    )
    if confirmed and not wizard.state.verification_token:
        wizard.set_verification_token(uuid.uuid4().hex)
    elif not confirmed and wizard.state.verification_token:
        wizard.set_verification_token(None)


def render_step_navigation(wizard: FormWizard) -> None:
    titles = [step.title for step in wizard.steps]
    statuses = [wizard.step_status(index) for index in range(wizard.total_steps)]
    st.markdown(stepper_markup(titles, statuses), unsafe_allow_html=True)

    if wizard.state.active_step == 0:
        return
    columns = st.columns(wizard.total_steps)
    for index, (column, step) in enumerate(zip(columns, wizard.steps)):
        with column:
            if st.button(
                f"Go to {step.title}",
                key=f"intake_step_{index}",
                disabled=index >= wizard.state.active_step,
                use_container_width=True,
            ):
                wizard.go_to_step(index)
                st.rerun()


def render_success(wizard: FormWizard) -> None:
    paragraphs = "".join(f"<p>{html_escape(text)}</p>" for text in success_paragraphs_list())
    render_card(paragraphs, title=DEFAULT_SUCCESS_HEADING)
    if st.button("Start a new application", type="primary"):
        wizard.reset()
        st.session_state[FORM_NONCE_KEY] = st.session_state.get(FORM_NONCE_KEY, 0) + 1
        st.rerun()


def render_wizard(wizard: FormWizard) -> None:
    """Render the current step, its errors and the navigation buttons."""

    nonce = st.session_state.get(FORM_NONCE_KEY, 0)
    render_step_navigation(wizard)

    step = wizard.current_step
    st.subheader(step.title)
    if step.description:
        st.caption(step.description)

    errors_markup = error_list_markup(wizard.state.validation_errors)
    if errors_markup:
        st.markdown(errors_markup, unsafe_allow_html=True)
    if wizard.state.submit_error:
        st.error(wizard.state.submit_error)

    if step.is_consent:
        render_consent_step(wizard, nonce)
    else:
        visible = wizard.visible_questions()
        _drop_hidden_widgets(wizard, visible, nonce)
        for question in visible:
            render_question(question, wizard, nonce)
        completion = wizard.step_completion()
        st.progress(int(completion) / 100, text=f"{completion:.0f}% of required fields completed")

    if wizard.is_last_step:
        render_verification(wizard)

    back_col, reset_col, forward_col = st.columns([1, 1, 2])
    with back_col:
        if st.button("Previous", disabled=wizard.state.active_step == 0, use_container_width=True):
            wizard.previous()
            st.rerun()
    with reset_col:
        if st.button("Reset", use_container_width=True):
            wizard.reset()
            st.session_state[FORM_NONCE_KEY] = nonce + 1
            st.rerun()
    with forward_col:
        if wizard.is_last_step:
            if st.button(
                DEFAULT_SUBMIT_LABEL,
                type="primary",
                disabled=wizard.state.is_submitting,
                use_container_width=True,
            ):
                with st.spinner("Sending your application..."):
                    wizard.submit()
                st.rerun()
        elif st.button("Next", type="primary", use_container_width=True):
            wizard.next()
            st.rerun()


def main() -> None:
    """Render the application form page."""

    apply_app_theme(page_title=DEFAULT_PAGE_TITLE, page_icon=DEFAULT_PAGE_ICON)
    header_placeholder = st.empty()
    page_header(
        DEFAULT_PAGE_TITLE,
        "Complete both steps to submit your application.",
        icon=DEFAULT_PAGE_ICON,
        container=header_placeholder,
    )
    _flush_notifications()

    settings = load_settings()
    batches = load_batches(settings)
    if not batches:
        st.error(
            "No form configuration available. Configure the intake API in secrets or add "
            f"a batch file under {settings.batches_path}/<batch>/batch.json."
        )
        return

    batch_keys = list(batches)
    selected_key = st.session_state.get(SELECTED_BATCH_KEY)
    if selected_key not in batches:
        selected_key = batch_keys[0]
    if len(batch_keys) > 1:
        selected_key = st.selectbox(
            "Batch",
            options=batch_keys,
            index=batch_keys.index(selected_key),
            format_func=lambda key: batches[key].label,
        )
    st.session_state[SELECTED_BATCH_KEY] = selected_key

    batch = batches[selected_key]
    page_header(
        batch.label,
        f"Step-by-step application for {batch.label}.",
        icon=DEFAULT_PAGE_ICON,
        container=header_placeholder,
    )

    wizard = get_wizard(settings, batch)
    if wizard.state.is_submitted:
        render_success(wizard)
        return
    render_wizard(wizard)


if __name__ == "__main__":
    main()
