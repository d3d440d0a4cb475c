"""Shared page configuration and styling for the intake wizard."""

from __future__ import annotations

from html import escape
from typing import Any, Iterable, Optional, Sequence

import streamlit as st


_THEME_CSS = """
<style>
:root {
    --intake-accent: #0F766E;
    --intake-accent-dark: #115E59;
    --intake-accent-soft: #CCFBF1;
    --intake-surface: #FFFFFF;
    --intake-border: rgba(15, 118, 110, 0.18);
    --intake-text: #1F2933;
    --intake-muted: #52606D;
    --intake-error: #DC2626;
}

html, body {
    font-family: "Inter", "Segoe UI", system-ui, -apple-system, sans-serif;
    color: var(--intake-text);
}

[data-testid="stAppViewContainer"] {
    background: linear-gradient(180deg, #F0FDFA 0%, #FFFFFF 60%);
}

.block-container {
    padding-top: 2rem;
    padding-bottom: 4rem;
    max-width: 960px;
}

.intake-header {
    display: flex;
    align-items: center;
    gap: 1.25rem;
    padding: 1.5rem 1.75rem;
    background: var(--intake-surface);
    border-radius: 1.25rem;
    border: 1px solid var(--intake-border);
    margin-bottom: 1.5rem;
}

.intake-header__icon {
    font-size: 2.5rem;
    line-height: 1;
}

.intake-header__title {
    margin: 0;
    font-size: 2rem;
    font-weight: 700;
}

.intake-header__subtitle {
    margin: 0.25rem 0 0 0;
    color: var(--intake-muted);
}

.intake-card {
    background: var(--intake-surface);
    border-radius: 1.25rem;
    border: 1px solid var(--intake-border);
    padding: 1.5rem 1.75rem;
    margin-bottom: 1.25rem;
}

.intake-card__title {
    margin: 0 0 0.75rem 0;
    font-size: 1.2rem;
    font-weight: 600;
}

.intake-card p {
    color: var(--intake-muted);
    line-height: 1.55;
}

.intake-stepper {
    list-style: none;
    display: flex;
    gap: 0.75rem;
    margin: 0 0 1.25rem 0;
    padding: 0;
}

.intake-stepper li {
    flex: 1;
    display: flex;
    align-items: center;
    gap: 0.6rem;
    padding: 0.65rem 1rem;
    border-radius: 999px;
    background: #F1F5F9;
    color: var(--intake-muted);
    font-weight: 600;
}

.intake-stepper__badge {
    width: 1.8rem;
    height: 1.8rem;
    border-radius: 999px;
    background: #CBD5E1;
    color: white;
    display: inline-flex;
    align-items: center;
    justify-content: center;
}

.intake-stepper li.is-active {
    background: var(--intake-accent-soft);
    color: var(--intake-text);
}

.intake-stepper li.is-active .intake-stepper__badge,
.intake-stepper li.is-completed .intake-stepper__badge {
    background: var(--intake-accent);
}

.intake-errors {
    border-left: 4px solid var(--intake-error);
    padding: 0.75rem 1rem;
    background: #FEF2F2;
    border-radius: 0.75rem;
    margin-bottom: 1rem;
}

.intake-errors li {
    color: var(--intake-error);
}

.stButton>button {
    border-radius: 999px !important;
    font-weight: 600 !important;
}

button[kind="primary"] {
    background: var(--intake-accent) !important;
    border: none !important;
}

button[kind="primary"]:hover {
    background: var(--intake-accent-dark) !important;
}
</style>
"""


def apply_app_theme(page_title: str, page_icon: Optional[str] = None) -> None:
    """Configure the page and inject the intake stylesheet."""

    st.set_page_config(
        page_title=page_title,
        page_icon=page_icon,
        layout="centered",
        initial_sidebar_state="collapsed",
    )
    st.markdown(_THEME_CSS, unsafe_allow_html=True)


def page_header(
    title: str,
    subtitle: Optional[str] = None,
    icon: Optional[str] = None,
    *,
    container: Optional[Any] = None,
) -> None:
    """Render the page title block with an optional subtitle and icon."""

    icon_markup = f"<span class='intake-header__icon'>{icon}</span>" if icon else ""
    subtitle_markup = (
        f"<p class='intake-header__subtitle'>{escape(subtitle)}</p>" if subtitle else ""
    )
    target = container.markdown if container is not None else st.markdown
    target(
        f"""
        <div class="intake-header">
            {icon_markup}
            <div>
                <h1 class="intake-header__title">{escape(title)}</h1>
                {subtitle_markup}
            </div>
        </div>
        """,
        unsafe_allow_html=True,
    )


def render_card(content: str, title: Optional[str] = None) -> None:
    """Wrap ``content`` (already escaped HTML) in an intake card."""

    heading = f"<h3 class='intake-card__title'>{escape(title)}</h3>" if title else ""
    st.markdown(
        f"<div class='intake-card'>{heading}{content}</div>",
        unsafe_allow_html=True,
    )


def stepper_markup(titles: Sequence[str], statuses: Sequence[str]) -> str:
    """Return HTML for the step indicator; ``statuses`` are ``active``/``completed``/``inactive``."""

    items = []
    for index, (title, status) in enumerate(zip(titles, statuses), start=1):
        badge = "&#10003;" if status == "completed" else str(index)
        items.append(
            f"<li class='is-{status}'><span class='intake-stepper__badge'>{badge}</span>"
            f"{escape(title)}</li>"
        )
    return f"<ol class='intake-stepper'>{''.join(items)}</ol>"


def error_list_markup(messages: Iterable[str]) -> str:
    """Return HTML listing ``messages``, or an empty string when there are none."""

    entries = "".join(f"<li>{escape(message)}</li>" for message in messages)
    if not entries:
        return ""
    return f"<div class='intake-errors'><ul>{entries}</ul></div>"


__all__ = [
    "apply_app_theme",
    "error_list_markup",
    "page_header",
    "render_card",
    "stepper_markup",
]
