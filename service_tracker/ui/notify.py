from typing import List, Tuple

import streamlit as st

QUEUE_KEY = "_pending_notifications"
ICONS = {"success": "✅", "info": "ℹ️", "warning": "⚠️", "error": "❌"}


def notify(level: str, message: str) -> None:
    """Queue a toast; it survives the st.rerun() that usually follows a write."""
    queue: List[Tuple[str, str]] = st.session_state.setdefault(QUEUE_KEY, [])
    queue.append((level, message))


def flush_notifications() -> None:
    queue = st.session_state.get(QUEUE_KEY) or []
    st.session_state[QUEUE_KEY] = []
    for level, message in queue:
        st.toast(message, icon=ICONS.get(level, ICONS["info"]))
