from typing import Optional, Sequence

import streamlit as st

from service_tracker.exports.csv_export import Downloader, export_to_csv
from service_tracker.models import ServiceRecord
from service_tracker.ui.notify import flush_notifications, notify


def _download_button(file_name: str, data: bytes, mime: str) -> None:
    st.download_button(f"Download {file_name}", data=data, file_name=file_name, mime=mime, use_container_width=True)


def streamlit_downloader() -> Optional[Downloader]:
    return _download_button if hasattr(st, "download_button") else None


def export_panel(records: Sequence[ServiceRecord]) -> None:
    if st.button("⬇️ Export CSV", key="export_csv"):
        export_to_csv(records, streamlit_downloader(), notify)
        # Show the outcome in this pass rather than on the next poll
        flush_notifications()
