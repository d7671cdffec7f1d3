from __future__ import annotations

from datetime import date
from typing import Any, List

import pytest

from conftest import make_record
from service_tracker.ui import export_panel as panel


class _FakeStreamlit:
    def __init__(self, clicked: bool) -> None:
        self.clicked = clicked
        self.downloads: List[str] = []

    def button(self, label: str, key: str = "") -> bool:
        return self.clicked

    def download_button(self, label: str, data: bytes, file_name: str, **kwargs: Any) -> None:
        self.downloads.append(file_name)


@pytest.fixture
def events(monkeypatch: pytest.MonkeyPatch) -> list:
    seen: list = []
    monkeypatch.setattr(panel, "notify", lambda level, message: seen.append(("notify", level)))
    monkeypatch.setattr(panel, "flush_notifications", lambda: seen.append(("flush",)))
    return seen


def test_empty_export_notice_is_shown_in_the_same_pass(monkeypatch: pytest.MonkeyPatch, events: list) -> None:
    monkeypatch.setattr(panel, "st", _FakeStreamlit(clicked=True))

    panel.export_panel([])

    assert events == [("notify", "info"), ("flush",)]


def test_export_offers_download_then_shows_success(monkeypatch: pytest.MonkeyPatch, events: list) -> None:
    fake = _FakeStreamlit(clicked=True)
    monkeypatch.setattr(panel, "st", fake)

    panel.export_panel([make_record(date(2024, 3, 1))])

    assert len(fake.downloads) == 1
    assert fake.downloads[0].startswith("service_records_")
    assert events == [("notify", "success"), ("flush",)]


def test_nothing_happens_until_clicked(monkeypatch: pytest.MonkeyPatch, events: list) -> None:
    monkeypatch.setattr(panel, "st", _FakeStreamlit(clicked=False))

    panel.export_panel([make_record(date(2024, 3, 1))])

    assert events == []
