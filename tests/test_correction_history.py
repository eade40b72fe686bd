"""Tests for loading, formatting and recording tag corrections."""

from __future__ import annotations

import pytest
import pytest_mock

from src.services.correction_history_service import (
    CONTEXT_HEADER,
    CorrectionHistoryService,
    CorrectionRecord,
    format_correction_context,
)


def _query(client):
    return client.table.return_value.select.return_value.eq.return_value.order.return_value.limit.return_value


def test_load_recent_corrections_query(mocker: pytest_mock.MockerFixture) -> None:
    client = mocker.MagicMock()
    _query(client).execute.return_value.data = [
        {"field_name": "fit", "original_value": "slim", "corrected_value": "relaxed", "created_at": "2026-03-02"},
        {"field_name": "formality", "original_value": 2, "corrected_value": 3, "created_at": "2026-03-01"},
    ]
    service = CorrectionHistoryService(client=client)

    records = service.load_recent_corrections("user-1", limit=5)

    client.table.assert_called_once_with("tag_corrections")
    client.table.return_value.select.return_value.eq.assert_called_once_with("user_id", "user-1")
    client.table.return_value.select.return_value.eq.return_value.order.assert_called_once_with(
        "created_at", desc=True
    )
    client.table.return_value.select.return_value.eq.return_value.order.return_value.limit.assert_called_once_with(5)
    assert records == [
        CorrectionRecord("fit", "slim", "relaxed", "2026-03-02"),
        CorrectionRecord("formality", "2", "3", "2026-03-01"),
    ]


def test_anonymous_user_has_no_history(mocker: pytest_mock.MockerFixture) -> None:
    client = mocker.MagicMock()
    service = CorrectionHistoryService(client=client)

    assert service.load_recent_corrections(None) == []
    client.table.assert_not_called()


def test_format_context_block() -> None:
    block = format_correction_context(
        [
            CorrectionRecord("fit", "slim", "relaxed"),
            CorrectionRecord("era", "2000s", "1990s"),
        ]
    )

    assert block == (
        f"{CONTEXT_HEADER}\n"
        '- Changed "fit" from "slim" to "relaxed"\n'
        '- Changed "era" from "2000s" to "1990s"'
    )


def test_format_empty_context() -> None:
    assert format_correction_context([]) == ""


def test_record_correction_inserts_row(mocker: pytest_mock.MockerFixture) -> None:
    client = mocker.MagicMock()
    client.table.return_value.insert.return_value.execute.return_value.data = [{"id": 7}]
    service = CorrectionHistoryService(client=client)

    row = service.record_correction("user-1", "item-9", "fit", "slim", "relaxed")

    assert row == {"id": 7}
    client.table.return_value.insert.assert_called_once_with(
        {
            "user_id": "user-1",
            "item_id": "item-9",
            "field_name": "fit",
            "original_value": "slim",
            "corrected_value": "relaxed",
        }
    )


def test_record_correction_requires_ids(mocker: pytest_mock.MockerFixture) -> None:
    service = CorrectionHistoryService(client=mocker.MagicMock())

    with pytest.raises(ValueError):
        service.record_correction("", "item-9", "fit", "slim", "relaxed")


def test_record_correction_empty_insert(mocker: pytest_mock.MockerFixture) -> None:
    client = mocker.MagicMock()
    client.table.return_value.insert.return_value.execute.return_value.data = []

    with pytest.raises(RuntimeError):
        CorrectionHistoryService(client=client).record_correction("u", "i", "fit", "a", "b")
