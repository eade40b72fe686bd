"""
Correction history service for saving and querying manual tag corrections.

A user's most recent corrections are replayed into the reasoning prompt as
few-shot context, so future analyses learn their preferences.
"""

from dataclasses import dataclass
from typing import Any, Iterable, Optional

from supabase import Client

from config.settings import config
from src.loaders.supabase_loader import get_supabase_client

CONTEXT_HEADER = "USER PREFERENCE CONTEXT (learn from their previous corrections):"


@dataclass(frozen=True)
class CorrectionRecord:
    """One manual override of an AI-assigned field."""

    field_name: str
    original_value: Optional[str]
    corrected_value: Optional[str]
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "CorrectionRecord":
        return cls(
            field_name=str(row.get("field_name") or ""),
            original_value=_as_value(row.get("original_value")),
            corrected_value=_as_value(row.get("corrected_value")),
            created_at=row.get("created_at"),
        )


def _as_value(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def format_correction_context(records: Iterable[CorrectionRecord]) -> str:
    """
    Build the few-shot block appended to the reasoning prompt.

    Records are rendered in the order given (most recent first, as loaded).
    Returns "" when there are no records.
    """
    lines = [
        f'- Changed "{r.field_name}" from "{r.original_value}" to "{r.corrected_value}"'
        for r in records
    ]
    if not lines:
        return ""
    return CONTEXT_HEADER + "\n" + "\n".join(lines)


class CorrectionHistoryService:
    """
    Service for reading and recording tag corrections.

    Uses the same Supabase connection pattern as SupabaseLoader.
    """

    def __init__(
        self,
        supabase_url: Optional[str] = None,
        supabase_key: Optional[str] = None,
        client: Optional[Client] = None,
        table_name: str = config.supabase.corrections_table,
    ):
        """
        Initialize the correction history service.

        Args:
            supabase_url: Supabase project URL (or SUPABASE_URL env var)
            supabase_key: Supabase key (or SUPABASE_SERVICE_ROLE_KEY env var)
            client: Pre-built client (skips credential lookup)
            table_name: Table holding correction records
        """
        self.client: Client = client or get_supabase_client(supabase_url, supabase_key)
        self.table_name = table_name

    def load_recent_corrections(
        self, user_id: Optional[str], limit: int = config.correction_limit
    ) -> list[CorrectionRecord]:
        """
        Load a user's most recent corrections, newest first.

        Args:
            user_id: Requesting user (None for anonymous requests)
            limit: Maximum number of records

        Returns:
            List of CorrectionRecord; empty for anonymous users or no history
        """
        if not user_id or limit <= 0:
            return []

        result = (
            self.client.table(self.table_name)
            .select("field_name, original_value, corrected_value, created_at")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [CorrectionRecord.from_row(row) for row in result.data or []]

    def record_correction(
        self,
        user_id: str,
        item_id: str,
        field_name: str,
        original_value: Optional[str],
        corrected_value: Optional[str],
    ) -> dict:
        """
        Save a correction record.

        Args:
            user_id: User who made the correction
            item_id: Wardrobe item that was corrected
            field_name: Analysis field that changed (e.g. "fit")
            original_value: AI-assigned value
            corrected_value: User's value

        Returns:
            The inserted row

        Raises:
            ValueError: Missing user, item or field
            RuntimeError: On database insert failure
        """
        if not user_id or not item_id or not field_name:
            raise ValueError("user_id, item_id and field_name are required")

        record = {
            "user_id": user_id,
            "item_id": item_id,
            "field_name": field_name,
            "original_value": original_value,
            "corrected_value": corrected_value,
        }
        result = self.client.table(self.table_name).insert(record).execute()
        if not result.data:
            raise RuntimeError("Failed to insert tag_corrections record")
        return result.data[0]
