"""
Supabase loader for persisting wardrobe item annotations.

Writes the finished analysis, embedding and tags onto the item's row in
PostgreSQL as a single update keyed by item id.
"""

import asyncio
from typing import Optional

from supabase import Client, create_client

from config.settings import SupabaseConfig, config
from src.ai.analysis import PersistedAnnotation
from src.ai.errors import PersistenceError
from src.utils.console import console


def get_supabase_client(
    supabase_url: Optional[str] = None,
    supabase_key: Optional[str] = None,
    settings: Optional[SupabaseConfig] = None,
) -> Client:
    """
    Create a Supabase client from arguments or environment.

    Raises:
        ValueError: URL or key not configured
    """
    settings = settings or config.supabase
    url = supabase_url or settings.url
    key = supabase_key or settings.key
    if not url or not key:
        raise ValueError(
            "Supabase credentials not found. Set SUPABASE_URL and "
            "SUPABASE_SERVICE_ROLE_KEY (or SUPABASE_KEY) environment variables."
        )
    return create_client(url, key)


class SupabaseLoader:
    """
    Persists annotations into the wardrobe items table.

    - One update per item, keyed by id
    - Later writes win; there is no optimistic-concurrency check
    """

    def __init__(
        self,
        supabase_url: Optional[str] = None,
        supabase_key: Optional[str] = None,
        client: Optional[Client] = None,
        table_name: str = config.supabase.items_table,
    ):
        """
        Initialize the Supabase loader.

        Args:
            supabase_url: Supabase project URL (or SUPABASE_URL env var)
            supabase_key: Supabase service key (or SUPABASE_SERVICE_ROLE_KEY env var)
            client: Pre-built client (skips credential lookup)
            table_name: Table holding wardrobe items
        """
        self.client: Client = client or get_supabase_client(supabase_url, supabase_key)
        self.table_name = table_name

    def _execute_update(self, item_id: str, row: dict):
        return (
            self.client.table(self.table_name)
            .update(row)
            .eq("id", item_id)
            .execute()
        )

    async def update_wardrobe_item(
        self, item_id: str, annotation: PersistedAnnotation
    ) -> dict:
        """
        Overwrite the item's annotation columns.

        Args:
            item_id: Wardrobe item id
            annotation: Finished annotation

        Returns:
            The updated row as returned by Supabase

        Raises:
            PersistenceError: The update failed or matched no row
        """
        row = annotation.to_row()
        try:
            result = await asyncio.to_thread(self._execute_update, item_id, row)
        except Exception as e:
            console.print(f"[red]Database update error for {item_id}: {e}[/red]")
            raise PersistenceError(f"Failed to update wardrobe item {item_id}: {e}") from e

        if not result.data:
            console.print(f"[red]No wardrobe item updated for id {item_id}[/red]")
            raise PersistenceError(f"Wardrobe item {item_id} not found")

        console.print(f"[green]✓ Saved analysis for item {item_id}[/green]")
        return result.data[0]
