"""
File loader for saving item annotations as local JSON files.

Implements the same record-store contract as SupabaseLoader, for dry runs
and offline work. Each item lives in <output_dir>/<item_id>.json and a
re-run replaces the file.
"""

import hashlib
import json
import os
from pathlib import Path
from typing import Optional
from urllib.parse import quote

import aiofiles

from config.settings import StorageConfig, config
from src.ai.analysis import PersistedAnnotation
from src.ai.errors import PersistenceError
from src.utils.console import console


class FileLoader:
    """Saves annotations to a directory of JSON files."""

    def __init__(self, storage_config: Optional[StorageConfig] = None):
        self.config = storage_config or config.storage
        self.config.ensure_dirs()

    def _sanitize_filename(self, name: str) -> str:
        """
        Create a safe filename from an item id.

        Percent-encoding keeps distinct ids on distinct files. Long ids are
        cut and suffixed with a digest of the full id.
        """
        encoded = quote(name, safe="") or "item"
        if len(encoded) <= 100:
            return encoded
        digest = hashlib.sha256(name.encode("utf-8")).hexdigest()[:16]
        return f"{encoded[:80]}-{digest}"

    def get_item_path(self, item_id: str) -> Path:
        return self.config.output_dir / f"{self._sanitize_filename(item_id)}.json"

    async def update_wardrobe_item(
        self, item_id: str, annotation: PersistedAnnotation
    ) -> dict:
        """
        Write the annotation row for an item, replacing any earlier file.

        The row is written to a temporary file first and moved into place so
        readers never see a half-written annotation.

        Raises:
            PersistenceError: The file could not be written
        """
        row = {"id": item_id, **annotation.to_row()}
        path = self.get_item_path(item_id)
        tmp_path = path.with_suffix(".json.tmp")

        try:
            async with aiofiles.open(tmp_path, "w") as f:
                await f.write(json.dumps(row, indent=2))
            os.replace(tmp_path, path)
        except OSError as e:
            console.print(f"[red]Error saving annotation for {item_id}: {e}[/red]")
            raise PersistenceError(f"Failed to write {path}: {e}") from e

        console.print(f"[green]✓ Saved analysis for item {item_id} to {path}[/green]")
        return row

    async def load_item(self, item_id: str) -> Optional[dict]:
        """Read a saved annotation row, or None if the item was never saved."""
        path = self.get_item_path(item_id)
        if not path.exists():
            return None
        async with aiofiles.open(path, "r") as f:
            return json.loads(await f.read())
