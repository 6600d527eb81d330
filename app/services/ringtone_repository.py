"""
Ringtone persistence on the Supabase (PostgREST) table API.

Rows are plain dicts with snake_case keys matching the ``ringtone`` table
(see supabase/migrations). The repository is created per request from the
injected Supabase client; it holds no state of its own.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import Depends
from supabase import Client

from app.config import Settings, get_settings
from app.models import Ringtone
from app.services.supabase_service import get_supabase_client


def _now_iso() -> str:
    """Return current UTC timestamp in ISO format."""
    return datetime.now(timezone.utc).isoformat()


class RingtoneRepository:
    """CRUD access to ringtone records."""

    def __init__(self, client: Client, table: str = "ringtone"):
        self.client = client
        self.table = table

    def _table(self):
        return self.client.table(self.table)

    def list_for_user(self, user_id: str) -> List[Ringtone]:
        """All ringtones owned by user_id, newest first."""
        result = (
            self._table()
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .execute()
        )
        return [Ringtone.model_validate(row) for row in result.data or []]

    def get(self, ringtone_id: str) -> Optional[Ringtone]:
        result = self._table().select("*").eq("id", ringtone_id).limit(1).execute()
        if not result.data:
            return None
        return Ringtone.model_validate(result.data[0])

    def list_file_names(self, user_id: str) -> List[str]:
        """Display names already used by user_id."""
        result = self._table().select("file_name").eq("user_id", user_id).execute()
        return [row["file_name"] for row in result.data or []]

    def insert(self, values: Dict[str, Any]) -> Ringtone:
        """
        Insert one ringtone row.

        created_at/updated_at are filled in when the caller leaves them out.

        Raises:
            Exception: Propagates PostgREST/network errors from the client
        """
        now = _now_iso()
        row = {"created_at": now, "updated_at": now, **values}
        result = self._table().insert(row).execute()
        return Ringtone.model_validate(result.data[0] if result.data else row)

    def update_file_name(self, ringtone_id: str, file_name: str, download_url: str) -> None:
        self._table().update({
            "file_name": file_name,
            "download_url": download_url,
            "updated_at": _now_iso(),
        }).eq("id", ringtone_id).execute()

    def delete(self, ringtone_id: str) -> None:
        self._table().delete().eq("id", ringtone_id).execute()


def get_ringtone_repository(
    supabase: Client = Depends(get_supabase_client),
    settings: Settings = Depends(get_settings)
) -> RingtoneRepository:
    """FastAPI dependency building a repository on the configured table."""
    return RingtoneRepository(supabase, settings.ringtones_table)
