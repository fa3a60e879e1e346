"""
Supabase Service

Writes contact submissions and upload audit rows to hosted Supabase tables.
supabase-py is synchronous, so each call runs in a worker thread.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from postgrest.exceptions import APIError
from supabase import Client, create_client

from resume_analyzer.config import FAIL_CLOSED, SupabaseConfig
from resume_analyzer.errors import PersistenceError, ServiceError, ServiceNotConfiguredError
from resume_analyzer.logger import get_logger

logger = get_logger(__name__)


class SupabaseService:
    """Thin wrapper over the Supabase table API"""

    def __init__(self, config: SupabaseConfig, client: Optional[Client] = None):
        self.config = config
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            if not self.config.is_configured:
                raise ServiceNotConfiguredError("Database service is not configured.")
            try:
                self._client = create_client(self.config.url, self.config.service_key)
            except Exception as e:
                logger.error("Could not create Supabase client: %s", e)
                raise ServiceNotConfiguredError("Database service is not configured correctly.", details=str(e))
        return self._client

    async def insert_row(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert one row and return the inserted record.

        Raises:
            ServiceNotConfiguredError: Supabase URL or key is missing
            PersistenceError: Supabase rejected the insert
        """
        client = self.client
        try:
            response = await asyncio.to_thread(
                lambda: client.table(table).insert(row).execute()
            )
        except APIError as e:
            logger.error("Supabase insert into %s failed: %s", table, e.message)
            raise PersistenceError(
                e.message or "Supabase request failed",
                details=e.details,
                code=e.code,
                hint=e.hint,
            )
        except Exception as e:
            logger.error("Unexpected error inserting into %s: %s", table, e)
            raise PersistenceError(str(e) or "Supabase request failed")

        if not response.data:
            raise PersistenceError(f"Insert into {table} returned no rows")
        return response.data[0]

    async def update_row(self, table: str, row_id: Any, values: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        client = self.client
        try:
            response = await asyncio.to_thread(
                lambda: client.table(table).update(values).eq("id", row_id).execute()
            )
        except APIError as e:
            logger.error("Supabase update on %s failed: %s", table, e.message)
            raise PersistenceError(e.message or "Supabase request failed", details=e.details, code=e.code, hint=e.hint)
        except Exception as e:
            logger.error("Unexpected error updating %s: %s", table, e)
            raise PersistenceError(str(e) or "Supabase request failed")
        return response.data[0] if response.data else None

    async def save_contact_submission(self, name: str, email: str, message: str) -> Dict[str, Any]:
        return await self.insert_row(
            self.config.contact_table,
            {
                "name": name,
                "email": email,
                "message": message,
                "created_at": datetime.now(timezone.utc).isoformat(),
            },
        )

    async def log_upload(
        self,
        file_name: str,
        file_type: str,
        file_size_bytes: int,
        job_description: str,
    ) -> Optional[Dict[str, Any]]:
        """
        Record an upload in the audit table.

        In fail_open mode any failure is logged and None is returned; in
        fail_closed mode the error propagates and the upload is aborted.
        """
        row = {
            "file_name": file_name,
            "file_type": file_type,
            "file_size_bytes": file_size_bytes,
            "job_description_provided": bool(job_description),
            "job_description_length": len(job_description or ""),
            "status": "uploaded",
        }
        try:
            inserted = await self.insert_row(self.config.upload_log_table, row)
        except ServiceError as e:
            if self.config.upload_log_failure_mode == FAIL_CLOSED:
                raise
            logger.warning("Failed to log upload to Supabase, but proceeding with response: %s", e.message)
            return None

        logger.info("Upload logged to Supabase: %s", inserted.get("id"))
        return inserted

    async def update_log_status(self, log_id: Any, status: str) -> None:
        """Best-effort status update of an upload log row."""
        if log_id is None:
            return
        try:
            await self.update_row(self.config.upload_log_table, log_id, {"status": status})
        except ServiceError as e:
            logger.warning("Failed to update upload log %s to '%s': %s", log_id, status, e.message)
