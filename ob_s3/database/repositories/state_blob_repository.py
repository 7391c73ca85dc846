from typing import Any

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from ob_s3.database.connection import get_connection
from ob_s3.queue.exceptions import QueueIOError
from ob_s3.queue.store import BlobStore


class PostgresBlobStore(BlobStore):
    """Blob persisted as one JSONB row of the ob_s3_state table."""

    def __init__(self, state_key: str = "default") -> None:
        self._state_key = state_key

    def load_blob(self) -> dict[str, Any]:
        try:
            with get_connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(
                        "SELECT data FROM ob_s3_state WHERE key = %s",
                        (self._state_key,),
                    )
                    row = cur.fetchone()
        except psycopg.Error as exc:
            raise QueueIOError(f"Failed to load state '{self._state_key}': {exc}") from exc

        if row is None or row["data"] is None:
            return {}
        return dict(row["data"])

    def save_blob(self, blob: dict[str, Any]) -> None:
        """Upsert the blob row.

        Raises:
            QueueIOError: on any database error; the stored row is left as it was.
        """
        try:
            with get_connection() as conn:
                conn.execute(
                    """
                    INSERT INTO ob_s3_state (key, data, updated_at)
                    VALUES (%s, %s, NOW())
                    ON CONFLICT (key)
                    DO UPDATE SET data = EXCLUDED.data, updated_at = NOW()
                    """,
                    (self._state_key, Jsonb(blob)),
                )
                conn.commit()
        except psycopg.Error as exc:
            raise QueueIOError(f"Failed to save state '{self._state_key}': {exc}") from exc
