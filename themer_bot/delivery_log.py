"""SQLite-backed record of result archives already delivered to Slack."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from typing import Optional

import sqlite_utils


class DeliveryLog:
    """Store channel+attachment ids whose result archive was uploaded.

    Slack keeps a file's id when it is shared into another channel, so the
    channel is part of the key.
    """

    TABLE = "channel_deliveries"

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.db = sqlite_utils.Database(str(self.db_path))
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        self.db[self.TABLE].create(
            {
                "channel": str,
                "attachment_id": str,
                "checksum": str,
                "slack_file_id": str,
                "delivered_at": str,
            },
            pk=("channel", "attachment_id"),
            if_not_exists=True,
        )

    def seen(self, channel: str, attachment_id: str) -> bool:
        table = self.db[self.TABLE]
        return (
            table.count_where("channel = ? and attachment_id = ?", [channel, attachment_id])
            > 0
        )

    def record(
        self,
        *,
        channel: str,
        attachment_id: str,
        checksum: str,
        slack_file_id: Optional[str],
    ) -> None:
        self.db[self.TABLE].upsert(
            {
                "channel": channel,
                "attachment_id": attachment_id,
                "checksum": checksum,
                "slack_file_id": slack_file_id,
                "delivered_at": datetime.now(tz=UTC).isoformat(),
            },
            pk=("channel", "attachment_id"),
        )
