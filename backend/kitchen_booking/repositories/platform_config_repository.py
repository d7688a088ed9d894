"""Repository for platform-wide key/value settings."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from ..models.platform_config import PlatformSetting


class PlatformConfigRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_by_key(self, key: str) -> Optional[PlatformSetting]:
        return self.db.get(PlatformSetting, key)

    def upsert(self, *, key: str, value: str) -> PlatformSetting:
        record = self.get_by_key(key)
        now = datetime.now(timezone.utc)
        if record is None:
            record = PlatformSetting(key=key, value=value, updated_at=now)
            self.db.add(record)
        else:
            record.value = value
            record.updated_at = now
        self.db.flush()
        return record
