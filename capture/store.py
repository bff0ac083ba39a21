"""
Append-only store for captured contact records.
"""

import json
import logging
from pathlib import Path
from typing import List, Optional, Union

from .records import ContactRecord

logger = logging.getLogger(__name__)


class RecordStore:
    """Keeps records in insertion order, optionally mirrored to a JSON file."""

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path else None
        self._records: List[ContactRecord] = []
        self._ids = set()

        if self.path and self.path.exists():
            self._load()

    def _load(self) -> None:
        with self.path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        for item in data:
            record = ContactRecord.from_dict(item)
            self._records.append(record)
            self._ids.add(record.id)
        logger.info(f"Loaded {len(self._records)} records from {self.path}")

    def _save(self, records: List[ContactRecord]) -> None:
        if not self.path:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump([r.to_dict() for r in records], f, indent=2)
        tmp_path.replace(self.path)

    def append(self, record: ContactRecord) -> ContactRecord:
        """Add a record; memory only changes once the file write succeeded."""
        if record.id in self._ids:
            raise ValueError(f"Duplicate record id: {record.id}")
        records = self._records + [record]
        self._save(records)
        self._records = records
        self._ids.add(record.id)
        logger.info(f"Stored record {record.id} ({len(self._records)} total)")
        return record

    def list(self) -> List[ContactRecord]:
        return list(self._records)

    def clear(self) -> int:
        """Remove every record; returns how many were dropped."""
        count = len(self._records)
        self._save([])
        self._records = []
        self._ids = set()
        logger.info(f"Cleared {count} records")
        return count

    def __len__(self) -> int:
        return len(self._records)
