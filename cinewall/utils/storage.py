"""
Storage utility.

File I/O for the scan store (data/scans.json). The narrative vault keeps
its own file and is handled by NarrativeVault.
"""

import json
import os
import logging
from typing import Dict, List, Optional

from cinewall.exceptions import StoreConnectionError
from cinewall.models.record import ScanRecord
from cinewall.utils.text import subject_key
import config.settings as settings

logger = logging.getLogger(__name__)


class StorageManager:
    """
    Manages the scan store.

    Handles:
    - Scan rows (data/scans.json), a JSON list of row dicts
    """

    def __init__(self, data_root: str, scans_filename: str = settings.SCANS_FILENAME):
        """
        Initialize storage manager.

        Args:
            data_root: Root data directory (e.g., /path/to/data)
            scans_filename: Name of the scan store file under data_root
        """
        self.data_root = str(data_root)
        self.scans_path = os.path.join(self.data_root, scans_filename)

        os.makedirs(self.data_root, exist_ok=True)

        logger.info(f"Initialized StorageManager with data_root={self.data_root}")

    def load_rows(self) -> List[Dict]:
        """
        Load raw scan rows.

        Returns:
            List of row dicts; empty if the store file does not exist yet

        Raises:
            StoreConnectionError: If the store exists but cannot be read
        """
        if not os.path.exists(self.scans_path):
            logger.warning(f"No scan store found at {self.scans_path}")
            return []

        try:
            with open(self.scans_path, 'r') as f:
                rows = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read scan store {self.scans_path}: {e}")
            raise StoreConnectionError(f"Cannot read scan store {self.scans_path}: {e}") from e

        if not isinstance(rows, list):
            raise StoreConnectionError(
                f"Scan store {self.scans_path} holds {type(rows).__name__}, expected a list"
            )

        logger.debug(f"Loaded {len(rows)} scan rows from {self.scans_path}")
        return rows

    def load_scans(
        self,
        limit: int = settings.SCAN_FETCH_LIMIT,
        subject_name: Optional[str] = None,
        case_insensitive: bool = settings.GROUPING_CASE_INSENSITIVE
    ) -> List[ScanRecord]:
        """
        Load scan records, newest first.

        Args:
            limit: Size of the newest-first window read from the store
            subject_name: Only return scans about this film, taken from
                within the same window the wall reads
            case_insensitive: Match `subject_name` with the grouping key rules

        Returns:
            List of ScanRecord; rows without a subject are skipped

        Raises:
            StoreConnectionError: If the store cannot be read
        """
        wanted = subject_key(subject_name, case_insensitive) if subject_name else None

        records = []
        for row in self.load_rows():
            if not isinstance(row, dict):
                logger.warning(f"Skipping non-object scan row: {row!r}")
                continue
            try:
                record = ScanRecord.from_row(row)
            except ValueError as e:
                logger.warning(f"Skipping scan row: {e}")
                continue
            records.append(record)

        records.sort(key=lambda r: r.created_at, reverse=True)
        records = records[:limit]
        if wanted is not None:
            records = [r for r in records if subject_key(r.subject_name, case_insensitive) == wanted]
        return records

    def save_scans(self, records: List[ScanRecord]) -> None:
        """
        Write scan records to the store, replacing its contents.

        Args:
            records: Records to persist
        """
        try:
            with open(self.scans_path, 'w') as f:
                json.dump([r.to_row() for r in records], f, indent=2)
            logger.info(f"Saved {len(records)} scans to {self.scans_path}")
        except OSError as e:
            logger.error(f"Failed to save scans: {e}")
            raise
