"""
Narrative Vault - cache of generated consensus reports.

One row per film, keyed by subject name, replaced wholesale on every
write (last write wins). Persisted as JSON with a backup copy.
"""

import json
import os
import shutil
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional

from cinewall.models.report import NarrativeReport
from cinewall.utils.text import subject_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VaultEntry:
    """A cached report row."""
    subject_name: str
    report: str  # serialized payload, decoded lazily
    created_at: str

    @classmethod
    def from_dict(cls, data: dict) -> "VaultEntry":
        """Build from a row; legacy movie_name / summary_report columns are accepted."""
        return cls(
            subject_name=data.get("subject_name") or data["movie_name"],
            report=data.get("report", data.get("summary_report", "")),
            created_at=data.get("created_at", ""),
        )

    def to_dict(self) -> dict:
        return {
            "subject_name": self.subject_name,
            "report": self.report,
            "created_at": self.created_at,
        }

    def decode(self) -> Optional[NarrativeReport]:
        """Decoded report, or None if the payload is unusable."""
        return NarrativeReport.from_cached(self.report)


class NarrativeVault:
    """
    Subject-keyed report cache.

    Rows are whole-record replacements, so concurrent writers for the
    same film simply resolve to the last one.
    """

    def __init__(self, vault_path: str):
        """
        Initialize vault from disk or create a new empty vault.

        Args:
            vault_path: Path to memory_vault.json
        """
        self.vault_path = vault_path
        self.entries: Dict[str, VaultEntry] = {}  # subject_name -> VaultEntry
        self.version = "1.0.0"

        if os.path.exists(vault_path):
            self._load()
        else:
            logger.info(f"No existing vault found at {vault_path}, initializing empty vault")

    def _load(self) -> None:
        """Load vault rows from disk."""
        try:
            with open(self.vault_path, 'r') as f:
                data = json.load(f)

            # A bare list of rows is accepted as well as the versioned form
            if isinstance(data, list):
                rows = data
            elif isinstance(data, dict):
                self.version = data.get("version", "1.0.0")
                rows = data.get("entries", [])
            else:
                logger.warning(f"Unexpected vault format ({type(data).__name__}), starting empty")
                rows = []

            self.entries = {}
            for row in rows:
                try:
                    entry = VaultEntry.from_dict(row)
                except (KeyError, TypeError, AttributeError) as e:
                    logger.warning(f"Skipping invalid vault row: {e}")
                    continue
                self.entries[entry.subject_name] = entry

            logger.info(f"Loaded {len(self.entries)} reports from vault")

        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse vault JSON: {e}")
            self._try_restore_from_backup()
        except OSError as e:
            logger.error(f"Failed to load vault: {e}")
            self._try_restore_from_backup()

    def _try_restore_from_backup(self) -> None:
        """Attempt to restore from backup file if the main vault is corrupted."""
        backup_path = f"{self.vault_path}.backup"
        if os.path.exists(backup_path):
            logger.warning(f"Attempting to restore from backup: {backup_path}")
            try:
                shutil.copy(backup_path, self.vault_path)
                with open(self.vault_path, 'r') as f:
                    data = json.load(f)
                rows = data if isinstance(data, list) else data.get("entries", [])
                entries = [VaultEntry.from_dict(row) for row in rows]
                self.entries = {e.subject_name: e for e in entries}
                logger.info("Successfully restored from backup")
            except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
                logger.error(f"Backup restoration failed: {e}. Starting with empty vault.")
                self.entries = {}
        else:
            logger.warning("No backup file found. Starting with empty vault.")
            self.entries = {}

    def get(self, subject_name: str) -> Optional[VaultEntry]:
        """Row for an exact subject name, or None."""
        return self.entries.get(subject_name)

    def find(self, subject_name: str, case_insensitive: bool = True) -> Optional[VaultEntry]:
        """
        Row for a subject, matched with the grouping key rules.

        An exact name match wins over a key match.
        """
        entry = self.get(subject_name)
        if entry is not None or not case_insensitive:
            return entry
        wanted = subject_key(subject_name)
        return next(
            (e for e in self.entries.values() if subject_key(e.subject_name) == wanted),
            None
        )

    def get_report(self, subject_name: str, case_insensitive: bool = False) -> Optional[NarrativeReport]:
        """Decoded cached report, or None if absent or unusable."""
        entry = self.find(subject_name, case_insensitive)
        if entry is None:
            return None
        report = entry.decode()
        if report is None:
            logger.info(f"Cached report for '{subject_name}' is unusable, treating as absent")
        return report

    def upsert(self, subject_name: str, report: NarrativeReport) -> VaultEntry:
        """
        Insert or replace the report for a film and persist.

        Raises:
            ValueError: If `report` is a placeholder
        """
        if report.is_placeholder:
            raise ValueError(f"Refusing to cache placeholder report for '{subject_name}'")

        entry = VaultEntry(
            subject_name=subject_name,
            report=json.dumps(report.to_dict()),
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        self.entries[subject_name] = entry
        self.save()
        logger.info(f"Cached report for '{subject_name}'")
        return entry

    def list_reports(self) -> List[tuple]:
        """
        (entry, report) pairs, newest first.

        Rows whose payload cannot be decoded, or that hold a placeholder,
        are left out.
        """
        pairs = []
        for entry in sorted(self.entries.values(), key=lambda e: e.created_at, reverse=True):
            report = entry.decode()
            if report is not None:
                pairs.append((entry, report))
        return pairs

    def save(self) -> None:
        """
        Persist vault to disk with atomic write pattern.
        Creates backup before write.
        """
        directory = os.path.dirname(self.vault_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        if os.path.exists(self.vault_path):
            backup_path = f"{self.vault_path}.backup"
            shutil.copy(self.vault_path, backup_path)
            logger.debug(f"Created backup: {backup_path}")

        data = {
            "version": self.version,
            "last_updated": datetime.now(timezone.utc).isoformat(),
            "entries": [entry.to_dict() for entry in self.entries.values()]
        }

        # Atomic write: write to temp file, then replace
        temp_path = f"{self.vault_path}.tmp"
        try:
            with open(temp_path, 'w') as f:
                json.dump(data, f, indent=2)
            os.replace(temp_path, self.vault_path)
            logger.debug(f"Vault saved: {len(self.entries)} reports")

        except OSError as e:
            logger.error(f"Failed to save vault: {e}")
            if os.path.exists(temp_path):
                os.remove(temp_path)
            raise
