"""
Record Grouper.

Partitions scan records by subject identity.
"""

import logging
from typing import Dict, List, Sequence

from cinewall.models.record import ScanRecord
from cinewall.utils.text import subject_key

logger = logging.getLogger(__name__)


def group_records(
    records: Sequence[ScanRecord],
    case_insensitive: bool = True
) -> Dict[str, List[ScanRecord]]:
    """
    Group records by subject key.

    Every record lands in exactly one group, groups appear in first-seen
    order, and records keep their input order inside a group.

    Args:
        records: Scan records in any order
        case_insensitive: Collapse case and inner whitespace in the key;
            False groups by exact trimmed name

    Returns:
        Dict of subject key -> records
    """
    grouped: Dict[str, List[ScanRecord]] = {}
    for record in records:
        key = subject_key(record.subject_name, case_insensitive)
        grouped.setdefault(key, []).append(record)

    logger.debug(f"Grouped {len(records)} scans into {len(grouped)} subjects")
    return grouped
