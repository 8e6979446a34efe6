"""Dashboard and report statistics computed from already-fetched collections.

All helpers are pure: they only look at their arguments and never divide by zero.
"""

import math
from typing import Any, Callable, Hashable, Iterable, Optional

from pydantic import BaseModel

from schoolhub.core.enums import AttendanceStatus


class AttendanceStats(BaseModel):
    present: int = 0
    absent: int = 0
    late: int = 0
    total: int = 0
    percentage: int = 0


def count(items: Iterable[Any], predicate: Optional[Callable[[Any], bool]] = None) -> int:
    if predicate is None:
        return sum(1 for _ in items)
    return sum(1 for item in items if predicate(item))


def unique_count(items: Iterable[Any], key: Callable[[Any], Hashable]) -> int:
    """Size of the set of projected keys, e.g. distinct student ids across merged rosters."""
    return len({key(item) for item in items})


def attendance_rate(present: int, late: int, total: int) -> int:
    """Weighted attendance percentage; a late mark counts as half a presence.

    Rounds half up (12.5 -> 13) and is 0 for an empty period.
    """
    if total <= 0:
        return 0
    return int(math.floor(100 * (present + 0.5 * late) / total + 0.5))


def _status_of(record: Any) -> str:
    value = record.get("status") if isinstance(record, dict) else getattr(record, "status")
    return value.value if isinstance(value, AttendanceStatus) else value


def summarize_attendance(records: Iterable[Any]) -> AttendanceStats:
    statuses = [_status_of(r) for r in records]
    present = count(statuses, lambda s: s == AttendanceStatus.PRESENT.value)
    absent = count(statuses, lambda s: s == AttendanceStatus.ABSENT.value)
    late = count(statuses, lambda s: s == AttendanceStatus.LATE.value)
    total = len(statuses)
    return AttendanceStats(
        present=present,
        absent=absent,
        late=late,
        total=total,
        percentage=attendance_rate(present, late, total),
    )
