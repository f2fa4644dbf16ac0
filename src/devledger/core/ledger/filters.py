"""
Entry filters and filter-argument parsing.

Filters are pure functions over an entry list; the Ledger applies them to a
point-in-time snapshot of its backend. Relative time values ("7d", "24h")
are resolved to absolute instants here, before filtering.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone

from devledger.core.errors import UserError
from devledger.core.ledger.models import Entry

_DURATION_RE = re.compile(r"^(\d+)([hdwm])$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def sort_by_created_desc(entries: Iterable[Entry]) -> list[Entry]:
    """Newest first; entries created in the same second are ordered by ID."""
    return sorted(entries, key=lambda e: (e.created_at, e.id), reverse=True)


def filter_by_time(
    entries: Iterable[Entry],
    since: datetime | None = None,
    until: datetime | None = None,
) -> list[Entry]:
    """Entries with ``since <= created_at <= until``; a None bound is open."""
    since = _as_utc(since) if since else None
    until = _as_utc(until) if until else None
    if since and until and since > until:
        raise UserError("--since must not be later than --until")
    result = []
    for entry in entries:
        if since is not None and entry.created_at < since:
            continue
        if until is not None and entry.created_at > until:
            continue
        result.append(entry)
    return result


def filter_by_tags(entries: Iterable[Entry], tags: Iterable[str] | None) -> list[Entry]:
    """Entries carrying at least one of ``tags``. No tags matches everything."""
    wanted = [t for t in (tags or []) if t]
    if not wanted:
        return list(entries)
    return [entry for entry in entries if entry.has_any_tag(wanted)]


def filter_by_commits(entries: Iterable[Entry], commit_set: set[str]) -> list[Entry]:
    """Entries whose workset shares at least one commit with ``commit_set``."""
    return [e for e in entries if any(sha in commit_set for sha in e.workset.commits)]


def parse_range(range_str: str) -> tuple[str, str]:
    """
    Split ``A..B`` into its two refs.

    Raises:
        UserError: If the range is not of the form A..B with both sides set
    """
    parts = range_str.split("..")
    if len(parts) != 2 or not parts[0].strip() or not parts[1].strip():
        raise UserError(f"range must be in format A..B, got {range_str!r}")
    return parts[0].strip(), parts[1].strip()


def parse_since_value(value: str, now: datetime | None = None) -> datetime:
    """
    Resolve a ``--since`` value to an instant.

    Accepts durations (``24h``, ``7d``, ``2w``, ``1m``), dates
    (``2026-01-17``) and ISO 8601 datetimes.
    """
    try:
        return _parse_time_value(value, now)
    except ValueError:
        raise UserError(
            f"invalid --since value {value!r}; use duration (24h, 7d, 2w) or date (2026-01-17)"
        ) from None


def parse_until_value(value: str, now: datetime | None = None) -> datetime:
    """
    Resolve an ``--until`` value to an instant.

    A bare date extends to the end of that day so the whole day is included.
    """
    try:
        cutoff = _parse_time_value(value, now)
    except ValueError:
        raise UserError(
            f"invalid --until value {value!r}; use duration (24h, 7d, 2w) or date (2026-01-17)"
        ) from None
    if _DATE_RE.match(value.strip()):
        cutoff += timedelta(days=1) - timedelta(seconds=1)
    return cutoff


def _parse_time_value(value: str, now: datetime | None) -> datetime:
    value = value.strip()
    match = _DURATION_RE.match(value)
    if match:
        return _subtract_duration(int(match.group(1)), match.group(2), now)
    if _DATE_RE.match(value):
        return datetime.strptime(value, "%Y-%m-%d").replace(tzinfo=timezone.utc)
    return _as_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))


def _subtract_duration(amount: int, unit: str, now: datetime | None) -> datetime:
    if amount <= 0:
        raise ValueError(f"invalid duration: {amount}{unit}")
    now = _as_utc(now) if now else datetime.now(timezone.utc)
    if unit == "h":
        return now - timedelta(hours=amount)
    if unit == "d":
        return now - timedelta(days=amount)
    if unit == "w":
        return now - timedelta(weeks=amount)
    # months: step back calendar months, clamping the day
    month_index = now.year * 12 + (now.month - 1) - amount
    year, month = divmod(month_index, 12)
    day = min(now.day, _days_in_month(year, month + 1))
    return now.replace(year=year, month=month + 1, day=day)


def _days_in_month(year: int, month: int) -> int:
    if month == 12:
        return 31
    first_next = datetime(year, month + 1, 1)
    return (first_next - timedelta(days=1)).day


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
