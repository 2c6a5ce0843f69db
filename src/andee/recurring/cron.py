"""Five-field cron evaluation on local wall-clock time in an IANA zone."""

from __future__ import annotations

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from croniter import CroniterBadCronError, CroniterBadDateError, croniter

from andee.errors import InvalidCronError, InvalidTimezoneError

# Wall-clock offsets never shift by more than this across one transition
_FOLD_SLACK = timedelta(hours=3)
# Covers a minutely expression scanned across the slack window on both sides
_MAX_CANDIDATES = 1500


def load_timezone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as err:
        raise InvalidTimezoneError(f"Unknown timezone: {name}", {"timezone": name}) from err


def validate_cron(expression: str) -> None:
    if len(expression.split()) != 5 or not croniter.is_valid(expression):
        raise InvalidCronError(f"Invalid cron expression: {expression}", {"cron": expression})


def _instants(candidate: datetime, tz: ZoneInfo) -> list[int]:
    """UTC instants (ms) at which a naive local wall time occurs.

    A skipped wall time resolves with the pre-transition offset only; a
    repeated one yields both occurrences.
    """
    first = candidate.replace(tzinfo=tz, fold=0)
    instants = [int(first.timestamp() * 1000)]
    second = candidate.replace(tzinfo=tz, fold=1)
    if second.utcoffset() != first.utcoffset():
        # Only a genuine repeat maps back onto the same wall time
        if second.astimezone(tz).replace(tzinfo=None, fold=0) == candidate:
            instants.append(int(second.timestamp() * 1000))
    return instants


def next_run_after(expression: str, timezone: str, after_ms: int) -> int:
    """Earliest instant strictly after ``after_ms`` matching ``expression`` in ``timezone``.

    Matching runs on naive local time, so a daily 06:00 stays 06:00 local on
    both sides of a DST change. A local time skipped by spring-forward takes
    the pre-transition offset (it fires just after the gap); a time repeated
    by fall-back matches on both occurrences.
    """
    validate_cron(expression)
    tz = load_timezone(timezone)

    after_local = datetime.fromtimestamp(after_ms / 1000, tz).replace(tzinfo=None, fold=0)
    # The second pass through a repeated hour starts an hour back in wall time
    start = after_local - _FOLD_SLACK
    best: int | None = None
    try:
        itr = croniter(expression, start)
        for _ in range(_MAX_CANDIDATES):
            candidate: datetime = itr.get_next(datetime)
            if best is not None and candidate > _wall_time(best, tz) + _FOLD_SLACK:
                return best
            for run_at in _instants(candidate, tz):
                if run_at > after_ms and (best is None or run_at < best):
                    best = run_at
    except (CroniterBadCronError, CroniterBadDateError) as err:
        raise InvalidCronError(f"Invalid cron expression: {expression}", {"cron": expression}) from err

    if best is not None:
        return best
    raise InvalidCronError(f"Cron expression never fires: {expression}", {"cron": expression})


def _wall_time(instant_ms: int, tz: ZoneInfo) -> datetime:
    return datetime.fromtimestamp(instant_ms / 1000, tz).replace(tzinfo=None, fold=0)
