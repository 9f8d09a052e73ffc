import re
from dataclasses import dataclass, replace
from datetime import date, timedelta
from typing import Optional

from models import Granularity


class InvalidPeriodFormatError(ValueError):
    pass


class InvalidRangeError(ValueError):
    pass


_YEAR_RE = re.compile(r"^\d{4}$")
_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Previous and next periods of a parsed value must stay within date.min..date.max.
MIN_YEAR = 2
MAX_YEAR = 9998


def month_start(d: date) -> date:
    return d.replace(day=1)


def month_end(d: date) -> date:
    first = month_start(d)
    if first.month == 12:
        next_month = first.replace(year=first.year + 1, month=1)
    else:
        next_month = first.replace(month=first.month + 1)
    return next_month - date.resolution


def add_months(d: date, count: int) -> date:
    month_index = (d.year * 12) + (d.month - 1) + count
    year = month_index // 12
    month = (month_index % 12) + 1
    return date(year, month, 1)


def week_start(d: date) -> date:
    # date.weekday() is 0 for Monday and 6 for Sunday.
    return d - timedelta(days=d.weekday())


@dataclass(frozen=True)
class Period:
    granularity: Granularity
    start: date
    end: date

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def contains(self, d: date) -> bool:
        return self.start <= d <= self.end

    @property
    def label(self) -> str:
        if self.granularity == Granularity.week:
            return (
                f"{self.start.strftime('%b')} {self.start.day} - "
                f"{self.end.strftime('%b')} {self.end.day}, {self.end.year}"
            )
        if self.granularity == Granularity.month:
            return self.start.strftime("%B %Y")
        if self.granularity == Granularity.year:
            return str(self.start.year)
        return f"{self.start.isoformat()} to {self.end.isoformat()}"


@dataclass(frozen=True)
class ResolvedPeriod:
    interval: Period
    previous_interval: Period


@dataclass(frozen=True)
class PeriodSpec:
    """A user-selected reporting window.

    ``reference`` is any date inside the wanted week, month or year; ``None``
    selects the period containing ``today`` at resolve time. For custom
    ranges ``reference`` is the start date and ``end`` the end date.
    """

    granularity: Granularity
    reference: Optional[date] = None
    end: Optional[date] = None

    @classmethod
    def week(cls, d: Optional[date] = None) -> "PeriodSpec":
        return cls(Granularity.week, d)

    @classmethod
    def month(cls, year: int, month: int) -> "PeriodSpec":
        return cls(Granularity.month, date(year, month, 1))

    @classmethod
    def year(cls, year: int) -> "PeriodSpec":
        return cls(Granularity.year, date(year, 1, 1))

    @classmethod
    def custom(cls, start: date, end: date) -> "PeriodSpec":
        return cls(Granularity.custom, start, end)

    @property
    def value(self) -> Optional[str]:
        """The wire form accepted by ``parse_period_spec``."""
        if self.reference is None or self.granularity == Granularity.custom:
            return None
        if self.granularity == Granularity.week:
            return week_start(self.reference).isoformat()
        if self.granularity == Granularity.month:
            return f"{self.reference.year:04d}-{self.reference.month:02d}"
        return f"{self.reference.year:04d}"


def resolve(spec: PeriodSpec, today: Optional[date] = None) -> ResolvedPeriod:
    today = today or date.today()
    ref = spec.reference or today

    if spec.granularity == Granularity.week:
        start = week_start(ref)
        end = start + timedelta(days=6)
        return ResolvedPeriod(
            Period(Granularity.week, start, end),
            Period(
                Granularity.week,
                start - timedelta(days=7),
                end - timedelta(days=7),
            ),
        )

    if spec.granularity == Granularity.month:
        start = month_start(ref)
        prev_start = add_months(start, -1)
        return ResolvedPeriod(
            Period(Granularity.month, start, month_end(start)),
            Period(Granularity.month, prev_start, month_end(prev_start)),
        )

    if spec.granularity == Granularity.year:
        return ResolvedPeriod(
            Period(Granularity.year, date(ref.year, 1, 1), date(ref.year, 12, 31)),
            Period(
                Granularity.year,
                date(ref.year - 1, 1, 1),
                date(ref.year - 1, 12, 31),
            ),
        )

    if spec.reference is None or spec.end is None:
        raise InvalidPeriodFormatError("Custom period requires start and end dates")
    if spec.reference > spec.end:
        raise InvalidRangeError("Start date must be before or equal to end date")
    current = Period(Granularity.custom, spec.reference, spec.end)
    prev_end = current.start - timedelta(days=1)
    prev_start = prev_end - timedelta(days=current.days - 1)
    return ResolvedPeriod(current, Period(Granularity.custom, prev_start, prev_end))


def shift(spec: PeriodSpec, steps: int, *, today: Optional[date] = None) -> PeriodSpec:
    if spec.granularity == Granularity.custom:
        raise InvalidPeriodFormatError("Custom ranges cannot be navigated")
    ref = spec.reference or today or date.today()
    if spec.granularity == Granularity.week:
        return replace(spec, reference=week_start(ref) + timedelta(days=7 * steps))
    if spec.granularity == Granularity.month:
        return replace(spec, reference=add_months(ref, steps))
    return replace(spec, reference=date(ref.year + steps, 1, 1))


def next_period(spec: PeriodSpec, *, today: Optional[date] = None) -> PeriodSpec:
    return shift(spec, 1, today=today)


def previous_period(spec: PeriodSpec, *, today: Optional[date] = None) -> PeriodSpec:
    return shift(spec, -1, today=today)


def can_navigate_forward(spec: PeriodSpec, today: Optional[date] = None) -> bool:
    if spec.granularity == Granularity.custom:
        return False
    today = today or date.today()
    candidate = resolve(next_period(spec, today=today), today).interval
    return candidate.start <= today


def _check_year(year: int, value: str, what: str) -> None:
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise InvalidPeriodFormatError(
            f"Invalid {what} '{value}'. Year must be between {MIN_YEAR} and {MAX_YEAR}"
        )


def _parse_iso_date(value: str, what: str) -> date:
    value = value.strip()
    if not _DATE_RE.match(value):
        raise InvalidPeriodFormatError(
            f"Invalid {what} '{value}'. Expected format: YYYY-MM-DD"
        )
    try:
        parsed = date.fromisoformat(value)
    except ValueError as exc:
        raise InvalidPeriodFormatError(f"Invalid {what} '{value}': {exc}") from exc
    _check_year(parsed.year, value, what)
    return parsed


def parse_period_spec(
    granularity: Optional[str],
    value: Optional[str] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> PeriodSpec:
    try:
        kind = Granularity((granularity or "month").strip().lower())
    except ValueError as exc:
        raise InvalidPeriodFormatError(
            f"Unknown granularity '{granularity}'. "
            "Expected one of: week, month, year, custom"
        ) from exc

    if kind == Granularity.custom:
        if not start or not end:
            raise InvalidPeriodFormatError("Custom period requires start and end dates")
        return PeriodSpec.custom(
            _parse_iso_date(start, "start date"), _parse_iso_date(end, "end date")
        )

    value = (value or "").strip()
    if not value:
        return PeriodSpec(kind)

    if kind == Granularity.week:
        return PeriodSpec.week(_parse_iso_date(value, "week"))

    if kind == Granularity.month:
        match = _MONTH_RE.match(value)
        if not match or not 1 <= int(match.group(2)) <= 12:
            raise InvalidPeriodFormatError(
                f"Invalid month '{value}'. Expected format: YYYY-MM"
            )
        _check_year(int(match.group(1)), value, "month")
        return PeriodSpec.month(int(match.group(1)), int(match.group(2)))

    if not _YEAR_RE.match(value):
        raise InvalidPeriodFormatError(f"Invalid year '{value}'. Expected format: YYYY")
    _check_year(int(value), value, "year")
    return PeriodSpec.year(int(value))


PRESETS = (
    "today",
    "yesterday",
    "last7days",
    "last30days",
    "this_month",
    "last_month",
    "this_year",
    "last_year",
)


def preset_spec(slug: str, today: Optional[date] = None) -> PeriodSpec:
    today = today or date.today()
    if slug == "today":
        return PeriodSpec.custom(today, today)
    if slug == "yesterday":
        yesterday = today - timedelta(days=1)
        return PeriodSpec.custom(yesterday, yesterday)
    if slug == "last7days":
        return PeriodSpec.custom(today - timedelta(days=6), today)
    if slug == "last30days":
        return PeriodSpec.custom(today - timedelta(days=29), today)
    if slug == "this_month":
        return PeriodSpec.month(today.year, today.month)
    if slug == "last_month":
        last = add_months(today, -1)
        return PeriodSpec.month(last.year, last.month)
    if slug == "this_year":
        return PeriodSpec.year(today.year)
    if slug == "last_year":
        return PeriodSpec.year(today.year - 1)
    raise InvalidPeriodFormatError(
        f"Unknown period preset '{slug}'. Expected one of: {', '.join(PRESETS)}"
    )
