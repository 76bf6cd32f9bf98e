"""Calendar filter: weekly rest day plus fixed-date regional holidays.

Holiday tables are a versioned data resource loaded once and injected into
the planner, so planning stays pure and can run against fake calendars.
"""

import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, timedelta
from importlib import resources

from autogit.core.errors import ValidationError

DEFAULT_REGION = "US"

# date.weekday() value for Sunday
WEEKLY_REST_DAY = 6


@dataclass(frozen=True)
class Holiday:
    month: int
    day: int
    name: str


@dataclass(frozen=True)
class Region:
    code: str
    name: str
    group: str
    holidays: tuple[Holiday, ...] = field(default=())


@dataclass(frozen=True)
class HolidayCalendar:
    """Immutable region -> holidays table.

    Unknown region codes have no holidays; only the weekly rest day applies.
    """

    version: str
    regions: Mapping[str, Region]
    rest_weekday: int = WEEKLY_REST_DAY

    def holidays_for(self, region: str) -> tuple[Holiday, ...]:
        entry = self.regions.get(region.upper())
        if entry is None:
            return ()
        return entry.holidays

    def is_holiday(self, day: date, region: str) -> bool:
        return any(h.month == day.month and h.day == day.day for h in self.holidays_for(region))

    def is_excluded(self, day: date, region: str) -> bool:
        return day.weekday() == self.rest_weekday or self.is_holiday(day, region)

    def get_valid_dates(self, start: date, end: date, region: str) -> list[date]:
        """Return every non-excluded date in [start, end], oldest first."""
        valid: list[date] = []
        current = start
        while current <= end:
            if not self.is_excluded(current, region):
                valid.append(current)
            current += timedelta(days=1)
        return valid

    def list_regions(self) -> list[Region]:
        return list(self.regions.values())


def parse_holiday_table(text: str) -> HolidayCalendar:
    """Build a HolidayCalendar from TOML text.

    Raises:
        ValidationError: If an entry is missing fields or names an impossible date
    """
    data = tomllib.loads(text)
    regions: dict[str, Region] = {}
    for code, raw in data.get("regions", {}).items():
        holidays: list[Holiday] = []
        for item in raw.get("holidays", []):
            try:
                holiday = Holiday(month=int(item["month"]), day=int(item["day"]), name=item["name"])
                # Leap year so Feb 29 is accepted
                date(2024, holiday.month, holiday.day)
            except (KeyError, TypeError, ValueError) as e:
                raise ValidationError(f"Invalid holiday entry for region {code}: {item!r}") from e
            holidays.append(holiday)
        regions[code.upper()] = Region(
            code=code.upper(),
            name=raw.get("name", code),
            group=raw.get("group", "Other"),
            holidays=tuple(holidays),
        )
    return HolidayCalendar(version=str(data.get("version", "unversioned")), regions=regions)


def load_default_calendar() -> HolidayCalendar:
    """Load the bundled holiday table."""
    text = resources.files("autogit.data").joinpath("holidays.toml").read_text(encoding="utf-8")
    return parse_holiday_table(text)
