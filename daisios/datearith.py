# Daisios
# Copyright (C) 2025 Jelmer Vernooĳ <jelmer@jelmer.uk>, et al.
#
# This program is free software; you can redistribute it and/or
# modify it under the terms of the GNU General Public License
# as published by the Free Software Foundation; version 3
# of the License or (at your option) any later version of
# the License.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program; if not, write to the Free Software
# Foundation, Inc., 51 Franklin Street, Fifth Floor, Boston,
# MA  02110-1301, USA.

"""Timezone aware date arithmetic.

Calendar units (years, months, weeks, days) are applied to the wall clock
time in the target timezone, so that "one day later" keeps the same local
time across DST transitions. Time units (hours, minutes, seconds) are applied
as elapsed time.
"""

import calendar
import collections
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional, Union
from zoneinfo import ZoneInfo

from dateutil.relativedelta import FR, MO, SA, SU, TH, TU, WE, relativedelta
from icalendar.prop import vDDDTypes

TimezoneLike = Union[str, tzinfo, None]

# Weekday numbers use Sunday = 0, as in the weekday codes of RRULE BYDAY.
_DATEUTIL_WEEKDAYS = (SU, MO, TU, WE, TH, FR, SA)

DateFields = collections.namedtuple(
    "DateFields", ["year", "month", "day", "hour", "minute", "second", "weekday"]
)


def get_timezone(tzid: TimezoneLike) -> tzinfo:
    """Look up a timezone.

    Args:
      tzid: IANA timezone name, tzinfo object or None (UTC)
    Returns: tzinfo object
    """
    if tzid is None:
        return timezone.utc
    if isinstance(tzid, str):
        if tzid.upper() in ("UTC", "Z"):
            return timezone.utc
        return ZoneInfo(tzid)
    return tzid


def _normalize(dt: datetime, tz: tzinfo) -> datetime:
    # Round trip through UTC so that wall clock times that fall in a DST gap
    # are shifted to a time that exists.
    return dt.astimezone(timezone.utc).astimezone(tz)


def to_local(value: Union[date, datetime], tzid: TimezoneLike) -> datetime:
    """Convert a date or datetime to an aware datetime in a timezone.

    Naive datetimes are taken as wall clock time in the timezone; dates
    are taken as local midnight.
    """
    tz = get_timezone(tzid)
    if not isinstance(value, datetime):
        value = datetime.combine(value, time())
    if value.tzinfo is None:
        return _normalize(value.replace(tzinfo=tz), tz)
    return value.astimezone(tz)


def to_utc(value: Union[date, datetime], tzid: TimezoneLike = None) -> datetime:
    """Convert a date or datetime to an aware UTC datetime.

    Naive values are interpreted in ``tzid``.
    """
    return to_local(value, tzid).astimezone(timezone.utc)


def weekday_of(dt: Union[date, datetime]) -> int:
    """Day of the week, with Sunday = 0."""
    return (dt.weekday() + 1) % 7


def fields_of(dt: datetime, tzid: TimezoneLike = None) -> DateFields:
    """Break an instant down into its local calendar fields.

    Args:
      dt: Aware datetime
      tzid: Timezone to decompose in; defaults to the datetime's own
    """
    if tzid is not None:
        dt = to_local(dt, tzid)
    return DateFields(
        dt.year, dt.month, dt.day, dt.hour, dt.minute, dt.second, weekday_of(dt)
    )


def from_fields(
    year: int,
    month: int,
    day: int,
    hour: int,
    minute: int,
    second: int,
    tzid: TimezoneLike,
) -> datetime:
    """Build an aware datetime from local calendar fields.

    Raises:
      ValueError: if the fields do not name an existing date/time
    """
    tz = get_timezone(tzid)
    return _normalize(datetime(year, month, day, hour, minute, second, tzinfo=tz), tz)


def add_duration(
    dt: datetime,
    years: int = 0,
    months: int = 0,
    weeks: int = 0,
    days: int = 0,
    hours: int = 0,
    minutes: int = 0,
    seconds: int = 0,
    tzid: TimezoneLike = None,
) -> datetime:
    """Add a duration to an instant.

    Month arithmetic clamps to the end of short months (January 31st plus
    one month is the last day of February) rather than overflowing into the
    following month.

    Raises:
      OverflowError, ValueError: if the result is not representable
    """
    tz = dt.tzinfo if tzid is None else get_timezone(tzid)
    if tz is None:
        tz = timezone.utc
    local = to_local(dt, tz)
    if years or months or weeks or days:
        wall = local.replace(tzinfo=None) + relativedelta(
            years=years, months=months, weeks=weeks, days=days
        )
        local = _normalize(wall.replace(tzinfo=tz), tz)
    if hours or minutes or seconds:
        local = (
            local.astimezone(timezone.utc)
            + timedelta(hours=hours, minutes=minutes, seconds=seconds)
        ).astimezone(tz)
    return local


def month_length(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def nth_weekday(year: int, month: int, n: int, weekday: int) -> Optional[int]:
    """Find the day of the month of the n-th given weekday.

    Args:
      year: Year
      month: Month (1-12)
      n: 1 for the first occurrence, -1 for the last, etc.
      weekday: Day of the week, Sunday = 0
    Returns: day of the month, or None if the month has no such occurrence
    """
    if n == 0:
        return None
    wd = _DATEUTIL_WEEKDAYS[weekday](n)
    if n > 0:
        first = date(year, month, 1)
    else:
        first = date(year, month, month_length(year, month))
    try:
        found = first + relativedelta(weekday=wd)
    except (OverflowError, ValueError):
        return None
    if (found.year, found.month) != (year, month):
        return None
    return found.day


def start_of_week(dt: datetime) -> datetime:
    """Move an instant back to the Sunday of its week, keeping its time."""
    return add_duration(dt, days=-weekday_of(dt))


def parse_ical_until(text: str, tzid: TimezoneLike = None) -> datetime:
    """Parse an iCalendar UNTIL value.

    Args:
      text: ``YYYYMMDDTHHMMSSZ``; floating date-times and plain dates
        (``YYYYMMDD``) are interpreted in ``tzid``
      tzid: Timezone for floating values
    Returns: aware UTC datetime
    Raises:
      ValueError: if the value can not be parsed
    """
    value = vDDDTypes.from_ical(text.strip())
    if not isinstance(value, date):
        raise ValueError(f"Invalid UNTIL value {text!r}")
    return to_utc(value, tzid)

