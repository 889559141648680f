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

"""Recurrence rules.

See https://tools.ietf.org/html/rfc5545, section 3.3.10
"""

import collections
import enum
import logging
import re
from collections.abc import Iterable
from datetime import MAXYEAR, date, datetime
from typing import Optional, Union

from .datearith import (
    TimezoneLike,
    get_timezone,
    parse_ical_until,
    to_local,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "UTC"
DEFAULT_HORIZON_YEAR = MAXYEAR


class Frequency(enum.Enum):
    YEARLY = "YEARLY"
    MONTHLY = "MONTHLY"
    WEEKLY = "WEEKLY"
    DAILY = "DAILY"
    HOURLY = "HOURLY"
    MINUTELY = "MINUTELY"
    SECONDLY = "SECONDLY"


# Frequencies from coarsest to finest.
FREQUENCY_ORDER = list(Frequency)


def is_coarser(freq: Optional[Frequency], than: Frequency) -> bool:
    """Check whether a frequency steps in larger units than another."""
    if freq is None:
        return False
    return FREQUENCY_ORDER.index(freq) < FREQUENCY_ORDER.index(than)


class RepeatMode(enum.Enum):
    COUNT = "COUNT"
    UNTIL = "UNTIL"


class Weekday(enum.IntEnum):
    SU = 0
    MO = 1
    TU = 2
    WE = 3
    TH = 4
    FR = 5
    SA = 6


class WeekdayRule(collections.namedtuple("WeekdayRule", ["ordinal", "weekday"])):
    """A BYDAY entry, e.g. ``MO``, ``2MO`` or ``-1FR``.

    An ordinal of None means every such weekday in scope.
    """

    __slots__ = ()

    def __str__(self) -> str:
        if self.ordinal is None:
            return self.weekday.name
        return f"{self.ordinal}{self.weekday.name}"


_BYDAY_RE = re.compile(r"^([+-]?\d{0,2})(SU|MO|TU|WE|TH|FR|SA)$")
_LEADING_INT_RE = re.compile(r"^[+-]?\d+")

# Rule keys for the by-lists, mapped to RecurrenceRule fields.
BY_LIST_KEYS = {
    "BYSECOND": "by_second",
    "BYMINUTE": "by_minute",
    "BYHOUR": "by_hour",
    "BYDAY": "by_day",
    "BYMONTHDAY": "by_month_day",
    "BYMONTH": "by_month",
    "BYYEAR": "by_year",
}


_RecurrenceRule = collections.namedtuple(
    "_RecurrenceRule",
    [
        "text",
        "frequency",
        "interval",
        "repeat_mode",
        "count",
        "until",
        "by_second",
        "by_minute",
        "by_hour",
        "by_day",
        "by_month_day",
        "by_month",
        "by_year",
        "by_set_pos",
        "start",
        "timezone",
        "exception_dates",
        "horizon_year",
    ],
)


class RecurrenceRule(_RecurrenceRule):
    """A parsed recurrence rule, together with its start and exceptions.

    Instances are immutable; use ``parse_rule`` to create them.
    """

    __slots__ = ()

    def by_lists(self) -> dict[str, tuple]:
        return {field: getattr(self, field) for field in BY_LIST_KEYS.values()}

    def has_by_lists(self) -> bool:
        return any(self.by_lists().values())

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.text!r}, start={self.start!r})"


def _leading_int(text: str) -> int:
    m = _LEADING_INT_RE.match(text)
    if m is None:
        raise ValueError(text)
    return int(m.group(0))


def _parse_int_list(key: str, value: str) -> tuple[int, ...]:
    ret = []
    for item in value.split(","):
        try:
            ret.append(int(item))
        except ValueError:
            logger.warning("Ignoring invalid %s entry %r", key, item)
    return tuple(ret)


def parse_weekday_rule(text: str) -> WeekdayRule:
    """Parse a single BYDAY entry.

    Raises:
      ValueError: if the entry is malformed
    """
    m = _BYDAY_RE.match(text.strip())
    if m is None:
        raise ValueError(f"Invalid BYDAY entry {text!r}")
    ordinal_text, code = m.groups()
    if ordinal_text in ("", "+", "-"):
        if ordinal_text:
            raise ValueError(f"Invalid BYDAY entry {text!r}")
        ordinal = None
    else:
        ordinal = int(ordinal_text)
        if ordinal == 0:
            raise ValueError(f"Invalid BYDAY entry {text!r}")
    return WeekdayRule(ordinal, Weekday[code])


def _parse_by_day(value: str) -> tuple[WeekdayRule, ...]:
    ret = []
    for item in value.split(","):
        try:
            ret.append(parse_weekday_rule(item))
        except ValueError:
            logger.warning("Ignoring invalid BYDAY entry %r", item)
    return tuple(ret)


def compose_set_pos(setpos: int, entry: Union[int, WeekdayRule]):
    """Combine a BYSETPOS value with a by-list entry.

    The two are concatenated textually: BYSETPOS=-1 turns ``FR`` into
    ``-1FR`` and ``15`` into ``-115``. Only the leading integer of the
    concatenation is kept.
    """
    if isinstance(entry, WeekdayRule):
        suffix = "" if entry.ordinal is None else str(entry.ordinal)
        return WeekdayRule(_leading_int(f"{setpos}{suffix}"), entry.weekday)
    return _leading_int(f"{setpos}{entry}")


def apply_set_pos(entries: tuple, set_pos: tuple[int, ...]) -> tuple:
    return tuple(compose_set_pos(p, v) for p in set_pos for v in entries)


def clean_rule_text(text: str) -> str:
    text = text.replace("\\'", "").strip()
    if text[:6].upper() == "RRULE:":
        text = text[6:]
    return text


def default_start(tzid: TimezoneLike) -> datetime:
    """Start used when none is given: January 1st of last year."""
    tz = get_timezone(tzid)
    return datetime(datetime.now(tz).year - 1, 1, 1, tzinfo=tz)


def parse_rule(
    text: str,
    start: Union[date, datetime, None] = None,
    exception_dates: Iterable[Union[date, datetime]] = (),
    tzid: TimezoneLike = DEFAULT_TIMEZONE,
    horizon_year: int = DEFAULT_HORIZON_YEAR,
) -> RecurrenceRule:
    """Parse a recurrence rule.

    Malformed segments, unknown keys and invalid values are ignored (and
    logged) rather than raised, so that a bad rule still expands to
    something sensible.

    Args:
      text: Rule text, e.g. ``FREQ=WEEKLY;BYDAY=MO,WE,FR;COUNT=10``
      start: Start of the recurrence; naive values are taken as local
        time in ``tzid``
      exception_dates: Instants to leave out of the expansion
      tzid: Timezone used for calendar arithmetic
      horizon_year: Last year to expand into
    Returns: a RecurrenceRule
    """
    if not 1 <= horizon_year <= MAXYEAR:
        raise ValueError(f"Invalid horizon year {horizon_year!r}")
    text = clean_rule_text(text)
    if start is None:
        start = default_start(tzid)
    fields = {
        "text": text,
        "frequency": None,
        "interval": 1,
        "repeat_mode": None,
        "count": 0,
        "until": None,
        "by_set_pos": (),
        "start": to_local(start, tzid),
        "timezone": tzid,
        "exception_dates": tuple(to_local(ex, tzid) for ex in exception_dates),
        "horizon_year": horizon_year,
    }
    for field in BY_LIST_KEYS.values():
        fields[field] = ()

    last_by_key = None
    set_pos_target = None
    for segment in text.split(";") if text else []:
        key, sep, value = segment.partition("=")
        key = key.strip()
        value = value.strip()
        if not sep:
            logger.warning("Ignoring malformed rule segment %r in %r", segment, text)
            continue
        if key == "FREQ":
            try:
                fields["frequency"] = Frequency(value)
            except ValueError:
                logger.warning("Ignoring unknown FREQ %r in %r", value, text)
        elif key == "INTERVAL":
            try:
                interval = int(value)
            except ValueError:
                interval = 0
            if interval < 1:
                logger.warning("Invalid INTERVAL %r in %r, using 1", value, text)
                interval = 1
            fields["interval"] = interval
        elif key == "BYDAY":
            fields["by_day"] = _parse_by_day(value)
            last_by_key = key
        elif key in BY_LIST_KEYS:
            fields[BY_LIST_KEYS[key]] = _parse_int_list(key, value)
            last_by_key = key
        elif key == "COUNT":
            try:
                count = int(value)
            except ValueError:
                count = -1
            if count < 0:
                logger.warning("Ignoring invalid COUNT %r in %r", value, text)
                continue
            fields["count"] = count
            fields["repeat_mode"] = RepeatMode.COUNT
        elif key == "UNTIL":
            try:
                fields["until"] = parse_ical_until(value, tzid)
            except ValueError:
                logger.warning("Ignoring invalid UNTIL %r in %r", value, text)
                continue
            fields["repeat_mode"] = RepeatMode.UNTIL
        elif key == "BYSETPOS":
            set_pos = [p for p in _parse_int_list(key, value) if p != 0]
            fields["by_set_pos"] = tuple(set_pos)
            set_pos_target = last_by_key
        else:
            logger.warning("Ignoring unknown rule key %r in %r", key, text)

    if fields["by_set_pos"]:
        if set_pos_target is None:
            logger.warning("BYSETPOS in %r does not follow a by-list", text)
        else:
            field = BY_LIST_KEYS[set_pos_target]
            fields[field] = apply_set_pos(fields[field], fields["by_set_pos"])

    if fields["frequency"] is None:
        logger.warning("No FREQ in rule %r, only the start date is used", text)

    return RecurrenceRule(**fields)
