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

"""Expansion of recurring iCalendar components."""

import logging
from collections.abc import Iterator
from datetime import date, datetime, time, timedelta
from typing import Optional, Union
from zoneinfo import ZoneInfo

from icalendar.cal import Calendar, Component
from icalendar.prop import vDate, vDatetime, vText

from .datearith import TimezoneLike, get_timezone
from .expand import get_dates
from .rule import DEFAULT_HORIZON_YEAR, RecurrenceRule, parse_rule
from .trace import Tracer

# Properties that describe the recurrence set rather than a single instance
RECURRENCE_FIELDS = ["RRULE", "EXRULE", "RDATE", "EXDATE"]


class MissingProperty(Exception):
    def __init__(self, property_name) -> None:
        super().__init__(f"Property {property_name!r} missing")
        self.property_name = property_name


def _component_timezone(
    dt: Union[date, datetime], default_timezone: TimezoneLike
) -> TimezoneLike:
    if not isinstance(dt, datetime) or dt.tzinfo is None:
        return default_timezone
    # zoneinfo uses "key", pytz "zone"
    for attr in ("key", "zone"):
        name = getattr(dt.tzinfo, attr, None)
        if name:
            return name
    return dt.tzinfo


def _rule_text(comp: Component) -> str:
    rrule = comp["RRULE"]
    if isinstance(rrule, list):
        logging.warning(
            "%d RRULEs in component, only expanding the first", len(rrule)
        )
        rrule = rrule[0]
    # vRecur.to_ical() reorders keys; COUNT/UNTIL and BYSETPOS depend on the
    # order they were written in.
    parts = []
    for key, vals in rrule.items():
        typ = rrule.types.get(key, vText)
        if not isinstance(vals, (list, tuple)):
            vals = [vals]
        value = b",".join(typ(val).to_ical() for val in vals)
        parts.append(f"{key}={value.decode('utf-8')}")
    return ";".join(parts)


def _exception_dates(comp: Component) -> Iterator[Union[date, datetime]]:
    exdates = comp.get("EXDATE")
    if exdates is None:
        return
    if not isinstance(exdates, list):
        exdates = [exdates]
    for exdate in exdates:
        for dt in exdate.dts:
            yield dt.dt


def rule_from_component(
    comp: Component,
    default_timezone: TimezoneLike = "UTC",
    horizon_year: int = DEFAULT_HORIZON_YEAR,
) -> RecurrenceRule:
    """Create a recurrence rule from a calendar component.

    Args:
      comp: Component with DTSTART and RRULE (and optionally EXDATE)
      default_timezone: Timezone for floating and date-only start times
      horizon_year: Last year to expand into
    Returns: RecurrenceRule
    Raises:
      MissingProperty: if the component has no DTSTART
    """
    try:
        dtstart = comp["DTSTART"].dt
    except KeyError as exc:
        raise MissingProperty("DTSTART") from exc
    return parse_rule(
        _rule_text(comp),
        dtstart,
        list(_exception_dates(comp)),
        tzid=_component_timezone(dtstart, default_timezone),
        horizon_year=horizon_year,
    )


def _get_event_duration(comp: Component) -> Optional[timedelta]:
    """Get the duration of an event component."""
    if "DURATION" in comp:
        return comp["DURATION"].dt
    elif "DTEND" in comp and "DTSTART" in comp:
        return comp["DTEND"].dt - comp["DTSTART"].dt
    return None


def _match_dtstart_type(
    ts: datetime, original_dt: Union[date, datetime]
) -> Union[date, datetime]:
    """Convert an occurrence to the value type of the original DTSTART.

    Date-only events get dates, floating events naive datetimes.
    """
    if not isinstance(original_dt, datetime):
        return ts.date()
    if original_dt.tzinfo is None:
        return ts.replace(tzinfo=None)
    return ts


def expand_component(
    incomp: Component,
    maxdate: Union[date, datetime, None] = None,
    default_timezone: TimezoneLike = "UTC",
    existing: Optional[dict[Union[date, datetime], Component]] = None,
    tracer: Optional[Tracer] = None,
) -> Iterator[Component]:
    """Expand a recurring component into its instances.

    Args:
      incomp: Component with an RRULE
      maxdate: Optional last instant to expand to
      default_timezone: Timezone for floating and date-only start times
      existing: Overridden instances, by UTC RECURRENCE-ID; matching
        entries are popped and yielded instead of a generated instance
      tracer: Optional tracer
    Returns: iterator over components, each with a RECURRENCE-ID
    """
    if "RRULE" not in incomp:
        return
    if existing is None:
        existing = {}
    if maxdate is not None:
        maxdate = as_tz_aware_ts(maxdate, default_timezone)

    rule = rule_from_component(incomp, default_timezone)
    original_dtstart = incomp["DTSTART"]
    duration = _get_event_duration(incomp)

    base_comp = incomp.copy()
    for field in RECURRENCE_FIELDS:
        if field in base_comp:
            del base_comp[field]

    for occurrence in get_dates(rule, maxdate, tracer):
        ts = _match_dtstart_type(occurrence, original_dtstart.dt)
        try:
            outcomp = existing.pop(asutc(ts))
        except KeyError:
            outcomp = base_comp.copy()

            new_dtstart = create_prop_from_date_or_datetime(ts)
            if original_dtstart.params:
                new_dtstart.params = original_dtstart.params.copy()
            outcomp["DTSTART"] = new_dtstart

            if "DTEND" in outcomp and duration is not None:
                new_dtend = create_prop_from_date_or_datetime(ts + duration)
                if incomp["DTEND"].params:
                    new_dtend.params = incomp["DTEND"].params.copy()
                outcomp["DTEND"] = new_dtend

        outcomp["RECURRENCE-ID"] = create_prop_from_date_or_datetime(ts)
        yield outcomp


def expand_calendar(
    incal: Calendar,
    maxdate: Union[date, datetime, None] = None,
    default_timezone: TimezoneLike = "UTC",
    tracer: Optional[Tracer] = None,
) -> Calendar:
    """Expand all recurring components in a calendar.

    Args:
      incal: VCALENDAR to expand
      maxdate: Optional last instant to expand to
      default_timezone: Timezone for floating and date-only start times
      tracer: Optional tracer
    Returns: new Calendar with one component per instance
    """
    outcal = Calendar()
    if incal.name != "VCALENDAR":
        raise AssertionError(f"called on file with root component {incal.name}")

    for field in incal:
        outcal[field] = incal[field]

    # Instances that override an occurrence of a recurring component
    exceptions = {}
    for comp in incal.subcomponents:
        if "RECURRENCE-ID" in comp:
            exceptions[asutc(comp["RECURRENCE-ID"].dt)] = comp

    for comp in incal.subcomponents:
        if comp.name == "VTIMEZONE":
            outcal.add_component(comp)
        elif "RECURRENCE-ID" in comp:
            pass
        elif "RRULE" in comp:
            for expanded in expand_component(
                comp, maxdate, default_timezone, exceptions, tracer
            ):
                outcal.add_component(expanded)
        else:
            outcal.add_component(comp)

    # Overrides that did not match a generated occurrence
    for exc_comp in exceptions.values():
        outcal.add_component(exc_comp)

    return outcal


def asutc(dt):
    if isinstance(dt, date) and not isinstance(dt, datetime):
        return dt
    if dt.tzinfo is None:
        return dt
    # Naive UTC, so that values from different timezones compare equal
    return dt.astimezone(ZoneInfo("UTC")).replace(tzinfo=None)


def create_prop_from_date_or_datetime(dt):
    """Create appropriate vDate or vDatetime property based on input type."""
    if isinstance(dt, date) and not isinstance(dt, datetime):
        return vDate(dt)
    else:
        return vDatetime(dt)


def as_tz_aware_ts(
    dt: Union[datetime, date], default_timezone: TimezoneLike
) -> datetime:
    if not getattr(dt, "time", None):
        _dt = datetime.combine(dt, time())
    else:
        _dt = dt  # type: ignore
    if _dt.tzinfo is None:
        _dt = _dt.replace(tzinfo=get_timezone(default_timezone))
    assert _dt.tzinfo
    return _dt
