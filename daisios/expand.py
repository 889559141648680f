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

"""Expansion of recurrence rules into lists of dates.

Expansion runs in periods of the rule's frequency. Within each period the
by-lists are applied from coarse to fine (year, month, day of month, day of
week, hour, minute, second); each accepted value narrows the window that
the next list is applied to.
"""

from collections.abc import Iterator
from datetime import date, datetime, timezone
from typing import Callable, Optional, Union

from .datearith import (
    add_duration,
    fields_of,
    from_fields,
    month_length,
    nth_weekday,
    start_of_week,
    to_local,
    weekday_of,
)
from .postprocess import postprocess
from .rule import Frequency, RecurrenceRule, Weekday, is_coarser
from .termination import quota_reached
from .trace import NULL_TRACER, Tracer

# add_duration() keyword for one step of each frequency
FREQUENCY_UNITS = {
    Frequency.YEARLY: "years",
    Frequency.MONTHLY: "months",
    Frequency.WEEKLY: "weeks",
    Frequency.DAILY: "days",
    Frequency.HOURLY: "hours",
    Frequency.MINUTELY: "minutes",
    Frequency.SECONDLY: "seconds",
}


class ExpansionError(Exception):
    """Base class for expansion errors."""


class InfiniteLoopGuard(ExpansionError):
    """Expansion did not reach a stopping condition within the pass limit."""

    def __init__(self, rule: RecurrenceRule, passes: int) -> None:
        super().__init__(
            f"Infinite loop detected expanding {rule.text!r}: "
            f"no stopping condition reached after {passes} passes"
        )
        self.rule = rule
        self.passes = passes


def period_anchor(rule: RecurrenceRule) -> datetime:
    """Find the instant the expansion periods are counted from.

    This is the start, moved back to the beginning of whatever units the
    by-lists fill in; e.g. the first of the month for a monthly rule with
    BYMONTHDAY, or the Sunday of the start's week for a weekly rule with
    BYDAY.
    """
    freq = rule.frequency
    year, month, day, hour, minute, second, _ = fields_of(rule.start)
    if rule.by_second and is_coarser(freq, Frequency.SECONDLY):
        second = 0
    if rule.by_minute and is_coarser(freq, Frequency.MINUTELY):
        minute = 0
    if rule.by_hour and is_coarser(freq, Frequency.HOURLY):
        hour = 0
    if freq in (Frequency.YEARLY, Frequency.MONTHLY) and (
        rule.by_day or rule.by_month_day
    ):
        day = 1
    if freq is Frequency.YEARLY and rule.by_month:
        month = 1
    anchor = from_fields(year, month, day, hour, minute, second, rule.timezone)
    if freq is Frequency.WEEKLY and rule.by_day:
        anchor = start_of_week(anchor)
    return anchor


def period_bounds(
    rule: RecurrenceRule, anchor: datetime, index: int
) -> tuple[datetime, datetime]:
    """Determine the window of an expansion period.

    Cursors are computed from the anchor rather than from the previous
    cursor, so a monthly rule that starts on the 31st lands on the last
    day of short months without drifting to earlier days afterwards.

    Raises:
      OverflowError, ValueError: if the period starts beyond the last
        representable date
    """
    freq = rule.frequency
    if freq is None:
        return anchor, anchor
    unit = FREQUENCY_UNITS[freq]
    cursor = add_duration(anchor, **{unit: index * rule.interval})
    try:
        if freq is Frequency.WEEKLY:
            end = add_duration(cursor, weeks=rule.interval)
        else:
            end = add_duration(cursor, **{unit: 1})
    except (OverflowError, ValueError):
        # The last period runs to the end of time.
        end = datetime.max.replace(tzinfo=timezone.utc)
    return cursor, end


Level = Callable[[datetime, datetime], int]


class Expansion(object):
    """A single expansion of a rule.

    The occurrence list is owned by the expansion and only ever appended
    to through ``record``; every level method returns the number of
    occurrences it recorded.
    """

    def __init__(self, rule: RecurrenceRule, tracer: Optional[Tracer] = None) -> None:
        self.rule = rule
        if tracer is None:
            tracer = NULL_TRACER
        self.tracer = tracer
        self.results: list[datetime] = []

    def done(self) -> bool:
        return quota_reached(self.results, self.rule)

    def record(self, instant: datetime) -> int:
        if instant < self.rule.start:
            self.tracer.detail("skipping %s, before start", instant)
            return 0
        if self.done():
            return 0
        self.results.append(instant)
        self.tracer.detail("adding date %s", instant)
        return 1

    def _candidate(self, year, month, day, hour, minute, second):
        try:
            return from_fields(
                year, month, day, hour, minute, second, self.rule.timezone
            )
        except (OverflowError, ValueError):
            self.tracer.detail(
                "no such date: %r",
                (year, month, day, hour, minute, second),
            )
            return None

    def _narrow(self, candidate: datetime, end: datetime, unit: str) -> datetime:
        try:
            return min(end, add_duration(candidate, **{unit: 1}))
        except (OverflowError, ValueError):
            return end

    def _apply(
        self,
        name: str,
        start: datetime,
        end: datetime,
        candidates: list[Optional[datetime]],
        unit: str,
        finer: Optional[Level],
    ) -> int:
        self.tracer.summary(
            "%s(%s, %s, %d dates)", name, start, end, len(self.results)
        )
        count = 0
        # Chronological rather than by-list order, so occurrences are
        # recorded ascending.
        for candidate in sorted(c for c in candidates if c is not None):
            self.tracer.detail("%s: checking %s", name, candidate)
            if not (start <= candidate < end):
                continue
            if self.done():
                break
            produced = 0
            if finer is not None:
                produced = finer(candidate, self._narrow(candidate, end, unit))
            if produced == 0:
                produced = self.record(candidate)
            count += produced
        self.tracer.summary("%s() returned %d", name, count)
        return count

    def by_year(self, start: datetime, end: datetime) -> int:
        if not self.rule.by_year:
            return self.by_month(start, end)
        f = fields_of(start)
        candidates = [
            self._candidate(year, f.month, f.day, f.hour, f.minute, f.second)
            for year in self.rule.by_year
        ]
        return self._apply("by_year", start, end, candidates, "years", self.by_month)

    def by_month(self, start: datetime, end: datetime) -> int:
        if not self.rule.by_month:
            return self.by_month_day(start, end)
        f = fields_of(start)
        candidates = [
            self._candidate(f.year, month, f.day, f.hour, f.minute, f.second)
            for month in self.rule.by_month
        ]
        return self._apply(
            "by_month", start, end, candidates, "months", self.by_month_day
        )

    def by_month_day(self, start: datetime, end: datetime) -> int:
        if not self.rule.by_month_day:
            return self.by_day(start, end)
        f = fields_of(start)
        candidates = []
        for day in self.rule.by_month_day:
            if day < 0:
                # -1 is the last day of the month
                day += month_length(f.year, f.month) + 1
            candidates.append(
                self._candidate(f.year, f.month, day, f.hour, f.minute, f.second)
            )
        return self._apply(
            "by_month_day", start, end, candidates, "days", self.by_day
        )

    def _every_weekday(
        self, start: datetime, end: datetime, weekday: Weekday
    ) -> Iterator[datetime]:
        day = add_duration(start, days=(weekday - weekday_of(start)) % 7)
        while day < end:
            yield day
            try:
                day = add_duration(day, weeks=1)
            except (OverflowError, ValueError):
                return

    def by_day(self, start: datetime, end: datetime) -> int:
        if not self.rule.by_day:
            return self.by_hour(start, end)
        f = fields_of(start)
        scope_end = end
        if self.rule.frequency is Frequency.WEEKLY:
            # Only the first week of a multi-week period is eligible.
            scope_end = self._narrow(start, end, "weeks")
        candidates: list[Optional[datetime]] = []
        for entry in self.rule.by_day:
            if entry.ordinal is None:
                candidates.extend(self._every_weekday(start, scope_end, entry.weekday))
                continue
            day = nth_weekday(f.year, f.month, entry.ordinal, entry.weekday)
            self.tracer.detail(
                "nth_weekday(%d, %d, %s) returned %r", f.year, f.month, entry, day
            )
            if day is not None:
                candidates.append(
                    self._candidate(f.year, f.month, day, f.hour, f.minute, f.second)
                )
        return self._apply("by_day", start, end, candidates, "days", self.by_hour)

    def by_hour(self, start: datetime, end: datetime) -> int:
        if not self.rule.by_hour:
            return self.by_minute(start, end)
        f = fields_of(start)
        candidates = [
            self._candidate(f.year, f.month, f.day, hour, f.minute, f.second)
            for hour in self.rule.by_hour
        ]
        return self._apply("by_hour", start, end, candidates, "hours", self.by_minute)

    def by_minute(self, start: datetime, end: datetime) -> int:
        if not self.rule.by_minute:
            return self.by_second(start, end)
        f = fields_of(start)
        candidates = [
            self._candidate(f.year, f.month, f.day, f.hour, minute, f.second)
            for minute in self.rule.by_minute
        ]
        return self._apply(
            "by_minute", start, end, candidates, "minutes", self.by_second
        )

    def by_second(self, start: datetime, end: datetime) -> int:
        if not self.rule.by_second:
            return 0
        f = fields_of(start)
        candidates = [
            self._candidate(f.year, f.month, f.day, f.hour, f.minute, second)
            for second in self.rule.by_second
        ]
        return self._apply("by_second", start, end, candidates, "seconds", None)

    def run(self, maxdate: Optional[datetime] = None) -> list[datetime]:
        """Generate the raw occurrences.

        Raises:
          InfiniteLoopGuard: if no stopping condition is reached within
            ``horizon_year`` passes
        """
        rule = self.rule
        self.tracer.summary("get_dates(%r)", rule.text)
        self.tracer.detail(
            "freq: %s, interval: %d", rule.frequency, rule.interval
        )
        anchor = period_anchor(rule)
        has_by_lists = rule.has_by_lists()
        passes = 0
        while True:
            self.tracer.summary(
                "*** Frequency (%s) loop pass %d ***", rule.frequency, passes
            )
            try:
                cursor, end = period_bounds(rule, anchor, passes)
            except (OverflowError, ValueError):
                self.tracer.summary("no representable period after pass %d", passes)
                break
            self.tracer.detail("period %s - %s", cursor, end)
            if maxdate is not None and cursor > maxdate:
                break
            if cursor.year > rule.horizon_year:
                break
            if has_by_lists:
                self.by_year(cursor, end)
            else:
                self.record(cursor)
            if self.done():
                break
            if rule.frequency is None:
                # Without a frequency the cursor can not advance.
                break
            passes += 1
            if passes > rule.horizon_year:
                raise InfiniteLoopGuard(rule, passes)
        if maxdate is not None:
            # Discard the partial period past maxdate.
            while self.results and self.results[-1] > maxdate:
                self.results.pop()
        self.tracer.summary("get_dates() generated %d dates", len(self.results))
        return self.results


def generate(
    rule: RecurrenceRule,
    maxdate: Union[date, datetime, None] = None,
    tracer: Optional[Tracer] = None,
) -> list[datetime]:
    """Generate the raw occurrences of a rule, before clean up."""
    if maxdate is not None:
        maxdate = to_local(maxdate, rule.timezone)
    return Expansion(rule, tracer).run(maxdate)


def get_dates(
    rule: RecurrenceRule,
    maxdate: Union[date, datetime, None] = None,
    tracer: Optional[Tracer] = None,
) -> list[datetime]:
    """Expand a rule into a list of dates.

    Args:
      rule: Parsed rule
      maxdate: Optional last instant to expand to (inclusive)
      tracer: Optional tracer for diagnostics
    Returns: ascending list of aware datetimes in the rule's timezone
    Raises:
      InfiniteLoopGuard: if the rule does not reach a stopping condition
    """
    if tracer is None:
        tracer = NULL_TRACER
    return postprocess(rule, generate(rule, maxdate, tracer), tracer)
