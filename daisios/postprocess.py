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

"""Clean up of generated occurrences."""

from collections.abc import Iterable
from datetime import datetime
from typing import Optional

from .rule import RecurrenceRule, RepeatMode
from .trace import NULL_TRACER, TRACE_DETAIL, Tracer


def trim_until(rule: RecurrenceRule, occurrences: list[datetime]) -> list[datetime]:
    """Drop the occurrence that overshot UNTIL, if any."""
    if (
        rule.repeat_mode is RepeatMode.UNTIL
        and occurrences
        and occurrences[-1] > rule.until
    ):
        return occurrences[:-1]
    return occurrences


def remove_duplicates(occurrences: Iterable[datetime]) -> list[datetime]:
    """Remove repeated instants, keeping the first of each."""
    seen = set()
    ret = []
    for occurrence in occurrences:
        if occurrence in seen:
            continue
        seen.add(occurrence)
        ret.append(occurrence)
    return ret


def remove_exceptions(
    occurrences: list[datetime], exception_dates: Iterable[datetime]
) -> tuple[list[datetime], int]:
    """Remove exception instants.

    Each exception removes at most one occurrence.

    Returns: tuple with remaining occurrences and number removed
    """
    ret = list(occurrences)
    removed = 0
    for exdate in exception_dates:
        try:
            ret.remove(exdate)
        except ValueError:
            continue
        removed += 1
    return ret, removed


def postprocess(
    rule: RecurrenceRule,
    occurrences: list[datetime],
    tracer: Optional[Tracer] = None,
) -> list[datetime]:
    """Turn raw generated occurrences into the final list.

    Args:
      rule: Rule the occurrences were generated from
      occurrences: Raw occurrences, in generation order
      tracer: Optional tracer
    Returns: ascending list without duplicates or exceptions
    """
    if tracer is None:
        tracer = NULL_TRACER
    trimmed = trim_until(rule, occurrences)
    unique = remove_duplicates(trimmed)
    duplicates = len(trimmed) - len(unique)
    ret, excount = remove_exceptions(unique, rule.exception_dates)
    ret.sort()
    tracer.summary(
        "postprocess() returned %d dates, removing %d duplicates, %d exceptions",
        len(ret),
        duplicates,
        excount,
    )
    if tracer.enabled(TRACE_DETAIL):
        for occurrence in ret:
            tracer.detail("recurring date %s", occurrence)
        for exdate in rule.exception_dates:
            tracer.detail("exception date %s", exdate)
    return ret
