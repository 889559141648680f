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

"""Termination checks for recurrence expansion."""

from collections.abc import Sequence
from datetime import datetime

from .rule import RecurrenceRule, RepeatMode


def quota_reached(results: Sequence[datetime], rule: RecurrenceRule) -> bool:
    """Check whether enough occurrences have been generated.

    Only COUNT and UNTIL are considered; the horizon and the pass limit are
    enforced by the expansion loop.

    Args:
      results: Occurrences recorded so far, in generation order
      rule: The rule being expanded
    """
    if rule.repeat_mode is RepeatMode.COUNT:
        return len(results) >= rule.count
    if rule.repeat_mode is RepeatMode.UNTIL and results:
        return results[-1] > rule.until
    return False
