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

"""Expansion of iCalendar recurrence rules into lists of dates."""

from .expand import ExpansionError, InfiniteLoopGuard, get_dates
from .rule import Frequency, RecurrenceRule, RepeatMode, parse_rule

__version__ = (0, 1, 0)
version_string = ".".join(map(str, __version__))

__all__ = [
    "ExpansionError",
    "Frequency",
    "InfiniteLoopGuard",
    "RecurrenceRule",
    "RepeatMode",
    "get_dates",
    "parse_rule",
]
