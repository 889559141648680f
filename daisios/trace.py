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

"""Diagnostic tracing of recurrence expansion.

A tracer is passed to each expansion call; it is purely observational.
"""

import logging
from typing import Optional

TRACE_OFF = 0
TRACE_SUMMARY = 1
TRACE_DETAIL = 2

TRACE_LEVELS = (TRACE_OFF, TRACE_SUMMARY, TRACE_DETAIL)


class Tracer(object):
    """Leveled tracer that writes to a logger.

    Level 1 records function entry/exit summaries, level 2 also records
    every candidate that is considered.
    """

    def __init__(
        self, level: int = TRACE_OFF, logger: Optional[logging.Logger] = None
    ) -> None:
        if level not in TRACE_LEVELS:
            raise ValueError(f"Invalid trace level {level!r}")
        self.level = level
        if logger is None:
            logger = logging.getLogger(__name__)
        self._logger = logger

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.level!r})"

    def enabled(self, level: int) -> bool:
        return self.level >= level

    def summary(self, msg, *args) -> None:
        if self.level >= TRACE_SUMMARY:
            self._logger.debug(msg, *args)

    def detail(self, msg, *args) -> None:
        if self.level >= TRACE_DETAIL:
            self._logger.debug(msg, *args)


NULL_TRACER = Tracer(TRACE_OFF)
