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

"""Expansion configuration file.

Example::

    [expansion]
    horizon-year = 2100
    trace-level = 1
    timezone = Europe/Amsterdam
"""

import configparser
from datetime import MAXYEAR

from .rule import DEFAULT_HORIZON_YEAR, DEFAULT_TIMEZONE, parse_rule
from .trace import TRACE_LEVELS, TRACE_OFF, Tracer

SECTION = "expansion"


class InvalidConfiguration(Exception):
    """A configuration value is invalid."""

    def __init__(self, key, value) -> None:
        super().__init__(f"Invalid value {value!r} for {key}")
        self.key = key
        self.value = value


def _parse_horizon_year(value):
    try:
        year = int(value)
    except (TypeError, ValueError) as exc:
        raise InvalidConfiguration("horizon-year", value) from exc
    if not 1 <= year <= MAXYEAR:
        raise InvalidConfiguration("horizon-year", value)
    return year


def _parse_trace_level(value):
    try:
        level = int(value)
    except (TypeError, ValueError) as exc:
        raise InvalidConfiguration("trace-level", value) from exc
    if level not in TRACE_LEVELS:
        raise InvalidConfiguration("trace-level", value)
    return level


class ExpansionConfig(object):
    """Settings that apply to every expansion."""

    def __init__(self, cp=None):
        if cp is None:
            cp = configparser.ConfigParser()
        self._configparser = cp

    @classmethod
    def from_file(cls, f):
        cp = configparser.ConfigParser()
        cp.read_file(f)
        return cls(cp)

    def _get(self, key):
        try:
            return self._configparser[SECTION][key]
        except KeyError:
            return None

    def _set(self, key, value):
        try:
            self._configparser.add_section(SECTION)
        except configparser.DuplicateSectionError:
            pass
        if value is None:
            self._configparser.remove_option(SECTION, key)
        else:
            self._configparser[SECTION][key] = str(value)

    def get_horizon_year(self):
        value = self._get("horizon-year")
        if value is None:
            return DEFAULT_HORIZON_YEAR
        return _parse_horizon_year(value)

    def set_horizon_year(self, year):
        if year is not None:
            _parse_horizon_year(year)
        self._set("horizon-year", year)

    def get_trace_level(self):
        value = self._get("trace-level")
        if value is None:
            return TRACE_OFF
        return _parse_trace_level(value)

    def set_trace_level(self, level):
        if level is not None:
            _parse_trace_level(level)
        self._set("trace-level", level)

    def get_timezone(self):
        value = self._get("timezone")
        if not value:
            return DEFAULT_TIMEZONE
        return value

    def set_timezone(self, tzid):
        self._set("timezone", tzid)

    def tracer(self, logger=None):
        """Create a tracer at the configured level."""
        return Tracer(self.get_trace_level(), logger)

    def parse(self, text, start=None, exception_dates=()):
        """Parse a rule using the configured timezone and horizon."""
        return parse_rule(
            text,
            start,
            exception_dates,
            tzid=self.get_timezone(),
            horizon_year=self.get_horizon_year(),
        )
