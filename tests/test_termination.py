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

"""Tests for daisios.termination."""

import unittest
from datetime import datetime, timezone

from daisios.rule import parse_rule
from daisios.termination import quota_reached

START = datetime(2020, 1, 1, tzinfo=timezone.utc)


def day(n):
    return datetime(2020, 1, n, tzinfo=timezone.utc)


class QuotaReachedTests(unittest.TestCase):
    def test_count(self):
        rule = parse_rule("FREQ=DAILY;COUNT=2", START)
        self.assertFalse(quota_reached([], rule))
        self.assertFalse(quota_reached([day(1)], rule))
        self.assertTrue(quota_reached([day(1), day(2)], rule))

    def test_count_zero(self):
        rule = parse_rule("FREQ=DAILY;COUNT=0", START)
        self.assertTrue(quota_reached([], rule))

    def test_until(self):
        rule = parse_rule("FREQ=DAILY;UNTIL=20200102T000000Z", START)
        self.assertFalse(quota_reached([], rule))
        self.assertFalse(quota_reached([day(1), day(2)], rule))
        self.assertTrue(quota_reached([day(1), day(2), day(3)], rule))

    def test_until_only_checks_last(self):
        rule = parse_rule("FREQ=DAILY;UNTIL=20200102T000000Z", START)
        self.assertFalse(quota_reached([day(3), day(1)], rule))

    def test_neither(self):
        rule = parse_rule("FREQ=DAILY", START)
        self.assertFalse(quota_reached([day(n) for n in range(1, 30)], rule))
