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

"""Tests for daisios.rule."""

import unittest
from datetime import date, datetime, timezone

from daisios.rule import (
    Frequency,
    RepeatMode,
    Weekday,
    WeekdayRule,
    apply_set_pos,
    clean_rule_text,
    compose_set_pos,
    is_coarser,
    parse_rule,
    parse_weekday_rule,
)

START = datetime(2020, 1, 1, tzinfo=timezone.utc)


class ParseWeekdayRuleTests(unittest.TestCase):
    def test_plain(self):
        self.assertEqual(WeekdayRule(None, Weekday.MO), parse_weekday_rule("MO"))

    def test_ordinal(self):
        self.assertEqual(WeekdayRule(2, Weekday.TU), parse_weekday_rule("2TU"))
        self.assertEqual(WeekdayRule(2, Weekday.TU), parse_weekday_rule("+2TU"))
        self.assertEqual(WeekdayRule(-1, Weekday.FR), parse_weekday_rule("-1FR"))

    def test_invalid(self):
        for text in ["0MO", "+MO", "-MO", "XX", "1", "MOO", "123MO"]:
            self.assertRaises(ValueError, parse_weekday_rule, text)

    def test_str(self):
        self.assertEqual("-1FR", str(WeekdayRule(-1, Weekday.FR)))
        self.assertEqual("SA", str(WeekdayRule(None, Weekday.SA)))


class SetPosTests(unittest.TestCase):
    def test_compose_weekday(self):
        self.assertEqual(
            WeekdayRule(-1, Weekday.FR),
            compose_set_pos(-1, WeekdayRule(None, Weekday.FR)),
        )
        self.assertEqual(
            WeekdayRule(21, Weekday.MO),
            compose_set_pos(2, WeekdayRule(1, Weekday.MO)),
        )

    def test_compose_int(self):
        self.assertEqual(-115, compose_set_pos(-1, 15))
        self.assertEqual(23, compose_set_pos(2, 3))

    def test_apply(self):
        self.assertEqual((13, 17, 23, 27), apply_set_pos((3, 7), (1, 2)))


class CleanRuleTextTests(unittest.TestCase):
    def test_prefix(self):
        self.assertEqual("FREQ=DAILY", clean_rule_text("RRULE:FREQ=DAILY"))
        self.assertEqual("FREQ=DAILY", clean_rule_text("rrule:FREQ=DAILY"))

    def test_escaped_quotes(self):
        self.assertEqual("FREQ=DAILY", clean_rule_text("\\'FREQ=DAILY\\'"))


class FrequencyTests(unittest.TestCase):
    def test_is_coarser(self):
        self.assertTrue(is_coarser(Frequency.YEARLY, Frequency.DAILY))
        self.assertFalse(is_coarser(Frequency.DAILY, Frequency.DAILY))
        self.assertFalse(is_coarser(Frequency.SECONDLY, Frequency.HOURLY))
        self.assertFalse(is_coarser(None, Frequency.SECONDLY))


class ParseRuleTests(unittest.TestCase):
    def test_count(self):
        rule = parse_rule("FREQ=DAILY;COUNT=5", START)
        self.assertEqual(Frequency.DAILY, rule.frequency)
        self.assertEqual(1, rule.interval)
        self.assertEqual(RepeatMode.COUNT, rule.repeat_mode)
        self.assertEqual(5, rule.count)
        self.assertEqual(START, rule.start)
        self.assertEqual("UTC", rule.timezone)
        self.assertFalse(rule.has_by_lists())

    def test_until(self):
        rule = parse_rule("FREQ=YEARLY;UNTIL=20230101T000000Z", START)
        self.assertEqual(RepeatMode.UNTIL, rule.repeat_mode)
        self.assertEqual(datetime(2023, 1, 1, tzinfo=timezone.utc), rule.until)

    def test_last_of_count_and_until_wins(self):
        rule = parse_rule("FREQ=DAILY;COUNT=5;UNTIL=20230101T000000Z", START)
        self.assertEqual(RepeatMode.UNTIL, rule.repeat_mode)
        rule = parse_rule("FREQ=DAILY;UNTIL=20230101T000000Z;COUNT=5", START)
        self.assertEqual(RepeatMode.COUNT, rule.repeat_mode)
        self.assertEqual(5, rule.count)

    def test_by_lists(self):
        rule = parse_rule(
            "FREQ=YEARLY;BYMONTH=1,7;BYMONTHDAY=1,-1;BYDAY=MO,-1FR;"
            "BYHOUR=9;BYMINUTE=0,30;BYSECOND=15;BYYEAR=2021",
            START,
        )
        self.assertEqual((1, 7), rule.by_month)
        self.assertEqual((1, -1), rule.by_month_day)
        self.assertEqual(
            (WeekdayRule(None, Weekday.MO), WeekdayRule(-1, Weekday.FR)),
            rule.by_day,
        )
        self.assertEqual((9,), rule.by_hour)
        self.assertEqual((0, 30), rule.by_minute)
        self.assertEqual((15,), rule.by_second)
        self.assertEqual((2021,), rule.by_year)
        self.assertTrue(rule.has_by_lists())

    def test_interval(self):
        self.assertEqual(2, parse_rule("FREQ=WEEKLY;INTERVAL=2", START).interval)

    def test_invalid_interval(self):
        with self.assertLogs("daisios.rule", level="WARNING"):
            rule = parse_rule("FREQ=WEEKLY;INTERVAL=0", START)
        self.assertEqual(1, rule.interval)
        with self.assertLogs("daisios.rule", level="WARNING"):
            rule = parse_rule("FREQ=WEEKLY;INTERVAL=often", START)
        self.assertEqual(1, rule.interval)

    def test_invalid_count(self):
        with self.assertLogs("daisios.rule", level="WARNING"):
            rule = parse_rule("FREQ=DAILY;COUNT=-3", START)
        self.assertIsNone(rule.repeat_mode)

    def test_invalid_until(self):
        with self.assertLogs("daisios.rule", level="WARNING"):
            rule = parse_rule("FREQ=DAILY;UNTIL=tomorrow", START)
        self.assertIsNone(rule.repeat_mode)
        self.assertIsNone(rule.until)

    def test_unknown_frequency(self):
        with self.assertLogs("daisios.rule", level="WARNING"):
            rule = parse_rule("FREQ=FORTNIGHTLY", START)
        self.assertIsNone(rule.frequency)

    def test_unknown_key(self):
        with self.assertLogs("daisios.rule", level="WARNING") as cm:
            rule = parse_rule("FREQ=DAILY;WKST=MO", START)
        self.assertIn("WKST", cm.output[0])
        self.assertEqual(Frequency.DAILY, rule.frequency)

    def test_malformed_segment(self):
        with self.assertLogs("daisios.rule", level="WARNING"):
            rule = parse_rule("FREQ=DAILY;garbage;COUNT=2", START)
        self.assertEqual(Frequency.DAILY, rule.frequency)
        self.assertEqual(2, rule.count)

    def test_invalid_list_entries(self):
        with self.assertLogs("daisios.rule", level="WARNING"):
            rule = parse_rule("FREQ=MONTHLY;BYMONTHDAY=1,x,15;BYDAY=MO,0TU", START)
        self.assertEqual((1, 15), rule.by_month_day)
        self.assertEqual((WeekdayRule(None, Weekday.MO),), rule.by_day)

    def test_missing_frequency(self):
        with self.assertLogs("daisios.rule", level="WARNING"):
            rule = parse_rule("COUNT=3", START)
        self.assertIsNone(rule.frequency)

    def test_prefix(self):
        rule = parse_rule("RRULE:FREQ=DAILY;COUNT=1", START)
        self.assertEqual("FREQ=DAILY;COUNT=1", rule.text)
        self.assertEqual(Frequency.DAILY, rule.frequency)

    def test_set_pos_weekday(self):
        rule = parse_rule("FREQ=MONTHLY;BYDAY=FR;BYSETPOS=-1", START)
        self.assertEqual((WeekdayRule(-1, Weekday.FR),), rule.by_day)
        self.assertEqual((-1,), rule.by_set_pos)

    def test_set_pos_month_day(self):
        rule = parse_rule("FREQ=MONTHLY;BYMONTHDAY=15;BYSETPOS=-1", START)
        self.assertEqual((-115,), rule.by_month_day)

    def test_set_pos_only_changes_preceding_list(self):
        rule = parse_rule("FREQ=MONTHLY;BYDAY=FR;BYSETPOS=2;BYMONTH=3", START)
        self.assertEqual((WeekdayRule(2, Weekday.FR),), rule.by_day)
        self.assertEqual((3,), rule.by_month)

    def test_set_pos_without_list(self):
        with self.assertLogs("daisios.rule", level="WARNING"):
            rule = parse_rule("FREQ=MONTHLY;BYSETPOS=1", START)
        self.assertFalse(rule.has_by_lists())

    def test_naive_start_in_timezone(self):
        rule = parse_rule(
            "FREQ=DAILY", datetime(2020, 1, 1, 9, 0), tzid="Europe/Amsterdam"
        )
        self.assertEqual(
            datetime(2020, 1, 1, 8, 0, tzinfo=timezone.utc), rule.start
        )

    def test_exception_dates(self):
        rule = parse_rule("FREQ=DAILY", START, [date(2020, 1, 2)])
        self.assertEqual(
            (datetime(2020, 1, 2, tzinfo=timezone.utc),), rule.exception_dates
        )

    def test_default_start(self):
        rule = parse_rule("FREQ=DAILY")
        now = datetime.now(timezone.utc)
        self.assertEqual(
            (now.year - 1, 1, 1, 0, 0),
            (
                rule.start.year,
                rule.start.month,
                rule.start.day,
                rule.start.hour,
                rule.start.minute,
            ),
        )

    def test_invalid_horizon(self):
        self.assertRaises(ValueError, parse_rule, "FREQ=DAILY", START, (), "UTC", 0)

    def test_repr(self):
        self.assertIn("FREQ=DAILY", repr(parse_rule("FREQ=DAILY", START)))
