"""Tests for ExpenseKeeper.core.dates."""
import datetime
import re
import unittest

from ExpenseKeeper.core import dates

NOW = datetime.datetime(2025, 3, 10, 23, 30, 15, 123456, tzinfo=datetime.timezone.utc)


class TimestampTests(unittest.TestCase):

    def test_now_str_format(self):
        self.assertEqual(dates.now_str(NOW), '2025-03-10T23:30:15.123Z')
        self.assertRegex(dates.now_str(), r'^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$')

    def test_utc_today_converts_offsets(self):
        tz = datetime.timezone(datetime.timedelta(hours=2))
        local = datetime.datetime(2025, 3, 11, 1, 0, tzinfo=tz)
        self.assertEqual(dates.utc_today(local), datetime.date(2025, 3, 10))


class PresetTests(unittest.TestCase):

    def test_preset_ranges(self):
        self.assertEqual(dates.compute_preset_range(dates.DatePreset.Last7Days, NOW), ('2025-03-04', '2025-03-10'))
        self.assertEqual(dates.compute_preset_range(dates.DatePreset.Last30Days, NOW), ('2025-02-09', '2025-03-10'))
        self.assertEqual(dates.compute_preset_range(dates.DatePreset.ThisMonth, NOW), ('2025-03-01', '2025-03-10'))
        self.assertEqual(dates.compute_preset_range(dates.DatePreset.AllTime, NOW), (None, None))

    def test_detect_preset(self):
        self.assertEqual(dates.detect_preset(None, None, NOW), dates.DatePreset.AllTime)
        self.assertEqual(dates.detect_preset('2025-03-04', '2025-03-10', NOW), dates.DatePreset.Last7Days)
        self.assertEqual(dates.detect_preset('2025-03-01', '2025-03-10', NOW), dates.DatePreset.ThisMonth)
        self.assertEqual(dates.detect_preset('2025-01-01', '2025-01-31', NOW), dates.CUSTOM_PRESET)

    def test_every_preset_has_a_label(self):
        for preset in dates.DatePreset:
            self.assertIn(preset, dates.DATE_PRESET_LABELS)


class BritishDateTests(unittest.TestCase):

    def test_format(self):
        self.assertEqual(dates.format_date_british('2025-03-09'), '09/03/2025')
        self.assertEqual(dates.format_date_british(''), '')
        self.assertEqual(dates.format_date_british('garbage'), 'garbage')

    def test_format_range(self):
        self.assertEqual(dates.format_date_range_british('2025-03-01', '2025-03-09'), '01/03/2025 to 09/03/2025')
        self.assertEqual(dates.format_date_range_british('2025-03-01', None), 'From 01/03/2025')
        self.assertEqual(dates.format_date_range_british(None, '2025-03-09'), 'Up to 09/03/2025')
        self.assertEqual(dates.format_date_range_british(None, None), 'All time')

    def test_parse(self):
        self.assertEqual(dates.parse_british_date_input('9/3/2025'), '2025-03-09')
        self.assertEqual(dates.parse_british_date_input('09.03.25'), '2025-03-09')
        self.assertEqual(dates.parse_british_date_input('2025-03-09'), '2025-03-09')
        self.assertEqual(dates.parse_british_date_input('  '), '')
        self.assertIsNone(dates.parse_british_date_input('31/02/2025'))
        self.assertIsNone(dates.parse_british_date_input('March 9'))

    def test_range_label(self):
        label = dates.format_date_range_label('2025-03-01', '2025-03-09')
        self.assertTrue(re.match(r'^2025-03-01 . 2025-03-09$', label))
        self.assertEqual(dates.format_date_range_label(None, None), 'All time')


if __name__ == '__main__':
    unittest.main()
