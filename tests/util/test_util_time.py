import unittest
from datetime import datetime, timezone

from snbatch.util.time import (
    file_timestamp,
    require_aware,
    now_utc,
    parse_rfc3339,
    to_rfc3339,
)


class TestUtilTime(unittest.TestCase):
    def test_now_utc_is_tz_aware(self) -> None:
        dt = now_utc()
        self.assertIsNotNone(dt.tzinfo)
        self.assertEqual(dt.tzinfo, timezone.utc)

    def test_require_aware_rejects_naive(self) -> None:
        naive = datetime(2025, 1, 1, 12, 0, 0)
        with self.assertRaises(ValueError):
            require_aware(naive)

    def test_require_aware_rejects_non_datetime(self) -> None:
        with self.assertRaises(TypeError):
            require_aware("2025-01-01")  # type: ignore[arg-type]

    def test_parse_rfc3339_z(self) -> None:
        dt = parse_rfc3339("2025-01-01T12:34:56Z")
        self.assertEqual(dt.tzinfo, timezone.utc)
        self.assertEqual(dt, datetime(2025, 1, 1, 12, 34, 56, tzinfo=timezone.utc))

    def test_parse_rfc3339_fractional_z(self) -> None:
        dt = parse_rfc3339("2025-01-01T12:34:56.123456Z")
        self.assertEqual(
            dt, datetime(2025, 1, 1, 12, 34, 56, 123456, tzinfo=timezone.utc)
        )

    def test_parse_rfc3339_offset_converts_to_utc(self) -> None:
        dt = parse_rfc3339("2025-01-01T12:34:56+09:00")
        self.assertEqual(dt.tzinfo, timezone.utc)
        # 12:34:56 JST == 03:34:56 UTC
        self.assertEqual(dt, datetime(2025, 1, 1, 3, 34, 56, tzinfo=timezone.utc))

    def test_parse_rfc3339_rejects_empty(self) -> None:
        with self.assertRaises(ValueError):
            parse_rfc3339("")

    def test_parse_rfc3339_rejects_missing_zone(self) -> None:
        with self.assertRaises(ValueError):
            parse_rfc3339("2025-01-01T12:34:56")

    def test_parse_rfc3339_rejects_garbage(self) -> None:
        with self.assertRaises(ValueError):
            parse_rfc3339("yesterday")

    def test_to_rfc3339_outputs_z_with_seconds(self) -> None:
        dt = datetime(2025, 1, 1, 0, 0, 0, 999, tzinfo=timezone.utc)
        self.assertEqual(to_rfc3339(dt), "2025-01-01T00:00:00Z")

    def test_file_timestamp(self) -> None:
        dt = datetime(2025, 3, 4, 5, 6, 7, tzinfo=timezone.utc)
        self.assertEqual(file_timestamp(dt), "2025-03-04_05-06-07")


if __name__ == "__main__":
    unittest.main()
