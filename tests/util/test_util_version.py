import itertools
import unittest

from snbatch.util.version import (
    UpgradeType,
    compare_versions,
    is_upgrade,
    parse_version,
    upgrade_type,
)


class TestParseVersion(unittest.TestCase):
    def test_full_version(self) -> None:
        self.assertEqual(parse_version("1.2.3"), (1, 2, 3))

    def test_missing_parts_read_as_zero(self) -> None:
        self.assertEqual(parse_version("2"), (2, 0, 0))
        self.assertEqual(parse_version("2.5"), (2, 5, 0))

    def test_leading_digits_only(self) -> None:
        self.assertEqual(parse_version("3a.4-beta.5rc1"), (3, 4, 5))

    def test_garbage_reads_as_zero(self) -> None:
        self.assertEqual(parse_version("abc"), (0, 0, 0))
        self.assertEqual(parse_version(""), (0, 0, 0))
        self.assertEqual(parse_version(None), (0, 0, 0))

    def test_extra_parts_ignored(self) -> None:
        self.assertEqual(parse_version("1.2.3.4"), (1, 2, 3))


class TestUpgradeType(unittest.TestCase):
    def test_examples(self) -> None:
        self.assertEqual(upgrade_type("1.2.3", "1.2.4"), UpgradeType.PATCH)
        self.assertEqual(upgrade_type("1.2.3", "1.3.0"), UpgradeType.MINOR)
        self.assertEqual(upgrade_type("1.9.9", "2.0.0"), UpgradeType.MAJOR)
        self.assertEqual(upgrade_type("2.0.0", "1.0.0"), UpgradeType.NONE)
        self.assertEqual(upgrade_type("1.0.0", "1.0.0"), UpgradeType.NONE)

    def test_major_wins_over_lower_minor(self) -> None:
        self.assertEqual(upgrade_type("1.9.0", "2.1.0"), UpgradeType.MAJOR)

    def test_minor_wins_over_lower_patch(self) -> None:
        self.assertEqual(upgrade_type("1.2.9", "1.3.0"), UpgradeType.MINOR)

    def test_is_upgrade(self) -> None:
        self.assertTrue(is_upgrade("1.0.0", "1.0.1"))
        self.assertFalse(is_upgrade("1.0.1", "1.0.1"))
        self.assertFalse(is_upgrade("1.0.2", "1.0.1"))

    def test_total_and_consistent_with_comparison(self) -> None:
        versions = ["0", "1.0.0", "1.0.1", "1.1", "1.1.0", "2.0.0", "x.y", "10.0.0", "1.10.0"]
        for a, b in itertools.product(versions, repeat=2):
            with self.subTest(a=a, b=b):
                kind = upgrade_type(a, b)
                self.assertIsInstance(kind, UpgradeType)
                self.assertEqual(kind, upgrade_type(a, b))
                self.assertEqual(kind is UpgradeType.NONE, compare_versions(a, b) >= 0)

    def test_compare_is_antisymmetric(self) -> None:
        versions = ["1.0.0", "1.0", "1.2.3", "1.10.0", "1.9.9", "0.0.1"]
        for a, b in itertools.product(versions, repeat=2):
            with self.subTest(a=a, b=b):
                self.assertEqual(compare_versions(a, b), -compare_versions(b, a))

    def test_numeric_not_lexicographic(self) -> None:
        self.assertEqual(compare_versions("1.10.0", "1.9.0"), 1)


if __name__ == "__main__":
    unittest.main()
