import itertools
import unittest
from datetime import datetime, timezone

from snbatch.errors import PlanValidationError
from snbatch.models import PackageItem
from snbatch.plan import ExecutionPlan, build_plan, compute_stats, dumps_plan
from snbatch.util.version import UpgradeType

CREATED = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def _item(scope: str, current: str = "1.0.0", target: str = "1.0.1") -> PackageItem:
    return PackageItem(scope=scope, name=scope.upper(), current_version=current, target_version=target)


class TestExecutionPlan(unittest.TestCase):
    def test_items_sorted_by_scope(self) -> None:
        plan = build_plan([_item("x_c"), _item("x_a"), _item("x_b")], source_ref="https://a", created_at=CREATED)
        self.assertEqual(plan.scopes, ["x_a", "x_b", "x_c"])
        self.assertIsInstance(plan, ExecutionPlan)

    def test_duplicate_scopes_rejected(self) -> None:
        with self.assertRaises(PlanValidationError) as ctx:
            build_plan([_item("x_a"), _item("x_b"), _item("x_a")], source_ref="https://a")
        self.assertEqual(ctx.exception.violations, ["Duplicate scope: x_a"])

    def test_stats(self) -> None:
        plan = build_plan(
            [
                _item("x_p", "1.0.0", "1.0.1"),
                _item("x_m", "1.0.0", "1.1.0"),
                _item("x_j", "1.0.0", "2.0.0"),
                _item("x_j2", "1.0.0", "3.0.0"),
            ],
            source_ref="https://a",
        )
        self.assertEqual(plan.stats, {"total": 4, "none": 0, "patch": 1, "minor": 1, "major": 2})

    def test_empty_stats(self) -> None:
        self.assertEqual(compute_stats([]), {"total": 0, "none": 0, "patch": 0, "minor": 0, "major": 0})

    def test_get_and_filter(self) -> None:
        plan = build_plan([_item("x_a", "1.0.0", "2.0.0"), _item("x_b")], source_ref="https://a")
        self.assertEqual(plan.get("x_b").scope, "x_b")
        with self.assertRaises(KeyError):
            plan.get("missing")
        self.assertEqual([i.scope for i in plan.filter(UpgradeType.MAJOR)], ["x_a"])

    def test_naive_created_at_rejected(self) -> None:
        with self.assertRaises(ValueError):
            build_plan([], source_ref="https://a", created_at=datetime(2025, 1, 1))

    def test_serialization_independent_of_input_order(self) -> None:
        items = [_item("x_a"), _item("x_b", "2.0.0", "2.1.0"), _item("x_c", "1.0.0", "4.0.0"), _item("x_d")]
        expected = dumps_plan(build_plan(items, source_ref="https://a", created_at=CREATED))
        for perm in itertools.permutations(items):
            with self.subTest(order=[i.scope for i in perm]):
                plan = build_plan(perm, source_ref="https://a", created_at=CREATED)
                self.assertEqual(dumps_plan(plan), expected)


if __name__ == "__main__":
    unittest.main()
