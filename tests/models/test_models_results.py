import unittest

from snbatch.models import (
    InstallOutcome,
    InstallResult,
    ItemResult,
    PackageItem,
    RollbackOutcome,
    RollbackResult,
    aggregate_outcome,
)


def _item(scope: str) -> PackageItem:
    return PackageItem(scope=scope, name=scope, current_version="1.0.0", target_version="1.0.1")


class TestOutcome(unittest.TestCase):
    def test_aggregate(self) -> None:
        self.assertIs(aggregate_outcome(3, 0), InstallOutcome.SUCCESS)
        self.assertIs(aggregate_outcome(0, 0), InstallOutcome.SUCCESS)
        self.assertIs(aggregate_outcome(0, 2), InstallOutcome.FAILED)
        self.assertIs(aggregate_outcome(1, 1), InstallOutcome.PARTIAL)

    def test_exit_codes(self) -> None:
        self.assertEqual(InstallOutcome.SUCCESS.exit_code, 0)
        self.assertEqual(InstallOutcome.PARTIAL.exit_code, 1)
        self.assertEqual(InstallOutcome.FAILED.exit_code, 2)


class TestInstallResult(unittest.TestCase):
    def test_defaults(self) -> None:
        r = InstallResult(mode="sequential", results=[])
        self.assertEqual(r.rollback_versions, {})
        self.assertEqual(r.job_ids, [])
        self.assertIsNone(r.rollback_digest)
        self.assertFalse(r.halted)
        self.assertIs(r.outcome, InstallOutcome.SUCCESS)

    def test_not_run_does_not_count(self) -> None:
        r = InstallResult(
            mode="sequential",
            results=[
                ItemResult(item=_item("a"), status="succeeded"),
                ItemResult(item=_item("b"), status="failed", reason="x"),
                ItemResult(item=_item("c"), status="not_run"),
            ],
        )
        self.assertEqual(r.summary(), {"succeeded": 1, "failed": 1, "not_run": 1})
        self.assertIs(r.outcome, InstallOutcome.PARTIAL)
        self.assertEqual(r.exit_code, 1)
        self.assertEqual(r.results[1].scope, "b")


class TestRollbackResult(unittest.TestCase):
    def test_outcome(self) -> None:
        r = RollbackResult(
            mode="sequential",
            outcomes=[RollbackOutcome(job_id="p1", succeeded=True), RollbackOutcome(job_id="p2", succeeded=False)],
        )
        self.assertIs(r.outcome, InstallOutcome.PARTIAL)
        self.assertEqual(r.exit_code, 1)


if __name__ == "__main__":
    unittest.main()
