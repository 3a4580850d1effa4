import itertools
import unittest
from datetime import datetime, timezone

from snbatch.models import InstalledPackage, PackageItem
from snbatch.plan import VerdictKind, derive_plan, rebase_item, reconcile, summarize


def _src(scope: str, current: str, target: str) -> PackageItem:
    return PackageItem(
        scope=scope, name=scope, current_version=current, target_version=target, source_ref=f"src-{scope}"
    )


def _tgt(scope: str, version: str) -> InstalledPackage:
    return InstalledPackage(scope=scope, name=scope, version=version, source_ref=f"tgt-{scope}")


class TestReconcileExamples(unittest.TestCase):
    def setUp(self) -> None:
        self.item = _src("x_a", "1.0.0", "1.1.0")

    def _one(self, targets):
        verdicts = reconcile([self.item], targets)
        return verdicts[0]

    def test_already_current(self) -> None:
        v = self._one([_tgt("x_a", "1.1.0")])
        self.assertIs(v.kind, VerdictKind.SKIP_ALREADY_CURRENT)
        self.assertEqual(v.observed_version, "1.1.0")

    def test_include_matched(self) -> None:
        v = self._one([_tgt("x_a", "1.0.0")])
        self.assertIs(v.kind, VerdictKind.INCLUDE)
        self.assertFalse(v.version_mismatch)

    def test_include_with_mismatch(self) -> None:
        v = self._one([_tgt("x_a", "0.9.0")])
        self.assertIs(v.kind, VerdictKind.INCLUDE)
        self.assertTrue(v.version_mismatch)

    def test_not_installed(self) -> None:
        v = self._one([])
        self.assertIs(v.kind, VerdictKind.SKIP_NOT_INSTALLED)
        self.assertIsNone(v.observed_version)

    def test_target_ahead(self) -> None:
        verdicts = reconcile([_src("x_b", "1.0.0", "2.0.0")], [_tgt("x_b", "3.0.0")])
        self.assertIs(verdicts[0].kind, VerdictKind.SKIP_TARGET_AHEAD)

    def test_equivalent_versions_are_current(self) -> None:
        v = self._one([_tgt("x_a", "1.1")])
        self.assertIs(v.kind, VerdictKind.SKIP_ALREADY_CURRENT)

    def test_extras_sorted_after_source(self) -> None:
        verdicts = reconcile(
            [_src("x_z", "1.0.0", "1.0.1"), _src("x_a", "1.0.0", "1.0.1")],
            [_tgt("x_q", "1.0.0"), _tgt("x_b", "1.0.0"), _tgt("x_a", "1.0.0")],
        )
        self.assertEqual([v.scope for v in verdicts], ["x_z", "x_a", "x_b", "x_q"])
        self.assertEqual(
            [v.kind for v in verdicts[2:]], [VerdictKind.EXTRA_ON_TARGET, VerdictKind.EXTRA_ON_TARGET]
        )
        self.assertIsNone(verdicts[2].item)

    def test_inputs_not_mutated(self) -> None:
        sources = [self.item]
        targets = [_tgt("x_a", "1.0.0")]
        reconcile(sources, targets)
        self.assertEqual(sources, [self.item])
        self.assertEqual(targets, [_tgt("x_a", "1.0.0")])


class TestReconcileTotality(unittest.TestCase):
    def test_one_verdict_per_source_and_extra(self) -> None:
        versions = [None, "0.9.0", "1.0.0", "1.1.0", "2.0.0"]
        scopes = ["x_a", "x_b", "x_c"]
        sources = [_src("x_a", "1.0.0", "1.1.0"), _src("x_b", "1.0.0", "2.0.0")]
        for installed in itertools.product(versions, repeat=len(scopes)):
            targets = [_tgt(s, v) for s, v in zip(scopes, installed) if v is not None]
            with self.subTest(installed=installed):
                verdicts = reconcile(sources, targets)
                source_scopes = {s.scope for s in sources}
                extras = {t.scope for t in targets} - source_scopes
                self.assertEqual(len(verdicts), len(sources) + len(extras))
                for scope in source_scopes:
                    self.assertEqual(sum(1 for v in verdicts if v.scope == scope), 1)
                for v in verdicts:
                    if v.kind is VerdictKind.INCLUDE:
                        self.assertIsNotNone(v.observed_version)
                    if v.version_mismatch:
                        self.assertIs(v.kind, VerdictKind.INCLUDE)


class TestDerivePlan(unittest.TestCase):
    def test_derived_plan_uses_target_baseline(self) -> None:
        verdicts = reconcile(
            [_src("x_a", "1.0.0", "1.1.0"), _src("x_b", "1.0.0", "1.1.0"), _src("x_c", "1.0.0", "1.1.0")],
            [_tgt("x_a", "0.9.0"), _tgt("x_b", "1.1.0"), _tgt("x_d", "1.0.0")],
        )
        plan = derive_plan(
            verdicts,
            source_ref="https://test.service-now.com",
            created_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
        )
        self.assertEqual(plan.scopes, ["x_a"])
        item = plan.get("x_a")
        self.assertEqual(item.current_version, "0.9.0")
        self.assertEqual(item.target_version, "1.1.0")
        self.assertEqual(item.source_ref, "tgt-x_a")
        self.assertEqual(plan.metadata.source_ref, "https://test.service-now.com")

    def test_rebase_requires_source_item(self) -> None:
        extra = reconcile([], [_tgt("x_d", "1.0.0")])[0]
        with self.assertRaises(ValueError):
            rebase_item(extra)

    def test_summarize(self) -> None:
        verdicts = reconcile(
            [_src("x_a", "1.0.0", "1.1.0"), _src("x_b", "1.0.0", "1.1.0")],
            [_tgt("x_a", "0.9.0"), _tgt("x_e", "1.0.0")],
        )
        summary = summarize(verdicts)
        self.assertEqual(summary["include"], 1)
        self.assertEqual(summary["skip-not-installed"], 1)
        self.assertEqual(summary["extra-on-target"], 1)
        self.assertEqual(summary["version-mismatch"], 1)
        self.assertEqual(summary["skip-target-ahead"], 0)


if __name__ == "__main__":
    unittest.main()
