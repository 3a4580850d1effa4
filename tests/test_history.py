import json
import os
import stat
import tempfile
import unittest

from snbatch.errors import InvalidArgumentError
from snbatch.history import HistoryStore, build_install_entry, build_rollback_entry
from snbatch.models import (
    InstallResult,
    ItemResult,
    PackageItem,
    RollbackCredential,
    RollbackOutcome,
    RollbackResult,
)

TOKEN = "history-token-4242"


def _items():
    return [PackageItem(scope="x_a", name="A", current_version="1.0.0", target_version="1.1.0")]


def _batch_result() -> InstallResult:
    cred = RollbackCredential(TOKEN)
    return InstallResult(
        mode="batch",
        results=[ItemResult(item=_items()[0], status="succeeded")],
        job_ids=["batch-1"],
        rollback_digest=cred.digest(),
        rollback_hint=cred.hint(),
    )


class TestHistoryStore(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.path = os.path.join(self._tmp.name, ".snbatch", "history.json")
        self.store = HistoryStore(self.path)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_empty_when_missing(self) -> None:
        self.assertEqual(self.store.entries(), [])

    def test_append_restricted_permissions(self) -> None:
        self.store.append({"action": "install"})
        self.assertEqual(stat.S_IMODE(os.stat(self.path).st_mode), 0o600)
        self.assertEqual(stat.S_IMODE(os.stat(os.path.dirname(self.path)).st_mode), 0o700)

    def test_entries_are_json_lines(self) -> None:
        self.store.append({"action": "install", "id": "a"})
        self.store.append({"action": "rollback", "id": "b"})
        with open(self.path, encoding="utf-8") as f:
            lines = f.read().splitlines()
        self.assertEqual([json.loads(line)["id"] for line in lines], ["a", "b"])
        self.assertEqual([e["id"] for e in self.store.entries()], ["a", "b"])

    def test_corrupt_lines_skipped(self) -> None:
        self.store.append({"id": "a"})
        with open(self.path, "a", encoding="utf-8") as f:
            f.write("{oops\n\n")
        self.store.append({"id": "b"})
        with self.assertLogs("snbatch.history", level="WARNING"):
            entries = self.store.entries()
        self.assertEqual([e["id"] for e in entries], ["a", "b"])

    def test_raw_token_rejected(self) -> None:
        with self.assertRaises(InvalidArgumentError):
            self.store.append({"action": "install", "rollbackToken": TOKEN})

    def test_install_entry_stores_digest_only(self) -> None:
        entry = build_install_entry(
            _batch_result(),
            _items(),
            instance="https://dev.service-now.com",
            instance_host="dev.service-now.com",
            profile="dev",
        )
        self.store.append(entry)
        with open(self.path, encoding="utf-8") as f:
            raw = f.read()
        self.assertNotIn(TOKEN, raw)
        self.assertEqual(entry["rollbackTokenHint"], "...4242")
        self.assertEqual(entry["result"], "success")
        self.assertEqual(entry["packages"], [{"scope": "x_a", "from": "1.0.0", "to": "1.1.0"}])

    def test_find_by_token_and_id(self) -> None:
        entry = build_install_entry(
            _batch_result(), _items(), instance="https://a", instance_host="a"
        )
        self.store.append({"action": "install", "id": "seq", "rollbackVersions": {"x_a": "1.0.0"}})
        self.store.append(entry)

        self.assertEqual([e["id"] for e in self.store.rollback_eligible()], [entry["id"]])
        self.assertEqual(self.store.find_by_token(TOKEN)["id"], entry["id"])
        self.assertEqual(self.store.find_by_token(RollbackCredential(TOKEN))["id"], entry["id"])
        self.assertIsNone(self.store.find_by_token("other"))
        self.assertEqual(self.store.find_by_id(entry["id"][:8])["id"], entry["id"])
        self.assertIsNone(self.store.find_by_id("zzzz"))

    def test_sequential_entry_records_versions(self) -> None:
        result = InstallResult(
            mode="sequential",
            results=[ItemResult(item=_items()[0], status="succeeded")],
            rollback_versions={"x_a": "1.0.0"},
        )
        entry = build_install_entry(result, _items(), instance="https://a", instance_host="a")
        self.assertEqual(entry["rollbackVersions"], {"x_a": "1.0.0"})
        self.assertNotIn("rollbackTokenHash", entry)

    def test_rollback_entry(self) -> None:
        result = RollbackResult(
            mode="batch", outcomes=[RollbackOutcome(job_id="rb-1", succeeded=True)], rollback_hint="...4242"
        )
        entry = build_rollback_entry(
            result, instance="https://a", instance_host="a", source_entry_id="e1"
        )
        self.assertEqual(entry["action"], "rollback")
        self.assertEqual(entry["jobIds"], ["rb-1"])
        self.assertEqual(entry["sourceEntryId"], "e1")
        self.assertNotIn("rollbackToken", entry)


if __name__ == "__main__":
    unittest.main()
