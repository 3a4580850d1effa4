import hashlib
import json
import unittest
from dataclasses import asdict
from unittest.mock import Mock

from snbatch.errors import InvalidStateError
from snbatch.models import JobHandle, RollbackCredential, digest_token
from snbatch.models.job import reveal

TOKEN = "rb-secret-token-9f3a"


class TestRollbackCredential(unittest.TestCase):
    def test_digest_is_sha256(self) -> None:
        cred = RollbackCredential(TOKEN)
        self.assertEqual(cred.digest(), hashlib.sha256(TOKEN.encode("utf-8")).hexdigest())
        self.assertEqual(cred.digest(), digest_token(TOKEN))

    def test_hint_shows_last_four_only(self) -> None:
        self.assertEqual(RollbackCredential(TOKEN).hint(), "...9f3a")

    def test_repr_and_str_do_not_leak(self) -> None:
        cred = RollbackCredential(TOKEN)
        self.assertNotIn(TOKEN, repr(cred))
        self.assertNotIn(TOKEN, str(cred))
        self.assertNotIn(TOKEN, f"{cred}")

    def test_no_public_attribute_holds_value(self) -> None:
        cred = RollbackCredential(TOKEN)
        for name in dir(cred):
            if name.startswith("_"):
                continue
            value = getattr(cred, name)
            if isinstance(value, str):
                with self.subTest(name=name):
                    self.assertNotEqual(value, TOKEN)

    def test_handle_serialization_does_not_leak(self) -> None:
        handle = JobHandle(job_id="p1", rollback=RollbackCredential(TOKEN))
        dumped = json.dumps(asdict(handle), default=str)
        self.assertNotIn(TOKEN, dumped)
        self.assertNotIn(TOKEN, repr(handle))

    def test_matches_and_equality(self) -> None:
        a = RollbackCredential(TOKEN)
        self.assertTrue(a.matches(digest_token(TOKEN)))
        self.assertFalse(a.matches(digest_token("other")))
        self.assertEqual(a, RollbackCredential(TOKEN))
        self.assertNotEqual(a, RollbackCredential("other"))

    def test_reveal_returns_raw_value(self) -> None:
        credential = RollbackCredential(TOKEN)
        self.assertEqual(reveal(credential), TOKEN)
        self.assertEqual(credential._reveal(), TOKEN)

    def test_reveal_uses_the_credential_accessor(self) -> None:
        credential = Mock(spec=RollbackCredential)
        credential._reveal.return_value = "raw"
        self.assertEqual(reveal(credential), "raw")
        credential._reveal.assert_called_once_with()

    def test_rejects_empty(self) -> None:
        with self.assertRaises(ValueError):
            RollbackCredential("")


class TestJobHandle(unittest.TestCase):
    def test_closed_handle_is_rejected(self) -> None:
        handle = JobHandle(job_id="p1")
        handle.ensure_open()
        handle.close()
        with self.assertRaises(InvalidStateError):
            handle.ensure_open()


if __name__ == "__main__":
    unittest.main()
