"""
Chain validator tests.

Covers the four extension rules, their evaluation order, and the
empty-chain policy.
"""

import unittest
from datetime import datetime, timedelta, timezone

from canarychain import (
    CANARY_VERSION,
    ChainTip,
    ChainValidator,
    RejectReason,
    SignedStatement,
    document_hash,
    validate_extension,
)

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def statement(days: int, previous_hash: str = "", version: str = CANARY_VERSION) -> SignedStatement:
    return SignedStatement(
        version=version,
        deadline=NOW + timedelta(days=days),
        previous_hash=previous_hash,
        creation=NOW,
    )


def tip_at(days: int, document: str = "proof-1") -> ChainTip:
    return ChainTip(document=document, statement=statement(days))


class TestEmptyChain(unittest.TestCase):

    def test_future_deadline_accepted(self):
        result = validate_extension(None, statement(30), NOW)
        self.assertTrue(result.accepted)
        self.assertIsNone(result.reason)

    def test_previous_hash_ignored_on_empty_chain(self):
        """Any previous_hash is fine when there is nothing to link to."""
        for prev in ("", "sha256:" + "0" * 64, "garbage"):
            with self.subTest(previous_hash=prev):
                self.assertTrue(validate_extension(None, statement(30, prev), NOW).accepted)

    def test_wrong_version_rejected(self):
        result = validate_extension(None, statement(30, version="v0"), NOW)
        self.assertFalse(result.accepted)
        self.assertEqual(result.reason, RejectReason.UNSUPPORTED_VERSION)
        self.assertEqual(result.details["observed"], "v0")

    def test_deadline_equal_to_now_rejected(self):
        result = validate_extension(None, statement(0), NOW)
        self.assertEqual(result.reason, RejectReason.DEADLINE_NOT_FUTURE)

    def test_past_deadline_rejected(self):
        result = validate_extension(None, statement(-1), NOW)
        self.assertEqual(result.reason, RejectReason.DEADLINE_NOT_FUTURE)

    def test_deadline_not_after_creation_rejected(self):
        """A deadline ahead of now but behind the declared creation time is refused."""
        candidate = SignedStatement(
            version=CANARY_VERSION,
            deadline=NOW + timedelta(days=30),
            creation=NOW + timedelta(days=60),
        )
        result = validate_extension(None, candidate, NOW)
        self.assertEqual(result.reason, RejectReason.DEADLINE_NOT_FUTURE)
        self.assertIn("creation", result.details)

    def test_naive_now_refused(self):
        with self.assertRaises(ValueError):
            validate_extension(None, statement(30), datetime(2026, 1, 1))


class TestExtension(unittest.TestCase):

    def setUp(self):
        self.tip = tip_at(30)
        self.link = document_hash(self.tip.document)

    def test_valid_extension_accepted(self):
        result = validate_extension(self.tip, statement(60, self.link), NOW)
        self.assertTrue(result.accepted)

    def test_equal_deadline_rejected(self):
        result = validate_extension(self.tip, statement(30, self.link), NOW)
        self.assertEqual(result.reason, RejectReason.DEADLINE_NOT_INCREASING)

    def test_earlier_deadline_rejected(self):
        result = validate_extension(self.tip, statement(10, self.link), NOW)
        self.assertEqual(result.reason, RejectReason.DEADLINE_NOT_INCREASING)

    def test_wrong_predecessor_rejected(self):
        stale = document_hash("proof-0")
        result = validate_extension(self.tip, statement(60, stale), NOW)
        self.assertEqual(result.reason, RejectReason.BROKEN_LINKAGE)
        self.assertEqual(result.details["required"], self.link)
        self.assertEqual(result.details["observed"], stale)

    def test_empty_previous_hash_rejected_on_active_chain(self):
        result = validate_extension(self.tip, statement(60, ""), NOW)
        self.assertEqual(result.reason, RejectReason.BROKEN_LINKAGE)

    def test_linkage_uses_exact_document_text(self):
        """A whitespace change in the predecessor text changes the required hash."""
        tip = tip_at(30, document='{"a":1}')
        near = document_hash('{"a": 1}')
        self.assertEqual(
            validate_extension(tip, statement(60, near), NOW).reason,
            RejectReason.BROKEN_LINKAGE
        )


class TestCheckOrder(unittest.TestCase):
    """First failing check wins."""

    def setUp(self):
        self.tip = tip_at(30)

    def test_version_before_deadline(self):
        result = validate_extension(self.tip, statement(-5, "bad", version="v9"), NOW)
        self.assertEqual(result.reason, RejectReason.UNSUPPORTED_VERSION)

    def test_future_before_monotonic(self):
        result = validate_extension(self.tip, statement(-5, "bad"), NOW)
        self.assertEqual(result.reason, RejectReason.DEADLINE_NOT_FUTURE)

    def test_monotonic_before_linkage(self):
        result = validate_extension(self.tip, statement(20, "bad"), NOW)
        self.assertEqual(result.reason, RejectReason.DEADLINE_NOT_INCREASING)

    def test_linkage_hash_not_computed_when_cheaper_check_fails(self):
        calls = []

        def counting_hash(raw):
            calls.append(raw)
            return document_hash(raw)

        validator = ChainValidator(hash_fn=counting_hash)
        validator.validate(self.tip, statement(20, "bad"), NOW)
        self.assertEqual(calls, [])


class TestRejectReason(unittest.TestCase):

    def test_codes_are_stable(self):
        self.assertEqual(
            {r.value for r in RejectReason},
            {"UNSUPPORTED_VERSION", "DEADLINE_NOT_FUTURE",
             "DEADLINE_NOT_INCREASING", "BROKEN_LINKAGE"}
        )

    def test_every_reason_has_message(self):
        for reason in RejectReason:
            self.assertTrue(reason.message)

    def test_custom_supported_version(self):
        validator = ChainValidator(supported_version="v2")
        self.assertTrue(validator.validate(None, statement(30, version="v2"), NOW).accepted)
        self.assertEqual(
            validator.validate(None, statement(30), NOW).reason,
            RejectReason.UNSUPPORTED_VERSION
        )


if __name__ == "__main__":
    unittest.main()
