"""
Chain guard tests.

Covers state transitions, commit-after-persist, no partial state on any
failed proposal, and reader/writer concurrency.
"""

import threading
import time
import unittest
from datetime import datetime, timedelta, timezone
from typing import List

from canarychain import (
    ChainGuard,
    ChainState,
    ChainTip,
    ExtensionOutcome,
    ProofStore,
    RejectReason,
    SignedStatement,
    StoreError,
    document_hash,
)

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


class MemoryProofStore(ProofStore):
    """In-memory store that can be told to fail or to stall."""

    def __init__(self, delay: float = 0.0):
        self.stored: List[str] = []
        self.fail = False
        self.delay = delay

    def store(self, document, deadline):
        if self.delay:
            time.sleep(self.delay)
        if self.fail:
            raise StoreError("disk full")
        self.stored.append(document)

    def documents(self):
        return list(self.stored)


def statement(days: int, previous: str = "") -> SignedStatement:
    return SignedStatement(version="v1", deadline=NOW + timedelta(days=days),
                           previous_hash=previous, creation=NOW)


def document(days: int) -> str:
    return f"proof-deadline-{days}"


class TestStateTransitions(unittest.TestCase):

    def setUp(self):
        self.store = MemoryProofStore()
        self.guard = ChainGuard(self.store)

    def test_starts_empty(self):
        self.assertIsNone(self.guard.read_tip())
        self.assertEqual(self.guard.state, ChainState.EMPTY)
        self.assertFalse(self.guard.is_active())

    def test_first_canary_activates_chain(self):
        result = self.guard.propose_extension(statement(30), document(30), NOW)

        self.assertTrue(result.is_accepted())
        self.assertEqual(self.guard.state, ChainState.ACTIVE)
        tip = self.guard.read_tip()
        self.assertEqual(tip.document, document(30))
        self.assertEqual(tip.statement, statement(30))
        self.assertEqual(result.tip, tip)
        self.assertEqual(self.store.stored, [document(30)])

    def test_monotonic_sequence(self):
        prev = ""
        for days in (30, 60, 90, 120):
            result = self.guard.propose_extension(statement(days, prev), document(days), NOW)
            self.assertTrue(result.is_accepted(), result)
            prev = document_hash(document(days))

        deadlines = [NOW + timedelta(days=d) for d in (30, 60, 90, 120)]
        self.assertEqual(deadlines, sorted(deadlines))
        self.assertEqual(self.guard.read_tip().deadline, NOW + timedelta(days=120))
        self.assertEqual(len(self.store.stored), 4)

    def test_initial_tip_from_recovery(self):
        tip = ChainTip(document(30), statement(30))
        guard = ChainGuard(self.store, tip=tip)
        self.assertEqual(guard.state, ChainState.ACTIVE)
        result = guard.propose_extension(
            statement(60, document_hash(document(30))), document(60), NOW)
        self.assertTrue(result.is_accepted())

    def test_default_now_is_current_time(self):
        future = datetime.now(timezone.utc) + timedelta(days=1)
        past = datetime.now(timezone.utc) - timedelta(days=1)
        ok = SignedStatement(version="v1", deadline=future)
        stale = SignedStatement(version="v1", deadline=past)

        self.assertEqual(
            self.guard.propose_extension(stale, "stale").reason,
            RejectReason.DEADLINE_NOT_FUTURE
        )
        self.assertTrue(self.guard.propose_extension(ok, "ok").is_accepted())


class TestNoPartialState(unittest.TestCase):
    """A failed proposal, for any reason, leaves the tip exactly as it was."""

    def setUp(self):
        self.store = MemoryProofStore()
        self.guard = ChainGuard(self.store)
        self.guard.propose_extension(statement(30), document(30), NOW)
        self.before = self.guard.read_tip()
        self.link = document_hash(document(30))

    def assertUnchanged(self):
        self.assertEqual(self.guard.read_tip(), self.before)
        self.assertEqual(self.store.stored, [document(30)])

    def test_wrong_version(self):
        bad = SignedStatement(version="v0", deadline=NOW + timedelta(days=60),
                              previous_hash=self.link)
        result = self.guard.propose_extension(bad, "x", NOW)
        self.assertEqual(result.outcome, ExtensionOutcome.REJECTED)
        self.assertEqual(result.reason, RejectReason.UNSUPPORTED_VERSION)
        self.assertUnchanged()

    def test_equal_deadline(self):
        result = self.guard.propose_extension(statement(30, self.link), "x", NOW)
        self.assertEqual(result.reason, RejectReason.DEADLINE_NOT_INCREASING)
        self.assertUnchanged()

    def test_stale_predecessor(self):
        result = self.guard.propose_extension(
            statement(60, document_hash("proof-0")), "x", NOW)
        self.assertEqual(result.reason, RejectReason.BROKEN_LINKAGE)
        self.assertUnchanged()

    def test_persist_failure(self):
        self.store.fail = True
        result = self.guard.propose_extension(statement(60, self.link), document(60), NOW)

        self.assertEqual(result.outcome, ExtensionOutcome.PERSIST_FAILED)
        self.assertIn("disk full", result.error)
        self.assertIsNone(result.tip)
        self.assertUnchanged()


class TestCommitAfterPersist(unittest.TestCase):

    def test_retry_after_store_recovers(self):
        store = MemoryProofStore()
        guard = ChainGuard(store)
        guard.propose_extension(statement(30), document(30), NOW)
        candidate = statement(60, document_hash(document(30)))

        store.fail = True
        first = guard.propose_extension(candidate, document(60), NOW)
        self.assertEqual(first.outcome, ExtensionOutcome.PERSIST_FAILED)
        self.assertEqual(guard.read_tip().document, document(30))

        store.fail = False
        second = guard.propose_extension(candidate, document(60), NOW)
        self.assertTrue(second.is_accepted())
        self.assertEqual(guard.read_tip().document, document(60))
        self.assertEqual(store.stored, [document(30), document(60)])

    def test_store_not_called_on_rejection(self):
        store = MemoryProofStore()
        store.fail = True
        guard = ChainGuard(store)
        result = guard.propose_extension(statement(-1), "x", NOW)
        self.assertEqual(result.outcome, ExtensionOutcome.REJECTED)

    def test_unexpected_store_exception_propagates(self):
        class BrokenStore(MemoryProofStore):
            def store(self, document, deadline):
                raise RuntimeError("bug")

        guard = ChainGuard(BrokenStore())
        with self.assertRaises(RuntimeError):
            guard.propose_extension(statement(30), "x", NOW)
        self.assertIsNone(guard.read_tip())


class TestConcurrency(unittest.TestCase):

    def test_readers_never_see_torn_or_unpersisted_tip(self):
        store = MemoryProofStore(delay=0.002)
        guard = ChainGuard(store)
        expected = {}
        errors = []
        done = threading.Event()

        def reader():
            while not done.is_set():
                tip = guard.read_tip()
                if tip is None:
                    continue
                if expected.get(tip.document) != tip.statement:
                    errors.append(("torn", tip.document))
                if tip.document not in store.stored:
                    errors.append(("unpersisted", tip.document))

        readers = [threading.Thread(target=reader) for _ in range(4)]
        for t in readers:
            t.start()

        prev = ""
        for days in range(1, 41):
            st = statement(days, prev)
            expected[document(days)] = st
            self.assertTrue(guard.propose_extension(st, document(days), NOW).is_accepted())
            prev = document_hash(document(days))

        done.set()
        for t in readers:
            t.join()

        self.assertEqual(errors, [])
        self.assertEqual(guard.read_tip().document, document(40))

    def test_competing_writers_only_one_extends_same_tip(self):
        store = MemoryProofStore(delay=0.01)
        guard = ChainGuard(store)
        guard.propose_extension(statement(30), document(30), NOW)
        link = document_hash(document(30))
        barrier = threading.Barrier(8)
        results = []
        lock = threading.Lock()

        def writer(i):
            st = statement(60 + i, link)
            barrier.wait()
            r = guard.propose_extension(st, f"fork-{i}", NOW)
            with lock:
                results.append(r)

        threads = [threading.Thread(target=writer, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        accepted = [r for r in results if r.is_accepted()]
        self.assertEqual(len(accepted), 1)
        for r in results:
            if not r.is_accepted():
                self.assertIn(r.reason, (RejectReason.BROKEN_LINKAGE,
                                         RejectReason.DEADLINE_NOT_INCREASING))
        self.assertEqual(len(store.stored), 2)
        self.assertEqual(guard.read_tip(), accepted[0].tip)


if __name__ == "__main__":
    unittest.main()
