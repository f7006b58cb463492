"""Unit tests for InMemoryPendingStore: verifies PendingStore contract compliance."""

import threading
import unittest
from datetime import datetime, timedelta, timezone

from adapter.store.memory_pending_store import InMemoryPendingStore
from domain.model.pending import PendingSignup

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class _Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def _pending(email='alice@x.com', otp='4821', name='Alice', created_at=T0, ttl_minutes=10) -> PendingSignup:
    return PendingSignup(
        email=email,
        otp=otp,
        created_at=created_at,
        expires_at=created_at + timedelta(minutes=ttl_minutes),
        name=name,
        password_hash='hashed',
    )


class TestInMemoryPendingStore(unittest.TestCase):

    def setUp(self):
        self.clock = _Clock(T0)
        self.store = InMemoryPendingStore(clock=self.clock)

    # ── put + get ─────────────────────────────────────────────

    def test_put_and_get(self):
        record = _pending()
        self.assertTrue(self.store.put(record))
        self.assertEqual(self.store.get('alice@x.com'), record)

    def test_get_missing_returns_none(self):
        self.assertIsNone(self.store.get('nobody@x.com'))

    def test_put_overwrites_same_email(self):
        self.store.put(_pending(otp='1111', name='Alice'))
        self.store.put(_pending(otp='2222', name='Alicia'))

        stored = self.store.get('alice@x.com')
        self.assertEqual(stored.otp, '2222')
        self.assertEqual(stored.name, 'Alicia')
        self.assertEqual(len(self.store), 1)

    # ── consume ──────────────────────────────────────────────

    def test_consume_with_matching_code_removes_record(self):
        record = _pending()
        self.store.put(record)

        self.assertEqual(self.store.consume('alice@x.com', '4821'), record)
        self.assertIsNone(self.store.get('alice@x.com'))
        self.assertIsNone(self.store.consume('alice@x.com', '4821'))

    def test_consume_with_wrong_code_keeps_record(self):
        self.store.put(_pending())

        self.assertIsNone(self.store.consume('alice@x.com', '0000'))
        self.assertIsNotNone(self.store.get('alice@x.com'))

    def test_consume_requires_exact_code(self):
        self.store.put(_pending())
        self.assertIsNone(self.store.consume('alice@x.com', ' 4821 '))
        self.assertIsNone(self.store.consume('alice@x.com', '48210'))
        self.assertIsNotNone(self.store.consume('alice@x.com', '4821'))

    # ── expiry ───────────────────────────────────────────────

    def test_expired_record_is_absent(self):
        self.store.put(_pending(ttl_minutes=10))
        self.clock.now = T0 + timedelta(minutes=10)

        self.assertIsNone(self.store.get('alice@x.com'))
        self.assertIsNone(self.store.consume('alice@x.com', '4821'))
        self.assertEqual(len(self.store), 0)

    def test_put_purges_other_expired_records(self):
        self.store.put(_pending(email='old@x.com', ttl_minutes=1))
        self.clock.now = T0 + timedelta(minutes=5)
        self.store.put(_pending(email='new@x.com', created_at=self.clock.now))

        self.assertEqual(len(self.store), 1)
        self.assertIsNotNone(self.store.get('new@x.com'))

    def test_purge_expired_returns_count(self):
        self.store.put(_pending(email='a@x.com', ttl_minutes=1))
        self.store.put(_pending(email='b@x.com', ttl_minutes=1))
        self.store.put(_pending(email='c@x.com', ttl_minutes=30))
        self.clock.now = T0 + timedelta(minutes=2)

        self.assertEqual(self.store.purge_expired(), 2)
        self.assertEqual(len(self.store), 1)

    # ── discard / restore ────────────────────────────────────

    def test_discard_only_removes_same_issuance(self):
        first = _pending(otp='1111')
        second = _pending(otp='2222', created_at=T0 + timedelta(seconds=1))
        self.store.put(first)
        self.store.put(second)

        self.assertFalse(self.store.discard(first))
        self.assertEqual(self.store.get('alice@x.com'), second)
        self.assertTrue(self.store.discard(second))
        self.assertIsNone(self.store.get('alice@x.com'))

    def test_replace_swaps_same_issuance(self):
        previous = _pending(otp='1111')
        fresh = _pending(otp='2222', created_at=T0 + timedelta(seconds=1))
        self.store.put(previous)

        self.assertTrue(self.store.replace(previous, fresh))
        self.assertEqual(self.store.get('alice@x.com'), fresh)

    def test_replace_leaves_newer_signup_alone(self):
        previous = _pending(otp='1111', name='Old')
        newer = _pending(otp='3333', name='New', created_at=T0 + timedelta(seconds=2))
        self.store.put(previous)
        self.store.put(newer)

        self.assertFalse(self.store.replace(previous, _pending(otp='2222', name='Old')))
        self.assertEqual(self.store.get('alice@x.com').name, 'New')

    def test_replace_missing_record_is_refused(self):
        self.assertFalse(self.store.replace(_pending(), _pending(otp='2222')))
        self.assertIsNone(self.store.get('alice@x.com'))

    def test_restore_puts_back_consumed_record(self):
        record = _pending()
        self.store.put(record)
        consumed = self.store.consume('alice@x.com', '4821')

        self.assertTrue(self.store.restore(consumed))
        self.assertEqual(self.store.get('alice@x.com'), record)

    def test_restore_does_not_clobber_newer_signup(self):
        old = _pending(otp='1111')
        self.store.put(old)
        self.store.consume('alice@x.com', '1111')
        newer = _pending(otp='2222', created_at=T0 + timedelta(seconds=5))
        self.store.put(newer)

        self.assertFalse(self.store.restore(old))
        self.assertEqual(self.store.get('alice@x.com'), newer)

    def test_restore_skips_expired_record(self):
        record = _pending(ttl_minutes=1)
        self.clock.now = T0 + timedelta(minutes=2)

        self.assertFalse(self.store.restore(record))
        self.assertIsNone(self.store.get('alice@x.com'))

    # ── concurrency ──────────────────────────────────────────

    def test_concurrent_consume_has_exactly_one_winner(self):
        self.store.put(_pending())
        barrier = threading.Barrier(16)
        winners = []

        def worker():
            barrier.wait()
            if self.store.consume('alice@x.com', '4821') is not None:
                winners.append(threading.get_ident())

        threads = [threading.Thread(target=worker) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(len(winners), 1)

    def test_concurrent_puts_never_mix_payloads(self):
        """Code and profile always come from the same put()."""
        barrier = threading.Barrier(8)

        def worker(i: int):
            barrier.wait()
            for _ in range(50):
                self.store.put(_pending(otp=f'{1000 + i}', name=f'user-{i}'))

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        stored = self.store.get('alice@x.com')
        self.assertEqual(stored.name, f'user-{int(stored.otp) - 1000}')


if __name__ == '__main__':
    unittest.main()
