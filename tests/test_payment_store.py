import unittest
from decimal import Decimal

from payment_store import (
    KIND_DEPOSIT,
    KIND_WITHDRAWAL,
    DuplicateTransaction,
    TransactionStore,
    TransactionStoreError,
    UnknownTransaction,
)


class TestTransactionStore(unittest.TestCase):

    def test__record__then_lookup_returns_entry(self):
        store = TransactionStore()
        store.record(7, 55, Decimal("1.23"))

        tx = store.lookup(7)
        self.assertEqual(7, tx.tx_id)
        self.assertEqual(55, tx.client_id)
        self.assertEqual(Decimal("1.23"), tx.amount)
        self.assertEqual(KIND_DEPOSIT, tx.kind)
        self.assertFalse(tx.disputed)
        self.assertFalse(tx.charged_back)
        self.assertIn(7, store)
        self.assertEqual(1, len(store))

    def test__lookup_unknown__returns_none(self):
        self.assertIsNone(TransactionStore().lookup(1))

    def test__record_duplicate_tx_id__raises_and_keeps_original(self):
        store = TransactionStore()
        store.record(1, 55, Decimal("1.23"))
        with self.assertRaises(DuplicateTransaction) as test_exc:
            store.record(1, 66, Decimal("9.99"), KIND_WITHDRAWAL)

        self.assertEqual(1, test_exc.exception.tx_id)
        self.assertEqual("duplicate tx_id: 1", str(test_exc.exception))
        self.assertEqual(55, store.lookup(1).client_id)
        self.assertEqual(Decimal("1.23"), store.lookup(1).amount)

    def test__dispute_lifecycle__flags_follow_marks(self):
        store = TransactionStore()
        store.record(1, 55, Decimal("1.23"))

        store.mark_disputed(1)
        self.assertTrue(store.lookup(1).disputed)

        store.mark_resolved(1)
        self.assertFalse(store.lookup(1).disputed)
        self.assertFalse(store.lookup(1).charged_back)

        store.mark_disputed(1)
        store.mark_charged_back(1)
        self.assertFalse(store.lookup(1).disputed)
        self.assertTrue(store.lookup(1).charged_back)

    def test__marks_on_unknown_tx__raise(self):
        store = TransactionStore()
        for mark in (store.mark_disputed, store.mark_resolved, store.mark_charged_back):
            with self.assertRaises(UnknownTransaction):
                mark(404)

        # both store errors share a base class
        self.assertTrue(issubclass(UnknownTransaction, TransactionStoreError))
        self.assertTrue(issubclass(DuplicateTransaction, TransactionStoreError))
