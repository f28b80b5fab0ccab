# test_fees.py
# Fee lookups follow the current organization selection; late answers for an
# earlier selection are dropped.

import threading
import unittest
from concurrent.futures import ThreadPoolExecutor

from dashboard.fakes import FREE_ORG, ORG, UNREGISTERED_ORG, FakeGateway, ManualExecutor
from dashboard.fees import FeeTracker


class TestFeeTracker(unittest.TestCase):

    def setUp(self):
        self.gateway = FakeGateway(fees={ORG["walletAddress"]: 5 * 10 ** 16, FREE_ORG["walletAddress"]: 0})
        self.executor = ManualExecutor()
        self.tracker = FeeTracker(self.gateway, executor=self.executor)

    def test_selection_loads_fee(self):
        self.tracker.select(ORG)
        self.assertTrue(self.tracker.quote.loading)
        self.assertEqual(self.tracker.quote.organization_id, ORG["_id"])

        self.executor.finish(0)
        quote = self.tracker.quote
        self.assertFalse(quote.loading)
        self.assertEqual(quote.fee, 5 * 10 ** 16)
        self.assertIsNone(quote.error)

    def test_unregistered_organization_reports_error(self):
        self.tracker.select(UNREGISTERED_ORG)
        self.executor.finish(0)
        quote = self.tracker.quote
        self.assertIsNone(quote.fee)
        self.assertIn("not registered", quote.error)

    def test_stale_lookup_does_not_overwrite_new_selection(self):
        self.tracker.select(ORG)
        self.tracker.select(FREE_ORG)

        self.executor.finish(1)
        self.assertEqual(self.tracker.quote.organization_id, FREE_ORG["_id"])
        self.assertEqual(self.tracker.quote.fee, 0)

        # The first lookup answers late and is ignored.
        self.executor.finish(0)
        self.assertEqual(self.tracker.quote.organization_id, FREE_ORG["_id"])
        self.assertEqual(self.tracker.quote.fee, 0)

    def test_stale_lookup_ignored_while_new_one_is_loading(self):
        self.tracker.select(ORG)
        self.tracker.select(FREE_ORG)
        self.executor.finish(0)
        self.assertTrue(self.tracker.quote.loading)
        self.assertEqual(self.tracker.quote.organization_id, FREE_ORG["_id"])

    def test_clearing_selection_resets_quote(self):
        self.tracker.select(ORG)
        self.tracker.select(None)
        self.executor.finish(0)
        quote = self.tracker.quote
        self.assertIsNone(quote.organization_id)
        self.assertIsNone(quote.fee)
        self.assertFalse(quote.loading)

    def test_no_lookup_without_ready_wallet(self):
        for gateway in (None, FakeGateway(ready=False)):
            with self.subTest(gateway=gateway):
                tracker = FeeTracker(gateway, executor=self.executor)
                self.assertIsNone(tracker.select(ORG))
                self.assertFalse(tracker.quote.loading)
        self.assertEqual(self.executor.jobs, [])

    def test_queued_lookup_is_cancelled_on_reselect(self):
        gate = threading.Event()
        with ThreadPoolExecutor(max_workers=1) as pool:
            pool.submit(gate.wait, 5)
            tracker = FeeTracker(self.gateway, executor=pool)
            first = tracker.select(ORG)
            second = tracker.select(FREE_ORG)
            self.assertTrue(first.cancelled())
            gate.set()
            self.assertEqual(second.result(timeout=5), 0)
        self.assertEqual(self.gateway.fee_lookups, [FREE_ORG["walletAddress"]])


if __name__ == "__main__":
    unittest.main(verbosity=2)
