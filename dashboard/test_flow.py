# test_flow.py
# The certificate request submission state machine.

import threading
import unittest
from datetime import date

from dashboard.fakes import FREE_ORG, ORG, UNREGISTERED_ORG, FakeClient, FakeGateway
from dashboard.flow import CertificateRequestFlow, Phase
from dashboard.forms import RequestForm

FEE = 10 ** 17


def valid_form(org=ORG):
    return RequestForm(organization_id=org["_id"], usn="ORGUSN01", year_of_graduation=str(date.today().year),
                       certificate_type="Transcript")


class TestCertificateRequestFlow(unittest.TestCase):

    def setUp(self):
        self.client = FakeClient()
        self.gateway = FakeGateway(fees={ORG["walletAddress"]: FEE, FREE_ORG["walletAddress"]: 0})
        self.notices = []
        self.flow = CertificateRequestFlow(self.client, self.gateway, lambda level, text: self.notices.append((level, text)))

    def test_starts_idle(self):
        self.assertIs(self.flow.state.phase, Phase.IDLE)
        self.assertFalse(self.flow.state.busy)

    def test_paid_request_transfers_then_submits(self):
        state = self.flow.submit(valid_form(), ORG)

        self.assertIs(state.phase, Phase.SUCCESS)
        self.assertEqual(self.gateway.transfers, [(ORG["walletAddress"], FEE)])
        self.assertEqual(len(self.client.created), 1)
        created = self.client.created[0]
        self.assertEqual(created["issuanceAmount"], str(FEE))
        self.assertIsInstance(created["issuanceAmount"], str)
        self.assertEqual(created["transactionHash"], state.receipt.tx_hash)
        self.assertEqual(created["yearOfGraduation"], date.today().year)
        self.assertEqual(state.fee, FEE)
        self.assertIn(("success", "Certificate request submitted successfully."), self.notices)

    def test_free_request_skips_transfer(self):
        state = self.flow.submit(valid_form(FREE_ORG), FREE_ORG)

        self.assertIs(state.phase, Phase.SUCCESS)
        self.assertEqual(self.gateway.transfers, [])
        self.assertEqual(self.client.created[0]["issuanceAmount"], "0")
        self.assertIsNone(self.client.created[0]["transactionHash"])

    def test_invalid_form_makes_no_network_calls(self):
        cases = {
            "short usn": RequestForm(ORG["_id"], "AB12", "2024", "Transcript"),
            "symbol usn": RequestForm(ORG["_id"], "ABC-12345", "2024", "Transcript"),
            "old year": RequestForm(ORG["_id"], "ORGUSN01", "1949", "Transcript"),
            "far year": RequestForm(ORG["_id"], "ORGUSN01", str(date.today().year + 11), "Transcript"),
            "no type": RequestForm(ORG["_id"], "ORGUSN01", "2024", ""),
            "no org": RequestForm("", "ORGUSN01", "2024", "Transcript"),
        }
        for name, form in cases.items():
            with self.subTest(case=name):
                state = self.flow.submit(form, ORG)
                self.assertIs(state.phase, Phase.ERROR)
                self.assertEqual(self.notices[-1][0], "error")
        self.assertEqual(self.gateway.fee_lookups, [])
        self.assertEqual(self.client.calls, [])

    def test_requires_wallet_and_contract(self):
        for gateway in (None, FakeGateway(sender_address=None), FakeGateway(ready=False)):
            with self.subTest(gateway=gateway):
                flow = CertificateRequestFlow(self.client, gateway, lambda *a: None)
                state = flow.submit(valid_form(), ORG)
                self.assertIs(state.phase, Phase.ERROR)
        self.assertEqual(self.client.calls, [])

    def test_unregistered_organization_aborts_without_zero_fallback(self):
        state = self.flow.submit(valid_form(UNREGISTERED_ORG), UNREGISTERED_ORG)

        self.assertIs(state.phase, Phase.ERROR)
        self.assertIn("not registered", state.message)
        self.assertEqual(self.gateway.transfers, [])
        self.assertEqual(self.client.created, [])

    def test_failed_transfer_never_creates_request(self):
        self.gateway.fail_transfer = True
        state = self.flow.submit(valid_form(), ORG)

        self.assertIs(state.phase, Phase.ERROR)
        self.assertTrue(state.message.startswith("Payment failed"))
        self.assertEqual(self.client.calls, [])

    def test_backend_error_is_reported(self):
        client = FakeClient(fail_with="Invalid organization selected.")
        flow = CertificateRequestFlow(client, self.gateway, lambda level, text: self.notices.append((level, text)))
        state = flow.submit(valid_form(FREE_ORG), FREE_ORG)

        self.assertIs(state.phase, Phase.ERROR)
        self.assertEqual(state.message, "Invalid organization selected.")
        self.assertEqual(self.notices[-1], ("error", "Invalid organization selected."))

    def test_second_attempt_is_refused_while_busy(self):
        entered, release = threading.Event(), threading.Event()
        gateway = self.gateway
        original_transfer = gateway.transfer

        def slow_transfer(to_address, amount):
            entered.set()
            release.wait(5)
            return original_transfer(to_address, amount)

        gateway.transfer = slow_transfer
        results = []
        worker = threading.Thread(target=lambda: results.append(self.flow.submit(valid_form(), ORG)))
        worker.start()
        self.assertTrue(entered.wait(5))

        self.assertIs(self.flow.state.phase, Phase.AWAITING_PAYMENT)
        self.assertTrue(self.flow.state.busy)
        second = self.flow.submit(valid_form(FREE_ORG), FREE_ORG)
        self.assertIs(second.phase, Phase.AWAITING_PAYMENT)
        self.assertIn(("error", "A certificate request is already being submitted."), self.notices)

        release.set()
        worker.join(5)
        self.assertIs(results[0].phase, Phase.SUCCESS)
        self.assertEqual(len(self.client.created), 1)

    def test_next_attempt_starts_fresh(self):
        self.flow.submit(RequestForm(ORG["_id"], "bad", "2024", "Transcript"), ORG)
        state = self.flow.submit(valid_form(FREE_ORG), FREE_ORG)
        self.assertIs(state.phase, Phase.SUCCESS)
        self.assertIsNone(state.receipt)


if __name__ == "__main__":
    unittest.main(verbosity=2)
