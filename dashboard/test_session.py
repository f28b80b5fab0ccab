# test_session.py
# The student dashboard controller: data loading, tabs, the request form and notices.

import threading
import unittest
from datetime import date

from dashboard.fakes import FREE_ORG, ORG, FakeClient, FakeGateway, ManualExecutor
from dashboard.fees import FeeTracker
from dashboard.flow import Phase
from dashboard.session import NoticeBoard, StudentDashboard


STUDENT = {"_id": "9", "name": "Org Test Student", "userType": "student", "email": "s@example.com",
           "walletAddress": "0xorgteststudent", "isBlockchainRegistered": False}


class HeldGateway(FakeGateway):
    """Holds every transfer until `release` is set."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.paying = threading.Event()
        self.release = threading.Event()

    def transfer(self, to_address, amount):
        self.paying.set()
        self.release.wait(5)
        return super().transfer(to_address, amount)


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


class TestStudentDashboard(unittest.TestCase):

    def setUp(self):
        self.client = FakeClient()
        self.gateway = FakeGateway(fees={ORG["walletAddress"]: 10 ** 17, FREE_ORG["walletAddress"]: 0})
        self.executor = ManualExecutor()
        self.dashboard = StudentDashboard(STUDENT, self.client, gateway=self.gateway,
                                          fee_tracker=FeeTracker(self.gateway, executor=self.executor))

    def test_refresh_loads_everything_for_students(self):
        self.dashboard.refresh()
        self.assertEqual(self.client.calls, ["organizations", "student-requests", "received-certificates"])
        self.assertEqual(len(self.dashboard.organizations), 3)

    def test_refresh_skips_non_students(self):
        dashboard = StudentDashboard(dict(STUDENT, userType="organization"), self.client)
        dashboard.refresh()
        self.assertEqual(self.client.calls, [])

    def test_tab_switch_refreshes_the_tab(self):
        self.dashboard.switch_tab("requests")
        self.dashboard.switch_tab("certificates")
        self.dashboard.switch_tab("account")
        self.assertEqual(self.client.calls, ["student-requests", "received-certificates"])
        with self.assertRaises(ValueError):
            self.dashboard.switch_tab("admin")

    def test_selecting_organization_shows_fee(self):
        self.dashboard.fetch_organizations()
        self.dashboard.select_organization(ORG["_id"])
        self.assertEqual(self.dashboard.fee_notice(), "Loading issuance fee...")
        self.executor.finish(0)
        self.assertEqual(self.dashboard.fee_notice(), "Issuance Fee for this Organization: 0.1 CELO")

    def test_successful_request_clears_form_and_refreshes(self):
        self.dashboard.fetch_organizations()
        self.dashboard.select_organization(ORG["_id"])
        self.client.calls.clear()

        state = self.dashboard.request_certificate("ORGUSN01", date.today().year, "Transcript")

        self.assertIs(state.phase, Phase.SUCCESS)
        self.assertEqual(self.client.calls, ["request-certificate", "student-requests", "received-certificates"])
        self.assertEqual(len(self.dashboard.student_requests), 1)
        self.assertEqual(self.dashboard.form.organization_id, "")
        self.assertEqual(self.dashboard.form.usn, "")
        self.assertIsNone(self.dashboard.fee_quote.organization_id)

    def test_failed_request_keeps_form(self):
        self.dashboard.fetch_organizations()
        self.dashboard.select_organization(ORG["_id"])
        state = self.dashboard.request_certificate("bad", 2024, "Transcript")

        self.assertIs(state.phase, Phase.ERROR)
        self.assertEqual(self.dashboard.form.organization_id, ORG["_id"])
        self.assertEqual(self.dashboard.form.usn, "bad")
        self.assertIn("USN", self.dashboard.notices.active()[-1].text)

    def test_refused_submit_leaves_paid_attempt_intact(self):
        gateway = HeldGateway(fees={ORG["walletAddress"]: 10 ** 17})
        dashboard = StudentDashboard(STUDENT, self.client, gateway=gateway,
                                     fee_tracker=FeeTracker(gateway, executor=ManualExecutor()))
        dashboard.fetch_organizations()
        dashboard.select_organization(ORG["_id"])

        results = []
        worker = threading.Thread(target=lambda: results.append(
            dashboard.request_certificate("GOODUSN1", 2025, "Transcript")))
        worker.start()
        self.assertTrue(gateway.paying.wait(5))

        refused = dashboard.request_certificate("bad!", "abc", "Award")
        self.assertIs(refused.phase, Phase.AWAITING_PAYMENT)
        self.assertEqual(dashboard.form.usn, "GOODUSN1")

        gateway.release.set()
        worker.join(5)
        self.assertFalse(worker.is_alive())

        self.assertIs(results[0].phase, Phase.SUCCESS)
        self.assertEqual(len(self.client.created), 1)
        created = self.client.created[0]
        self.assertEqual((created["usn"], created["yearOfGraduation"], created["certificateType"]),
                         ("GOODUSN1", 2025, "Transcript"))
        self.assertEqual(created["issuanceAmount"], str(10 ** 17))
        self.assertEqual(len(gateway.transfers), 1)

    def test_can_submit_needs_wallet_and_fields(self):
        self.dashboard.fetch_organizations()
        self.assertFalse(self.dashboard.can_submit())
        self.dashboard.select_organization(FREE_ORG["_id"])
        self.dashboard.form.usn = "ORGUSN01"
        self.dashboard.form.year_of_graduation = "2024"
        self.dashboard.form.certificate_type = "Award"
        self.assertTrue(self.dashboard.can_submit())

        self.dashboard.gateway = None
        self.assertFalse(self.dashboard.can_submit())

    def test_search_filters_request_rows(self):
        self.dashboard.fetch_organizations()
        self.dashboard.select_organization(FREE_ORG["_id"])
        self.dashboard.request_certificate("FIRST0001", 2024, "Award")
        self.dashboard.select_organization(FREE_ORG["_id"])
        self.dashboard.request_certificate("SECOND001", 2024, "Transcript")

        self.dashboard.search_term = "second"
        self.assertEqual([r["USN"] for r in self.dashboard.request_rows()], ["SECOND001"])

    def test_account_summary(self):
        summary = self.dashboard.account_summary()
        self.assertEqual(summary["Wallet Status"], "Connected (0xorgt...dent)")
        self.assertEqual(summary["Blockchain Registered"], "No")

        summary = StudentDashboard(STUDENT, self.client).account_summary()
        self.assertEqual(summary["Wallet Status"], "Disconnected")
        self.assertEqual(summary["Wallet"], "0xorgteststudent")

    def test_logout(self):
        self.dashboard.logout()
        self.assertTrue(self.client.logged_out)
        self.assertIsNone(self.dashboard.user)


class TestNoticeBoard(unittest.TestCase):

    def test_notices_expire(self):
        clock = FakeClock()
        seen = []
        board = NoticeBoard(ttl=3, clock=clock, listener=seen.append)
        board.push("info", "first")
        clock.now += 2
        board.push("error", "second")
        self.assertEqual([n.text for n in board.active()], ["first", "second"])

        clock.now += 1.5
        self.assertEqual([n.text for n in board.active()], ["second"])
        clock.now += 2
        self.assertEqual(board.active(), [])
        self.assertEqual([n.level for n in seen], ["info", "error"])


if __name__ == "__main__":
    unittest.main(verbosity=2)
