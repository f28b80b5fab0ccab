# dashboard/fakes.py
# In-memory stand-ins for the backend client and the chain, used by the dashboard tests.

from concurrent.futures import Executor, Future

from dashboard.api_client import ApiError
from dashboard.chain import OrganizationNotRegistered, PaymentGateway, TransferFailed, TransferReceipt

ORG = {"_id": "1", "name": "Org Test Org", "walletAddress": "0xorgtestorg"}
FREE_ORG = {"_id": "2", "name": "Free College", "walletAddress": "0xfreecollege"}
UNREGISTERED_ORG = {"_id": "3", "name": "Off-chain Institute", "walletAddress": "0xoffchain"}


class FakeGateway(PaymentGateway):
    def __init__(self, fees=None, sender_address="0xorgteststudent", ready=True, fail_transfer=False):
        self.fees = dict(fees or {})
        self.sender_address = sender_address
        self.ready = ready
        self.fail_transfer = fail_transfer
        self.fee_lookups = []
        self.transfers = []

    def is_ready(self):
        return self.ready

    def get_issuance_fee(self, org_address):
        self.fee_lookups.append(org_address)
        if org_address not in self.fees:
            raise OrganizationNotRegistered("Selected organization not found on blockchain or not registered.")
        return self.fees[org_address]

    def transfer(self, to_address, amount):
        self.transfers.append((to_address, amount))
        if self.fail_transfer:
            raise TransferFailed("user rejected transaction")
        return TransferReceipt(tx_hash="0x" + "12" * 32, amount=amount, block_number=7)


class FakeClient:
    base_url = "http://backend.test"

    def __init__(self, organizations=None, fail_with=None):
        self.token = "token"
        self.organizations = list(organizations or [ORG, FREE_ORG, UNREGISTERED_ORG])
        self.fail_with = fail_with
        self.created = []
        self.calls = []
        self.logged_out = False

    def get_organizations(self):
        self.calls.append("organizations")
        return list(self.organizations)

    def get_student_requests(self):
        self.calls.append("student-requests")
        return list(self.created)

    def get_received_certificates(self):
        self.calls.append("received-certificates")
        return [r for r in self.created if r.get("status") == "issued"]

    def request_certificate(self, **kwargs):
        self.calls.append("request-certificate")
        if self.fail_with:
            raise ApiError(self.fail_with, 400)
        org = next(o for o in self.organizations if o["_id"] == kwargs["organization_id"])
        request = {
            "_id": str(len(self.created) + 1),
            "organization": org,
            "usn": kwargs["usn"],
            "yearOfGraduation": kwargs["year_of_graduation"],
            "certificateType": kwargs["certificate_type"],
            "issuanceAmount": kwargs["issuance_amount"],
            "transactionHash": kwargs.get("transaction_hash"),
            "status": "pending",
        }
        self.created.append(request)
        return {"message": "Certificate request submitted successfully.", "request": request}

    def logout(self):
        self.logged_out = True
        self.token = None


class ManualExecutor(Executor):
    """Starts work on submit but only finishes it when the test says so."""

    def __init__(self):
        self.jobs = []

    def submit(self, fn, *args, **kwargs):
        future = Future()
        future.set_running_or_notify_cancel()
        self.jobs.append((future, fn, args, kwargs))
        return future

    def finish(self, index):
        future, fn, args, kwargs = self.jobs[index]
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)

