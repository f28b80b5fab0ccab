# dashboard/flow.py
"""
Certificate request submission as an explicit state machine.

    IDLE -> VALIDATING -> FEE_LOOKUP -> AWAITING_PAYMENT -> SUBMITTING -> SUCCESS
                 |             |               |                 |
                 +-------------+---------------+-----------------+--> ERROR

Only one attempt runs at a time. Each attempt ends in SUCCESS or ERROR;
the next call to submit() starts over from there.
"""
import enum
import logging
import threading
from dataclasses import dataclass, replace
from typing import Callable, Dict, Optional

from dashboard.api_client import ApiError, WorkflowClient
from dashboard.chain import ChainError, PaymentGateway, TransferReceipt, format_fee
from dashboard.forms import FormError, RequestForm

logger = logging.getLogger(__name__)


class Phase(enum.Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    FEE_LOOKUP = "fee_lookup"
    AWAITING_PAYMENT = "awaiting_payment"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    ERROR = "error"


BUSY_PHASES = {Phase.VALIDATING, Phase.FEE_LOOKUP, Phase.AWAITING_PAYMENT, Phase.SUBMITTING}


@dataclass(frozen=True)
class FlowState:
    phase: Phase = Phase.IDLE
    message: Optional[str] = None
    fee: Optional[int] = None
    receipt: Optional[TransferReceipt] = None
    request: Optional[Dict] = None

    @property
    def busy(self) -> bool:
        return self.phase in BUSY_PHASES


# (level, text) sink for transient user-facing notices.
Notify = Callable[[str, str], None]


class CertificateRequestFlow:
    def __init__(self, client: WorkflowClient, gateway: Optional[PaymentGateway], notify: Notify,
                 currency: str = "CELO"):
        self.client = client
        self.gateway = gateway
        self.notify = notify
        self.currency = currency
        self._state = FlowState()
        self._attempt = threading.Lock()

    @property
    def state(self) -> FlowState:
        return self._state

    def _move(self, phase: Phase, **fields) -> FlowState:
        previous = self._state
        self._state = FlowState(
            phase=phase,
            message=fields.get("message"),
            fee=fields.get("fee", previous.fee),
            receipt=fields.get("receipt", previous.receipt),
            request=fields.get("request"),
        )
        logger.debug(f"Request flow {previous.phase.value} -> {phase.value}")
        return self._state

    def _fail(self, message: str) -> FlowState:
        self.notify("error", message)
        return self._move(Phase.ERROR, message=message)

    def submit(self, form: RequestForm, organization: Optional[Dict]) -> FlowState:
        if not self._attempt.acquire(blocking=False):
            self.notify("error", "A certificate request is already being submitted.")
            return self._state
        try:
            self._state = FlowState()
            return self._run(replace(form), organization)
        finally:
            self._attempt.release()

    def _run(self, form: RequestForm, organization: Optional[Dict]) -> FlowState:
        self._move(Phase.VALIDATING)
        try:
            form.validate()
        except FormError as e:
            return self._fail(str(e))
        if not organization:
            return self._fail("Selected organization not found.")

        if self.gateway is None or self.gateway.sender_address is None:
            return self._fail("Please connect your wallet and ensure it is ready.")
        if not self.gateway.is_ready():
            return self._fail("Blockchain contract not loaded. Ensure wallet is connected and on the right network.")

        self._move(Phase.FEE_LOOKUP)
        try:
            fee = self.gateway.get_issuance_fee(organization["walletAddress"])
        except ChainError as e:
            return self._fail(str(e))
        self._move(Phase.FEE_LOOKUP, fee=fee)

        receipt = None
        if fee > 0:
            self._move(Phase.AWAITING_PAYMENT)
            self.notify("info", f"Initiating payment of {format_fee(fee)} {self.currency} to {organization['name']}...")
            try:
                receipt = self.gateway.transfer(organization["walletAddress"], fee)
            except ChainError as e:
                logger.error(f"Payment to {organization['walletAddress']} failed: {e}")
                return self._fail(f"Payment failed: {e}. Request not submitted.")
            self._move(Phase.AWAITING_PAYMENT, receipt=receipt)
            self.notify("success", f"Payment of {format_fee(fee)} {self.currency} successful! Transaction Hash: {receipt.tx_hash}")
        else:
            self.notify("info", "No issuance fee required. Proceeding with request submission.")

        self._move(Phase.SUBMITTING)
        try:
            body = self.client.request_certificate(
                organization_id=organization["_id"],
                usn=form.usn,
                year_of_graduation=form.year,
                certificate_type=form.certificate_type,
                issuance_amount=str(receipt.amount if receipt else 0),
                transaction_hash=receipt.tx_hash if receipt else None,
            )
        except ApiError as e:
            return self._fail(e.message or "Failed to submit request.")

        message = body.get("message") or "Certificate request submitted."
        self.notify("success", message)
        return self._move(Phase.SUCCESS, message=message, request=body.get("request"))
