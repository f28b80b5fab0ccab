# dashboard/session.py
import logging
import time
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional

from dashboard.api_client import ApiError, WorkflowClient
from dashboard.chain import PaymentGateway
from dashboard.config import DashboardConfig
from dashboard.fees import FeeQuote, FeeTracker
from dashboard.flow import CertificateRequestFlow, FlowState, Phase
from dashboard.forms import RequestForm
from dashboard import views

logger = logging.getLogger(__name__)

TABS = ("account", "request", "requests", "certificates")


@dataclass
class Notice:
    level: str
    text: str
    created_at: float = field(default_factory=time.monotonic)


class NoticeBoard:
    """Transient notices; each one disappears `ttl` seconds after it was pushed.

    `listener`, when given, sees every notice as it is pushed.
    """

    def __init__(self, ttl: float = 3, clock: Callable[[], float] = time.monotonic,
                 listener: Optional[Callable[[Notice], None]] = None):
        self.ttl = ttl
        self.clock = clock
        self.listener = listener
        self._notices: List[Notice] = []

    def push(self, level: str, text: str) -> None:
        log = logger.error if level == "error" else logger.info
        log(text)
        notice = Notice(level, text, self.clock())
        self._notices.append(notice)
        if self.listener is not None:
            self.listener(notice)

    def active(self) -> List[Notice]:
        now = self.clock()
        self._notices = [n for n in self._notices if now - n.created_at < self.ttl]
        return list(self._notices)


class StudentDashboard:
    def __init__(self, user: Dict, client: WorkflowClient, gateway: Optional[PaymentGateway] = None,
                 config=DashboardConfig, fee_tracker: Optional[FeeTracker] = None,
                 notices: Optional[NoticeBoard] = None):
        self.user = user
        self.client = client
        self.gateway = gateway
        self.config = config
        self.notices = notices or NoticeBoard(ttl=config.NOTICE_TTL_SECONDS)
        self.fees = fee_tracker or FeeTracker(gateway, max_workers=config.FEE_LOOKUP_WORKERS)
        self.flow = CertificateRequestFlow(client, gateway, self.notices.push, currency=config.CURRENCY_SYMBOL)

        self.active_tab = "account"
        self.form = RequestForm()
        self.search_term = ""
        self.organizations: List[Dict] = []
        self.student_requests: List[Dict] = []
        self.received_certificates: List[Dict] = []

    @property
    def is_student(self) -> bool:
        return bool(self.user) and self.user.get("userType") == "student"

    @property
    def wallet_connected(self) -> bool:
        return self.gateway is not None and self.gateway.sender_address is not None

    # --- data loading ---

    def _fetch(self, loader, what: str, fallback):
        try:
            return loader()
        except ApiError as e:
            logger.error(f"Error fetching {what}: {e.message}")
            return fallback

    def fetch_organizations(self) -> List[Dict]:
        self.organizations = self._fetch(self.client.get_organizations, "organizations", self.organizations)
        return self.organizations

    def fetch_student_requests(self) -> List[Dict]:
        self.student_requests = self._fetch(self.client.get_student_requests, "student requests",
                                            self.student_requests)
        return self.student_requests

    def fetch_received_certificates(self) -> List[Dict]:
        self.received_certificates = self._fetch(self.client.get_received_certificates, "received certificates",
                                                 self.received_certificates)
        return self.received_certificates

    def refresh(self) -> None:
        if not self.is_student or not self.client.token:
            return
        self.fetch_organizations()
        self.fetch_student_requests()
        self.fetch_received_certificates()

    def switch_tab(self, tab: str) -> None:
        if tab not in TABS:
            raise ValueError(f"Unknown tab: {tab}")
        self.active_tab = tab
        if tab == "requests":
            self.fetch_student_requests()
        elif tab == "certificates":
            self.fetch_received_certificates()

    # --- request form ---

    def find_organization(self, organization_id: str) -> Optional[Dict]:
        return next((o for o in self.organizations if o.get("_id") == organization_id), None)

    def select_organization(self, organization_id: str):
        self.form.organization_id = organization_id or ""
        return self.fees.select(self.find_organization(organization_id) if organization_id else None)

    @property
    def fee_quote(self) -> FeeQuote:
        return self.fees.quote

    def fee_notice(self) -> str:
        quote = self.fee_quote
        if not self.form.organization_id:
            return ""
        if quote.loading:
            return "Loading issuance fee..."
        if quote.error:
            return quote.error
        if quote.fee is not None:
            return f"Issuance Fee for this Organization: {views.format_fee(quote.fee)} {self.config.CURRENCY_SYMBOL}"
        return "Select an organization to see its issuance fee."

    def can_submit(self) -> bool:
        form = self.form
        return (not self.flow.state.busy and self.wallet_connected and bool(form.organization_id)
                and bool(form.usn) and bool(form.year_of_graduation) and bool(form.certificate_type))

    def request_certificate(self, usn: str, year_of_graduation, certificate_type: str) -> FlowState:
        attempt = replace(self.form, usn=usn, year_of_graduation=str(year_of_graduation),
                          certificate_type=certificate_type)
        # Leave the form of an in-flight attempt alone; the flow refuses this one.
        if not self.flow.state.busy:
            self.form = attempt

        state = self.flow.submit(attempt, self.find_organization(attempt.organization_id))
        if state.phase is Phase.SUCCESS and self.form is attempt:
            self.fetch_student_requests()
            self.fetch_received_certificates()
            self.form.clear()
            self.fees.select(None)
        return state

    # --- display ---

    def account_summary(self) -> Dict[str, str]:
        user = self.user or {}
        wallet = self.gateway.sender_address if self.wallet_connected else None
        return {
            "Name": user.get("name") or views.NA,
            "Email": user.get("email") or views.NA,
            "Wallet": wallet or user.get("walletAddress") or views.NA,
            "User Type": "Student",
            "Blockchain Registered": "Yes" if user.get("isBlockchainRegistered") else "No",
            "Wallet Status": f"Connected ({views.short_address(wallet)})" if wallet else "Disconnected",
        }

    def request_rows(self) -> List[Dict[str, str]]:
        return [views.request_row(r) for r in views.filter_requests(self.student_requests, self.search_term)]

    def certificate_rows(self) -> List[Dict[str, str]]:
        return [
            views.certificate_row(c, self.config.IPFS_GATEWAY_URL, self.client.base_url)
            for c in self.received_certificates
        ]

    def logout(self) -> None:
        try:
            self.client.logout()
        except ApiError as e:
            logger.warning(f"Logout request failed: {e.message}")
        self.fees.shutdown()
        self.user = None
