# dashboard/views.py
# Turns API records into the rows and labels the dashboard displays.

from typing import Dict, Iterable, List, Optional

from dateutil import parser

from dashboard.chain import format_fee

NA = "N/A"


def short_address(address: Optional[str]) -> str:
    if not address:
        return NA
    if len(address) <= 10:
        return address
    return f"{address[:6]}...{address[-4:]}"


def format_date(value: Optional[str]) -> str:
    if not value:
        return NA
    try:
        return parser.isoparse(value).strftime("%Y-%m-%d")
    except (TypeError, ValueError):
        return NA


def status_label(status: Optional[str]) -> str:
    return status[:1].upper() + status[1:] if status else NA


def issued_on_label(req: Dict) -> str:
    if req.get("status") == "issued" and req.get("issuedAt"):
        return format_date(req["issuedAt"])
    if req.get("status") == "pending":
        return "Pending"
    return NA


def organization_label(org: Dict) -> str:
    return f"{org.get('name')} ({short_address(org.get('walletAddress'))})"


def request_row(req: Dict) -> Dict[str, str]:
    org = req.get("organization") or {}
    return {
        "Organization": org.get("name") or NA,
        "Org Wallet": short_address(org.get("walletAddress")),
        "USN": req.get("usn") or NA,
        "Graduation Year": str(req.get("yearOfGraduation") or NA),
        "Certificate Type": req.get("certificateType") or NA,
        "Status": status_label(req.get("status")),
        "Issuance Fee": format_fee(req.get("issuanceAmount") or 0),
        "Remarks": req.get("remarks") or NA,
        "Requested On": format_date(req.get("createdAt")),
        "Issued On": issued_on_label(req),
    }


def _search_fields(req: Dict) -> Iterable[str]:
    org = req.get("organization") or {}
    yield org.get("name") or ""
    yield org.get("walletAddress") or ""
    yield req.get("usn") or ""
    yield str(req.get("yearOfGraduation") or "")
    yield req.get("certificateType") or ""
    yield req.get("status") or ""
    yield req.get("remarks") or ""
    if req.get("createdAt"):
        yield format_date(req["createdAt"])
    if req.get("issuedAt"):
        yield format_date(req["issuedAt"])


def filter_requests(requests: List[Dict], term: str) -> List[Dict]:
    """Case-insensitive substring search over every displayed column."""
    term = (term or "").lower()
    if not term:
        return list(requests)
    return [req for req in requests if any(term in field.lower() for field in _search_fields(req))]


def certificate_row(cert: Dict, gateway_url: str, backend_url: str) -> Dict[str, str]:
    content_hash = cert.get("ipfsHash")
    return {
        "Organization": (cert.get("organization") or {}).get("name") or NA,
        "IPFS Hash": content_hash or NA,
        "Issued On": format_date(cert.get("issuedAt")),
        "View": f"{gateway_url.rstrip('/')}/{content_hash}" if content_hash else "",
        "Download": f"{backend_url.rstrip('/')}/api/ipfs/download/{content_hash}" if content_hash else "",
    }
