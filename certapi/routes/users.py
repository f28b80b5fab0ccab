# certapi/routes/users.py
import re
from datetime import datetime
from flask import Blueprint, request, jsonify, current_app, g

from certapi.models import db, User, UserType, CertificateRequest, RequestStatus, DECISION_STATUSES
from certapi.routes.auth import json_body, user_type_required
from certapi.services import payment_service

users_bp = Blueprint("users", __name__)

REQUEST_FIELDS = ("organizationId", "usn", "yearOfGraduation", "certificateType")
AMOUNT_RE = re.compile(r"[0-9]+")
MIN_GRADUATION_YEAR = 1950
MAX_YEARS_AHEAD = 10


def _parse_amount(raw):
    """Wei amounts arrive as decimal strings (or ints); anything else is rejected."""
    if raw is None or raw == "":
        return 0
    if isinstance(raw, bool):
        return None
    text = str(raw).strip()
    if not AMOUNT_RE.fullmatch(text):
        return None
    return int(text)


def _parse_year(raw):
    """Graduation years are whole numbers from 1950 to ten years ahead; anything else is rejected."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, str) and AMOUNT_RE.fullmatch(raw.strip()):
        raw = int(raw.strip())
    if not isinstance(raw, int):
        return None
    if not MIN_GRADUATION_YEAR <= raw <= datetime.utcnow().year + MAX_YEARS_AHEAD:
        return None
    return raw


def _find_organization(organization_id):
    try:
        pk = int(organization_id)
    except (TypeError, ValueError):
        return None
    org = db.session.get(User, pk)
    if org is None or not org.is_organization:
        return None
    return org


def _owned_request(request_id):
    """Looks a request up scoped to the calling organization; other organizations' requests stay invisible."""
    return CertificateRequest.query.filter_by(id=request_id, organization_id=g.current_user.id).first()


def _not_found():
    return jsonify(message="Request not found"), 404


@users_bp.route("/organizations", methods=["GET"])
def list_organizations():
    """Lists every registered organization for the student request form."""
    organizations = User.query.filter_by(user_type=UserType.ORGANIZATION).order_by(User.name, User.id).all()
    return jsonify([
        {"_id": str(org.id), "name": org.name, "walletAddress": org.wallet_address}
        for org in organizations
    ])


@users_bp.route("/request-certificate", methods=["POST"])
@user_type_required(UserType.STUDENT)
def request_certificate():
    data = json_body()
    student = g.current_user

    missing = [field for field in REQUEST_FIELDS if data.get(field) in (None, "")]
    if missing:
        return jsonify(message=f"Missing required fields: {', '.join(missing)}"), 400

    organization = _find_organization(data["organizationId"])
    if organization is None:
        return jsonify(message="Invalid organization selected."), 400

    year = _parse_year(data["yearOfGraduation"])
    if year is None:
        return jsonify(message="Please enter a valid graduation year (1950 to current+10)."), 400

    amount = _parse_amount(data.get("issuanceAmount"))
    if amount is None:
        return jsonify(message="Issuance amount must be a non-negative integer in wei."), 400

    tx_hash = data.get("transactionHash")
    if tx_hash is not None and not isinstance(tx_hash, str):
        return jsonify(message="transactionHash must be a string."), 400
    tx_hash = (tx_hash or "").strip() or None

    if current_app.config.get("VERIFY_PAYMENTS") and amount > 0:
        if not tx_hash:
            return jsonify(message="A payment transaction hash is required for this organization."), 400
        try:
            ok, reason = payment_service.verify_payment(tx_hash, student.wallet_address, organization.wallet_address, amount)
        except payment_service.PaymentUnavailable:
            return jsonify(message="Could not verify payment with the blockchain network. Try again later."), 502
        if not ok:
            return jsonify(message=reason), 400

    cert_request = CertificateRequest(
        student_id=student.id,
        organization_id=organization.id,
        usn=str(data["usn"]).strip(),
        year_of_graduation=year,
        certificate_type=str(data["certificateType"]).strip(),
        status=RequestStatus.PENDING,
        issuance_amount=str(amount),
        transaction_hash=tx_hash,
    )
    db.session.add(cert_request)
    db.session.commit()

    current_app.logger.info(
        f"Student {student.id} requested '{cert_request.certificate_type}' from organization {organization.id} "
        f"(request {cert_request.id}, amount {cert_request.issuance_amount} wei)"
    )
    return jsonify(
        message="Certificate request submitted successfully.",
        request=cert_request.to_dict(expand_organization=True),
    ), 201


@users_bp.route("/student-requests", methods=["GET"])
@user_type_required(UserType.STUDENT)
def student_requests():
    requests_ = (
        CertificateRequest.query.filter_by(student_id=g.current_user.id)
        .order_by(CertificateRequest.created_at.desc(), CertificateRequest.id.desc())
        .all()
    )
    return jsonify([r.to_dict(expand_organization=True) for r in requests_])


@users_bp.route("/received-certificates", methods=["GET"])
@user_type_required(UserType.STUDENT)
def received_certificates():
    issued = (
        CertificateRequest.query.filter_by(student_id=g.current_user.id, status=RequestStatus.ISSUED)
        .order_by(CertificateRequest.issued_at.desc(), CertificateRequest.id.desc())
        .all()
    )
    return jsonify([r.to_dict(expand_organization=True) for r in issued])


@users_bp.route("/organization-requests", methods=["GET"])
@user_type_required(UserType.ORGANIZATION)
def organization_requests():
    """Every request addressed to the calling organization, whatever its status."""
    requests_ = (
        CertificateRequest.query.filter_by(organization_id=g.current_user.id)
        .order_by(CertificateRequest.created_at.desc(), CertificateRequest.id.desc())
        .all()
    )
    return jsonify([r.to_dict(expand_student=True) for r in requests_])


@users_bp.route("/request/<request_id>/status", methods=["PUT"])
@user_type_required(UserType.ORGANIZATION)
def update_request_status(request_id):
    if not request_id.isdigit():
        return _not_found()
    cert_request = _owned_request(int(request_id))
    if cert_request is None:
        return _not_found()

    data = json_body()
    status = data.get("status")
    if status not in DECISION_STATUSES:
        return jsonify(message=f"Invalid status. Allowed values: {', '.join(DECISION_STATUSES)}"), 400

    remarks = data.get("remarks")
    if remarks is not None and not isinstance(remarks, str):
        return jsonify(message="Remarks must be text."), 400

    cert_request.status = RequestStatus(status)
    cert_request.remarks = remarks or ""
    db.session.commit()

    current_app.logger.info(f"Organization {g.current_user.id} set request {cert_request.id} to {status}")
    return jsonify(message=f"Request {status} successfully.", request=cert_request.to_dict(expand_student=True))


@users_bp.route("/request/<request_id>/issue", methods=["PUT"])
@user_type_required(UserType.ORGANIZATION)
def issue_certificate(request_id):
    """Records the issued certificate document for an accepted request."""
    if not request_id.isdigit():
        return _not_found()
    cert_request = _owned_request(int(request_id))
    if cert_request is None:
        return _not_found()

    data = json_body()
    ipfs_hash = data.get("ipfsHash")
    ipfs_hash = ipfs_hash.strip() if isinstance(ipfs_hash, str) else ""
    if not ipfs_hash:
        return jsonify(message="ipfsHash is required."), 400
    if cert_request.status != RequestStatus.ACCEPTED:
        return jsonify(message=f"Only accepted requests can be issued (current status: {cert_request.status.value})."), 400

    cert_request.status = RequestStatus.ISSUED
    cert_request.ipfs_hash = ipfs_hash
    cert_request.issued_at = datetime.utcnow()
    db.session.commit()

    current_app.logger.info(f"Organization {g.current_user.id} issued request {cert_request.id} as {ipfs_hash}")
    return jsonify(message="Certificate issued successfully.", request=cert_request.to_dict(expand_student=True))


@users_bp.route("/blockchain-status", methods=["PUT"])
@user_type_required()
def update_blockchain_status():
    data = json_body()
    flag = data.get("isBlockchainRegistered")
    if not isinstance(flag, bool):
        return jsonify(message="isBlockchainRegistered must be true or false."), 400

    user = g.current_user
    user.is_blockchain_registered = flag
    db.session.commit()
    return jsonify(user.to_dict())
