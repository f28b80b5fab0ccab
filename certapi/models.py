# certapi/models.py
import enum
from datetime import datetime
from flask_sqlalchemy import SQLAlchemy
from werkzeug.security import generate_password_hash, check_password_hash

db = SQLAlchemy()


def _isoformat(value):
    return value.isoformat() + "Z" if value else None


class UserType(str, enum.Enum):
    STUDENT = "student"
    ORGANIZATION = "organization"


class RequestStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    ISSUED = "issued"


# Targets an organization may set through the status endpoint. ISSUED has its own step.
DECISION_STATUSES = (RequestStatus.ACCEPTED.value, RequestStatus.REJECTED.value)


class User(db.Model):
    __tablename__ = "users"
    id = db.Column(db.Integer, primary_key=True)
    wallet_address = db.Column(db.String(64), unique=True, nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    user_type = db.Column(db.Enum(UserType), nullable=False, index=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    is_blockchain_registered = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def set_password(self, password): self.password_hash = generate_password_hash(password)
    def check_password(self, password): return check_password_hash(self.password_hash, password)

    @property
    def is_organization(self):
        return self.user_type == UserType.ORGANIZATION

    def to_dict(self):
        return {
            "_id": str(self.id),
            "walletAddress": self.wallet_address,
            "name": self.name,
            "userType": self.user_type.value,
            "email": self.email,
            "isBlockchainRegistered": self.is_blockchain_registered,
            "createdAt": _isoformat(self.created_at),
        }

    def to_summary(self):
        """The reduced shape embedded in request listings."""
        return {
            "_id": str(self.id),
            "name": self.name,
            "walletAddress": self.wallet_address,
            "email": self.email,
        }


class CertificateRequest(db.Model):
    __tablename__ = "certificate_requests"
    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    organization_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    usn = db.Column(db.String(20), nullable=False)
    year_of_graduation = db.Column(db.Integer, nullable=False)
    certificate_type = db.Column(db.String(120), nullable=False)
    status = db.Column(db.Enum(RequestStatus), nullable=False, default=RequestStatus.PENDING, index=True)
    remarks = db.Column(db.Text, nullable=True)
    # uint256 wei amounts do not fit a BIGINT, so they are kept as decimal strings.
    issuance_amount = db.Column(db.String(78), nullable=False, default="0")
    transaction_hash = db.Column(db.String(66), nullable=True)
    ipfs_hash = db.Column(db.String(255), nullable=True, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    issued_at = db.Column(db.DateTime, nullable=True)

    student = db.relationship("User", foreign_keys=[student_id], backref=db.backref("sent_requests", lazy=True))
    organization = db.relationship("User", foreign_keys=[organization_id], backref=db.backref("received_requests", lazy=True))

    def to_dict(self, expand_student=False, expand_organization=False):
        return {
            "_id": str(self.id),
            "student": self.student.to_summary() if expand_student else str(self.student_id),
            "organization": self.organization.to_summary() if expand_organization else str(self.organization_id),
            "usn": self.usn,
            "yearOfGraduation": self.year_of_graduation,
            "certificateType": self.certificate_type,
            "status": self.status.value,
            "remarks": self.remarks or "",
            "issuanceAmount": self.issuance_amount,
            "transactionHash": self.transaction_hash,
            "ipfsHash": self.ipfs_hash,
            "createdAt": _isoformat(self.created_at),
            "issuedAt": _isoformat(self.issued_at),
        }


class TokenBlocklist(db.Model): __tablename__ = "token_blocklist"; id = db.Column(db.Integer, primary_key=True); jti = db.Column(db.String(36), nullable=False, index=True); created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
