from flask import Blueprint, request, jsonify, current_app, g
from flask_jwt_extended import create_access_token, jwt_required, get_jwt_identity, get_jwt
from certapi.models import db, User, UserType, TokenBlocklist
from datetime import datetime, timezone
from functools import wraps

auth_bp = Blueprint("auth", __name__)

REGISTER_FIELDS = ("walletAddress", "name", "userType", "password", "email")


def _load_current_user():
    identity = get_jwt_identity()
    try:
        return db.session.get(User, int(identity))
    except (TypeError, ValueError):
        return None


# --- Custom Decorator for Role-Based Access ---
def user_type_required(*user_types):
    """Verifies the bearer token and the caller's user type, exposing the caller as g.current_user.

    With no arguments any authenticated user is let through.
    """
    allowed = {UserType(t) for t in user_types}

    def wrapper(fn):
        @wraps(fn)
        @jwt_required()
        def decorator(*args, **kwargs):
            user = _load_current_user()
            if user is None:
                return jsonify(message="User not found"), 401
            if allowed and user.user_type not in allowed:
                required = ", ".join(sorted(t.value for t in allowed))
                return jsonify(message=f"Access denied. Required user type: {required}"), 403
            g.current_user = user
            return fn(*args, **kwargs)
        return decorator
    return wrapper


def json_body():
    """The request's JSON object, or an empty dict for anything that is not one."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _token_response(user, status_code):
    additional_claims = {"userType": user.user_type.value}
    access_token = create_access_token(identity=str(user.id), additional_claims=additional_claims)
    body = user.to_dict()
    body["token"] = access_token
    return jsonify(body), status_code


@auth_bp.route("/register", methods=["POST"])
def register():
    """Registers a student or organization and returns a token for it."""
    data = json_body()

    missing = [field for field in REGISTER_FIELDS if not str(data.get(field) or "").strip()]
    if missing:
        return jsonify(message=f"Missing required fields: {', '.join(missing)}"), 400

    not_text = [field for field in REGISTER_FIELDS if not isinstance(data[field], str)]
    if not_text:
        return jsonify(message=f"Fields must be strings: {', '.join(not_text)}"), 400

    try:
        user_type = UserType(data["userType"])
    except ValueError:
        return jsonify(message="Invalid user type. Must be 'student' or 'organization'."), 400

    wallet_address = data["walletAddress"].strip().lower()
    email = data["email"].strip().lower()

    if User.query.filter((User.wallet_address == wallet_address) | (User.email == email)).first():
        return jsonify(message="User already exists"), 400

    user = User(
        wallet_address=wallet_address,
        name=data["name"].strip(),
        user_type=user_type,
        email=email,
    )
    user.set_password(data["password"])
    db.session.add(user)
    db.session.commit()

    current_app.logger.info(f"Registered {user.user_type.value} {user.wallet_address} (id={user.id})")
    return _token_response(user, 201)


@auth_bp.route("/login", methods=["POST"])
def login():
    """Handles wallet/password login and returns a JWT access token."""
    data = json_body()
    wallet_address = data.get("walletAddress")
    password = data.get("password")

    if not isinstance(wallet_address, str) or not isinstance(password, str) \
            or not wallet_address.strip() or not password:
        return jsonify(message="Wallet address and password are required."), 400
    wallet_address = wallet_address.strip().lower()

    user = User.query.filter_by(wallet_address=wallet_address).first()

    if user and user.check_password(password):
        return _token_response(user, 200)

    return jsonify(message="Invalid wallet address or password."), 401


@auth_bp.route('/logout', methods=['POST'])
@jwt_required()
def logout():
    """Handles user logout by blocklisting the current token."""
    jti = get_jwt()['jti']
    now = datetime.now(timezone.utc)
    db.session.add(TokenBlocklist(jti=jti, created_at=now))
    db.session.commit()
    return jsonify(message="Access token revoked successfully")


@auth_bp.route('/profile', methods=['GET'])
@user_type_required()
def profile():
    """Returns the profile information of the currently logged-in user."""
    return jsonify(g.current_user.to_dict())
