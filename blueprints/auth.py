import re
import logging
from flask import Blueprint, request, jsonify, current_app
from flask_login import login_user, logout_user, current_user
from extensions import db
from models import User, Wallet, Role
from ledger.referral_tree import ReferralTreeHelper


logger = logging.getLogger(__name__)

bp = Blueprint("auth", __name__, url_prefix="")

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')


def validate_email(email):
    return EMAIL_PATTERN.match(email or "") is not None


def validate_cpf(cpf):
    return len(re.sub(r"\D", "", cpf or "")) == 11


#===========================================================================
#      SIGN UP ROUTE
#===========================================================================
@bp.route("/api/signup", methods=["POST"])
def signup():
    """
    Create a user and their wallet in one transaction, attach them under the
    referrer named by `referralCode` and give the upline career points.
    """
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"error": "Invalid or missing JSON body"}), 400

    name = (data.get("name") or data.get("fullName") or "").strip()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    cpf = (data.get("cpf") or "").strip() or None
    referral_code = (data.get("referralCode") or "").strip().upper()

    # -----------------------------------------
    #  BASIC VALIDATION
    # -----------------------------------------
    if not name or not email or not password:
        return jsonify({"error": "Name, email and password are required"}), 400
    if not validate_email(email):
        return jsonify({"error": "Invalid email address"}), 400
    if len(password) < 6:
        return jsonify({"error": "Password must be at least 6 characters"}), 400
    if cpf and not validate_cpf(cpf):
        return jsonify({"error": "Invalid CPF"}), 400

    if User.query.filter_by(email=email).first():
        return jsonify({"error": "Email already registered"}), 400

    tree = ReferralTreeHelper(db.session)

    referrer = None
    if referral_code:
        referrer = tree.find_by_referral_code(referral_code)
        if not referrer:
            return jsonify({"error": "Invalid referral code"}), 400

    # -----------------------------------------
    #  ATOMIC USER + WALLET CREATION
    # -----------------------------------------
    try:
        new_user = User(
            name=name,
            email=email,
            cpf=cpf,
            role=Role.USER.value,
            referral_code=tree.generate_referral_code(name),
            referrer_id=referrer.id if referrer else None,
        )
        new_user.set_password(password)
        db.session.add(new_user)
        db.session.flush()

        db.session.add(Wallet(user_id=new_user.id))
        db.session.flush()

        if referrer:
            tree.award_career_points(new_user.id)

        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"[SIGNUP] Registration failed for {email}: {e}")
        return jsonify({"error": "Registration failed"}), 500

    current_app.logger.info(
        f"User {new_user.id} registered (referrer: {referrer.id if referrer else None})"
    )
    return jsonify({
        "status": "success",
        "message": "Signup successful",
        "user": new_user.to_dict(),
    }), 201


#===========================================================================
#      LOGIN / LOGOUT / SESSION
#===========================================================================
@bp.route("/api/login", methods=["POST"])
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    if not email or not password:
        return jsonify({"error": "Email and password are required"}), 400

    user = User.query.filter_by(email=email).first()
    if not user or not user.check_password(password):
        logger.info(f"Failed login attempt for {email}")
        return jsonify({"error": "Invalid email or password"}), 401

    login_user(user, remember=bool(data.get("remember")))

    return jsonify({"status": "success", "user": user.to_dict()}), 200


@bp.route("/api/logout", methods=["POST"])
def logout():
    logout_user()
    return jsonify({"status": "success"}), 200


@bp.route("/session", methods=["GET"])
def session_info():
    if not current_user.is_authenticated:
        return jsonify({"authenticated": False}), 200
    return jsonify({"authenticated": True, "user": current_user.to_dict()}), 200
