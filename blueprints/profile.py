from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user
from extensions import db
from models import Transaction, Wallet
from ledger.referral_tree import ReferralTreeHelper


bp = Blueprint("profile", __name__, url_prefix="")


# ----------------------------------------------------------------------------------
# WALLET, STATEMENT AND NETWORK FOR THE LOGGED-IN USER
# ----------------------------------------------------------------------------------
@bp.route("/api/wallet", methods=["GET"])
@login_required
def get_wallet():
    wallet = Wallet.query.filter_by(user_id=current_user.id).first()
    if not wallet:
        return jsonify({"error": "Wallet not found"}), 404
    return jsonify({
        "wallet": wallet.to_dict(),
        "rank": current_user.rank,
        "careerPoints": current_user.career_points,
    }), 200


@bp.route("/api/transactions", methods=["GET"])
@login_required
def list_transactions():
    wallet = Wallet.query.filter_by(user_id=current_user.id).first()
    if not wallet:
        return jsonify({"transactions": []}), 200

    limit = min(request.args.get("limit", 50, type=int), 200)
    query = Transaction.query.filter_by(wallet_id=wallet.id)

    txn_type = request.args.get("type")
    if txn_type:
        query = query.filter(Transaction.type == txn_type.upper())

    transactions = query.order_by(Transaction.created_at.desc(), Transaction.id.desc()).limit(limit).all()
    return jsonify({"transactions": [t.to_dict() for t in transactions]}), 200


@bp.route("/api/network", methods=["GET"])
@login_required
def get_network():
    summary = ReferralTreeHelper(db.session).get_user_network_summary(current_user.id)
    return jsonify({
        "success": True,
        "referralCode": current_user.referral_code,
        "network": summary,
    }), 200
