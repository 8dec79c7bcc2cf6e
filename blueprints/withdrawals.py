from flask import Blueprint, request, jsonify
from flask_login import login_required, current_user
from extensions import db
from models import WalletType
from ledger.withdrawals import WithdrawalService


bp = Blueprint("withdrawals", __name__, url_prefix="")


@bp.route("/api/withdrawals", methods=["POST"])
@login_required
def request_withdrawal():
    data = request.get_json(silent=True) or {}
    if data.get("amount") is None:
        return jsonify({"error": "amount is required"}), 400

    withdrawal = WithdrawalService(db.session).request(
        current_user.id,
        data["amount"],
        data.get("walletType") or WalletType.BALANCE.value,
    )
    return jsonify({
        "status": "success",
        "message": "Solicitação de saque registrada",
        "withdrawal": withdrawal.to_dict(),
    }), 201


@bp.route("/api/withdrawals", methods=["GET"])
@login_required
def list_withdrawals():
    withdrawals = WithdrawalService(db.session).list_for_user(current_user.id)
    return jsonify({"withdrawals": [w.to_dict() for w in withdrawals]}), 200
