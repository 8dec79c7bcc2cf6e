#======================================================================================================
#
#   PIX DEPOSITS AND PROVIDER WEBHOOK
#
#======================================================================================================
from flask import Blueprint, request, jsonify, current_app
from flask_login import login_required, current_user
from extensions import db
from pix.deposits import DepositService, parse_webhook_payload


bp = Blueprint("payments", __name__, url_prefix="")


def _deposit_service():
    return DepositService(
        db.session,
        current_app.extensions["pix_client"],
        min_amount=current_app.config.get("PIX_MIN_DEPOSIT", "10.00"),
    )


#=============================================================================================
#      DEPOSIT INITIATION
#=============================================================================================
@bp.route("/api/deposits/pix", methods=["POST"])
@login_required
def create_pix_deposit():
    data = request.get_json(silent=True) or {}
    if data.get("amount") is None:
        return jsonify({"error": "amount is required"}), 400

    deposit = _deposit_service().create_deposit(current_user.id, data["amount"])
    return jsonify({"status": "success", "deposit": deposit.to_dict()}), 201


@bp.route("/api/deposits/<txid>", methods=["GET"])
@login_required
def get_deposit(txid):
    deposit = _deposit_service().get_for_user(current_user.id, txid)
    if not deposit:
        return jsonify({"error": "Deposit not found"}), 404
    return jsonify({"deposit": deposit.to_dict()}), 200


#=============================================================================================
#      WEBHOOK
#=============================================================================================
@bp.route("/webhooks/pix", methods=["POST"])
def pix_webhook():
    """
    Provider notification. Always acknowledged with 200; failures are logged
    and the provider is never asked to retry.
    """
    data = request.get_json(silent=True) or {}
    notifications = parse_webhook_payload(data)
    if not notifications:
        current_app.logger.warning(f"Pix webhook without txid: {data}")
        return jsonify({"status": "acknowledged"}), 200

    service = _deposit_service()
    for item in notifications:
        try:
            credited, message = service.confirm(
                item["txid"], amount=item["amount"], end_to_end_id=item["end_to_end_id"]
            )
            current_app.logger.info(f"Pix webhook {item['txid']}: {message}")
        except Exception as e:
            current_app.logger.error(f"Pix webhook failed for txid {item['txid']}: {e}")

    return jsonify({"status": "acknowledged"}), 200
