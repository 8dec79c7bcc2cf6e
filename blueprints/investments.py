from flask import Blueprint, request, jsonify, current_app
from flask_login import login_required, current_user
from extensions import db
from models import Investment
from ledger.purchase import InvestmentPurchaseEngine


bp = Blueprint("investments", __name__, url_prefix="")


#=============================================================================================
#      PLAN PURCHASE
#=============================================================================================
@bp.route("/api/investments", methods=["POST"])
@login_required
def create_investment():
    data = request.get_json(silent=True) or {}
    plan_id = data.get("planId") or data.get("plan_id")
    if plan_id is None:
        return jsonify({"error": "planId is required"}), 400

    # ledger errors are turned into JSON by the app error handler
    investment = InvestmentPurchaseEngine(db.session).purchase(current_user.id, plan_id)

    current_app.logger.info(f"User {current_user.id} bought plan {investment.plan_id}")
    return jsonify({
        "status": "success",
        "message": "Plano adquirido com sucesso",
        "investment": investment.to_dict(),
        "wallet": current_user.wallet.to_dict() if current_user.wallet else None,
    }), 201


@bp.route("/api/investments", methods=["GET"])
@login_required
def list_investments():
    investments = (
        Investment.query
        .filter_by(user_id=current_user.id)
        .order_by(Investment.created_at.desc())
        .all()
    )
    return jsonify({"investments": [i.to_dict() for i in investments]}), 200
