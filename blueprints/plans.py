from flask import Blueprint, jsonify
from models import Plan


bp = Blueprint("plans", __name__, url_prefix="")


@bp.route("/api/plans", methods=["GET"])
def list_plans():
    plans = Plan.query.filter_by(active=True).order_by(Plan.price.asc()).all()
    return jsonify({"plans": [p.to_dict() for p in plans]}), 200
