#======================================================================================
#
# ADMIN API: plans, withdrawal decisions, batch job trigger, dashboard data
#
#=======================================================================================
import threading
from datetime import date
from decimal import Decimal, InvalidOperation
from functools import wraps

from flask import jsonify, request, Blueprint, current_app
from flask_login import current_user
from sqlalchemy.exc import IntegrityError

from extensions import db
from models import (
    AuditLog, Investment, InvestmentStatus, PixDeposit, DepositStatus, Plan, User,
    Wallet, Withdrawal, WithdrawalStatus,
)
from ledger.config import LedgerConfig
from ledger.daily_yield import DailyYieldProcessor
from ledger.withdrawals import WithdrawalService
from logger import jobs_logger


def admin_required(f):
    """
    Restrict a route to admins.
    - 401 when nobody is logged in.
    - 403 when the logged-in user is not an admin.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return jsonify({"error": "Authentication required"}), 401
        if not current_user.is_admin:
            return jsonify({"error": "Admin access required"}), 403
        return f(*args, **kwargs)

    return decorated_function


admin_bp = Blueprint('admin', __name__, url_prefix='')


def _audit(action, details):
    db.session.add(AuditLog(actor_id=current_user.id, action=action, details=details))


def _parse_decimal(value, field):
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValueError(f"Invalid {field}")


def _apply_plan_fields(plan, data):
    if "name" in data:
        name = (data.get("name") or "").strip()
        if not name:
            raise ValueError("Invalid name")
        plan.name = name
    if "price" in data:
        price = _parse_decimal(data["price"], "price")
        if price <= 0:
            raise ValueError("Price must be positive")
        plan.price = price
    if "dailyYield" in data:
        daily_yield = _parse_decimal(data["dailyYield"], "dailyYield")
        if daily_yield < 0:
            raise ValueError("dailyYield cannot be negative")
        plan.daily_yield = daily_yield
    if "durationDays" in data:
        try:
            duration = int(data["durationDays"])
        except (TypeError, ValueError):
            raise ValueError("Invalid durationDays")
        if duration < 0:
            raise ValueError("durationDays cannot be negative")
        plan.duration_days = duration
    if "active" in data:
        plan.active = bool(data["active"])


#============================================================================================================
#     PLANS
#============================================================================================================
@admin_bp.route("/admin/plans", methods=["POST"])
@admin_required
def create_plan():
    data = request.get_json(silent=True) or {}
    missing = [f for f in ("name", "price", "dailyYield") if data.get(f) is None]
    if missing:
        return jsonify({"error": f"Missing fields: {', '.join(missing)}"}), 400

    plan = Plan(duration_days=LedgerConfig.DEFAULT_PLAN_DURATION_DAYS, active=True)
    try:
        _apply_plan_fields(plan, data)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    try:
        db.session.add(plan)
        db.session.flush()
        _audit("plan_created", {"plan_id": plan.id, "name": plan.name})
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({"error": "A plan with this name already exists"}), 409

    current_app.logger.info(f"Admin {current_user.id} created plan {plan.id} ({plan.name})")
    return jsonify({"status": "success", "plan": plan.to_dict()}), 201


@admin_bp.route("/admin/plans/<int:plan_id>", methods=["PATCH"])
@admin_required
def update_plan(plan_id):
    plan = db.session.get(Plan, plan_id)
    if not plan:
        return jsonify({"error": "Plan not found"}), 404

    data = request.get_json(silent=True) or {}
    try:
        _apply_plan_fields(plan, data)
    except ValueError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400

    try:
        _audit("plan_updated", {"plan_id": plan.id, "fields": sorted(data.keys())})
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({"error": "A plan with this name already exists"}), 409

    return jsonify({"status": "success", "plan": plan.to_dict()}), 200


#============================================================================================================
#     WITHDRAWALS
#============================================================================================================
@admin_bp.route("/admin/withdrawals", methods=["GET"])
@admin_required
def list_withdrawals():
    withdrawals = WithdrawalService(db.session).list_by_status(request.args.get("status"))
    return jsonify({"withdrawals": [w.to_dict() for w in withdrawals]}), 200


@admin_bp.route("/admin/withdrawals/<int:withdrawal_id>/approve", methods=["POST"])
@admin_required
def approve_withdrawal(withdrawal_id):
    withdrawal = WithdrawalService(db.session).approve(withdrawal_id, current_user.id)
    return jsonify({"status": "success", "withdrawal": withdrawal.to_dict()}), 200


@admin_bp.route("/admin/withdrawals/<int:withdrawal_id>/reject", methods=["POST"])
@admin_required
def reject_withdrawal(withdrawal_id):
    data = request.get_json(silent=True) or {}
    withdrawal = WithdrawalService(db.session).reject(withdrawal_id, current_user.id, data.get("reason"))
    return jsonify({"status": "success", "withdrawal": withdrawal.to_dict()}), 200


#============================================================================================================
#     DAILY YIELD JOB
#============================================================================================================
def start_daily_yield_job(app):
    def run():
        with app.app_context():
            try:
                DailyYieldProcessor(db.session).run()
            except Exception as e:
                jobs_logger.error(f"Daily yield job crashed: {e}")
            finally:
                db.session.remove()

    thread = threading.Thread(target=run, name="daily-yield", daemon=True)
    thread.start()
    return thread


@admin_bp.route("/admin/jobs/daily-yields", methods=["POST"])
@admin_required
def trigger_daily_yields():
    _audit("daily_yield_triggered", {})
    db.session.commit()

    start_daily_yield_job(current_app._get_current_object())
    jobs_logger.info(f"Daily yield job started by admin {current_user.id}")
    return jsonify({"status": "accepted", "message": "Processamento iniciado"}), 202


#============================================================================================================
#     DASHBOARD DATA
#============================================================================================================
@admin_bp.route("/admin/data", methods=["GET"])
@admin_required
def admin_data():
    today = date.today()

    total_users = User.query.count()
    daily_new_users = User.query.filter(db.func.date(User.created_at) == today).count()
    active_investments = Investment.query.filter_by(status=InvestmentStatus.ACTIVE.value).count()
    pending_withdrawals = Withdrawal.query.filter_by(status=WithdrawalStatus.PENDING.value).count()
    completed_deposits = (
        PixDeposit.query.filter_by(status=DepositStatus.COMPLETED.value)
        .with_entities(db.func.sum(PixDeposit.amount)).scalar() or 0
    )
    total_balance = Wallet.query.with_entities(db.func.sum(Wallet.balance)).scalar() or 0
    total_referral_balance = Wallet.query.with_entities(db.func.sum(Wallet.referral_balance)).scalar() or 0

    return jsonify({
        "total_users": total_users,
        "daily_new_users": daily_new_users,
        "active_investments": active_investments,
        "pending_withdrawals": pending_withdrawals,
        "completed_deposits": float(completed_deposits),
        "total_balance": float(total_balance),
        "total_referral_balance": float(total_referral_balance),
    }), 200
