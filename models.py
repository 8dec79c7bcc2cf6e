# models.py - Flask-SQLAlchemy models for the investment ledger
from datetime import datetime, timezone
from decimal import Decimal
import enum
from flask_login import UserMixin
from sqlalchemy import CheckConstraint, Index
from extensions import db
from werkzeug.security import check_password_hash, generate_password_hash


def utcnow():
    """Naive UTC timestamp; every DateTime column in this schema is naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# Balances and ledger amounts keep 4 places so price(2dp) * percent(2dp) / 100 is exact.
Money = db.Numeric(precision=18, scale=4)
Price = db.Numeric(precision=18, scale=2)

ZERO = Decimal("0")

# ===========================================================
# ENUM DEFINITIONS
# ===========================================================

class Role(enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class Rank(enum.Enum):
    STARTER = "STARTER"
    BRONZE = "BRONZE"
    SILVER = "SILVER"
    GOLD = "GOLD"
    PLATINUM = "PLATINUM"
    DIAMOND = "DIAMOND"


class TransactionType(enum.Enum):
    DEPOSIT = "DEPOSIT"
    PLAN_PURCHASE = "PLAN_PURCHASE"
    REFERRAL_BONUS = "REFERRAL_BONUS"
    YIELD = "YIELD"
    WITHDRAWAL = "WITHDRAWAL"


class WalletType(enum.Enum):
    BALANCE = "balance"
    REFERRAL = "referral"


class InvestmentStatus(enum.Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


class WithdrawalStatus(enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class DepositStatus(enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"


# ===========================================================
# BASE MIXIN FOR COMMON FIELDS
# ===========================================================

class BaseMixin:
    """Provides a created_at timestamp to inheriting models."""
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)


def _money(value):
    return float(value) if value is not None else 0.0


# ===========================================================
# USER MODELS
# ===========================================================

class User(UserMixin, db.Model, BaseMixin):
    """Core user entity: one wallet, many investments, optional referrer."""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    name = db.Column(db.String(120), nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), nullable=False, default=Role.USER.value, index=True)
    cpf = db.Column(db.String(14), nullable=True)

    referral_code = db.Column(db.String(20), unique=True, nullable=True)
    referrer_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True, index=True)

    rank = db.Column(db.String(20), nullable=False, default=Rank.STARTER.value)
    career_points = db.Column(db.Integer, nullable=False, default=0)

    wallet = db.relationship('Wallet', uselist=False, back_populates='user', cascade="all,delete-orphan")
    investments = db.relationship('Investment', back_populates='user', lazy='dynamic')
    referrer = db.relationship('User', remote_side=[id], backref='referees')

    def set_password(self, password: str):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value

    def to_dict(self):
        result = {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "referralCode": self.referral_code,
            "referrerId": self.referrer_id,
            "rank": self.rank,
            "careerPoints": self.career_points,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
        if self.wallet:
            result["wallet"] = self.wallet.to_dict()
        return result

    def __repr__(self):
        return f"<User {self.id} {self.email}>"


# ===========================================================
# WALLET & TRANSACTIONS
# ===========================================================

class Wallet(db.Model, BaseMixin):
    __tablename__ = 'wallets'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True, index=True)
    balance = db.Column(Money, nullable=False, default=ZERO)
    referral_balance = db.Column(Money, nullable=False, default=ZERO)

    user = db.relationship('User', back_populates='wallet')
    transactions = db.relationship('Transaction', back_populates='wallet', lazy='dynamic')

    __table_args__ = (
        CheckConstraint('balance >= 0', name='chk_wallet_balance_non_negative'),
        CheckConstraint('referral_balance >= 0', name='chk_wallet_referral_non_negative'),
    )

    @property
    def total(self) -> Decimal:
        return Decimal(self.balance or ZERO) + Decimal(self.referral_balance or ZERO)

    def to_dict(self):
        return {
            "id": self.id,
            "balance": _money(self.balance),
            "referralBalance": _money(self.referral_balance),
            "total": _money(self.total),
        }


class Transaction(db.Model, BaseMixin):
    """Append-only ledger entry. Positive amounts are credits, negative are debits."""
    __tablename__ = 'transactions'

    id = db.Column(db.Integer, primary_key=True)
    wallet_id = db.Column(db.Integer, db.ForeignKey('wallets.id', ondelete='CASCADE'), nullable=False, index=True)
    amount = db.Column(Money, nullable=False)
    type = db.Column(db.String(30), nullable=False, index=True)
    wallet_type = db.Column(db.String(20), nullable=False, default=WalletType.BALANCE.value)
    description = db.Column(db.String(255))

    wallet = db.relationship('Wallet', back_populates='transactions')

    __table_args__ = (
        Index('idx_transaction_wallet_created', 'wallet_id', 'created_at'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "amount": _money(self.amount),
            "type": self.type,
            "walletType": self.wallet_type,
            "description": self.description,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


# ===========================================================
# PLANS & INVESTMENTS
# ===========================================================

class Plan(db.Model, BaseMixin):
    __tablename__ = 'plans'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    price = db.Column(Price, nullable=False)
    daily_yield = db.Column(db.Numeric(precision=6, scale=2), nullable=False)  # percent per business day
    duration_days = db.Column(db.Integer, nullable=False, default=30)
    active = db.Column(db.Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint('price > 0', name='chk_plan_price_positive'),
        CheckConstraint('duration_days >= 0', name='chk_plan_duration'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "price": _money(self.price),
            "dailyYield": _money(self.daily_yield),
            "durationDays": self.duration_days,
            "active": self.active,
        }


class Investment(db.Model, BaseMixin):
    __tablename__ = 'investments'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    plan_id = db.Column(db.Integer, db.ForeignKey('plans.id'), nullable=False)
    start_date = db.Column(db.DateTime, nullable=False, default=utcnow)
    expires_at = db.Column(db.DateTime, nullable=False)
    status = db.Column(db.String(20), nullable=False, default=InvestmentStatus.ACTIVE.value)

    user = db.relationship('User', back_populates='investments')
    plan = db.relationship('Plan')

    __table_args__ = (
        Index('idx_investment_status_expires', 'status', 'expires_at'),
        Index('idx_investment_user_status', 'user_id', 'status'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "planId": self.plan_id,
            "plan": self.plan.to_dict() if self.plan else None,
            "startDate": self.start_date.isoformat() if self.start_date else None,
            "expiresAt": self.expires_at.isoformat() if self.expires_at else None,
            "status": self.status,
        }


# ===========================================================
# WITHDRAWALS & PIX DEPOSITS
# ===========================================================

class Withdrawal(db.Model, BaseMixin):
    __tablename__ = 'withdrawals'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    amount = db.Column(Money, nullable=False)
    wallet_type = db.Column(db.String(20), nullable=False, default=WalletType.BALANCE.value)
    status = db.Column(db.String(20), nullable=False, default=WithdrawalStatus.PENDING.value, index=True)
    reason = db.Column(db.String(255), nullable=True)
    processed_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    processed_at = db.Column(db.DateTime, nullable=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey('transactions.id', ondelete='SET NULL'), nullable=True)

    user = db.relationship('User', foreign_keys=[user_id])

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "amount": _money(self.amount),
            "walletType": self.wallet_type,
            "status": self.status,
            "reason": self.reason,
            "processedAt": self.processed_at.isoformat() if self.processed_at else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


class PixDeposit(db.Model, BaseMixin):
    __tablename__ = 'pix_deposits'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    amount = db.Column(Price, nullable=False)
    txid = db.Column(db.String(35), unique=True, nullable=False, index=True)
    status = db.Column(db.String(20), nullable=False, default=DepositStatus.PENDING.value)
    location_id = db.Column(db.String(64))
    qr_code = db.Column(db.Text)
    qr_code_image = db.Column(db.Text)
    end_to_end_id = db.Column(db.String(64), nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)

    user = db.relationship('User')

    def to_dict(self, include_qr=True):
        result = {
            "id": self.id,
            "txid": self.txid,
            "amount": _money(self.amount),
            "status": self.status,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
        }
        if include_qr:
            result["qrCode"] = self.qr_code
            result["qrCodeImage"] = self.qr_code_image
        return result


# ===========================================================
# AUDITING
# ===========================================================

class AuditLog(db.Model, BaseMixin):
    __tablename__ = 'audit_logs'

    id = db.Column(db.Integer, primary_key=True)
    actor_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True, index=True)
    action = db.Column(db.String(100), nullable=False)
    details = db.Column(db.JSON)
