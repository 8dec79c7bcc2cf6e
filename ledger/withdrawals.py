from decimal import Decimal
import logging
from typing import List, Optional

from models import (
    AuditLog, Wallet, Withdrawal, WithdrawalStatus, TransactionType, WalletType, ZERO, utcnow,
)
from ledger.exceptions import (
    InsufficientFunds, InvalidAmount, LedgerError, WalletMissing,
    WithdrawalAlreadyProcessed, WithdrawalNotFound,
)
from ledger.wallet_accounting import WalletAccounting, to_cents


logger = logging.getLogger(__name__)


def parse_wallet_type(value) -> WalletType:
    if isinstance(value, WalletType):
        return value
    try:
        return WalletType((value or WalletType.BALANCE.value).strip().lower())
    except (ValueError, AttributeError):
        raise LedgerError(f"Invalid wallet type: {value!r}")


class WithdrawalService:
    """
    Two-step withdrawals. A request only records intent; money leaves the
    wallet when an admin approves, under a lock on the withdrawal row.
    """

    def __init__(self, session, accounting: WalletAccounting = None):
        self.session = session
        self.accounting = accounting or WalletAccounting(session)

    # ==========================================================
    #                  USER SIDE
    # ==========================================================

    def request(self, user_id: int, amount, wallet_type=WalletType.BALANCE) -> Withdrawal:
        amount = to_cents(amount)
        if amount <= ZERO:
            raise InvalidAmount("Withdrawal amount must be positive")
        target = parse_wallet_type(wallet_type)

        wallet = self.session.query(Wallet).filter_by(user_id=user_id).first()
        if not wallet:
            raise WalletMissing(f"User {user_id} has no wallet")

        available = self.accounting.available(wallet.id, target)
        if amount > available:
            raise InsufficientFunds(amount, available, target.value)

        withdrawal = Withdrawal(
            user_id=user_id,
            amount=amount,
            wallet_type=target.value,
            status=WithdrawalStatus.PENDING.value,
        )
        try:
            self.session.add(withdrawal)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        logger.info(f"Withdrawal {withdrawal.id} requested by user {user_id}: {amount} from {target.value}")
        return withdrawal

    def list_for_user(self, user_id: int) -> List[Withdrawal]:
        return (
            self.session.query(Withdrawal)
            .filter_by(user_id=user_id)
            .order_by(Withdrawal.created_at.desc())
            .all()
        )

    # ==========================================================
    #                  ADMIN SIDE
    # ==========================================================

    def list_by_status(self, status: Optional[str] = None) -> List[Withdrawal]:
        query = self.session.query(Withdrawal)
        if status:
            query = query.filter(Withdrawal.status == status.upper())
        return query.order_by(Withdrawal.created_at.asc()).all()

    def approve(self, withdrawal_id: int, admin_id: int) -> Withdrawal:
        try:
            withdrawal = self._lock_pending(withdrawal_id)
            target = parse_wallet_type(withdrawal.wallet_type)

            wallet = self.accounting.lock_wallet_for_user(withdrawal.user_id)
            transaction = self.accounting.debit(
                wallet.id,
                Decimal(withdrawal.amount),
                TransactionType.WITHDRAWAL,
                f"Saque #{withdrawal.id}",
                wallet_type=target,
            )

            withdrawal.status = WithdrawalStatus.APPROVED.value
            withdrawal.processed_by = admin_id
            withdrawal.processed_at = utcnow()
            withdrawal.transaction_id = transaction.id
            self._audit(admin_id, "withdrawal_approved", withdrawal)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        logger.info(f"Withdrawal {withdrawal_id} approved by admin {admin_id}")
        return withdrawal

    def reject(self, withdrawal_id: int, admin_id: int, reason: str = None) -> Withdrawal:
        try:
            withdrawal = self._lock_pending(withdrawal_id)
            withdrawal.status = WithdrawalStatus.REJECTED.value
            withdrawal.reason = (reason or "").strip()[:255] or None
            withdrawal.processed_by = admin_id
            withdrawal.processed_at = utcnow()
            self._audit(admin_id, "withdrawal_rejected", withdrawal)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        logger.info(f"Withdrawal {withdrawal_id} rejected by admin {admin_id}: {withdrawal.reason}")
        return withdrawal

    def _lock_pending(self, withdrawal_id: int) -> Withdrawal:
        withdrawal = (
            self.session.query(Withdrawal)
            .filter(Withdrawal.id == withdrawal_id)
            .with_for_update()
            .first()
        )
        if not withdrawal:
            raise WithdrawalNotFound(f"Withdrawal {withdrawal_id} not found")
        if withdrawal.status != WithdrawalStatus.PENDING.value:
            raise WithdrawalAlreadyProcessed(
                f"Withdrawal {withdrawal_id} already {withdrawal.status.lower()}"
            )
        return withdrawal

    def _audit(self, admin_id: int, action: str, withdrawal: Withdrawal):
        self.session.add(AuditLog(
            actor_id=admin_id,
            action=action,
            details={
                "withdrawal_id": withdrawal.id,
                "user_id": withdrawal.user_id,
                "amount": str(withdrawal.amount),
                "wallet_type": withdrawal.wallet_type,
                "reason": withdrawal.reason,
            },
        ))
