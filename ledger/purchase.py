from decimal import Decimal
import logging
from typing import Optional, Tuple

from models import (
    User, Wallet, Plan, Investment, InvestmentStatus, TransactionType,
    WalletType, ZERO, utcnow,
)
from ledger.business_days import add_business_days
from ledger.commission import CommissionCascade
from ledger.exceptions import InsufficientFunds, PlanNotFound, UserNotFound, WalletMissing
from ledger.rank import RankClassifier
from ledger.wallet_accounting import WalletAccounting


logger = logging.getLogger(__name__)


def split_debit(price: Decimal, referral_balance: Decimal, balance: Decimal) -> Tuple[Decimal, Decimal]:
    """
    Referral funds are spent before yield/deposit funds.
    Returns (from_referral, from_balance).
    """
    referral_balance = referral_balance or ZERO
    balance = balance or ZERO
    if price > referral_balance + balance:
        raise InsufficientFunds(price, referral_balance + balance)

    from_referral = min(referral_balance, price)
    return from_referral, price - from_referral


class InvestmentPurchaseEngine:
    """
    Buys a plan for a user in one atomic unit: wallet debit, investment row and
    the referral commission cascade either all commit or all roll back. The
    rank update runs afterwards and never fails the purchase.
    """

    def __init__(self, session, accounting: WalletAccounting = None,
                 cascade: CommissionCascade = None, ranks: RankClassifier = None):
        self.session = session
        self.accounting = accounting or WalletAccounting(session)
        self.cascade = cascade or CommissionCascade(session, self.accounting)
        self.ranks = ranks or RankClassifier(session)

    def purchase(self, buyer_id: int, plan_id, now=None) -> Investment:
        now = now or utcnow()
        try:
            investment = self._purchase_in_transaction(buyer_id, plan_id, now)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        logger.info(
            f"Investment {investment.id} created: user {buyer_id}, plan {investment.plan_id}, "
            f"expires {investment.expires_at.isoformat()}"
        )
        self._refresh_rank(buyer_id)
        return investment

    def _purchase_in_transaction(self, buyer_id: int, plan_id, now) -> Investment:
        plan = self._load_plan(plan_id)

        buyer = self.session.get(User, buyer_id)
        if not buyer:
            raise UserNotFound(f"User {buyer_id} not found")

        wallet = (
            self.session.query(Wallet)
            .filter(Wallet.user_id == buyer.id)
            .with_for_update()
            .first()
        )
        if not wallet:
            raise WalletMissing(f"User {buyer_id} has no wallet")

        price = Decimal(plan.price)
        from_referral, from_balance = split_debit(
            price, Decimal(wallet.referral_balance or ZERO), Decimal(wallet.balance or ZERO)
        )

        description = f"Compra do plano {plan.name}"
        if from_referral > ZERO:
            self.accounting.debit(
                wallet.id, from_referral, TransactionType.PLAN_PURCHASE, description,
                wallet_type=WalletType.REFERRAL,
            )
        if from_balance > ZERO:
            self.accounting.debit(
                wallet.id, from_balance, TransactionType.PLAN_PURCHASE, description,
                wallet_type=WalletType.BALANCE,
            )

        investment = Investment(
            user_id=buyer.id,
            plan_id=plan.id,
            start_date=now,
            expires_at=add_business_days(now, plan.duration_days),
            status=InvestmentStatus.ACTIVE.value,
        )
        self.session.add(investment)
        self.session.flush()

        credits = self.cascade.distribute(buyer, price)
        logger.info(
            f"Purchase by user {buyer.id} of plan {plan.name}: {from_referral} from referral, "
            f"{from_balance} from balance, {len(credits)} commission(s) paid"
        )
        return investment

    def _load_plan(self, plan_id) -> Plan:
        try:
            plan_id = int(plan_id)
        except (TypeError, ValueError):
            raise PlanNotFound(f"Invalid plan id: {plan_id!r}")

        plan = self.session.get(Plan, plan_id)
        if not plan or not plan.active:
            raise PlanNotFound(f"Plan {plan_id} not found")
        return plan

    def _refresh_rank(self, user_id: int) -> Optional[str]:
        try:
            rank = self.ranks.recompute(user_id)
            self.session.commit()
            return rank.value
        except Exception as e:
            self.session.rollback()
            logger.error(f"Rank recompute failed for user {user_id}: {e}")
            return None
