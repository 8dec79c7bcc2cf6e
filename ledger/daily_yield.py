from decimal import Decimal
from typing import Dict, Any

from models import Investment, InvestmentStatus, Plan, TransactionType, WalletType, ZERO, utcnow
from ledger.business_days import is_weekend
from ledger.exceptions import WalletMissing
from ledger.wallet_accounting import WalletAccounting
from logger import jobs_logger as logger


HUNDRED = Decimal("100")


def daily_yield_amount(price, daily_yield_percent) -> Decimal:
    return Decimal(price) * Decimal(daily_yield_percent) / HUNDRED


class DailyYieldProcessor:
    """
    Business-day batch: completes matured investments, then pays one day of
    yield on every investment that is still active.

    Each payment is its own transaction, so a failure on one investment never
    undoes the others. There is no same-day guard: running twice on one day
    pays twice.
    """

    def __init__(self, session, accounting: WalletAccounting = None):
        self.session = session
        self.accounting = accounting or WalletAccounting(session)

    def run(self, now=None) -> Dict[str, Any]:
        now = now or utcnow()

        if is_weekend(now):
            logger.info(f"Daily yield skipped: {now.date().isoformat()} is a weekend")
            return {
                "status": "weekend",
                "yields_paid": 0,
                "investments_matured": 0,
                "errors": 0,
                "total_paid": 0.0,
                "message": "Fim de semana, nenhum rendimento processado.",
            }

        matured = self.complete_matured(now)

        active = self._active_snapshot()
        if not active:
            logger.info("No active investments to process")
            return {
                "status": "ok",
                "yields_paid": 0,
                "investments_matured": matured,
                "errors": 0,
                "total_paid": 0.0,
                "message": "Nenhum investimento ativo para processar.",
            }

        logger.info(f"Paying daily yield for {len(active)} active investment(s)")

        paid_count = 0
        error_count = 0
        total_paid = ZERO

        for investment_id, user_id, plan_name, price, percent in active:
            amount = daily_yield_amount(price, percent)
            if amount <= ZERO:
                continue

            try:
                wallet = self.accounting.lock_wallet_for_user(user_id)
                self.accounting.credit(
                    wallet.id,
                    amount,
                    TransactionType.YIELD,
                    f"Rendimento diário do plano {plan_name}",
                    wallet_type=WalletType.BALANCE,
                )
                self.session.commit()
            except WalletMissing:
                self.session.rollback()
                error_count += 1
                logger.warning(f"Investment {investment_id}: user {user_id} has no wallet, yield skipped")
                continue
            except Exception as e:
                self.session.rollback()
                error_count += 1
                logger.error(f"Investment {investment_id}: yield payment failed: {e}")
                continue

            paid_count += 1
            total_paid += amount

        message = (
            f"Processamento concluído. {paid_count} rendimentos pagos, "
            f"{matured} investimentos finalizados, {error_count} falhas."
        )
        logger.info(message)

        return {
            "status": "ok",
            "yields_paid": paid_count,
            "investments_matured": matured,
            "errors": error_count,
            "total_paid": float(total_paid),
            "message": message,
        }

    def complete_matured(self, now) -> int:
        """Bulk ACTIVE -> COMPLETED for everything with expires_at <= now."""
        try:
            count = (
                self.session.query(Investment)
                .filter(
                    Investment.status == InvestmentStatus.ACTIVE.value,
                    Investment.expires_at <= now,
                )
                .update(
                    {Investment.status: InvestmentStatus.COMPLETED.value},
                    synchronize_session=False,
                )
            )
            self.session.commit()
        except Exception as e:
            self.session.rollback()
            logger.error(f"Maturity sweep failed: {e}")
            return 0

        if count:
            logger.info(f"{count} investment(s) completed")
        return count

    def _active_snapshot(self):
        # plain tuples: per-investment commits expire ORM instances
        return (
            self.session.query(
                Investment.id, Investment.user_id, Plan.name, Plan.price, Plan.daily_yield
            )
            .join(Plan, Investment.plan_id == Plan.id)
            .filter(Investment.status == InvestmentStatus.ACTIVE.value)
            .order_by(Investment.id)
            .all()
        )
