from decimal import Decimal
import logging

from sqlalchemy import func

from models import User, Investment, InvestmentStatus, Plan, Rank, ZERO
from ledger.config import LedgerConfig


logger = logging.getLogger(__name__)


def classify(total_invested) -> Rank:
    """Map total active investment to a rank; thresholds are inclusive lower bounds."""
    total = Decimal(str(total_invested or 0))
    for threshold, rank in LedgerConfig.RANK_THRESHOLDS:
        if total >= threshold:
            return rank
    return LedgerConfig.BASE_RANK


class RankClassifier:

    def __init__(self, session):
        self.session = session

    def total_active_invested(self, user_id: int) -> Decimal:
        total = (
            self.session.query(func.coalesce(func.sum(Plan.price), 0))
            .join(Investment, Investment.plan_id == Plan.id)
            .filter(
                Investment.user_id == user_id,
                Investment.status == InvestmentStatus.ACTIVE.value,
            )
            .scalar()
        )
        return Decimal(str(total)) if total is not None else ZERO

    def recompute(self, user_id: int) -> Rank:
        """Persist the user's rank. Only `User.rank` is touched."""
        total = self.total_active_invested(user_id)
        rank = classify(total)

        user = self.session.get(User, user_id)
        if user and user.rank != rank.value:
            logger.info(f"User {user_id} rank {user.rank} -> {rank.value} (active total {total})")
            user.rank = rank.value
        return rank
