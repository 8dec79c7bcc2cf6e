from decimal import Decimal, ROUND_HALF_UP
import logging
from typing import List, NamedTuple

from models import User, Wallet, TransactionType, WalletType, ZERO
from ledger.config import LedgerConfig
from ledger.referral_tree import ReferralTreeHelper
from ledger.wallet_accounting import WalletAccounting, to_decimal


logger = logging.getLogger(__name__)


class CommissionCredit(NamedTuple):
    level: int
    user_id: int
    amount: Decimal
    transaction_id: int


class CommissionCascade:
    """
    Pays decaying referral commissions up the buyer's referral chain.

    Level 1 receives COMMISSION_RATE of the base amount rounded to cents; every
    deeper level receives COMMISSION_DECAY of what the previous level was paid.
    The chain ends at the first null referrer, missing user or missing wallet:
    deeper ancestors receive nothing even if they have wallets. It also ends
    early once a level rounds to 0.00, since a zero credit is not recorded.

    Runs inside the purchase transaction; it never commits.
    """

    def __init__(self, session, accounting: WalletAccounting = None,
                 resolver: ReferralTreeHelper = None,
                 max_levels: int = LedgerConfig.MAX_COMMISSION_LEVELS):
        self.session = session
        self.accounting = accounting or WalletAccounting(session)
        self.resolver = resolver or ReferralTreeHelper(session)
        self.max_levels = max_levels

    @staticmethod
    def round_commission(amount: Decimal) -> Decimal:
        return amount.quantize(LedgerConfig.CENTS, rounding=ROUND_HALF_UP)

    def distribute(self, buyer: User, base_amount) -> List[CommissionCredit]:
        credits = []
        commission = to_decimal(base_amount, "base_amount") * LedgerConfig.COMMISSION_RATE

        chain = self.resolver.chain_of(buyer.id, self.max_levels)
        for level, referrer in enumerate(chain, start=1):
            paid = self.round_commission(commission)
            if paid <= ZERO:
                break

            wallet = self.session.query(Wallet).filter_by(user_id=referrer.id).one()
            transaction = self.accounting.credit(
                wallet.id,
                paid,
                TransactionType.REFERRAL_BONUS,
                f"Bônus de indicação nível {level} - compra de {buyer.name}",
                wallet_type=WalletType.REFERRAL,
            )
            credits.append(CommissionCredit(level, referrer.id, paid, transaction.id))
            logger.info(f"Level {level} commission {paid} credited to user {referrer.id} (buyer {buyer.id})")

            commission = paid * LedgerConfig.COMMISSION_DECAY

        if not credits and buyer.referrer_id is not None:
            logger.info(f"No commissions paid for buyer {buyer.id}")
        return credits
