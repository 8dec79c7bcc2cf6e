import logging
import secrets
import string
from typing import List, Dict, Any

from models import User, Wallet
from ledger.config import LedgerConfig


logger = logging.getLogger(__name__)


class ReferralTreeHelper:
    """
    Walks the `referrer_id` parent chain. The depth cap is the only guard
    against cyclic data; cycles are not detected.
    """

    def __init__(self, session):
        self.session = session

    def chain_of(self, user_id: int, max_depth: int) -> List[User]:
        """
        Ancestors of `user_id`, closest referrer first, at most `max_depth`.
        Stops at a null referrer, a missing user, or an ancestor without a wallet.
        """
        chain = []
        user = self.session.get(User, user_id)
        if not user:
            return chain

        current_referrer_id = user.referrer_id
        for depth in range(1, max_depth + 1):
            if current_referrer_id is None:
                break

            referrer = self.session.get(User, current_referrer_id)
            wallet = None
            if referrer:
                wallet = self.session.query(Wallet).filter_by(user_id=referrer.id).first()

            if not referrer or not wallet:
                logger.warning(
                    f"Referral chain of user {user_id} broken at depth {depth} "
                    f"(referrer_id={current_referrer_id}, user_found={referrer is not None})"
                )
                break

            chain.append(referrer)
            current_referrer_id = referrer.referrer_id

        return chain

    def award_career_points(self, new_user_id: int) -> List[int]:
        """Give every ancestor (up to the configured depth) points for a new referee."""
        awarded = []
        for ancestor in self.chain_of(new_user_id, LedgerConfig.CAREER_POINT_DEPTH):
            ancestor.career_points = (ancestor.career_points or 0) + LedgerConfig.CAREER_POINTS_PER_REFEREE
            awarded.append(ancestor.id)

        if awarded:
            logger.info(f"Career points awarded to {awarded} for new referee {new_user_id}")
        return awarded

    def find_by_referral_code(self, code: str):
        if not code:
            return None
        return self.session.query(User).filter_by(referral_code=code.strip().upper()).first()

    def generate_referral_code(self, name: str = "", length: int = LedgerConfig.REFERRAL_CODE_LENGTH) -> str:
        """Name prefix (4 letters) plus random digits; falls back to fully random on collision."""
        chars = string.ascii_uppercase + string.digits
        prefix = "".join(c for c in (name or "").upper() if c.isalpha())[:4] or "USER"

        for _ in range(10):
            suffix = "".join(secrets.choice(string.digits) for _ in range(length - len(prefix)))
            code = prefix + suffix
            if not self.session.query(User.id).filter_by(referral_code=code).first():
                return code

        for _ in range(10):
            code = "".join(secrets.choice(chars) for _ in range(length))
            if not self.session.query(User.id).filter_by(referral_code=code).first():
                return code
        raise RuntimeError("Could not generate a unique referral code")

    def get_user_network_summary(self, user_id: int) -> Dict[str, Any]:
        """Upline (depth-capped) and direct downline for the profile page."""
        ancestors = self.chain_of(user_id, LedgerConfig.MAX_COMMISSION_LEVELS)
        direct = (
            self.session.query(User)
            .filter(User.referrer_id == user_id)
            .order_by(User.created_at.desc())
            .all()
        )
        return {
            "user_id": user_id,
            "ancestors": [
                {"id": a.id, "name": a.name, "level": level}
                for level, a in enumerate(ancestors, start=1)
            ],
            "direct_referrals_count": len(direct),
            "direct_referrals": [
                {
                    "id": u.id,
                    "name": u.name,
                    "rank": u.rank,
                    "created_at": u.created_at.isoformat() if u.created_at else None,
                }
                for u in direct
            ],
        }
