# ledger/config.py
from decimal import Decimal

from models import Rank


class LedgerConfig:
    """
    Commission cascade: level 1 earns 10% of the plan price and every deeper
    level earns 10% of what the level above was actually paid (after rounding).
    Level 1: 10%, Level 2: 1%, Level 3: 0.1%, Level 4: 0.01%
    """

    COMMISSION_RATE = Decimal("0.10")
    COMMISSION_DECAY = Decimal("0.10")
    MAX_COMMISSION_LEVELS = 4

    # Registration walks the same depth to award career points
    CAREER_POINT_DEPTH = 4
    CAREER_POINTS_PER_REFEREE = 1

    CENTS = Decimal("0.01")

    # Highest threshold first; lower bound is inclusive
    RANK_THRESHOLDS = (
        (Decimal("10000"), Rank.DIAMOND),
        (Decimal("5000"), Rank.PLATINUM),
        (Decimal("1000"), Rank.GOLD),
        (Decimal("500"), Rank.SILVER),
        (Decimal("300"), Rank.BRONZE),
    )
    BASE_RANK = Rank.STARTER

    REFERRAL_CODE_LENGTH = 8

    # Catalog seeded by `flask seed-plans`
    DEFAULT_PLANS = (
        {"name": "Plano Bronze", "price": Decimal("100.00"), "daily_yield": Decimal("1.0")},
        {"name": "Plano Prata", "price": Decimal("300.00"), "daily_yield": Decimal("1.1")},
        {"name": "Plano Ouro", "price": Decimal("500.00"), "daily_yield": Decimal("1.4")},
        {"name": "Plano Platina", "price": Decimal("1000.00"), "daily_yield": Decimal("1.7")},
        {"name": "Plano Diamante", "price": Decimal("5000.00"), "daily_yield": Decimal("2.0")},
        {"name": "Plano Lendário", "price": Decimal("10000.00"), "daily_yield": Decimal("2.3")},
    )
    DEFAULT_PLAN_DURATION_DAYS = 30
