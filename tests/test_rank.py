from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from models import Investment, InvestmentStatus, Rank, User
from ledger.rank import RankClassifier, classify


@pytest.mark.parametrize("total,expected", [
    (Decimal("0"), Rank.STARTER),
    (Decimal("299.99"), Rank.STARTER),
    (Decimal("300"), Rank.BRONZE),
    (Decimal("499.99"), Rank.BRONZE),
    (Decimal("500"), Rank.SILVER),
    (Decimal("1000"), Rank.GOLD),
    (Decimal("5000"), Rank.PLATINUM),
    (Decimal("9999.99"), Rank.PLATINUM),
    (Decimal("10000"), Rank.DIAMOND),
    (None, Rank.STARTER),
])
def test_classify_thresholds(total, expected):
    assert classify(total) == expected


def test_recompute_counts_only_active_investments(session, make_user, make_plan):
    user = make_user("Yara")
    bronze = make_plan(name="Plano Prata", price="300.00")
    gold = make_plan(name="Plano Platina", price="1000.00")
    expires = datetime(2030, 1, 1)
    session.add_all([
        Investment(user_id=user.id, plan_id=bronze.id, expires_at=expires, status=InvestmentStatus.ACTIVE.value),
        Investment(user_id=user.id, plan_id=gold.id, expires_at=expires - timedelta(days=1),
                   status=InvestmentStatus.COMPLETED.value),
    ])
    session.commit()

    classifier = RankClassifier(session)
    assert classifier.total_active_invested(user.id) == Decimal("300")

    rank = classifier.recompute(user.id)
    session.commit()

    assert rank == Rank.BRONZE
    session.expire_all()
    stored = session.get(User, user.id)
    assert stored.rank == Rank.BRONZE.value
    assert stored.career_points == 0
