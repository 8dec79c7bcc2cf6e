from decimal import Decimal

from commands import fix_referral_codes, make_admin, seed_plans
from models import Plan, Role, User


def test_seed_plans_is_idempotent(session):
    created = seed_plans(session)

    assert len(created) == 6
    assert seed_plans(session) == []
    lendario = session.query(Plan).filter_by(name="Plano Lendário").one()
    assert lendario.price == Decimal("10000.00")
    assert lendario.daily_yield == Decimal("2.3")
    assert lendario.duration_days == 30


def test_fix_referral_codes(session, make_user):
    user = make_user("Quinn")
    user.referral_code = None
    session.commit()

    assert fix_referral_codes(session) == 1
    session.expire_all()
    assert session.get(User, user.id).referral_code.startswith("QUIN")


def test_make_admin(session, make_user):
    user = make_user("Rosa")

    promoted = make_admin(session, user.email.upper())

    assert promoted.id == user.id
    assert promoted.role == Role.ADMIN.value
    assert make_admin(session, "nobody@example.com") is None


def test_yields_run_cli(app):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["yields", "run", "--date", "2024-01-06"])

    assert result.exit_code == 0
    assert "Fim de semana" in result.output
