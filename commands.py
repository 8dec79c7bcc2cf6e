# commands.py - maintenance and scheduler entry points (`flask <command>`)
from datetime import datetime

import click
from flask.cli import AppGroup, with_appcontext

from extensions import db
from models import Plan, Role, User
from ledger.config import LedgerConfig
from ledger.daily_yield import DailyYieldProcessor
from ledger.referral_tree import ReferralTreeHelper


yields_cli = AppGroup("yields", help="Daily yield batch job.")


def seed_plans(session):
    """Insert the catalog plans that do not exist yet; returns the created names."""
    created = []
    for seed in LedgerConfig.DEFAULT_PLANS:
        if session.query(Plan).filter_by(name=seed["name"]).first():
            continue
        session.add(Plan(
            name=seed["name"],
            price=seed["price"],
            daily_yield=seed["daily_yield"],
            duration_days=LedgerConfig.DEFAULT_PLAN_DURATION_DAYS,
            active=True,
        ))
        created.append(seed["name"])
    session.commit()
    return created


def fix_referral_codes(session):
    """Give every user without a referral code a fresh one; returns how many were fixed."""
    tree = ReferralTreeHelper(session)
    users = session.query(User).filter((User.referral_code.is_(None)) | (User.referral_code == "")).all()
    for user in users:
        user.referral_code = tree.generate_referral_code(user.name)
        # flush so the next uniqueness check sees this code
        session.flush()
    session.commit()
    return len(users)


def make_admin(session, email):
    user = session.query(User).filter_by(email=email.strip().lower()).first()
    if not user:
        return None
    user.role = Role.ADMIN.value
    session.commit()
    return user


@click.command("seed-plans")
@with_appcontext
def seed_plans_command():
    """Seed the default investment plans."""
    created = seed_plans(db.session)
    if created:
        click.echo(f"Created plans: {', '.join(created)}")
    else:
        click.echo("All plans already exist.")


@click.command("fix-referral-codes")
@with_appcontext
def fix_referral_codes_command():
    """Generate referral codes for users that have none."""
    count = fix_referral_codes(db.session)
    click.echo(f"{count} user(s) updated.")


@click.command("make-admin")
@with_appcontext
@click.argument("email")
def make_admin_command(email):
    """Promote the user with EMAIL to admin."""
    user = make_admin(db.session, email)
    if not user:
        raise click.ClickException(f"No user with email {email}")
    click.echo(f"User {user.id} ({user.email}) is now admin.")


@yields_cli.command("run")
@click.option("--date", "run_date", default=None, help="Process as if today were YYYY-MM-DD.")
def run_yields_command(run_date):
    """Complete matured investments and pay today's yield."""
    now = None
    if run_date:
        try:
            now = datetime.strptime(run_date, "%Y-%m-%d")
        except ValueError:
            raise click.BadParameter("use YYYY-MM-DD", param_hint="--date")

    summary = DailyYieldProcessor(db.session).run(now=now)
    click.echo(summary["message"])


def register_commands(app):
    app.cli.add_command(seed_plans_command)
    app.cli.add_command(fix_referral_codes_command)
    app.cli.add_command(make_admin_command)
    app.cli.add_command(yields_cli)
