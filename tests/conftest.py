"""Pytest configuration and shared fixtures for all tests."""

import os
import tempfile
from decimal import Decimal

# Log files go to a throwaway directory; must be set before the app modules import
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="tdp-logs-"))
os.environ.setdefault("SECRET_KEY", "test_secret_key_for_testing_only")

import pytest

from app import create_app
from config import TestConfig
from extensions import db as _db
from models import Plan, Role, User, Wallet


class FakePixClient:
    """Stands in for EfiPixClient; records charges instead of calling the provider."""

    def __init__(self):
        self.charges = []
        self._next_location = 100

    def create_immediate_charge(self, txid, amount, cpf, name):
        self._next_location += 1
        self.charges.append({"txid": txid, "amount": amount, "cpf": cpf, "name": name})
        return {
            "txid": txid,
            "status": "ATIVA",
            "loc": {"id": self._next_location},
        }

    def generate_qr_code(self, location_id):
        return {
            "qrcode": f"00020101021226830014BR.GOV.BCB.PIX{location_id}",
            "imagemQrcode": "data:image/png;base64,iVBORw0KGgo=",
        }


@pytest.fixture
def pix_client():
    return FakePixClient()


@pytest.fixture
def app(pix_client):
    app = create_app(TestConfig, pix_client=pix_client)
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def session(app):
    return _db.session


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(session):
    """Factory: user plus wallet (unless with_wallet=False), committed."""
    counter = {"n": 0}

    def _make_user(name="User", referrer=None, balance="0", referral_balance="0",
                   with_wallet=True, role=Role.USER, password="secret123", cpf=None):
        counter["n"] += 1
        user = User(
            name=name,
            email=f"{name.lower().replace(' ', '.')}.{counter['n']}@example.com",
            role=role.value,
            cpf=cpf,
            referral_code=f"CODE{counter['n']:04d}",
            referrer_id=referrer.id if referrer else None,
        )
        user.set_password(password)
        session.add(user)
        session.flush()
        if with_wallet:
            session.add(Wallet(
                user_id=user.id,
                balance=Decimal(balance),
                referral_balance=Decimal(referral_balance),
            ))
        session.commit()
        return user

    return _make_user


@pytest.fixture
def make_plan(session):
    def _make_plan(name="Plano Teste", price="1000.00", daily_yield="1.0", duration_days=30, active=True):
        plan = Plan(
            name=name,
            price=Decimal(price),
            daily_yield=Decimal(daily_yield),
            duration_days=duration_days,
            active=active,
        )
        session.add(plan)
        session.commit()
        return plan

    return _make_plan


def wallet_of(session, user):
    session.expire_all()
    return session.query(Wallet).filter_by(user_id=user.id).one()


def login(client, user, password="secret123"):
    resp = client.post("/api/login", json={"email": user.email, "password": password})
    assert resp.status_code == 200, resp.get_json()
    return resp
