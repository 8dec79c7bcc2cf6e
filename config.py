# ==========================================================================================================
# -------------- Configuration file for the TDP Invest Flask application -----------------------------------
# ==========================================================================================================
import os
from decimal import Decimal
from dotenv import load_dotenv


if os.environ.get("FLASK_ENV") != "production":
    load_dotenv()

basedir = os.path.abspath(os.path.dirname(__file__))


class Config:
    """Base configuration class for Flask app (used in all environments)."""

    SECRET_KEY = os.getenv("SECRET_KEY", "dev_key_change_me")

    FLASK_ENV = os.getenv("FLASK_ENV", "production")
    DEBUG = os.getenv("DEBUG", "False").lower() in ("true", "1", "t")
    TESTING = False

    _database_url = os.getenv("DATABASE_URL")
    if not _database_url:
        _database_url = f"sqlite:///{os.path.join(basedir, 'instance', 'tdpinvest.db')}"

    if _database_url.startswith("postgres://"):
        _database_url = _database_url.replace("postgres://", "postgresql+pg8000://", 1)
    elif _database_url.startswith("postgresql://"):
        _database_url = _database_url.replace("postgresql://", "postgresql+pg8000://", 1)

    SQLALCHEMY_DATABASE_URI = _database_url
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_size": 10,
        "max_overflow": 20,
        "pool_pre_ping": True,
        "pool_recycle": 300,
    } if not _database_url.startswith("sqlite") else {}

    # Efí (Gerencianet) Pix credentials
    EFI_CLIENT_ID = os.getenv("EFI_CLIENT_ID")
    EFI_CLIENT_SECRET = os.getenv("EFI_CLIENT_SECRET")
    # PEM file holding certificate and key (requests cannot read .p12/.pfx);
    # convert with: openssl pkcs12 -in cert.p12 -out cert.pem -nodes
    EFI_CERTIFICATE_PATH = os.getenv("EFI_CERTIFICATE_PATH")
    EFI_SANDBOX = os.getenv("EFI_SANDBOX", "false").lower() in ("true", "1", "t")
    PIX_KEY = os.getenv("PIX_KEY") or os.getenv("CHAVE_PIX")
    PIX_CHARGE_EXPIRATION_SECONDS = int(os.getenv("PIX_CHARGE_EXPIRATION_SECONDS", "3600"))
    PIX_MIN_DEPOSIT = Decimal(os.getenv("PIX_MIN_DEPOSIT", "10.00"))

    REQUEST_TIMEOUT_SECONDS = int(os.getenv("REQUEST_TIMEOUT_SECONDS", "60"))

    LOG_DIR = os.getenv("LOG_DIR", "logs")

    SESSION_COOKIE_HTTPONLY = True
    REMEMBER_COOKIE_HTTPONLY = True


class TestConfig(Config):
    """In-memory database, no provider credentials."""

    TESTING = True
    DEBUG = False
    FLASK_ENV = "testing"
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    EFI_CLIENT_ID = None
    EFI_CLIENT_SECRET = None
    EFI_CERTIFICATE_PATH = None
    PIX_KEY = "pix-test-key"
