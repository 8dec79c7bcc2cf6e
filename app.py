import os
from flask import Flask, jsonify
from config import Config
from models import User
from extensions import db, login_manager, init_extensions
from logger import configure_app_logging
from commands import register_commands
from ledger.exceptions import LedgerError
from pix.efi_client import EfiPixClient, PixProviderError


def create_app(config_class=Config, pix_client=None):
    app = Flask(__name__)
    app.config.from_object(config_class)

    if not app.debug and not app.testing:
        app.config.update(
            SESSION_COOKIE_SECURE=True,
            REMEMBER_COOKIE_SECURE=True,
        )

    # ------------------------------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------------------------------
    configure_app_logging(app)

    # ------------------------------------------------------------------------------------------
    # Database URI fix (sqlite fallback lives in instance/)
    # ------------------------------------------------------------------------------------------
    database_uri = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    if database_uri.startswith("sqlite:///"):
        os.makedirs(os.path.dirname(database_uri[len("sqlite:///"):]) or ".", exist_ok=True)

    # ------------------------------------------------------------------------------------------
    # Extensions and the Pix provider client
    # ------------------------------------------------------------------------------------------
    init_extensions(app)
    app.extensions["pix_client"] = pix_client or EfiPixClient.from_config(app.config)

    register_blueprints(app)
    register_error_handlers(app)

    register_commands(app)

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"error": "Authentication required"}), 401

    @app.route("/healthz")
    def healthz():
        return {"status": "ok"}, 200

    app.logger.info(f"Application started ({app.config.get('FLASK_ENV')})")
    return app


# ------------------------------------------------------------------------------------------------------------------------
# Register blueprints
# ------------------------------------------------------------------------------------------------------------------------
def register_blueprints(app):
    from blueprints.auth import bp as auth_bp
    from blueprints.plans import bp as plans_bp
    from blueprints.investments import bp as investments_bp
    from blueprints.profile import bp as profile_bp
    from blueprints.payments import bp as payments_bp
    from blueprints.withdrawals import bp as withdrawals_bp
    from blueprints.admin import admin_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(plans_bp)
    app.register_blueprint(investments_bp)
    app.register_blueprint(profile_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(withdrawals_bp)
    app.register_blueprint(admin_bp)


def register_error_handlers(app):

    @app.errorhandler(LedgerError)
    def handle_ledger_error(e):
        return jsonify({"error": str(e)}), e.status_code

    @app.errorhandler(PixProviderError)
    def handle_provider_error(e):
        app.logger.error(f"Pix provider error: {e}")
        return jsonify({"error": str(e)}), e.status_code


# ----------------------
# Local development
# ----------------------
if __name__ == "__main__":
    app = create_app()
    port = int(os.environ.get("PORT", 5000))
    app.run(debug=app.config.get("DEBUG", True), host="0.0.0.0", port=port)
