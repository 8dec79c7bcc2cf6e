# logger.py - Centralized logging configuration
import os
import logging
from logging.handlers import RotatingFileHandler


FILE_FORMAT = "%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]"
CONSOLE_FORMAT = "%(name)s - %(levelname)s - %(message)s"


def _rotating_handler(path, level):
    handler = RotatingFileHandler(path, maxBytes=1024 * 1024, backupCount=10, encoding="utf-8")
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    handler.setLevel(level)
    return handler


def setup_logger(name, log_file=None, level=logging.INFO):
    """Named logger writing to <LOG_DIR>/<name>.log, plus the console outside production."""
    log_dir = os.environ.get("LOG_DIR", "logs")
    os.makedirs(log_dir, exist_ok=True)

    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(level)
    logger.addHandler(_rotating_handler(log_file or os.path.join(log_dir, f"{name}.log"), level))

    if os.environ.get("FLASK_ENV") != "production":
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        logger.addHandler(console_handler)

    return logger


def configure_app_logging(app):
    """Route app.logger to <LOG_DIR>/app.log; module loggers (`__name__`) share the same file."""
    log_dir = app.config.get("LOG_DIR", "logs")
    os.makedirs(log_dir, exist_ok=True)

    file_handler = _rotating_handler(os.path.join(log_dir, "app.log"), logging.INFO)

    app.logger.handlers.clear()
    app.logger.addHandler(file_handler)
    app.logger.setLevel(logging.INFO)
    app.logger.propagate = False

    # ledger/blueprint modules log through logging.getLogger(__name__)
    for package in ("ledger", "blueprints"):
        package_logger = logging.getLogger(package)
        package_logger.handlers = [h for h in package_logger.handlers
                                   if not isinstance(h, RotatingFileHandler)]
        package_logger.addHandler(file_handler)
        package_logger.setLevel(logging.INFO)

    if app.debug:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.DEBUG)
        app.logger.addHandler(console_handler)


payments_logger = setup_logger("payments")
jobs_logger = setup_logger("jobs")
