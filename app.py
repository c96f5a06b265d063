import os

from dotenv import load_dotenv
from flask import Flask, jsonify
from loguru import logger
from marshmallow import ValidationError

from errors import DomainError, InternalError, invalid_data
from logger_config import configure_logging
from models import db
from routes.booking_routes import booking_bp
from routes.movie_routes import movie_bp
from routes.showtime_routes import showtime_bp

load_dotenv()


def create_app(test_config=None):
    app = Flask(__name__)
    app.config["SQLALCHEMY_DATABASE_URI"] = os.getenv("DATABASE_URL", "sqlite:///popcorn_palace.db")
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    # Every check-then-write runs in one serializable transaction
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = {"isolation_level": "SERIALIZABLE"}
    app.config['SECRET_KEY'] = os.getenv("SECRET_KEY")
    app.config["LOG_LEVEL"] = os.getenv("LOG_LEVEL", "INFO")
    app.config["LOG_FILE"] = os.getenv("LOG_FILE")
    try:
        app.config["TX_MAX_ATTEMPTS"] = int(os.getenv("TX_MAX_ATTEMPTS", "3"))
        app.config["TX_RETRY_BACKOFF"] = float(os.getenv("TX_RETRY_BACKOFF", "0.05"))
    except ValueError:
        app.config["TX_MAX_ATTEMPTS"] = 3
        app.config["TX_RETRY_BACKOFF"] = 0.05

    if test_config:
        app.config.update(test_config)

    configure_logging(app.config["LOG_LEVEL"], app.config["LOG_FILE"])

    db.init_app(app)
    app.register_blueprint(showtime_bp)
    app.register_blueprint(booking_bp)
    app.register_blueprint(movie_bp)
    register_error_handlers(app)

    with app.app_context():
        db.create_all()

    return app


def register_error_handlers(app):
    @app.errorhandler(DomainError)
    def handle_domain_error(exc):
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(ValidationError)
    def handle_validation_error(exc):
        error = invalid_data(exc)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(InternalError)
    def handle_internal_error(exc):
        logger.opt(exception=exc).error("Internal error while handling request")
        return jsonify({"message": "Internal Server Error", "error": "internal"}), 500


if __name__ == '__main__':
    create_app().run(debug=True)
