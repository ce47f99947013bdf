import os

import click
from flask import Flask, jsonify

import rpc
from logging_setup import setup_logging
from models import db


def create_app(test_config=None):
    """
    Application factory to create and configure the Flask app.

    Settings come from defaults, then environment variables, then
    `test_config` (used by the test suite).
    """
    app = Flask(__name__)

    # SQLite file by default; any SQLAlchemy URL via DATABASE_URL.
    app.config["SQLALCHEMY_DATABASE_URI"] = os.environ.get(
        "DATABASE_URL", "sqlite:///tasks.db"
    )
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False

    # Any method accepted by werkzeug.security.generate_password_hash.
    app.config["PASSWORD_HASH_METHOD"] = os.environ.get("PASSWORD_HASH_METHOD", "scrypt")
    app.config["LOG_LEVEL"] = os.environ.get("LOG_LEVEL", "INFO")

    if test_config is not None:
        app.config.update(test_config)

    if not app.testing:
        setup_logging(app.config["LOG_LEVEL"])

    # No sessions and no browser forms: the RPC endpoints take JSON bodies,
    # so neither SECRET_KEY nor CSRF protection is configured.
    db.init_app(app)

    app.register_blueprint(rpc.bp)

    with app.app_context():
        db.create_all()

    @app.cli.command("init-db")
    def init_db_command():
        """Create the users and tasks tables if they do not exist."""
        db.create_all()
        click.echo(f"Initialized database at {app.config['SQLALCHEMY_DATABASE_URI']}")

    # -----------------------------
    # Error handlers
    # -----------------------------

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": {"kind": "not_found", "message": "Unknown procedure"}}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return (
            jsonify({"error": {"kind": "method_not_allowed", "message": "Method not allowed"}}),
            405,
        )

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return (
            jsonify({"error": {"kind": "internal_error", "message": "Internal server error"}}),
            500,
        )

    app.logger.info("App configured db=%s", app.config["SQLALCHEMY_DATABASE_URI"])
    return app


if __name__ == "__main__":
    # Development server only; use a WSGI server such as gunicorn in production
    # (gunicorn "app:create_app()").
    app = create_app()
    app.run(port=int(os.environ.get("SERVER_PORT", 2022)), debug=True)
