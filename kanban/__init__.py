import logging
import os
import sys

import click

from http import HTTPStatus as status
from datetime import datetime, timedelta, timezone

from flask import jsonify, Flask
from flask_jwt_extended import (
    create_access_token,
    get_jwt,
    set_access_cookies,
    get_current_user
)
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from kanban.errors import KanbanError, pydantic_errors
from kanban.extensions import db, jwt, migrate, sio
from kanban.notifications import (
    Mailer,
    send_due_date_reminders,
    start_worker
)
from kanban.ratelimit import InMemoryRateLimitStore
from kanban.realtime import Presence
from kanban.utils.first_init import first_init
from kanban.utils.converters import UuidConverter


def _sqlite_pragmas(app: Flask):
    if 'sqlite' in app.config['SQLALCHEMY_DATABASE_URI']:
        def _pragma_on_connect(dbapi_con, con_record):
            dbapi_con.execute('PRAGMA journal_mode=WAL')
            dbapi_con.execute('PRAGMA foreign_keys=ON')

        with app.app_context():
            from sqlalchemy import event
            event.listen(db.engine, 'connect', _pragma_on_connect)


def _error(message: str, code, errors: list = None):
    body = dict(success=False, message=message)
    if errors is not None:
        body['errors'] = errors
    return jsonify(body), code


def _register_error_handlers(app: Flask):
    @app.errorhandler(KanbanError)
    def handle_kanban_error(e):
        return jsonify(e.to_dict()), e.code

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        return _error("Validation failed", status.BAD_REQUEST,
                      pydantic_errors(e))

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(e):
        db.session.rollback()
        app.logger.info(f"integrity error: {e.orig}")
        return _error("Resource already exists", status.CONFLICT)

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        return _error(e.name, e.code)

    @app.errorhandler(Exception)
    def handle_exception(e):
        db.session.rollback()
        app.logger.exception(f"unhandled error: {e}")
        return _error("Internal server error",
                      status.INTERNAL_SERVER_ERROR)

    @jwt.unauthorized_loader
    def missing_token(reason):
        return _error("Access token required", status.UNAUTHORIZED)

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return _error("Invalid token", status.UNAUTHORIZED)

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return _error("Token expired", status.UNAUTHORIZED)

    @jwt.revoked_token_loader
    def revoked_token(jwt_header, jwt_payload):
        return _error("Token has been revoked", status.UNAUTHORIZED)

    @jwt.user_lookup_error_loader
    def unknown_user(jwt_header, jwt_payload):
        return _error("User not found or inactive", status.UNAUTHORIZED)


def create_app(test_config=None, rate_limit_store=None, mailer=None):
    app = Flask(__name__)
    app.config['JWT_TOKEN_LOCATION'] = ['headers', 'cookies']
    app.config['JWT_ALGORITHM'] = 'RS256'
    app.config['JWT_ACCESS_TOKEN_EXPIRES'] = timedelta(minutes=15)
    app.config['JWT_REFRESH_TOKEN_EXPIRES'] = timedelta(days=7)
    app.config['JWT_COOKIE_SECURE'] = True
    app.config['JWT_PRIVATE_KEY_FILE'] = '/data/jwt_private_key.pem'
    app.config['JWT_PUBLIC_KEY_FILE'] = '/data/jwt_public_key.pem'
    app.config['SQLALCHEMY_DATABASE_URI'] = 'sqlite:////data/kanban.db'
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['AUTH_RATE_LIMIT'] = 50
    app.config['AUTH_RATE_WINDOW'] = 15 * 60
    app.config['MAIL_SERVER'] = None
    app.config['MAIL_PORT'] = 587
    app.config['MAIL_USE_TLS'] = True
    app.config['MAIL_USERNAME'] = None
    app.config['MAIL_PASSWORD'] = None
    app.config['MAIL_FROM'] = 'Kanban <noreply@kanban.local>'
    app.config['FRONTEND_URL'] = 'http://localhost:3000'
    app.config['SOCKETIO_CORS_ORIGINS'] = None
    app.config['ADMIN_EMAIL'] = 'admin@kanban.local'

    if test_config:
        app.config.update(test_config)
    else:
        app.config.from_prefixed_env()

    app.logger.addHandler(logging.StreamHandler(sys.stdout))
    app.logger.setLevel(logging.INFO)

    app.url_map.converters['uuid'] = UuidConverter

    ctx = click.get_current_context(silent=True)
    if not ctx:
        with open(app.config['JWT_PRIVATE_KEY_FILE']) as f:
            app.config['JWT_PRIVATE_KEY'] = f.read()
        with open(app.config['JWT_PUBLIC_KEY_FILE']) as f:
            app.config['JWT_PUBLIC_KEY'] = f.read()

    @app.cli.command("init")
    def init_command():
        first_init()

    @app.cli.command("reminders")
    def reminders_command():
        """Email assignees of cards that are due tomorrow."""
        count = send_due_date_reminders()
        app.extensions['mail_queue'].join()
        click.echo(f"{count} reminders sent")

    @app.after_request
    def refresh_expiring_jwts(response):
        try:
            token = get_jwt()
            if token["type"] != "access":
                return response
            now = datetime.now(timezone.utc)
            target_timestamp = datetime.timestamp(now + timedelta(minutes=5))
            if target_timestamp > token["exp"]:
                access_token = create_access_token(identity=get_current_user())
                set_access_cookies(response, access_token)
            return response
        except (RuntimeError, KeyError):
            # If there is not a valid JWT, just return the original response
            return response

    _register_error_handlers(app)

    # Collaborators that must not live in module globals
    app.extensions['presence'] = Presence()
    app.extensions['rate_limit_store'] = \
        rate_limit_store or InMemoryRateLimitStore()
    app.extensions['mailer'] = mailer or Mailer.from_config(app)
    app.extensions['mail_queue'] = start_worker(app,
                                                app.extensions['mailer'])

    jwt.init_app(app)
    sio.init_app(app, cors_allowed_origins=(
        app.config['SOCKETIO_CORS_ORIGINS'] or app.config['FRONTEND_URL']))

    db.init_app(app)
    _sqlite_pragmas(app)
    migrate.init_app(app, db, directory=os.path.join(
        os.path.dirname(__file__), 'migrations'))

    from kanban.auth import bp as auth_bp
    app.register_blueprint(auth_bp, url_prefix='/auth')

    from kanban.api import bp as api_bp
    app.register_blueprint(api_bp, url_prefix='/api')

    return app
