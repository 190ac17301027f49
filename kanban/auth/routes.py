from datetime import datetime, timezone
from http import HTTPStatus as status

from flask import current_app, jsonify, request
from flask_jwt_extended import (
    create_access_token,
    create_refresh_token,
    current_user,
    get_jwt,
    jwt_required,
    set_access_cookies,
    unset_jwt_cookies
)

from kanban import notifications
from kanban.api.common import parse, respond
from kanban.auth import bp
from kanban.errors import Conflict, Forbidden, Unauthorized
from kanban.extensions import db
from kanban.models.blocklist import TokenBlocklist
from kanban.models.user import User
from kanban.ratelimit import rate_limited
from kanban.schemas import (
    LoginIn,
    PasswordChangeIn,
    RegisterIn,
    UserOut,
    dump
)


def _revoke_current_token():
    jti = get_jwt()["jti"]
    now = datetime.now(timezone.utc)
    db.session.merge(TokenBlocklist(jti=jti, created_at=now))
    db.session.commit()


def _issue_tokens(user: User, message: str, code=status.OK):
    access_token = create_access_token(identity=user)
    refresh_token = create_refresh_token(identity=user)
    response = jsonify(
        success=True,
        message=message,
        data=dict(
            user=dump(UserOut, user),
            tokens=dict(accessToken=access_token, refreshToken=refresh_token),
        ),
    )
    set_access_cookies(response, access_token)
    return response, code


@bp.route("/register", methods=["POST"])
@rate_limited('auth')
def register():
    form = parse(RegisterIn, request.get_json(silent=True))
    if User.find_by_email(form.email):
        raise Conflict("User already exists with this email")

    user = User(
        email=form.email,
        password=form.password,
        first_name=form.first_name,
        last_name=form.last_name,
        avatar=form.avatar,
    )
    db.session.add(user)
    db.session.commit()
    current_app.logger.info(f"user {user.id} registered")

    notifications.welcome(user)
    return _issue_tokens(user, "User registered successfully", status.CREATED)


@bp.route("/login", methods=["POST"])
@rate_limited('auth')
def login():
    form = parse(LoginIn, request.get_json(silent=True))
    user = User.find_by_email(form.email)
    if not user or not user.check_password(form.password):
        raise Unauthorized("Invalid email or password")
    if not user.is_active:
        raise Unauthorized("Account is deactivated")

    user.last_login_at = datetime.now(timezone.utc)
    db.session.commit()
    return _issue_tokens(user, "Login successful")


@bp.route("/refresh", methods=["POST"])
@jwt_required(refresh=True)
def refresh():
    _revoke_current_token()
    return _issue_tokens(current_user, "Token refreshed successfully")


@bp.route("/logout", methods=["DELETE"])
@jwt_required(verify_type=False)
def logout():
    _revoke_current_token()
    response, code = respond(message="Logout successful")
    unset_jwt_cookies(response)
    return response, code


@bp.route("/me", methods=["GET"])
@jwt_required()
def get_user():
    return respond(dump(UserOut, current_user))


@bp.route("/password", methods=["PATCH"])
@jwt_required()
def password_change():
    form = parse(PasswordChangeIn, request.get_json(silent=True))
    if not current_user.check_password(form.old_password):
        raise Forbidden("Current password is incorrect")

    current_user.set_password(form.new_password)
    db.session.commit()
    return '', status.NO_CONTENT
