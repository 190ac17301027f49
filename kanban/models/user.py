import copy

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from kanban.extensions import jwt, db
from kanban.models.base import Entity, json_property


DEFAULT_PREFERENCES = dict(
    theme='light',
    notifications=dict(
        email=True,
        push=True,
        boardUpdates=True,
        cardAssignments=True,
    ),
    language='en',
)


@jwt.user_identity_loader
def user_identity_lookup(user):
    return str(user.id)


@jwt.user_lookup_loader
def user_lookup_callback(_jwt_header, jwt_data):
    user = User.get(jwt_data['sub'])
    # Returning None makes flask_jwt_extended reject the request
    if user is None or not user.is_active:
        return None
    return user


class User(db.Model, Entity):
    __tablename__ = 'users'

    email = db.Column(db.String(255), nullable=False, unique=True)
    hash = db.Column(db.Text, nullable=False)
    first_name = db.Column(db.String(50), nullable=False)
    last_name = db.Column(db.String(50), nullable=False)
    avatar = db.Column(db.String(500))
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    is_email_verified = db.Column(db.Boolean, default=False, nullable=False)
    last_login_at = db.Column(db.DateTime(timezone=True))
    preferences_raw = db.Column('preferences', db.Text)

    preferences = json_property('preferences_raw', DEFAULT_PREFERENCES)

    def __init__(self, **kwargs):
        password = kwargs.pop('password', None)
        kwargs.setdefault('preferences', copy.deepcopy(DEFAULT_PREFERENCES))
        if kwargs.get('email'):
            kwargs['email'] = kwargs['email'].lower()
        super().__init__(**kwargs)
        if password is not None:
            self.set_password(password)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @classmethod
    def find_by_email(cls, email: str):
        if not email:
            return None
        return db.session.execute(
            db.select(cls).filter_by(email=email.lower())).scalar_one_or_none()

    def set_password(self, password: str):
        self.hash = PasswordHasher().hash(password)

    def check_password(self, password):
        ph = PasswordHasher()
        try:
            ph.verify(self.hash, password or '')
        except (VerificationError, InvalidHashError):
            return False

        if ph.check_needs_rehash(self.hash):
            self.hash = ph.hash(password)
            db.session.commit()

        return True
