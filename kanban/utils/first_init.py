import secrets

from os import path

from flask import current_app
from flask_migrate import upgrade as db_upgrade

from kanban.extensions import db
from kanban.models.user import User


def _generate_rsa_keys(priv_file: str, pub_file: str):
    from cryptography.hazmat.primitives.asymmetric import rsa
    from cryptography.hazmat.primitives import serialization

    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_key = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    ).decode('utf-8')
    public_key = key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    ).decode('utf-8')

    with open(priv_file, 'w') as f:
        f.write(private_key)
    with open(pub_file, 'w') as f:
        f.write(public_key)


def _create_admin(email: str):
    password = secrets.token_urlsafe(20)
    user = User(
        email=email,
        password=password,
        first_name="Admin",
        last_name="User",
        is_email_verified=True,
    )
    db.session.add(user)
    db.session.commit()
    current_app.logger.info(f"GENERATED INITIAL ACCOUNT: {email}:{password}")


def _initiate_database():
    db_upgrade()
    _create_admin(current_app.config['ADMIN_EMAIL'])


def first_init():
    if not path.isfile(current_app.config['JWT_PRIVATE_KEY_FILE']):
        _generate_rsa_keys(current_app.config['JWT_PRIVATE_KEY_FILE'],
                           current_app.config['JWT_PUBLIC_KEY_FILE'])
    if db.inspect(db.engine).has_table('users'):
        db_upgrade()
    else:
        _initiate_database()
