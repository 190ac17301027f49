from kanban.extensions import jwt, db


@jwt.token_in_blocklist_loader
def check_if_token_revoked(_jwt_header, jwt_payload: dict) -> bool:
    return TokenBlocklist.is_revoked(jwt_payload['jti'])


class TokenBlocklist(db.Model):
    jti = db.Column(db.String(36), primary_key=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False)

    @classmethod
    def is_revoked(cls, jti: str) -> bool:
        token = db.session.execute(
            db.select(cls.jti).filter_by(jti=jti)).scalar_one_or_none()
        return token is not None
