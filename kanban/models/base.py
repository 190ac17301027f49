import json
import uuid

from datetime import datetime, timezone

from kanban.extensions import db


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_uuid(value) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return None


def json_property(raw: str, default=None):
    """Expose a JSON text column as a Python value.

    Every read decodes a fresh copy, so in-place changes are not persisted;
    assign the modified value back instead.
    """
    def fget(self):
        value = getattr(self, raw)
        if value is None:
            return json.loads(json.dumps(default))
        return json.loads(value)

    def fset(self, value):
        setattr(self, raw, json.dumps(value))

    return property(fget, fset)


class Entity(object):
    id = db.Column(db.Uuid(), primary_key=True, default=uuid.uuid4)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow,
                           nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow,
                           onupdate=utcnow, nullable=False)

    @classmethod
    def get(cls, id):
        id = as_uuid(id)
        if id is None:
            return None
        return db.session.get(cls, id)


class Archivable(Entity):
    is_archived = db.Column(db.Boolean, default=False, nullable=False)

    @classmethod
    def select(cls):
        return db.select(cls).filter(cls.is_archived.is_(False))

    @classmethod
    def get_active(cls, id):
        entity = cls.get(id)
        if entity is None or entity.is_archived:
            return None
        return entity
