import uuid

from werkzeug.routing import BaseConverter, ValidationError


class UuidConverter(BaseConverter):
    """Matches both dashed and hex UUIDs; anything else is a 404."""

    def to_python(self, value):
        try:
            return uuid.UUID(value)
        except ValueError:
            raise ValidationError()

    def to_url(self, value):
        return str(value)
