from http import HTTPStatus as status


class KanbanError(Exception):
    code = status.INTERNAL_SERVER_ERROR
    message = "Internal server error"

    def __init__(self, message: str = None, errors: list = None):
        super().__init__(message or self.message)
        if message:
            self.message = message
        self.errors = errors

    def to_dict(self) -> dict:
        d = dict(success=False, message=self.message)
        if self.errors is not None:
            d['errors'] = self.errors
        return d


class NotFound(KanbanError):
    code = status.NOT_FOUND
    message = "Resource not found"


class Unauthorized(KanbanError):
    code = status.UNAUTHORIZED
    message = "Unauthorized access"


class Forbidden(KanbanError):
    code = status.FORBIDDEN
    message = "Forbidden access"


class Conflict(KanbanError):
    code = status.CONFLICT
    message = "Resource conflict"


class ValidationFailed(KanbanError):
    code = status.BAD_REQUEST
    message = "Validation failed"


class TooManyRequests(KanbanError):
    code = status.TOO_MANY_REQUESTS
    message = "Too many authentication attempts. Please try again later."


def pydantic_errors(e) -> list[dict]:
    """Flatten a pydantic ValidationError into field-level entries."""
    errors = []
    for err in e.errors():
        errors.append(dict(
            field='.'.join(str(p) for p in err['loc']),
            message=err['msg'],
            value=err.get('input') if not isinstance(
                err.get('input'), dict) else None,
        ))
    return errors
