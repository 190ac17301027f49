from http import HTTPStatus as status

from flask import jsonify

from kanban.errors import NotFound


def parse(schema, data):
    """Validate ``data`` against ``schema``. Errors surface as 400."""
    return schema.model_validate(data or {})


def respond(data=None, message: str = None, code=status.OK):
    body = dict(success=True)
    if message:
        body['message'] = message
    if data is not None:
        body['data'] = data
    return jsonify(body), code


def get_or_404(klass: type, id, message: str = None):
    entity = klass.get_active(id) if hasattr(klass, 'get_active') \
        else klass.get(id)
    if entity is None:
        raise NotFound(message or f"{klass.__name__} not found")
    return entity


def pagination(page) -> dict:
    return dict(
        page=page.page,
        limit=page.per_page,
        total=page.total,
        pages=page.pages,
    )
