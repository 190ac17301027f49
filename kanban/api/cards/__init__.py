from flask import Blueprint


bp = Blueprint('cards', __name__)

from kanban.api.cards import routes  # noqa: E402,F401
