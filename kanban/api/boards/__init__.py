from flask import Blueprint


bp = Blueprint('boards', __name__)

from kanban.api.boards import routes  # noqa: E402,F401
