from flask import Blueprint


bp = Blueprint('columns', __name__)

from kanban.api.columns import routes  # noqa: E402,F401
