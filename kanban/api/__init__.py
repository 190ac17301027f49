from flask import Blueprint


bp = Blueprint('api', __name__)

from kanban.api.boards import bp as boards_bp
bp.register_blueprint(boards_bp, url_prefix='/boards')

from kanban.api.columns import bp as columns_bp
bp.register_blueprint(columns_bp, url_prefix='/columns')

from kanban.api.cards import bp as cards_bp
bp.register_blueprint(cards_bp, url_prefix='/cards')
