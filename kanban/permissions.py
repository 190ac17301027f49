from functools import wraps

from flask import g, request
from flask_jwt_extended import current_user

from kanban.capabilities import Capability, Permissions, Role
from kanban.errors import Forbidden, NotFound
from kanban.models.base import as_uuid
from kanban.models.board import Board
from kanban.models.card import Card
from kanban.models.column import Column
from kanban.models.member import BoardMember


class OwnerMembership:
    """Stand-in membership for a board owner: every capability, no map."""
    role = Role.OWNER

    def __init__(self, board):
        self.board_id = board.id
        self.user_id = board.owner_id

    @property
    def permissions(self) -> Permissions:
        return Permissions.all()

    def has_permission(self, capability) -> bool:
        return True


def _column_board(column_id):
    column = Column.get(column_id)
    return column.board_id if column else None


def _card_board(card_id):
    card = Card.get(card_id)
    return card.board_id if card else None


def resolve_board_id(view_args: dict, body: dict):
    """Find the board a request targets, first match wins.

    A reference that points at nothing falls through to the next source.
    """
    body = body if isinstance(body, dict) else {}
    candidates = (
        lambda: as_uuid(view_args.get('board_id')),
        lambda: _column_board(view_args.get('column_id')),
        lambda: as_uuid(body.get('boardId')),
        lambda: _column_board(body.get('columnId')),
        lambda: _column_board(body.get('targetColumnId')),
        lambda: _card_board(view_args.get('card_id')),
    )
    for candidate in candidates:
        board_id = candidate()
        if board_id is not None:
            return board_id
    return None


def membership_for(board: Board, user):
    """Effective membership of ``user`` on ``board``, or None."""
    if board.owner_id == user.id:
        return OwnerMembership(board)
    return BoardMember.find(board.id, user.id)


def check_board_access(board: Board, user, capability: Capability = None):
    membership = membership_for(board, user)
    if membership is None:
        raise Forbidden("Not a board member")
    if capability is not None and not membership.has_permission(capability):
        raise Forbidden(
            f"Insufficient permissions: {capability.value} required")
    return membership


def board_permission(capability: Capability = None):
    """Guard a view with board membership and, optionally, a capability.

    Must be applied below ``jwt_required``. Sets ``g.board`` and
    ``g.membership``; both stay None when a card-scoped request has no
    resolvable board, leaving the handler to load the card itself.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            g.board = None
            g.membership = None
            view_args = request.view_args or {}
            board_id = resolve_board_id(view_args,
                                        request.get_json(silent=True))
            if board_id is None:
                if 'card_id' in view_args:
                    return fn(*args, **kwargs)
                raise NotFound("Board not found")

            board = Board.get(board_id)
            if board is None:
                raise NotFound("Board not found")

            g.board = board
            g.membership = check_board_access(board, current_user, capability)
            return fn(*args, **kwargs)
        return wrapper
    return decorator
