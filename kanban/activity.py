from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from kanban.extensions import db
from kanban.models.activity import Activity, ActivityType


def record(type: ActivityType, description: str, metadata: dict = None,
           user=None, board=None, column=None, card=None, is_system=False):
    """Append an audit row for a mutation that has already been committed.

    Failures are logged and swallowed; the caller's mutation stands.
    """
    board_id = board.id if board else None
    try:
        activity = Activity(
            type=type,
            description=description,
            event_metadata=metadata or {},
            is_system=is_system,
            user_id=user.id if user else None,
            board_id=board_id,
            column_id=column.id if column else None,
            card_id=card.id if card else None,
        )
        db.session.add(activity)
        if board is not None:
            board.touch()
        db.session.commit()
    except (SQLAlchemyError, TypeError, ValueError) as e:
        db.session.rollback()
        current_app.logger.error(
            f"activity {type.value} for board {board_id} not recorded: {e}")
        return None
    return activity
