from datetime import datetime, timezone
from http import HTTPStatus as status

from flask import g, request
from flask_jwt_extended import current_user, jwt_required
from sqlalchemy.exc import SQLAlchemyError

from kanban.activity import record
from kanban.api.columns import bp
from kanban.api.common import parse, respond
from kanban.capabilities import Capability
from kanban.errors import NotFound, ValidationFailed
from kanban.extensions import db
from kanban.models.activity import Activity, ActivityType
from kanban.models.card import Card, Priority
from kanban.models.column import Column
from kanban.ordering import move_column
from kanban.permissions import board_permission
from kanban.realtime import broadcast
from kanban.schemas import (
    ActivityOut,
    CardOut,
    ColumnIn,
    ColumnOut,
    ColumnPositionsIn,
    ColumnUpdate,
    dump,
    dump_all
)


def column_detail(column: Column) -> dict:
    data = dump(ColumnOut, column)
    cards = [c for c in column.cards if not c.is_archived]
    data['cards'] = dump_all(CardOut, cards)
    data['cardCount'] = len(cards)
    return data


def active_columns(board_id) -> list[Column]:
    return list(db.session.execute(
        Column.select().filter_by(board_id=board_id)
        .order_by(Column.position)).scalars())


def create_column(board, form: ColumnIn):
    column = Column(
        name=form.name,
        description=form.description,
        color=form.color,
        card_limit=form.card_limit,
        settings=form.settings,
        board_id=board.id,
        position=Column.next_position(board.id),
    )
    db.session.add(column)
    db.session.flush()
    if form.position is not None:
        move_column(column, form.position)
    db.session.commit()

    record(ActivityType.COLUMN_CREATED, f'Created column "{column.name}"',
           metadata=dict(columnName=column.name, position=column.position),
           user=current_user, board=board, column=column)
    data = column_detail(column)
    broadcast(board.id, 'column-created', dict(column=data), current_user)
    return respond(data, "Column created successfully", status.CREATED)


def _load_column(column_id) -> Column:
    column = Column.get(column_id)
    if column is None or column.board_id != g.board.id:
        raise NotFound("Column not found")
    return column


@bp.route('/board/<uuid:board_id>', methods=['GET'])
@jwt_required()
@board_permission()
def get_board_columns(board_id):
    columns = active_columns(board_id)
    return respond([column_detail(c) for c in columns])


@bp.route('', methods=['POST'])
@jwt_required()
@board_permission(Capability.CREATE_COLUMNS)
def create():
    form = parse(ColumnIn, request.get_json(silent=True))
    if form.board_id != g.board.id:
        raise ValidationFailed("boardId does not match the target board")
    return create_column(g.board, form)


@bp.route('/<uuid:column_id>', methods=['GET'])
@jwt_required()
@board_permission()
def get(column_id):
    return respond(column_detail(_load_column(column_id)))


@bp.route('/<uuid:column_id>', methods=['PUT'])
@jwt_required()
@board_permission(Capability.EDIT_COLUMNS)
def update(column_id):
    column = _load_column(column_id)
    form = parse(ColumnUpdate, request.get_json(silent=True))
    changes = form.model_dump(exclude_unset=True)

    position = changes.pop('position', None)
    if 'settings' in changes:
        column.settings = {**column.settings, **(changes.pop('settings') or {})}
    for key, value in changes.items():
        if value is None and key not in ('description', 'card_limit'):
            continue
        setattr(column, key, value)

    reordered = None
    if position is not None:
        reordered = move_column(column, position)
    db.session.commit()

    record(ActivityType.COLUMN_UPDATED, f'Updated column "{column.name}"',
           metadata=dict(changes=form.model_dump(
               exclude_unset=True, by_alias=True, mode='json')),
           user=current_user, board=g.board, column=column)
    data = dump(ColumnOut, column)
    broadcast(g.board.id, 'column-updated', dict(column=data), current_user)
    if reordered is not None:
        broadcast(g.board.id, 'columns-reordered', dict(columns=[
            dict(id=str(c.id), position=c.position) for c in reordered
        ]), current_user)
    return respond(data, "Column updated successfully")


@bp.route('/positions', methods=['PUT'])
@jwt_required()
@board_permission(Capability.EDIT_COLUMNS)
def update_positions():
    form = parse(ColumnPositionsIn, request.get_json(silent=True))
    if form.board_id != g.board.id:
        raise ValidationFailed("boardId does not match the target board")

    updates = []
    for item in form.columns:
        updates.append((_load_column(item.id), item.position))

    try:
        for column, position in updates:
            column.position = position
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    positions = [dict(id=str(c.id), position=p) for c, p in updates]
    record(ActivityType.COLUMN_UPDATED, "Reordered columns",
           metadata=dict(columnPositions=positions),
           user=current_user, board=g.board)
    broadcast(g.board.id, 'columns-reordered', dict(columns=positions),
              current_user)
    return respond(dump_all(ColumnOut, active_columns(g.board.id)),
                   "Column positions updated successfully")


@bp.route('/<uuid:column_id>', methods=['DELETE'])
@jwt_required()
@board_permission(Capability.DELETE_COLUMNS)
def delete(column_id):
    column = _load_column(column_id)
    column.archive()
    db.session.commit()

    record(ActivityType.COLUMN_DELETED, f'Deleted column "{column.name}"',
           metadata=dict(columnName=column.name),
           user=current_user, board=g.board, column=column)
    broadcast(g.board.id, 'column-deleted', dict(columnId=str(column.id)),
              current_user)
    return respond(message="Column deleted successfully")


@bp.route('/<uuid:column_id>/archive', methods=['PUT'])
@jwt_required()
@board_permission(Capability.DELETE_COLUMNS)
def archive(column_id):
    column = _load_column(column_id)
    column.archive()
    db.session.commit()

    record(ActivityType.COLUMN_ARCHIVED, f'Archived column "{column.name}"',
           user=current_user, board=g.board, column=column)
    data = dump(ColumnOut, column)
    broadcast(g.board.id, 'column-updated', dict(column=data), current_user)
    return respond(data, "Column archived successfully")


@bp.route('/<uuid:column_id>/restore', methods=['PUT'])
@jwt_required()
@board_permission(Capability.EDIT_COLUMNS)
def restore(column_id):
    column = _load_column(column_id)
    column.is_archived = False
    db.session.commit()

    record(ActivityType.COLUMN_RESTORED, f'Restored column "{column.name}"',
           user=current_user, board=g.board, column=column)
    data = dump(ColumnOut, column)
    broadcast(g.board.id, 'column-updated', dict(column=data), current_user)
    return respond(data, "Column restored successfully")


@bp.route('/<uuid:column_id>/stats', methods=['GET'])
@jwt_required()
@board_permission()
def stats(column_id):
    column = _load_column(column_id)
    active = (Card.column_id == column.id, Card.is_archived.is_(False))

    def count(*criteria) -> int:
        return db.session.execute(
            db.select(db.func.count(Card.id))
            .filter(*active, *criteria)).scalar_one()

    total = count()
    completed = count(Card.is_completed.is_(True))
    overdue = count(Card.is_completed.is_(False),
                    Card.due_date < datetime.now(timezone.utc))

    priorities = {p.value: 0 for p in Priority}
    rows = db.session.execute(
        db.select(Card.priority, db.func.count(Card.id))
        .filter(*active).group_by(Card.priority))
    for priority, n in rows:
        priorities[priority.value] = n

    recent = Activity.recent(10, column_id=column.id)
    return respond(dict(
        totalCards=total,
        completedCards=completed,
        overdueCards=overdue,
        progress=round(completed / total * 100) if total else 0,
        priorityBreakdown=priorities,
        recentActivity=dump_all(ActivityOut, recent),
    ))
