from datetime import timezone
from http import HTTPStatus as status

from flask import g, request
from flask_jwt_extended import current_user, jwt_required

from kanban import notifications
from kanban.activity import record
from kanban.api.cards import bp
from kanban.api.common import get_or_404, pagination, parse, respond
from kanban.capabilities import Capability
from kanban.errors import Conflict, Forbidden, NotFound, ValidationFailed
from kanban.extensions import db
from kanban.models.activity import Activity, ActivityType
from kanban.models.assignment import AssignmentRole, CardAssignment
from kanban.models.board import Board
from kanban.models.card import Card
from kanban.models.column import Column
from kanban.models.user import User
from kanban.ordering import move_card, move_card_to_column
from kanban.permissions import (
    board_permission,
    check_board_access,
    membership_for
)
from kanban.realtime import broadcast
from kanban.schemas import (
    ActivityOut,
    ActivityQuery,
    AssignIn,
    AssignmentOut,
    CardIn,
    CardOut,
    CardQuery,
    CardUpdate,
    CommentIn,
    LabelIn,
    MoveCardIn,
    dump,
    dump_all
)


def _load_card(card_id) -> Card:
    card = Card.get(card_id)
    if card is None or g.board is None or card.board_id != g.board.id:
        raise NotFound("Card not found")
    return card


def _target_column(column_id) -> Column:
    column = Column.get_active(column_id)
    if column is None or column.board_id != g.board.id:
        raise NotFound("Column not found")
    return column


def _check_capacity(column: Column):
    if not column.settings.get('allowNewCards', True):
        raise ValidationFailed("Column does not accept new cards")
    if not column.can_add_card():
        raise ValidationFailed(
            f"Column card limit reached ({column.card_limit})")


def _check_board_setting(setting: str, message: str):
    if not g.board.settings.get(setting, True):
        raise Forbidden(message)


def _column_cards(column_id) -> list[Card]:
    return list(db.session.execute(
        Card.select().filter_by(column_id=column_id)
        .order_by(Card.position)).scalars())


def _changed(card: Card, event: str, message: str):
    data = dump(CardOut, card)
    broadcast(g.board.id, event, dict(card=data), current_user)
    return respond(data, message)


@bp.route('', methods=['GET'])
@jwt_required()
def get_all():
    query = parse(CardQuery, request.args.to_dict())
    if query.column_id is not None:
        column = get_or_404(Column, query.column_id, "Column not found")
        board = column.board
        stmt = Card.select().filter_by(column_id=column.id)
    elif query.board_id is not None:
        board = Board.get(query.board_id)
        if board is None:
            raise NotFound("Board not found")
        stmt = Card.select().filter_by(board_id=board.id)
    else:
        raise ValidationFailed("columnId or boardId is required")
    check_board_access(board, current_user)

    page = db.paginate(stmt.order_by(Card.position), page=query.page,
                       per_page=query.limit, error_out=False)
    return respond(dict(
        cards=dump_all(CardOut, page.items),
        pagination=pagination(page),
    ))


@bp.route('/column/<uuid:column_id>', methods=['GET'])
@jwt_required()
@board_permission()
def get_column_cards(column_id):
    return respond(dump_all(CardOut, _column_cards(column_id)))


@bp.route('', methods=['POST'])
@jwt_required()
@board_permission(Capability.CREATE_CARDS)
def create():
    form = parse(CardIn, request.get_json(silent=True))
    column = _target_column(form.column_id)
    _check_capacity(column)

    card = Card(
        title=form.title,
        description=form.description,
        cover_color=form.cover_color,
        due_date=_utc(form.due_date),
        priority=form.priority,
        labels=[label.model_dump() for label in form.labels],
        checklists=form.checklists,
        card_metadata=form.card_metadata,
        column_id=column.id,
        board_id=column.board_id,
        position=Card.next_position(column.id),
    )
    db.session.add(card)
    db.session.flush()
    if form.position is not None:
        move_card(card, form.position)
    db.session.commit()

    record(ActivityType.CARD_CREATED,
           f'Created card "{card.title}" in "{column.name}"',
           metadata=dict(cardTitle=card.title, columnName=column.name),
           user=current_user, board=g.board, column=column, card=card)
    data = dump(CardOut, card)
    broadcast(g.board.id, 'card-created', dict(card=data), current_user)
    return respond(data, "Card created successfully", status.CREATED)


@bp.route('/<uuid:card_id>', methods=['GET'])
@jwt_required()
@board_permission()
def get(card_id):
    return respond(dump(CardOut, _load_card(card_id)))


def _utc(value):
    """Aware UTC datetime; SQLite hands back naive values."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _due_date_activity(card: Card, old, new):
    if old is None and new is not None:
        return ActivityType.DUE_DATE_SET, f'Set due date of "{card.title}"'
    if old is not None and new is None:
        return (ActivityType.DUE_DATE_REMOVED,
                f'Removed due date of "{card.title}"')
    return (ActivityType.DUE_DATE_UPDATED,
            f'Changed due date of "{card.title}"')


@bp.route('/<uuid:card_id>', methods=['PUT'])
@jwt_required()
@board_permission(Capability.EDIT_CARDS)
def update(card_id):
    card = _load_card(card_id)
    form = parse(CardUpdate, request.get_json(silent=True))
    changes = form.model_dump(exclude_unset=True)
    events = []
    edited = set(changes) - {'is_completed', 'due_date'}

    position = changes.pop('position', None)
    completed = changes.pop('is_completed', None)
    if completed is not None and completed != card.is_completed:
        card.set_completed(completed)
        if completed:
            events.append((ActivityType.CARD_COMPLETED,
                           f'Completed card "{card.title}"', {}))
        else:
            events.append((ActivityType.CARD_REOPENED,
                           f'Reopened card "{card.title}"', {}))

    if 'due_date' in changes:
        old, new = _utc(card.due_date), _utc(changes.pop('due_date'))
        if old != new:
            type, description = _due_date_activity(card, old, new)
            events.append((type, description, dict(
                oldDueDate=old.isoformat() if old else None,
                newDueDate=new.isoformat() if new else None)))
            card.due_date = new

    if changes.get('card_metadata') is not None:
        card.card_metadata = {**card.card_metadata,
                              **changes.pop('card_metadata')}
    for key, value in changes.items():
        if value is None and key not in ('description', 'cover_color'):
            continue
        setattr(card, key, value)

    if position is not None:
        move_card(card, position)
    db.session.commit()

    if edited:
        events.insert(0, (ActivityType.CARD_UPDATED,
                          f'Updated card "{card.title}"',
                          dict(changes=form.model_dump(
                              exclude_unset=True, by_alias=True,
                              mode='json'))))
    for type, description, metadata in events:
        record(type, description, metadata=metadata, user=current_user,
               board=g.board, column=card.column, card=card)
    return _changed(card, 'card-updated', "Card updated successfully")


@bp.route('/<uuid:card_id>/move', methods=['PUT'])
@jwt_required()
@board_permission(Capability.MOVE_CARDS)
def move(card_id):
    card = Card.get(card_id)
    if card is None:
        raise NotFound("Card not found")
    if card.board_id != g.board.id:
        raise ValidationFailed("Cards can only be moved within their board")
    form = parse(MoveCardIn, request.get_json(silent=True))
    target = _target_column(form.target_column_id)
    source = card.column
    if not source.settings.get('allowCardMovement', True):
        raise Forbidden("Card movement is disabled for this column")

    from_column_id, from_position = card.column_id, card.position
    if target.id == source.id:
        move_card(card, form.new_position)
    else:
        _check_capacity(target)
        move_card_to_column(card, target, form.new_position)
    db.session.commit()

    record(ActivityType.CARD_MOVED,
           f'Moved card "{card.title}" from "{source.name}" '
           f'to "{target.name}"',
           metadata=dict(
               fromColumnId=str(from_column_id),
               toColumnId=str(target.id),
               fromPosition=from_position,
               toPosition=card.position,
           ),
           user=current_user, board=g.board, column=target, card=card)
    data = dump(CardOut, card)
    broadcast(g.board.id, 'card-moved', dict(
        card=data,
        fromColumnId=str(from_column_id),
        toColumnId=str(target.id),
    ), current_user)
    return respond(data, "Card moved successfully")


@bp.route('/<uuid:card_id>/assign', methods=['POST'])
@jwt_required()
@board_permission(Capability.ASSIGN_CARDS)
def assign(card_id):
    card = _load_card(card_id)
    form = parse(AssignIn, request.get_json(silent=True))
    user = User.get(form.user_id)
    if user is None:
        raise NotFound("User not found")
    if membership_for(g.board, user) is None:
        raise ValidationFailed("User is not a member of this board")

    existing = db.session.execute(
        db.select(CardAssignment)
        .filter_by(card_id=card.id, user_id=user.id, role=form.role)
    ).scalar_one_or_none()
    if existing is not None:
        raise Conflict("User is already assigned to this card")

    assignment = CardAssignment(card_id=card.id, user_id=user.id,
                                role=form.role)
    db.session.add(assignment)
    db.session.commit()

    record(ActivityType.CARD_ASSIGNED,
           f'Assigned {user.full_name} to "{card.title}"',
           metadata=dict(userId=str(user.id), role=form.role.value),
           user=current_user, board=g.board, column=card.column, card=card)
    data = dump(AssignmentOut, assignment)
    broadcast(g.board.id, 'card-assigned', dict(
        card=dump(CardOut, card), assignment=data), current_user)
    if form.role is AssignmentRole.ASSIGNEE and user.id != current_user.id:
        notifications.card_assignment(user, card, g.board, current_user)
    return respond(data, "User assigned successfully", status.CREATED)


@bp.route('/<uuid:card_id>/assign/<uuid:user_id>', methods=['DELETE'])
@jwt_required()
@board_permission(Capability.ASSIGN_CARDS)
def unassign(card_id, user_id):
    card = _load_card(card_id)
    assignments = db.session.execute(
        db.select(CardAssignment)
        .filter_by(card_id=card.id, user_id=user_id)).scalars().all()
    if not assignments:
        raise NotFound("Assignment not found")
    for assignment in assignments:
        db.session.delete(assignment)
    db.session.commit()

    record(ActivityType.CARD_UNASSIGNED,
           f'Unassigned a user from "{card.title}"',
           metadata=dict(userId=str(user_id)),
           user=current_user, board=g.board, column=card.column, card=card)
    broadcast(g.board.id, 'card-unassigned', dict(
        cardId=str(card.id), userId=str(user_id)), current_user)
    return respond(message="User unassigned successfully")


@bp.route('/<uuid:card_id>', methods=['DELETE'])
@jwt_required()
@board_permission(Capability.DELETE_CARDS)
def delete(card_id):
    card = _load_card(card_id)
    if not card.column.settings.get('allowCardDeletion', True):
        raise Forbidden("Card deletion is disabled for this column")
    card.is_archived = True
    db.session.commit()

    record(ActivityType.CARD_DELETED, f'Deleted card "{card.title}"',
           metadata=dict(cardTitle=card.title),
           user=current_user, board=g.board, column=card.column, card=card)
    broadcast(g.board.id, 'card-deleted', dict(
        cardId=str(card.id), columnId=str(card.column_id)), current_user)
    return respond(message="Card deleted successfully")


@bp.route('/<uuid:card_id>/comments', methods=['POST'])
@jwt_required()
@board_permission(Capability.COMMENT)
def add_comment(card_id):
    card = _load_card(card_id)
    _check_board_setting('allowComments', "Comments are disabled")
    form = parse(CommentIn, request.get_json(silent=True))
    comment = card.add_comment(current_user.id, form.content)
    db.session.commit()

    record(ActivityType.COMMENT_ADDED, f'Commented on "{card.title}"',
           metadata=dict(commentId=comment['id']),
           user=current_user, board=g.board, column=card.column, card=card)
    broadcast(g.board.id, 'card-updated', dict(card=dump(CardOut, card)),
              current_user)
    return respond(comment, "Comment added successfully", status.CREATED)


@bp.route('/<uuid:card_id>/vote', methods=['POST'])
@jwt_required()
@board_permission(Capability.VOTE)
def vote(card_id):
    card = _load_card(card_id)
    _check_board_setting('allowVoting', "Voting is disabled")
    if not card.add_vote(current_user.id):
        raise Conflict("Already voted on this card")
    db.session.commit()

    record(ActivityType.VOTE_ADDED, f'Voted on "{card.title}"',
           user=current_user, board=g.board, column=card.column, card=card)
    return _changed(card, 'card-updated', "Vote added successfully")


@bp.route('/<uuid:card_id>/vote', methods=['DELETE'])
@jwt_required()
@board_permission(Capability.VOTE)
def unvote(card_id):
    card = _load_card(card_id)
    if not card.remove_vote(current_user.id):
        raise NotFound("Vote not found")
    db.session.commit()

    record(ActivityType.VOTE_REMOVED, f'Removed vote from "{card.title}"',
           user=current_user, board=g.board, column=card.column, card=card)
    return _changed(card, 'card-updated', "Vote removed successfully")


@bp.route('/<uuid:card_id>/labels', methods=['POST'])
@jwt_required()
@board_permission(Capability.EDIT_CARDS)
def add_label(card_id):
    card = _load_card(card_id)
    label = parse(LabelIn, request.get_json(silent=True)).model_dump()
    if not card.add_label(label):
        raise Conflict("Label already exists on this card")
    db.session.commit()

    record(ActivityType.LABEL_ADDED,
           f'Added label "{label["name"]}" to "{card.title}"',
           metadata=dict(label=label),
           user=current_user, board=g.board, column=card.column, card=card)
    data = dump(CardOut, card)
    broadcast(g.board.id, 'card-updated', dict(card=data), current_user)
    return respond(data, "Label added successfully", status.CREATED)


@bp.route('/<uuid:card_id>/labels/<string:label_id>', methods=['DELETE'])
@jwt_required()
@board_permission(Capability.EDIT_CARDS)
def remove_label(card_id, label_id):
    card = _load_card(card_id)
    if not card.remove_label(label_id):
        raise NotFound("Label not found")
    db.session.commit()

    record(ActivityType.LABEL_REMOVED, f'Removed a label from "{card.title}"',
           metadata=dict(labelId=label_id),
           user=current_user, board=g.board, column=card.column, card=card)
    return _changed(card, 'card-updated', "Label removed successfully")


@bp.route('/<uuid:card_id>/watch', methods=['POST'])
@jwt_required()
@board_permission()
def watch(card_id):
    card = _load_card(card_id)
    if card.add_watcher(current_user.id):
        db.session.commit()
    return respond(dict(watchers=card.watchers), "Watching card")


@bp.route('/<uuid:card_id>/watch', methods=['DELETE'])
@jwt_required()
@board_permission()
def unwatch(card_id):
    card = _load_card(card_id)
    if card.remove_watcher(current_user.id):
        db.session.commit()
    return respond(dict(watchers=card.watchers), "Stopped watching card")


@bp.route('/<uuid:card_id>/activities', methods=['GET'])
@jwt_required()
@board_permission()
def get_activities(card_id):
    card = _load_card(card_id)
    query = parse(ActivityQuery, request.args.to_dict())
    activities = Activity.recent(query.limit or 20, card_id=card.id)
    return respond(dump_all(ActivityOut, activities))
