from http import HTTPStatus as status

from flask import g, request
from flask_jwt_extended import current_user, jwt_required

from kanban import notifications
from kanban.activity import record
from kanban.api.boards import bp
from kanban.api.columns.routes import (
    active_columns,
    column_detail,
    create_column
)
from kanban.api.common import pagination, parse, respond
from kanban.capabilities import Capability, Permissions, Role
from kanban.errors import Conflict, Forbidden, NotFound
from kanban.extensions import db
from kanban.models.activity import Activity, ActivityType
from kanban.models.board import Board
from kanban.models.member import BoardMember
from kanban.models.user import User
from kanban.permissions import board_permission, membership_for
from kanban.realtime import broadcast
from kanban.schemas import (
    ActivityOut,
    ActivityQuery,
    BoardColumnIn,
    BoardIn,
    BoardOut,
    BoardUpdate,
    MemberIn,
    MemberOut,
    MemberUpdate,
    PageQuery,
    dump,
    dump_all
)


SORT_COLUMNS = {
    'createdAt': Board.created_at,
    'updatedAt': Board.updated_at,
    'position': Board.position,
    'name': Board.name,
}


def _membership(membership) -> dict:
    return dict(
        role=membership.role.value,
        permissions=membership.permissions.to_dict(),
    )


def _active_members(board_id) -> list[BoardMember]:
    return list(db.session.execute(
        db.select(BoardMember)
        .filter_by(board_id=board_id, is_active=True)
        .order_by(BoardMember.joined_at)).scalars())


def _summary(board: Board) -> dict:
    data = dump(BoardOut, board)
    data['columns'] = [
        dict(id=str(c.id), name=c.name, color=c.color, position=c.position,
             cardCount=c.card_count())
        for c in active_columns(board.id)
    ]
    data['membership'] = _membership(membership_for(board, current_user))
    return data


def _detail(board: Board) -> dict:
    data = dump(BoardOut, board)
    data['columns'] = [column_detail(c) for c in active_columns(board.id)]
    data['members'] = dump_all(MemberOut, _active_members(board.id))
    data['membership'] = _membership(g.membership)
    return data


def _load_member(user_id) -> BoardMember:
    if user_id == g.board.owner_id:
        raise Forbidden("The board owner's membership cannot be changed")
    member = BoardMember.find(g.board.id, user_id)
    if member is None:
        raise NotFound("Member not found")
    if member.role is Role.OWNER:
        raise Forbidden("The board owner's membership cannot be changed")
    return member


@bp.route('', methods=['GET'])
@jwt_required()
def get_all():
    query = parse(PageQuery, request.args.to_dict())
    memberships = (
        db.select(BoardMember.board_id)
        .filter_by(user_id=current_user.id, is_active=True)
    )
    order = SORT_COLUMNS[query.sort_by]
    stmt = (
        Board.select()
        .filter(db.or_(Board.owner_id == current_user.id,
                       Board.id.in_(memberships)))
        .order_by(order.asc() if query.sort_order == 'ASC' else order.desc())
    )
    page = db.paginate(stmt, page=query.page, per_page=query.limit,
                       error_out=False)
    return respond(dict(
        boards=[_summary(b) for b in page.items],
        pagination=pagination(page),
    ))


@bp.route('', methods=['POST'])
@jwt_required()
def create():
    form = parse(BoardIn, request.get_json(silent=True))
    last = db.session.execute(
        db.select(db.func.max(Board.position))
        .filter_by(owner_id=current_user.id)).scalar_one()
    board = Board(
        name=form.name,
        description=form.description,
        color=form.color,
        is_public=form.is_public,
        settings=form.settings,
        owner_id=current_user.id,
        position=0 if last is None else last + 1,
    )
    db.session.add(board)
    db.session.flush()
    db.session.add(BoardMember(board_id=board.id, user_id=current_user.id,
                               role=Role.OWNER))
    db.session.commit()

    record(ActivityType.BOARD_CREATED, f'Created board "{board.name}"',
           metadata=dict(boardName=board.name),
           user=current_user, board=board)
    g.membership = membership_for(board, current_user)
    return respond(_detail(board), "Board created successfully",
                   status.CREATED)


@bp.route('/<uuid:board_id>', methods=['GET'])
@jwt_required()
@board_permission()
def get(board_id):
    if isinstance(g.membership, BoardMember):
        g.membership.touch()
        db.session.commit()
    return respond(_detail(g.board))


@bp.route('/<uuid:board_id>', methods=['PUT'])
@jwt_required()
@board_permission(Capability.EDIT_BOARD)
def update(board_id):
    board = g.board
    form = parse(BoardUpdate, request.get_json(silent=True))
    changes = form.model_dump(exclude_unset=True)
    if 'settings' in changes:
        board.settings = {**board.settings, **(changes.pop('settings') or {})}
    for key, value in changes.items():
        if value is None and key != 'description':
            continue
        setattr(board, key, value)
    db.session.commit()

    record(ActivityType.BOARD_UPDATED, f'Updated board "{board.name}"',
           metadata=dict(changes=form.model_dump(
               exclude_unset=True, by_alias=True, mode='json')),
           user=current_user, board=board)
    data = dump(BoardOut, board)
    broadcast(board.id, 'board-updated', dict(board=data), current_user)
    return respond(data, "Board updated successfully")


@bp.route('/<uuid:board_id>', methods=['DELETE'])
@jwt_required()
@board_permission(Capability.DELETE_BOARD)
def delete(board_id):
    board = g.board
    board.is_archived = True
    db.session.commit()

    record(ActivityType.BOARD_ARCHIVED, f'Archived board "{board.name}"',
           user=current_user, board=board)
    broadcast(board.id, 'board-archived', dict(boardId=str(board.id)),
              current_user)
    return respond(message="Board archived successfully")


@bp.route('/<uuid:board_id>/restore', methods=['PUT'])
@jwt_required()
@board_permission(Capability.DELETE_BOARD)
def restore(board_id):
    board = g.board
    board.is_archived = False
    db.session.commit()

    record(ActivityType.BOARD_RESTORED, f'Restored board "{board.name}"',
           user=current_user, board=board)
    data = dump(BoardOut, board)
    broadcast(board.id, 'board-updated', dict(board=data), current_user)
    return respond(data, "Board restored successfully")


@bp.route('/<uuid:board_id>/columns', methods=['GET'])
@jwt_required()
@board_permission()
def get_columns(board_id):
    return respond([column_detail(c) for c in active_columns(board_id)])


@bp.route('/<uuid:board_id>/columns', methods=['POST'])
@jwt_required()
@board_permission(Capability.CREATE_COLUMNS)
def create_board_column(board_id):
    form = parse(BoardColumnIn, request.get_json(silent=True))
    return create_column(g.board, form)


@bp.route('/<uuid:board_id>/members', methods=['GET'])
@jwt_required()
@board_permission()
def get_members(board_id):
    return respond(dump_all(MemberOut, _active_members(board_id)))


@bp.route('/<uuid:board_id>/members', methods=['POST'])
@jwt_required()
@board_permission(Capability.INVITE_MEMBERS)
def add_member(board_id):
    form = parse(MemberIn, request.get_json(silent=True))
    user = User.get(form.user_id) if form.user_id else \
        User.find_by_email(form.email)
    if user is None or not user.is_active:
        raise NotFound("User not found")
    if user.id == g.board.owner_id:
        raise Conflict("User is already a member of this board")

    member = BoardMember.find(g.board.id, user.id, active_only=False)
    if member is not None and member.is_active:
        raise Conflict("User is already a member of this board")
    if member is None:
        member = BoardMember(board_id=g.board.id, user_id=user.id,
                             role=form.role)
        db.session.add(member)
    else:
        member.is_active = True
        member.role = form.role
        member.permissions = Permissions.for_role(form.role)
    db.session.commit()

    record(ActivityType.MEMBER_ADDED,
           f'Added {user.full_name} to the board as {form.role.value}',
           metadata=dict(userId=str(user.id), role=form.role.value),
           user=current_user, board=g.board)
    data = dump(MemberOut, member)
    broadcast(g.board.id, 'member-added', dict(member=data), current_user)
    notifications.board_invitation(user, g.board, current_user)
    return respond(data, "Member added successfully", status.CREATED)


@bp.route('/<uuid:board_id>/members/<uuid:user_id>', methods=['PUT'])
@jwt_required()
@board_permission(Capability.INVITE_MEMBERS)
def update_member(board_id, user_id):
    member = _load_member(user_id)
    form = parse(MemberUpdate, request.get_json(silent=True))
    old_role = member.role

    if form.role is not None and form.role is not old_role:
        member.role = form.role
        member.permissions = Permissions.for_role(form.role)
    if form.permissions is not None:
        member.permissions = {**member.permissions.to_dict(),
                              **form.permissions}
    db.session.commit()

    record(ActivityType.MEMBER_ROLE_CHANGED,
           f'Changed {member.user.full_name} from {old_role.value} '
           f'to {member.role.value}',
           metadata=dict(userId=str(user_id), oldRole=old_role.value,
                         newRole=member.role.value),
           user=current_user, board=g.board)
    data = dump(MemberOut, member)
    broadcast(g.board.id, 'member-updated', dict(member=data), current_user)
    return respond(data, "Member updated successfully")


@bp.route('/<uuid:board_id>/members/<uuid:user_id>', methods=['DELETE'])
@jwt_required()
@board_permission(Capability.REMOVE_MEMBERS)
def remove_member(board_id, user_id):
    member = _load_member(user_id)
    member.is_active = False
    db.session.commit()

    record(ActivityType.MEMBER_REMOVED,
           f'Removed {member.user.full_name} from the board',
           metadata=dict(userId=str(user_id), role=member.role.value),
           user=current_user, board=g.board)
    broadcast(g.board.id, 'member-removed', dict(userId=str(user_id)),
              current_user)
    return respond(message="Member removed successfully")


@bp.route('/<uuid:board_id>/activities', methods=['GET'])
@jwt_required()
@board_permission()
def get_activities(board_id):
    query = parse(ActivityQuery, request.args.to_dict())
    activities = Activity.recent(query.limit or 50, board_id=board_id)
    return respond(dump_all(ActivityOut, activities))
