import threading

from datetime import datetime, timezone

from flask import current_app, request
from flask_jwt_extended import (
    decode_token,
    get_current_user,
    verify_jwt_in_request
)
from flask_jwt_extended.exceptions import JWTExtendedException
from flask_socketio import emit, join_room, leave_room
from jwt.exceptions import PyJWTError

from kanban.extensions import sio
from kanban.models.blocklist import TokenBlocklist
from kanban.models.board import Board
from kanban.models.user import User
from kanban.permissions import membership_for


def room_name(board_id) -> str:
    return f'board_{board_id}'


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def user_summary(user) -> dict:
    return dict(
        id=str(user.id),
        firstName=user.first_name,
        lastName=user.last_name,
        avatar=user.avatar,
    )


class Presence:
    """Which users are connected, and to which board rooms.

    Process-local; nothing survives a restart and reconnecting clients are
    expected to re-join.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._users = {}
        self._rooms = {}

    def connect(self, sid: str, user: dict):
        with self._lock:
            self._users[sid] = user
            self._rooms[sid] = set()

    def user(self, sid: str) -> dict | None:
        with self._lock:
            return self._users.get(sid)

    def join(self, sid: str, board_id: str):
        with self._lock:
            self._rooms.setdefault(sid, set()).add(board_id)

    def leave(self, sid: str, board_id: str) -> bool:
        with self._lock:
            rooms = self._rooms.get(sid, set())
            if board_id not in rooms:
                return False
            rooms.discard(board_id)
            return True

    def in_room(self, sid: str, board_id: str) -> bool:
        with self._lock:
            return board_id in self._rooms.get(sid, ())

    def disconnect(self, sid: str) -> tuple[dict | None, set]:
        with self._lock:
            return self._users.pop(sid, None), self._rooms.pop(sid, set())

    def online(self, board_id: str) -> list[dict]:
        with self._lock:
            seen = {}
            for sid, rooms in self._rooms.items():
                if board_id in rooms:
                    user = self._users[sid]
                    seen[user['id']] = user
            return list(seen.values())


def _presence() -> Presence:
    return current_app.extensions['presence']


def broadcast(board_id, event: str, payload: dict, user=None):
    """Emit ``event`` to everyone watching the board. Never raises."""
    data = dict(payload)
    data['user'] = user_summary(user) if user is not None else None
    data['timestamp'] = _timestamp()
    try:
        sio.emit(event, data, to=room_name(board_id))
    except Exception as e:
        current_app.logger.error(
            f"broadcast {event} to board {board_id} failed: {e}")


def _authenticate(auth) -> User | None:
    token = auth.get('token') if isinstance(auth, dict) else None
    try:
        if token:
            decoded = decode_token(token)
            if decoded.get('type') != 'access':
                return None
            if TokenBlocklist.is_revoked(decoded['jti']):
                return None
            user = User.get(decoded['sub'])
        else:
            verify_jwt_in_request()
            user = get_current_user()
    except (JWTExtendedException, PyJWTError):
        return None
    if user is None or not user.is_active:
        return None
    return user


@sio.on('connect')
def on_connect(auth=None):
    user = _authenticate(auth)
    if user is None:
        current_app.logger.info("socket connection refused: not authenticated")
        return False
    _presence().connect(request.sid, user_summary(user))
    current_app.logger.info(f"socket {request.sid} connected for {user.id}")


@sio.on('join_board')
def on_join_board(data):
    presence = _presence()
    summary = presence.user(request.sid)
    board = Board.get((data or {}).get('boardId'))
    if summary is None or board is None:
        emit('error', dict(message="Board not found"))
        return
    user = User.get(summary['id'])
    if membership_for(board, user) is None:
        emit('error', dict(message="Not a board member"))
        return

    board_id = str(board.id)
    join_room(room_name(board_id))
    presence.join(request.sid, board_id)
    emit('user-joined', dict(user=summary, boardId=board_id,
                             timestamp=_timestamp()),
         to=room_name(board_id), include_self=False)
    emit('board-presence', dict(boardId=board_id,
                                users=presence.online(board_id)))
    current_app.logger.info(f"{summary['id']} joined board {board_id}")


def _leave(sid: str, summary: dict, board_id: str):
    leave_room(room_name(board_id), sid=sid)
    sio.emit('user-left', dict(user=summary, boardId=board_id,
                               timestamp=_timestamp()),
             to=room_name(board_id))


@sio.on('leave_board')
def on_leave_board(data):
    presence = _presence()
    summary = presence.user(request.sid)
    board_id = str((data or {}).get('boardId'))
    if summary is not None and presence.leave(request.sid, board_id):
        _leave(request.sid, summary, board_id)


@sio.on('disconnect')
def on_disconnect(*args):
    summary, rooms = _presence().disconnect(request.sid)
    if summary is None:
        return
    for board_id in rooms:
        _leave(request.sid, summary, board_id)
    current_app.logger.info(f"socket {request.sid} disconnected")


def _typing(data, is_typing: bool):
    data = data or {}
    presence = _presence()
    summary = presence.user(request.sid)
    board_id = str(data.get('boardId'))
    if summary is None or not presence.in_room(request.sid, board_id):
        return
    emit('user-typing', dict(user=summary, boardId=board_id,
                             cardId=data.get('cardId'), isTyping=is_typing),
         to=room_name(board_id), include_self=False)


@sio.on('typing_start')
def on_typing_start(data):
    _typing(data, True)


@sio.on('typing_stop')
def on_typing_stop(data):
    _typing(data, False)
