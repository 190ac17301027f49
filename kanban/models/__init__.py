from kanban.models.user import User
from kanban.models.blocklist import TokenBlocklist
from kanban.models.board import Board
from kanban.models.member import BoardMember
from kanban.models.column import Column
from kanban.models.card import Card, Priority
from kanban.models.assignment import AssignmentRole, CardAssignment
from kanban.models.activity import Activity, ActivityType

__all__ = [
    'Activity',
    'ActivityType',
    'AssignmentRole',
    'Board',
    'BoardMember',
    'Card',
    'CardAssignment',
    'Column',
    'Priority',
    'TokenBlocklist',
    'User',
]
