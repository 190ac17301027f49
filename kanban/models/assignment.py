import enum

from kanban.extensions import db
from kanban.models.base import Entity, utcnow


class AssignmentRole(str, enum.Enum):
    ASSIGNEE = 'assignee'
    REVIEWER = 'reviewer'
    WATCHER = 'watcher'


class CardAssignment(db.Model, Entity):
    __tablename__ = 'card_assignments'
    __table_args__ = (
        db.UniqueConstraint('user_id', 'card_id', 'role',
                            name='uq_card_assignments_user_card_role'),
    )

    user_id = db.Column(db.Uuid(), db.ForeignKey('users.id'), nullable=False)
    card_id = db.Column(db.Uuid(), db.ForeignKey('cards.id'), nullable=False)
    role = db.Column(
        db.Enum(AssignmentRole, values_callable=lambda e: [r.value for r in e],
                name='card_assignment_role'),
        default=AssignmentRole.ASSIGNEE, nullable=False)
    assigned_at = db.Column(db.DateTime(timezone=True), default=utcnow,
                            nullable=False)

    card = db.relationship('Card', back_populates='assignments')
    user = db.relationship('User')
