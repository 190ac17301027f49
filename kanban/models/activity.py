import enum

from kanban.extensions import db
from kanban.models.base import Entity, json_property


class ActivityType(str, enum.Enum):
    BOARD_CREATED = 'board_created'
    BOARD_UPDATED = 'board_updated'
    BOARD_ARCHIVED = 'board_archived'
    BOARD_RESTORED = 'board_restored'
    BOARD_DELETED = 'board_deleted'
    COLUMN_CREATED = 'column_created'
    COLUMN_UPDATED = 'column_updated'
    COLUMN_ARCHIVED = 'column_archived'
    COLUMN_RESTORED = 'column_restored'
    COLUMN_DELETED = 'column_deleted'
    CARD_CREATED = 'card_created'
    CARD_UPDATED = 'card_updated'
    CARD_MOVED = 'card_moved'
    CARD_ARCHIVED = 'card_archived'
    CARD_RESTORED = 'card_restored'
    CARD_DELETED = 'card_deleted'
    CARD_ASSIGNED = 'card_assigned'
    CARD_UNASSIGNED = 'card_unassigned'
    CARD_COMPLETED = 'card_completed'
    CARD_REOPENED = 'card_reopened'
    COMMENT_ADDED = 'comment_added'
    COMMENT_UPDATED = 'comment_updated'
    COMMENT_DELETED = 'comment_deleted'
    ATTACHMENT_ADDED = 'attachment_added'
    ATTACHMENT_REMOVED = 'attachment_removed'
    CHECKLIST_ADDED = 'checklist_added'
    CHECKLIST_UPDATED = 'checklist_updated'
    CHECKLIST_DELETED = 'checklist_deleted'
    LABEL_ADDED = 'label_added'
    LABEL_REMOVED = 'label_removed'
    VOTE_ADDED = 'vote_added'
    VOTE_REMOVED = 'vote_removed'
    MEMBER_ADDED = 'member_added'
    MEMBER_REMOVED = 'member_removed'
    MEMBER_ROLE_CHANGED = 'member_role_changed'
    DUE_DATE_SET = 'due_date_set'
    DUE_DATE_UPDATED = 'due_date_updated'
    DUE_DATE_REMOVED = 'due_date_removed'


class Activity(db.Model, Entity):
    """Append-only audit row. References are nullable and survive their
    targets being removed."""
    __tablename__ = 'activities'
    __table_args__ = (
        db.Index('ix_activities_board_created', 'board_id', 'created_at'),
        db.Index('ix_activities_card_created', 'card_id', 'created_at'),
    )

    type = db.Column(
        db.Enum(ActivityType, values_callable=lambda e: [t.value for t in e],
                name='activity_type'),
        nullable=False)
    description = db.Column(db.Text, nullable=False)
    metadata_raw = db.Column('metadata', db.Text)
    is_system = db.Column(db.Boolean, default=False, nullable=False)
    is_visible = db.Column(db.Boolean, default=True, nullable=False)
    user_id = db.Column(db.Uuid(),
                        db.ForeignKey('users.id', ondelete='SET NULL'))
    board_id = db.Column(db.Uuid(),
                         db.ForeignKey('boards.id', ondelete='SET NULL'))
    column_id = db.Column(db.Uuid(),
                          db.ForeignKey('columns.id', ondelete='SET NULL'))
    card_id = db.Column(db.Uuid(),
                        db.ForeignKey('cards.id', ondelete='SET NULL'))

    user = db.relationship('User')

    event_metadata = json_property('metadata_raw', {})

    @classmethod
    def recent(cls, limit: int, **refs) -> list['Activity']:
        return list(db.session.execute(
            db.select(cls).filter_by(is_visible=True, **refs)
            .order_by(cls.created_at.desc()).limit(limit)).scalars())
