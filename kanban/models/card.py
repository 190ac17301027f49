import enum
import uuid

from kanban.extensions import db
from kanban.models.base import Archivable, json_property, utcnow


class Priority(str, enum.Enum):
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'
    URGENT = 'urgent'


DEFAULT_METADATA = dict(
    timeSpent=0,
    estimatedTime=0,
    storyPoints=0,
    tags=[],
    customFields={},
)


class Card(db.Model, Archivable):
    __tablename__ = 'cards'

    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    # Ordering key among the column's cards, see kanban.ordering
    position = db.Column(db.Integer, default=0, nullable=False)
    cover_color = db.Column(db.String(7))
    due_date = db.Column(db.DateTime(timezone=True))
    is_completed = db.Column(db.Boolean, default=False, nullable=False)
    completed_at = db.Column(db.DateTime(timezone=True))
    priority = db.Column(
        db.Enum(Priority, values_callable=lambda e: [p.value for p in e],
                name='card_priority'),
        default=Priority.MEDIUM, nullable=False)
    labels_raw = db.Column('labels', db.Text)
    attachments_raw = db.Column('attachments', db.Text)
    checklists_raw = db.Column('checklists', db.Text)
    votes_raw = db.Column('votes', db.Text)
    comments_raw = db.Column('comments', db.Text)
    watchers_raw = db.Column('watchers', db.Text)
    metadata_raw = db.Column('metadata', db.Text)
    column_id = db.Column(db.Uuid(), db.ForeignKey('columns.id'),
                          nullable=False)
    # Redundant with column.board_id, kept in sync by every move
    board_id = db.Column(db.Uuid(), db.ForeignKey('boards.id'),
                         nullable=False)

    column = db.relationship('Column', back_populates='cards')
    assignments = db.relationship('CardAssignment', back_populates='card')

    labels = json_property('labels_raw', [])
    attachments = json_property('attachments_raw', [])
    checklists = json_property('checklists_raw', [])
    votes = json_property('votes_raw', dict(count=0, voters=[]))
    comments = json_property('comments_raw', [])
    watchers = json_property('watchers_raw', [])
    card_metadata = json_property('metadata_raw', DEFAULT_METADATA)

    def __init__(self, **kwargs):
        meta = dict(DEFAULT_METADATA)
        meta.update(kwargs.pop('card_metadata', None) or {})
        kwargs['card_metadata'] = meta
        for name in ('labels', 'attachments', 'checklists', 'comments',
                     'watchers'):
            if kwargs.get(name) is None:
                kwargs[name] = []
        kwargs.setdefault('votes', dict(count=0, voters=[]))
        if kwargs.get('priority') is not None:
            kwargs['priority'] = Priority(kwargs['priority'])
        super().__init__(**kwargs)

    def set_completed(self, completed: bool):
        if completed and not self.is_completed:
            self.completed_at = utcnow()
        elif not completed:
            self.completed_at = None
        self.is_completed = completed

    def siblings(self, column_id=None) -> list['Card']:
        column_id = column_id or self.column_id
        return list(db.session.execute(
            db.select(Card)
            .filter(Card.column_id == column_id, Card.id != self.id)
            .order_by(Card.position)).scalars())

    def add_comment(self, user_id, content: str) -> dict:
        comment = dict(
            id=str(uuid.uuid4()),
            userId=str(user_id),
            content=content,
            createdAt=utcnow().isoformat(),
        )
        self.comments = self.comments + [comment]
        return comment

    def add_vote(self, user_id) -> bool:
        votes = self.votes
        if str(user_id) in votes['voters']:
            return False
        votes['voters'].append(str(user_id))
        votes['count'] = len(votes['voters'])
        self.votes = votes
        return True

    def remove_vote(self, user_id) -> bool:
        votes = self.votes
        if str(user_id) not in votes['voters']:
            return False
        votes['voters'].remove(str(user_id))
        votes['count'] = len(votes['voters'])
        self.votes = votes
        return True

    def add_watcher(self, user_id) -> bool:
        if str(user_id) in self.watchers:
            return False
        self.watchers = self.watchers + [str(user_id)]
        return True

    def remove_watcher(self, user_id) -> bool:
        if str(user_id) not in self.watchers:
            return False
        self.watchers = [w for w in self.watchers if w != str(user_id)]
        return True

    def add_label(self, label: dict) -> bool:
        if any(lb['id'] == label['id'] for lb in self.labels):
            return False
        self.labels = self.labels + [label]
        return True

    def remove_label(self, label_id: str) -> bool:
        labels = self.labels
        remaining = [lb for lb in labels if lb['id'] != label_id]
        if len(remaining) == len(labels):
            return False
        self.labels = remaining
        return True

    @classmethod
    def next_position(cls, column_id) -> int:
        last = db.session.execute(
            db.select(db.func.max(cls.position))
            .filter_by(column_id=column_id)).scalar_one()
        return 0 if last is None else last + 1
