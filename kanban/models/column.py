import copy

from kanban.extensions import db
from kanban.models.base import Archivable, json_property


DEFAULT_SETTINGS = dict(
    allowNewCards=True,
    allowCardMovement=True,
    allowCardDeletion=True,
    showCardCount=True,
    showProgress=False,
    autoArchive=False,
    autoArchiveDays=30,
)


class Column(db.Model, Archivable):
    __tablename__ = 'columns'

    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)
    color = db.Column(db.String(7), default='#6B7280', nullable=False)
    # Ordering key among the board's columns. Not unique: only the relative
    # order is meaningful.
    position = db.Column(db.Integer, default=0, nullable=False)
    is_collapsed = db.Column(db.Boolean, default=False, nullable=False)
    card_limit = db.Column(db.Integer)
    settings_raw = db.Column('settings', db.Text)
    board_id = db.Column(db.Uuid(), db.ForeignKey('boards.id'),
                         nullable=False)

    board = db.relationship('Board', back_populates='columns')
    cards = db.relationship('Card', back_populates='column',
                            order_by='Card.position')

    settings = json_property('settings_raw', DEFAULT_SETTINGS)

    def __init__(self, **kwargs):
        settings = dict(DEFAULT_SETTINGS)
        settings.update(kwargs.pop('settings', None) or {})
        kwargs['settings'] = copy.deepcopy(settings)
        super().__init__(**kwargs)

    def siblings(self) -> list['Column']:
        return list(db.session.execute(
            db.select(Column)
            .filter(Column.board_id == self.board_id, Column.id != self.id)
            .order_by(Column.position)).scalars())

    def card_count(self) -> int:
        from kanban.models.card import Card
        return db.session.execute(
            db.select(db.func.count(Card.id))
            .filter_by(column_id=self.id, is_archived=False)).scalar_one()

    def can_add_card(self) -> bool:
        if not self.settings.get('allowNewCards', True):
            return False
        if not self.card_limit:
            return True
        return self.card_count() < self.card_limit

    def archive(self):
        from kanban.models.card import Card
        self.is_archived = True
        db.session.execute(
            db.update(Card)
            .filter_by(column_id=self.id, is_archived=False)
            .values(is_archived=True))

    @classmethod
    def next_position(cls, board_id) -> int:
        last = db.session.execute(
            db.select(db.func.max(cls.position))
            .filter_by(board_id=board_id)).scalar_one()
        return 0 if last is None else last + 1
