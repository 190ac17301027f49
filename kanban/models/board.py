import copy

from kanban.extensions import db
from kanban.models.base import Archivable, json_property, utcnow


DEFAULT_SETTINGS = dict(
    allowComments=True,
    allowAttachments=True,
    allowLabels=True,
    allowChecklists=True,
    allowDueDates=True,
    allowVoting=False,
    cardCover=True,
    cardNumbering=False,
    autoArchive=False,
    autoArchiveDays=30,
)


class Board(db.Model, Archivable):
    __tablename__ = 'boards'

    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)
    color = db.Column(db.String(7), default='#3B82F6', nullable=False)
    is_public = db.Column(db.Boolean, default=False, nullable=False)
    settings_raw = db.Column('settings', db.Text)
    position = db.Column(db.Integer, default=0, nullable=False)
    owner_id = db.Column(db.Uuid(), db.ForeignKey('users.id'), nullable=False)
    last_activity_at = db.Column(db.DateTime(timezone=True))

    owner = db.relationship('User')
    columns = db.relationship('Column', back_populates='board',
                              order_by='Column.position')
    members = db.relationship('BoardMember', back_populates='board')

    settings = json_property('settings_raw', DEFAULT_SETTINGS)

    def __init__(self, **kwargs):
        settings = dict(DEFAULT_SETTINGS)
        settings.update(kwargs.pop('settings', None) or {})
        kwargs['settings'] = copy.deepcopy(settings)
        super().__init__(**kwargs)

    def touch(self):
        self.last_activity_at = utcnow()
