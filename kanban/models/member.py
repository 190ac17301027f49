from kanban.capabilities import Permissions, Role
from kanban.extensions import db
from kanban.models.base import Entity, json_property, utcnow


class BoardMember(db.Model, Entity):
    __tablename__ = 'board_members'
    __table_args__ = (
        db.UniqueConstraint('board_id', 'user_id',
                            name='uq_board_members_board_user'),
    )

    board_id = db.Column(db.Uuid(), db.ForeignKey('boards.id'),
                         nullable=False)
    user_id = db.Column(db.Uuid(), db.ForeignKey('users.id'), nullable=False)
    role = db.Column(db.Enum(Role, values_callable=lambda e: [r.value for r in e],
                             name='board_member_role'),
                     default=Role.MEMBER, nullable=False)
    permissions_raw = db.Column('permissions', db.Text)
    joined_at = db.Column(db.DateTime(timezone=True), default=utcnow,
                          nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    last_seen_at = db.Column(db.DateTime(timezone=True))

    board = db.relationship('Board', back_populates='members')
    user = db.relationship('User')

    _permission_map = json_property('permissions_raw', {})

    def __init__(self, **kwargs):
        role = Role(kwargs.get('role', Role.MEMBER))
        kwargs['role'] = role
        kwargs.setdefault('permissions', Permissions.for_role(role))
        super().__init__(**kwargs)

    @property
    def permissions(self) -> Permissions:
        return Permissions.from_dict(self._permission_map)

    @permissions.setter
    def permissions(self, value: Permissions | dict):
        if isinstance(value, dict):
            value = Permissions.from_dict(value)
        self._permission_map = value.to_dict()

    def has_permission(self, capability) -> bool:
        if self.role in (Role.OWNER, Role.ADMIN):
            return True
        return self.permissions.allows(capability)

    def touch(self):
        self.last_seen_at = utcnow()

    @classmethod
    def find(cls, board_id, user_id, active_only=True):
        stmt = db.select(cls).filter_by(board_id=board_id, user_id=user_id)
        if active_only:
            stmt = stmt.filter_by(is_active=True)
        return db.session.execute(stmt).scalar_one_or_none()
