import enum

from dataclasses import dataclass, fields


class Role(str, enum.Enum):
    OWNER = 'owner'
    ADMIN = 'admin'
    MEMBER = 'member'
    VIEWER = 'viewer'


class Capability(str, enum.Enum):
    EDIT_BOARD = 'canEditBoard'
    DELETE_BOARD = 'canDeleteBoard'
    INVITE_MEMBERS = 'canInviteMembers'
    REMOVE_MEMBERS = 'canRemoveMembers'
    CREATE_COLUMNS = 'canCreateColumns'
    EDIT_COLUMNS = 'canEditColumns'
    DELETE_COLUMNS = 'canDeleteColumns'
    CREATE_CARDS = 'canCreateCards'
    EDIT_CARDS = 'canEditCards'
    DELETE_CARDS = 'canDeleteCards'
    MOVE_CARDS = 'canMoveCards'
    ASSIGN_CARDS = 'canAssignCards'
    COMMENT = 'canComment'
    VOTE = 'canVote'

    @property
    def field(self) -> str:
        return 'can_' + self.name.lower()


@dataclass
class Permissions:
    """Capability record stored on a board membership.

    Serialized with the capability wire names (``canEditBoard``...). Keys
    missing from a stored map load as False so rows written before a
    capability existed never gain it implicitly.
    """
    can_edit_board: bool = False
    can_delete_board: bool = False
    can_invite_members: bool = False
    can_remove_members: bool = False
    can_create_columns: bool = False
    can_edit_columns: bool = False
    can_delete_columns: bool = False
    can_create_cards: bool = False
    can_edit_cards: bool = False
    can_delete_cards: bool = False
    can_move_cards: bool = False
    can_assign_cards: bool = False
    can_comment: bool = False
    can_vote: bool = False

    def allows(self, capability: Capability) -> bool:
        return getattr(self, capability.field)

    def to_dict(self) -> dict[str, bool]:
        return {c.value: self.allows(c) for c in Capability}

    @classmethod
    def from_dict(cls, d: dict | None) -> 'Permissions':
        d = d or {}
        return cls(**{c.field: d.get(c.value) is True for c in Capability})

    @classmethod
    def all(cls) -> 'Permissions':
        return cls(**{f.name: True for f in fields(cls)})

    @classmethod
    def for_role(cls, role: Role) -> 'Permissions':
        if role in (Role.OWNER, Role.ADMIN):
            return cls.all()
        if role is Role.MEMBER:
            return cls(
                can_create_columns=True,
                can_edit_columns=True,
                can_create_cards=True,
                can_edit_cards=True,
                can_move_cards=True,
                can_assign_cards=True,
                can_comment=True,
                can_vote=True,
            )
        return cls()
