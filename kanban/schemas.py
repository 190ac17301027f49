"""Request validation and response serialization.

Input models parse camelCase JSON bodies and query strings. Output models read
ORM rows (``from_attributes``) and dump camelCase JSON.
"""
import uuid

from datetime import datetime
from typing import Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    field_validator,
    model_validator
)
from pydantic.alias_generators import to_camel

from kanban.capabilities import Permissions, Role
from kanban.models.assignment import AssignmentRole
from kanban.models.activity import ActivityType
from kanban.models.card import Priority


HEX_COLOR = r'^#[0-9A-Fa-f]{6}$'


class Schema(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra='ignore',
    )


class Output(Schema):
    model_config = ConfigDict(from_attributes=True)


def dump(schema: type[Output], obj) -> dict:
    return schema.model_validate(obj).model_dump(mode='json', by_alias=True)


def dump_all(schema: type[Output], objs) -> list[dict]:
    return [dump(schema, o) for o in objs]


# Auth

class RegisterIn(Schema):
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    avatar: str | None = Field(None, max_length=500)


class LoginIn(Schema):
    email: EmailStr
    password: str = Field(min_length=1)


class PasswordChangeIn(Schema):
    old_password: str = Field(min_length=1)
    new_password: str = Field(min_length=8, max_length=128)


# Boards

class BoardIn(Schema):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    color: str = Field('#3B82F6', pattern=HEX_COLOR)
    is_public: bool = False
    settings: dict | None = None


class BoardUpdate(Schema):
    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    color: str | None = Field(None, pattern=HEX_COLOR)
    is_public: bool | None = None
    position: int | None = Field(None, ge=0)
    settings: dict | None = None


class PageQuery(Schema):
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)
    sort_by: Literal['createdAt', 'updatedAt', 'position', 'name'] = \
        'createdAt'
    sort_order: Literal['ASC', 'DESC'] = 'DESC'

    @field_validator('sort_order', mode='before')
    @classmethod
    def upper(cls, v):
        return v.upper() if isinstance(v, str) else v


class ActivityQuery(Schema):
    limit: int | None = Field(None, ge=1, le=100)


class MemberIn(Schema):
    email: EmailStr | None = None
    user_id: uuid.UUID | None = None
    role: Role = Role.MEMBER

    @model_validator(mode='after')
    def check_target(self):
        if self.email is None and self.user_id is None:
            raise ValueError("either email or userId is required")
        if self.role is Role.OWNER:
            raise ValueError("the owner role cannot be granted")
        return self


class MemberUpdate(Schema):
    role: Role | None = None
    permissions: dict[str, bool] | None = None

    @field_validator('role')
    @classmethod
    def not_owner(cls, v):
        if v is Role.OWNER:
            raise ValueError("the owner role cannot be granted")
        return v


# Columns

class ColumnIn(Schema):
    board_id: uuid.UUID
    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    color: str = Field('#6B7280', pattern=HEX_COLOR)
    position: int | None = Field(None, ge=0)
    card_limit: int | None = Field(None, ge=1)
    settings: dict | None = None


class BoardColumnIn(ColumnIn):
    board_id: uuid.UUID | None = None


class ColumnUpdate(Schema):
    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    color: str | None = Field(None, pattern=HEX_COLOR)
    position: int | None = Field(None, ge=0)
    is_collapsed: bool | None = None
    card_limit: int | None = Field(None, ge=1)
    settings: dict | None = None


class ColumnPosition(Schema):
    id: uuid.UUID
    position: int = Field(ge=0)


class ColumnPositionsIn(Schema):
    board_id: uuid.UUID
    columns: list[ColumnPosition] = Field(min_length=1)


# Cards

class Label(Schema):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1, max_length=50)
    color: str = Field(pattern=HEX_COLOR)


class LabelIn(Label):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), min_length=1)


class CardIn(Schema):
    column_id: uuid.UUID
    title: str = Field(min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    position: int | None = Field(None, ge=0)
    cover_color: str | None = Field(None, pattern=HEX_COLOR)
    due_date: datetime | None = None
    priority: Priority = Priority.MEDIUM
    labels: list[Label] = []
    checklists: list[dict] = []
    card_metadata: dict | None = Field(None, alias='metadata')


class CardUpdate(Schema):
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    position: int | None = Field(None, ge=0)
    cover_color: str | None = Field(None, pattern=HEX_COLOR)
    due_date: datetime | None = None
    priority: Priority | None = None
    is_completed: bool | None = None
    labels: list[Label] | None = None
    attachments: list[dict] | None = None
    checklists: list[dict] | None = None
    card_metadata: dict | None = Field(None, alias='metadata')


class CardQuery(Schema):
    column_id: uuid.UUID | None = None
    board_id: uuid.UUID | None = None
    page: int = Field(1, ge=1)
    limit: int = Field(50, ge=1, le=100)


class MoveCardIn(Schema):
    target_column_id: uuid.UUID
    new_position: int = Field(ge=0)


class AssignIn(Schema):
    user_id: uuid.UUID
    role: AssignmentRole = AssignmentRole.ASSIGNEE


class CommentIn(Schema):
    content: str = Field(min_length=1, max_length=2000)


# Responses

class UserSummary(Output):
    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    avatar: str | None


class UserOut(UserSummary):
    is_active: bool
    is_email_verified: bool
    last_login_at: datetime | None
    preferences: dict
    created_at: datetime
    updated_at: datetime


class MemberOut(Output):
    id: uuid.UUID
    board_id: uuid.UUID
    user_id: uuid.UUID
    role: Role
    permissions: dict[str, bool]
    joined_at: datetime
    is_active: bool
    last_seen_at: datetime | None
    user: UserSummary

    @field_validator('permissions', mode='before')
    @classmethod
    def capability_map(cls, v):
        if isinstance(v, Permissions):
            return v.to_dict()
        return v


class AssignmentOut(Output):
    id: uuid.UUID
    user_id: uuid.UUID
    card_id: uuid.UUID
    role: AssignmentRole
    assigned_at: datetime
    user: UserSummary


class CardOut(Output):
    id: uuid.UUID
    title: str
    description: str | None
    position: int
    cover_color: str | None
    due_date: datetime | None
    is_completed: bool
    completed_at: datetime | None
    is_archived: bool
    priority: Priority
    labels: list[dict]
    attachments: list[dict]
    checklists: list[dict]
    votes: dict
    comments: list[dict]
    watchers: list[str]
    card_metadata: dict = Field(serialization_alias='metadata')
    column_id: uuid.UUID
    board_id: uuid.UUID
    assignments: list[AssignmentOut] = []
    created_at: datetime
    updated_at: datetime


class ColumnOut(Output):
    id: uuid.UUID
    name: str
    description: str | None
    color: str
    position: int
    is_collapsed: bool
    card_limit: int | None
    settings: dict
    is_archived: bool
    board_id: uuid.UUID
    created_at: datetime
    updated_at: datetime


class BoardOut(Output):
    id: uuid.UUID
    name: str
    description: str | None
    color: str
    is_public: bool
    is_archived: bool
    settings: dict
    position: int
    owner_id: uuid.UUID
    owner: UserSummary
    last_activity_at: datetime | None
    created_at: datetime
    updated_at: datetime


class ActivityOut(Output):
    id: uuid.UUID
    type: ActivityType
    description: str
    event_metadata: dict = Field(serialization_alias='metadata')
    is_system: bool
    user_id: uuid.UUID | None
    board_id: uuid.UUID | None
    column_id: uuid.UUID | None
    card_id: uuid.UUID | None
    user: UserSummary | None
    created_at: datetime
