"""
Fadetrack Backend: Account Schemas
==================================

Role, navigation, username, haircut log, reminder and account-deletion
request/response bodies.

`hasRecord`, `activeTab` and friends keep the camelCase names the browser
already consumes; they are field aliases, populated by name as well, so
the Python side stays snake_case.
"""

import datetime as dt
import re
import uuid
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

DELETE_CONFIRMATION = "DELETE MY ACCOUNT"
USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]{3,20}$")

Role = Literal["customer", "professional"]


# ══════════════════════════════════════════════════════════════════════════
# Roles & Navigation
# ══════════════════════════════════════════════════════════════════════════


class RoleUpdate(BaseModel):
    user_email: str = Field(min_length=1)
    role: str

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: str) -> str:
        if v not in ("customer", "professional"):
            raise ValueError("Invalid role. Must be 'customer' or 'professional'")
        return v


class RoleResponse(BaseModel):
    model_config = {"populate_by_name": True}

    role: Role
    has_record: bool = Field(alias="hasRecord")


class RoleWriteResponse(RoleResponse):
    success: bool = True


class NavigationResponse(BaseModel):
    model_config = {"populate_by_name": True}

    role: Role
    has_record: bool = Field(alias="hasRecord")
    tabs: List[str]
    active_tab: str = Field(alias="activeTab")


# ══════════════════════════════════════════════════════════════════════════
# Username
# ══════════════════════════════════════════════════════════════════════════


class UsernameSet(BaseModel):
    user_email: str = Field(min_length=1)
    username: str

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        v = v.strip()
        if not USERNAME_PATTERN.match(v):
            raise ValueError(
                "Username must be 3-20 characters and contain only letters, numbers and underscores"
            )
        return v


class UsernameAvailability(BaseModel):
    username: str
    available: bool
    # Set when the name is malformed rather than taken
    reason: Optional[str] = None


class UsernameResponse(BaseModel):
    success: bool = True
    username: str


class UsernameLookup(BaseModel):
    username: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════
# Haircut log
# ══════════════════════════════════════════════════════════════════════════


class HaircutCreate(BaseModel):
    user_email: str = Field(min_length=1)
    date: dt.date
    barber: str = Field(min_length=1, max_length=255)
    location: str = ""
    style: str = ""
    cost: Optional[float] = Field(default=None, ge=0)
    notes: str = ""


class HaircutDelete(BaseModel):
    id: uuid.UUID
    user_email: str = Field(min_length=1)


class HaircutResponse(BaseModel):
    id: uuid.UUID
    user_email: str
    date: dt.date
    barber: str
    location: str
    style: str
    cost: Optional[float] = None
    notes: str
    created_at: dt.datetime

    model_config = {"from_attributes": True}


class HaircutListResponse(BaseModel):
    haircuts: List[HaircutResponse]


# ══════════════════════════════════════════════════════════════════════════
# Reminders
# ══════════════════════════════════════════════════════════════════════════


class ReminderCreate(BaseModel):
    user_email: str = Field(min_length=1)
    reminder_days: int = Field(gt=0, le=365)


class ReminderDelete(BaseModel):
    id: uuid.UUID
    user_email: str = Field(min_length=1)


class ReminderResponse(BaseModel):
    id: uuid.UUID
    user_email: str
    reminder_days: int
    is_active: bool
    last_sent_at: Optional[dt.datetime] = None
    created_at: dt.datetime

    model_config = {"from_attributes": True}


class ReminderListResponse(BaseModel):
    reminders: List[ReminderResponse]


class ReminderStatus(BaseModel):
    id: uuid.UUID
    user_email: str
    reminder_days: int
    last_sent_at: Optional[dt.datetime] = None
    next_reminder_due: dt.datetime
    is_due: bool
    days_until_due: int


class ReminderStatusResponse(BaseModel):
    reminders: List[ReminderStatus]
    current_time: dt.datetime


class ReminderSendResponse(BaseModel):
    status: str
    sent: int
    failed: int
    errors: List[str] = Field(default_factory=list)


# ══════════════════════════════════════════════════════════════════════════
# Account deletion
# ══════════════════════════════════════════════════════════════════════════


class AccountDelete(BaseModel):
    user_email: str = Field(min_length=1)
    confirmation_text: str = Field(min_length=1)

    @field_validator("confirmation_text")
    @classmethod
    def validate_confirmation(cls, v: str) -> str:
        if v != DELETE_CONFIRMATION:
            raise ValueError(f'Please type "{DELETE_CONFIRMATION}" to confirm account deletion')
        return v


class AccountDeleteResponse(BaseModel):
    success: bool = True
    message: str
    deleted: dict
