"""DTOs for Identity app."""
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID
from typing import Optional, List

from ninja import Schema


@dataclass(frozen=True)
class UserDTO:
    id: UUID
    username: str
    email: str
    name: str
    role: str
    is_active: bool
    is_verified_owner: bool
    building_number: str
    apartment_number: str
    phone_number: str
    preferred_language: str
    whatsapp_opt_in: bool
    permissions: List[str]
    last_login: Optional[datetime] = None


@dataclass(frozen=True)
class RegistrationDTO:
    id: UUID
    name: str
    email: str
    building_number: str
    apartment_number: str
    phone_number: str
    preferred_language: str
    status: str
    notes: str
    user_id: Optional[UUID]
    reviewed_at: Optional[datetime]
    created_at: datetime


class UserUpdate(Schema):
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None
    is_verified_owner: Optional[bool] = None
    building_number: Optional[str] = None
    apartment_number: Optional[str] = None
    phone_number: Optional[str] = None
    preferred_language: Optional[str] = None
    whatsapp_opt_in: Optional[bool] = None
    is_active: Optional[bool] = None


class ProfileUpdate(Schema):
    name: Optional[str] = None
    phone_number: Optional[str] = None
    preferred_language: Optional[str] = None
    whatsapp_opt_in: Optional[bool] = None


class PermissionsIn(Schema):
    permissions: List[str]


class PermissionsOut(Schema):
    user_id: UUID
    role: str
    granted: List[str]
    effective: List[str]


class RegistrationIn(Schema):
    name: str
    email: str
    building_number: str
    apartment_number: str
    phone_number: str
    preferred_language: Optional[str] = None


class RegistrationReviewIn(Schema):
    notes: Optional[str] = None


class RegistrationApprovalOut(Schema):
    registration: RegistrationDTO
    user: UserDTO
    temporary_password: str


class PasswordResetOut(Schema):
    user_id: UUID
    temporary_password: str
