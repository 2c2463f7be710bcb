import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import AvailabilityStatus, Role, TentType


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# ---- Profiles ----

class MemberOut(ORMModel):
    id: uuid.UUID
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    role: Role


class ProfileOut(MemberOut):
    tent_id: Optional[uuid.UUID] = None


class UpdateProfile(BaseModel):
    full_name: Optional[str] = Field(default=None, max_length=200)
    avatar_url: Optional[str] = None


# ---- Tents ----

class CreateTent(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    tent_type: TentType

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name is required")
        return v


class JoinTent(BaseModel):
    code: str = Field(min_length=1)

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("code is required")
        return v


class UpdateTentName(BaseModel):
    name: str = Field(min_length=1, max_length=100)


class UpdateTentImage(BaseModel):
    image_url: str = Field(min_length=1)


class TentOut(ORMModel):
    id: uuid.UUID
    name: str
    join_code: str
    tent_type: TentType
    image_url: Optional[str] = None
    created_by: Optional[uuid.UUID] = None


class TentDetail(TentOut):
    members: List[MemberOut] = []


# ---- Availability ----

class SubmitAvailability(BaseModel):
    start_time: datetime
    end_time: datetime
    status: AvailabilityStatus


class AvailabilityOut(ORMModel):
    id: uuid.UUID
    user_id: uuid.UUID
    tent_id: uuid.UUID
    start_time: datetime
    end_time: datetime
    status: AvailabilityStatus


class TentAvailabilityView(BaseModel):
    tent_id: uuid.UUID
    members: List[MemberOut]
    availabilities: List[AvailabilityOut]


# ---- Shifts ----

class CreateShift(BaseModel):
    start_time: datetime
    end_time: datetime
    required_count: int = Field(default=2, ge=1)
    is_grace: bool = False


class AssignMember(BaseModel):
    user_id: uuid.UUID


class AssignmentOut(ORMModel):
    id: uuid.UUID
    user_id: uuid.UUID
    user: Optional[MemberOut] = None


class ShiftOut(ORMModel):
    id: uuid.UUID
    tent_id: uuid.UUID
    start_time: datetime
    end_time: datetime
    required_count: int
    is_grace: bool


class ShiftDetail(ShiftOut):
    assignments: List[AssignmentOut] = []


class ShiftCoverage(BaseModel):
    shift_id: uuid.UUID
    start_time: datetime
    end_time: datetime
    required_count: int
    assigned_count: int
    fully_staffed: bool
    available_members: List[uuid.UUID]
