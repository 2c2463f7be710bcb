import uuid
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from . import services
from .availability import get_tent_availability_view, list_user_availability, submit_availability
from .db import get_db
from .schemas import (
    AssignMember,
    AssignmentOut,
    AvailabilityOut,
    CreateShift,
    CreateTent,
    JoinTent,
    ProfileOut,
    ShiftCoverage,
    ShiftDetail,
    ShiftOut,
    SubmitAvailability,
    TentAvailabilityView,
    TentDetail,
    TentOut,
    UpdateProfile,
    UpdateTentImage,
    UpdateTentName,
)
from .security import RequestContext, get_request_context, require_captain, require_tent

router = APIRouter()


# ================= PROFILE =================

@router.get("/me", response_model=ProfileOut, tags=["Profile"])
async def get_me(ctx: RequestContext = Depends(get_request_context), db: AsyncSession = Depends(get_db)):
    return await services.get_profile(db, ctx)


@router.put("/me", response_model=ProfileOut, tags=["Profile"])
async def update_me(data: UpdateProfile, ctx: RequestContext = Depends(get_request_context), db: AsyncSession = Depends(get_db)):
    return await services.update_profile(db, ctx, data)


# ================= TENTS =================

@router.post("/tents", response_model=TentOut, status_code=status.HTTP_201_CREATED, tags=["Tents"])
async def create_tent(data: CreateTent, ctx: RequestContext = Depends(get_request_context), db: AsyncSession = Depends(get_db)):
    return await services.create_tent(db, ctx, data)


@router.post("/tents/join", response_model=TentOut, tags=["Tents"])
async def join_tent(data: JoinTent, ctx: RequestContext = Depends(get_request_context), db: AsyncSession = Depends(get_db)):
    return await services.join_tent(db, ctx, data.code)


@router.get("/tents/me", response_model=TentDetail, tags=["Tents"])
async def get_my_tent(ctx: RequestContext = Depends(require_tent), db: AsyncSession = Depends(get_db)):
    return await services.get_tent_detail(db, ctx.tent_id)


@router.put("/tents/me/name", response_model=TentOut, tags=["Tents"])
async def update_tent_name(data: UpdateTentName, ctx: RequestContext = Depends(require_captain), db: AsyncSession = Depends(get_db)):
    return await services.update_tent_name(db, ctx, data.name)


@router.put("/tents/me/image", response_model=TentOut, tags=["Tents"])
async def update_tent_image(data: UpdateTentImage, ctx: RequestContext = Depends(require_captain), db: AsyncSession = Depends(get_db)):
    return await services.update_tent_image(db, ctx, data.image_url)


# ================= AVAILABILITY =================

@router.post("/availability", response_model=AvailabilityOut, status_code=status.HTTP_201_CREATED, tags=["Availability"])
async def submit_availability_endpoint(
    data: SubmitAvailability,
    ctx: RequestContext = Depends(require_tent),
    db: AsyncSession = Depends(get_db),
):
    return await submit_availability(db, ctx, data.start_time, data.end_time, data.status)


@router.get("/availability", response_model=TentAvailabilityView, tags=["Availability"])
async def get_tent_availability(
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    ctx: RequestContext = Depends(require_tent),
    db: AsyncSession = Depends(get_db),
):
    return await get_tent_availability_view(db, ctx, start, end)


@router.get("/availability/me", response_model=List[AvailabilityOut], tags=["Availability"])
async def get_my_availability(ctx: RequestContext = Depends(require_tent), db: AsyncSession = Depends(get_db)):
    return await list_user_availability(db, ctx.user_id)


# ================= SHIFTS =================

@router.get("/shifts", response_model=List[ShiftDetail], tags=["Shifts"])
async def get_tent_shifts(ctx: RequestContext = Depends(require_tent), db: AsyncSession = Depends(get_db)):
    return await services.get_tent_shifts(db, ctx.tent_id)


@router.get("/shifts/coverage", response_model=List[ShiftCoverage], tags=["Shifts"])
async def get_coverage(ctx: RequestContext = Depends(require_tent), db: AsyncSession = Depends(get_db)):
    return await services.get_coverage(db, ctx.tent_id)


@router.get("/shifts/members/{user_id}", response_model=List[ShiftOut], tags=["Shifts"])
async def get_member_shifts(user_id: uuid.UUID, ctx: RequestContext = Depends(require_tent), db: AsyncSession = Depends(get_db)):
    return await services.get_member_shifts(db, ctx, user_id)


@router.post("/shifts", response_model=ShiftOut, status_code=status.HTTP_201_CREATED, tags=["Shifts"])
async def create_shift(data: CreateShift, ctx: RequestContext = Depends(require_captain), db: AsyncSession = Depends(get_db)):
    return await services.create_shift(db, ctx, data)


@router.delete("/shifts/{shift_id}", tags=["Shifts"])
async def delete_shift(shift_id: uuid.UUID, ctx: RequestContext = Depends(require_captain), db: AsyncSession = Depends(get_db)):
    await services.delete_shift(db, ctx, shift_id)
    return {"message": "Shift deleted"}


@router.post(
    "/shifts/{shift_id}/assignments",
    response_model=AssignmentOut,
    status_code=status.HTTP_201_CREATED,
    tags=["Shifts"],
)
async def assign_member(
    shift_id: uuid.UUID,
    data: AssignMember,
    ctx: RequestContext = Depends(require_captain),
    db: AsyncSession = Depends(get_db),
):
    return await services.assign_member(db, ctx, shift_id, data.user_id)


@router.delete("/shifts/{shift_id}/assignments/{user_id}", tags=["Shifts"])
async def unassign_member(
    shift_id: uuid.UUID,
    user_id: uuid.UUID,
    ctx: RequestContext = Depends(require_captain),
    db: AsyncSession = Depends(get_db),
):
    await services.unassign_member(db, ctx, shift_id, user_id)
    return {"message": "Assignment removed"}
