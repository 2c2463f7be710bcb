import logging
import secrets
import string
import uuid
from collections import defaultdict

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from .availability import validate_range
from .cache import invalidate_availability_view
from .errors import ConflictError, NotFoundError, TransactionFailure
from .models import Assignment, Availability, AvailabilityStatus, Profile, Role, Shift, Tent
from .rabbitmq import publisher
from .schemas import CreateShift, CreateTent, ShiftCoverage, UpdateProfile
from .security import RequestContext, load_profile

logger = logging.getLogger(__name__)

JOIN_CODE_ALPHABET = string.ascii_uppercase + string.digits
JOIN_CODE_LENGTH = 6
JOIN_CODE_ATTEMPTS = 10


async def commit_or_fail(db: AsyncSession):
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError("The change conflicts with existing data") from e
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("commit failed, rolled back: %s", e)
        raise TransactionFailure() from e


# ---- Profiles ----

async def get_profile(db: AsyncSession, ctx: RequestContext) -> Profile:
    profile = await load_profile(db, ctx.user_id)
    if not profile:
        raise NotFoundError("Profile not found")
    return profile


async def update_profile(db: AsyncSession, ctx: RequestContext, data: UpdateProfile) -> Profile:
    profile = await load_profile(db, ctx.user_id)
    if not profile:
        profile = Profile(id=ctx.user_id, full_name=ctx.email, role=Role.MEMBER)
        db.add(profile)

    if data.full_name is not None:
        profile.full_name = data.full_name
    if data.avatar_url is not None:
        profile.avatar_url = data.avatar_url

    await commit_or_fail(db)
    if profile.tent_id:
        await invalidate_availability_view(profile.tent_id)
    return profile


async def _upsert_membership(db: AsyncSession, ctx: RequestContext, tent_id: uuid.UUID, role: Role) -> uuid.UUID | None:
    """Point the caller's profile at a tent. Returns the tent they were in before, if any."""
    profile = await load_profile(db, ctx.user_id)
    if profile is None:
        db.add(Profile(id=ctx.user_id, full_name=ctx.email, tent_id=tent_id, role=role))
        return None

    previous = profile.tent_id
    profile.tent_id = tent_id
    profile.role = role
    return previous


# ---- Tents ----

def generate_join_code() -> str:
    return "".join(secrets.choice(JOIN_CODE_ALPHABET) for _ in range(JOIN_CODE_LENGTH))


async def _unique_join_code(db: AsyncSession) -> str:
    for _ in range(JOIN_CODE_ATTEMPTS):
        code = generate_join_code()
        result = await db.execute(select(Tent.id).where(Tent.join_code == code))
        if result.scalar_one_or_none() is None:
            return code
    raise ConflictError("Could not generate a unique join code")


async def create_tent(db: AsyncSession, ctx: RequestContext, data: CreateTent) -> Tent:
    tent = Tent(
        name=data.name,
        tent_type=data.tent_type,
        join_code=await _unique_join_code(db),
        created_by=ctx.user_id,
    )
    db.add(tent)
    await db.flush()

    previous = await _upsert_membership(db, ctx, tent.id, Role.CAPTAIN)
    await commit_or_fail(db)

    if previous:
        await invalidate_availability_view(previous)
    logger.info("tent %s created by %s", tent.id, ctx.user_id)
    await publisher.publish_event(
        "tent.created",
        {"tent_id": str(tent.id), "name": tent.name, "created_by": str(ctx.user_id)},
    )
    return tent


async def join_tent(db: AsyncSession, ctx: RequestContext, code: str) -> Tent:
    result = await db.execute(select(Tent).where(Tent.join_code == code.strip().upper()))
    tent = result.scalar_one_or_none()
    if not tent:
        raise NotFoundError("Invalid join code")

    # rejoining your own tent keeps your role
    role = ctx.role if ctx.tent_id == tent.id and ctx.role else Role.MEMBER
    previous = await _upsert_membership(db, ctx, tent.id, role)
    await commit_or_fail(db)

    await invalidate_availability_view(tent.id)
    if previous and previous != tent.id:
        await invalidate_availability_view(previous)
    await publisher.publish_event(
        "tent.member_joined",
        {"tent_id": str(tent.id), "user_id": str(ctx.user_id)},
    )
    return tent


async def get_tent_detail(db: AsyncSession, tent_id: uuid.UUID) -> Tent:
    result = await db.execute(
        select(Tent).where(Tent.id == tent_id).options(selectinload(Tent.members))
    )
    tent = result.scalar_one_or_none()
    if not tent:
        raise NotFoundError("Tent not found")
    return tent


async def _get_tent(db: AsyncSession, tent_id: uuid.UUID) -> Tent:
    tent = await db.get(Tent, tent_id)
    if not tent:
        raise NotFoundError("Tent not found")
    return tent


async def update_tent_name(db: AsyncSession, ctx: RequestContext, name: str) -> Tent:
    tent = await _get_tent(db, ctx.tent_id)
    tent.name = name.strip()
    await commit_or_fail(db)
    return tent


async def update_tent_image(db: AsyncSession, ctx: RequestContext, image_url: str) -> Tent:
    tent = await _get_tent(db, ctx.tent_id)
    tent.image_url = image_url
    await commit_or_fail(db)
    return tent


# ---- Shifts ----

async def _get_tent_shift(db: AsyncSession, tent_id: uuid.UUID, shift_id: uuid.UUID) -> Shift:
    result = await db.execute(select(Shift).where(Shift.id == shift_id, Shift.tent_id == tent_id))
    shift = result.scalar_one_or_none()
    if not shift:
        raise NotFoundError("Shift not found")
    return shift


async def _get_tent_member(db: AsyncSession, tent_id: uuid.UUID, user_id: uuid.UUID) -> Profile:
    profile = await load_profile(db, user_id)
    if not profile or profile.tent_id != tent_id:
        raise NotFoundError("Member not found in this tent")
    return profile


async def get_tent_shifts(db: AsyncSession, tent_id: uuid.UUID) -> list[Shift]:
    result = await db.execute(
        select(Shift)
        .where(Shift.tent_id == tent_id)
        .options(selectinload(Shift.assignments).selectinload(Assignment.user))
        .order_by(Shift.start_time)
    )
    return list(result.scalars().all())


async def get_member_shifts(db: AsyncSession, ctx: RequestContext, user_id: uuid.UUID) -> list[Shift]:
    await _get_tent_member(db, ctx.tent_id, user_id)
    result = await db.execute(
        select(Shift)
        .join(Assignment, Assignment.shift_id == Shift.id)
        .where(Assignment.user_id == user_id, Shift.tent_id == ctx.tent_id)
        .order_by(Shift.start_time)
    )
    return list(result.scalars().all())


async def create_shift(db: AsyncSession, ctx: RequestContext, data: CreateShift) -> Shift:
    start, end = validate_range(data.start_time, data.end_time)
    shift = Shift(
        tent_id=ctx.tent_id,
        start_time=start,
        end_time=end,
        required_count=data.required_count,
        is_grace=data.is_grace,
    )
    db.add(shift)
    await commit_or_fail(db)
    return shift


async def delete_shift(db: AsyncSession, ctx: RequestContext, shift_id: uuid.UUID):
    shift = await _get_tent_shift(db, ctx.tent_id, shift_id)
    await db.delete(shift)
    await commit_or_fail(db)


async def assign_member(db: AsyncSession, ctx: RequestContext, shift_id: uuid.UUID, user_id: uuid.UUID) -> Assignment:
    await _get_tent_shift(db, ctx.tent_id, shift_id)
    member = await _get_tent_member(db, ctx.tent_id, user_id)

    existing = await db.execute(
        select(Assignment.id).where(Assignment.shift_id == shift_id, Assignment.user_id == user_id)
    )
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("Member is already assigned to this shift")

    assignment = Assignment(shift_id=shift_id, user_id=user_id)
    assignment.user = member
    db.add(assignment)
    await commit_or_fail(db)
    return assignment


async def unassign_member(db: AsyncSession, ctx: RequestContext, shift_id: uuid.UUID, user_id: uuid.UUID):
    await _get_tent_shift(db, ctx.tent_id, shift_id)
    result = await db.execute(
        select(Assignment).where(Assignment.shift_id == shift_id, Assignment.user_id == user_id)
    )
    assignment = result.scalar_one_or_none()
    if not assignment:
        raise NotFoundError("Assignment not found")
    await db.delete(assignment)
    await commit_or_fail(db)


def merge_adjacent(intervals: list[tuple]) -> list[tuple]:
    """Merge sorted (start, end) pairs that touch or overlap into continuous blocks."""
    merged: list[list] = []
    for start, end in sorted(intervals):
        if merged and start <= merged[-1][1]:
            merged[-1][1] = max(merged[-1][1], end)
        else:
            merged.append([start, end])
    return [(s, e) for s, e in merged]


async def get_coverage(db: AsyncSession, tent_id: uuid.UUID) -> list[ShiftCoverage]:
    shifts = await get_tent_shifts(db, tent_id)

    result = await db.execute(
        select(Availability.user_id, Availability.start_time, Availability.end_time)
        .join(Profile, Profile.id == Availability.user_id)
        .where(
            Availability.tent_id == tent_id,
            Profile.tent_id == tent_id,
            Availability.status == AvailabilityStatus.AVAILABLE,
        )
    )
    by_user = defaultdict(list)
    for user_id, start, end in result.all():
        by_user[user_id].append((start, end))
    blocks = {user_id: merge_adjacent(spans) for user_id, spans in by_user.items()}

    coverage = []
    for shift in shifts:
        available = [
            user_id
            for user_id, spans in blocks.items()
            if any(s <= shift.start_time and e >= shift.end_time for s, e in spans)
        ]
        assigned = len(shift.assignments)
        coverage.append(
            ShiftCoverage(
                shift_id=shift.id,
                start_time=shift.start_time,
                end_time=shift.end_time,
                required_count=shift.required_count,
                assigned_count=assigned,
                fully_staffed=assigned >= shift.required_count,
                available_members=sorted(available, key=str),
            )
        )
    return coverage
