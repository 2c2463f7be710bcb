"""
Availability reconciliation.

A user paints a range on the tent calendar; every stored interval of that user
overlapping the range is deleted whole (never clipped or split) and the new
range is inserted as one row, all in a single transaction. After every write a
user's intervals are pairwise non-overlapping under the half-open test.
"""
import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import and_, delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .cache import (
    get_availability_view,
    get_view_generation,
    invalidate_availability_view,
    set_availability_view,
)
from .errors import (
    InvalidRangeError,
    InvalidStatusError,
    NoTentError,
    TransactionFailure,
    UnauthorizedError,
)
from .models import Availability, AvailabilityStatus, Profile
from .rabbitmq import publisher
from .schemas import AvailabilityOut, MemberOut, TentAvailabilityView
from .security import RequestContext

logger = logging.getLogger(__name__)


def to_utc_naive(dt: datetime) -> datetime:
    """Aware datetimes are converted to UTC; naive ones are taken as UTC already."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def validate_range(start_time: datetime, end_time: datetime) -> tuple[datetime, datetime]:
    start = to_utc_naive(start_time)
    end = to_utc_naive(end_time)
    if start >= end:
        raise InvalidRangeError()
    return start, end


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return a_start < b_end and a_end > b_start


def overlap_clause(start: datetime, end: datetime):
    # strict comparisons: intervals that only touch at a boundary survive
    return and_(Availability.start_time < end, Availability.end_time > start)


async def _lock_owner(db: AsyncSession, user_id: uuid.UUID):
    # serializes concurrent submissions of the same user; no-op on sqlite
    await db.execute(select(Profile.id).where(Profile.id == user_id).with_for_update())


async def _delete_overlapping(db: AsyncSession, user_id: uuid.UUID, start: datetime, end: datetime) -> int:
    result = await db.execute(
        delete(Availability)
        .where(Availability.user_id == user_id, overlap_clause(start, end))
        .execution_options(synchronize_session="fetch")
    )
    return result.rowcount or 0


async def _insert_interval(
    db: AsyncSession,
    ctx: RequestContext,
    start: datetime,
    end: datetime,
    status: AvailabilityStatus,
) -> Availability:
    interval = Availability(
        user_id=ctx.user_id,
        tent_id=ctx.tent_id,
        start_time=start,
        end_time=end,
        status=status,
    )
    db.add(interval)
    await db.flush()
    return interval


async def submit_availability(
    db: AsyncSession,
    ctx: RequestContext | None,
    start_time: datetime,
    end_time: datetime,
    status: AvailabilityStatus | str,
) -> Availability:
    if ctx is None or ctx.user_id is None:
        raise UnauthorizedError()
    if ctx.tent_id is None:
        raise NoTentError()

    start, end = validate_range(start_time, end_time)
    try:
        status = AvailabilityStatus(status)
    except ValueError as e:
        raise InvalidStatusError() from e

    try:
        await _lock_owner(db, ctx.user_id)
        replaced = await _delete_overlapping(db, ctx.user_id, start, end)
        interval = await _insert_interval(db, ctx, start, end, status)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("availability write for user %s failed, rolled back: %s", ctx.user_id, e)
        raise TransactionFailure() from e

    logger.debug(
        "user %s set %s for %s..%s, replaced %d interval(s)",
        ctx.user_id, status.value, start.isoformat(), end.isoformat(), replaced,
    )

    await invalidate_availability_view(ctx.tent_id)
    await publisher.publish_event(
        "availability.updated",
        {
            "tent_id": str(ctx.tent_id),
            "user_id": str(ctx.user_id),
            "start_time": start.isoformat(),
            "end_time": end.isoformat(),
            "status": status.value,
        },
    )
    return interval


async def list_user_availability(db: AsyncSession, user_id: uuid.UUID) -> list[Availability]:
    result = await db.execute(
        select(Availability)
        .where(Availability.user_id == user_id)
        .order_by(Availability.start_time)
    )
    return list(result.scalars().all())


async def list_tent_availability(
    db: AsyncSession,
    tent_id: uuid.UUID,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[Availability]:
    # intervals of members who have since left the tent are not shown
    query = (
        select(Availability)
        .join(Profile, Profile.id == Availability.user_id)
        .where(Availability.tent_id == tent_id, Profile.tent_id == tent_id)
    )
    if start is not None:
        query = query.where(Availability.end_time > to_utc_naive(start))
    if end is not None:
        query = query.where(Availability.start_time < to_utc_naive(end))
    result = await db.execute(query.order_by(Availability.user_id, Availability.start_time))
    return list(result.scalars().all())


async def _build_view(db: AsyncSession, tent_id: uuid.UUID, start=None, end=None) -> TentAvailabilityView:
    members = await db.execute(
        select(Profile).where(Profile.tent_id == tent_id).order_by(Profile.full_name)
    )
    intervals = await list_tent_availability(db, tent_id, start, end)
    return TentAvailabilityView(
        tent_id=tent_id,
        members=[MemberOut.model_validate(p) for p in members.scalars().all()],
        availabilities=[AvailabilityOut.model_validate(a) for a in intervals],
    )


async def get_tent_availability_view(
    db: AsyncSession,
    ctx: RequestContext,
    start: datetime | None = None,
    end: datetime | None = None,
) -> TentAvailabilityView:
    """
    Members plus stored intervals of the caller's tent.
    Only the unfiltered view is cached; submissions invalidate it.
    """
    if start is not None and end is not None:
        validate_range(start, end)

    if start is not None or end is not None:
        return await _build_view(db, ctx.tent_id, start, end)

    # read before querying, so a view built from pre-submission rows is filed
    # under the generation that submission has already retired
    generation = await get_view_generation(ctx.tent_id)
    if generation is None:
        return await _build_view(db, ctx.tent_id)

    cached = await get_availability_view(ctx.tent_id, generation)
    if cached:
        return TentAvailabilityView.model_validate_json(cached)

    view = await _build_view(db, ctx.tent_id)
    await set_availability_view(ctx.tent_id, generation, view.model_dump_json())
    return view
