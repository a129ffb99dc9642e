"""Hosting plans — local CRUD, ordering, and Upmind sync."""

import json
import uuid
from enum import StrEnum

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel
from sqlalchemy import func
from sqlmodel import select

from hostwp.api.deps import Admin, PlanSync, Session
from hostwp.models.base import utcnow
from hostwp.models.hosting_plan import (
    HostingPlan,
    HostingPlanCreate,
    HostingPlanRead,
    HostingPlanUpdate,
    slugify,
)
from hostwp.services.plan_sync import SyncDirection, SyncOutcome, SyncReport

router = APIRouter(prefix="/hosting-plans", tags=["hosting-plans"])


class MoveDirection(StrEnum):
    UP = "up"
    DOWN = "down"


class MoveRequest(BaseModel):
    direction: MoveDirection


def _to_read(plan: HostingPlan) -> HostingPlanRead:
    return HostingPlanRead(
        id=plan.id,
        name=plan.name,
        slug=plan.slug,
        description=plan.description,
        price=plan.price,
        period=plan.period,
        features=plan.feature_list(),
        icon_emoji=plan.icon_emoji,
        is_popular=plan.is_popular,
        is_active=plan.is_active,
        sort_order=plan.sort_order,
        upmind_url=plan.upmind_url,
        upmind_product_id=plan.upmind_product_id,
        upmind_sync_enabled=plan.upmind_sync_enabled,
        upmind_last_synced=plan.upmind_last_synced,
        created_at=plan.created_at,
        updated_at=plan.updated_at,
    )


# ── Bulk sync ────────────────────────────────────────────────

@router.post("/sync/push", response_model=SyncReport)
async def push_all_plans(admin: Admin, sync: PlanSync) -> SyncReport:
    return await sync.push_all()


@router.post("/sync/pull", response_model=SyncReport)
async def pull_all_plans(admin: Admin, sync: PlanSync) -> SyncReport:
    return await sync.pull_all()


# ── CRUD ─────────────────────────────────────────────────────

@router.get("", response_model=list[HostingPlanRead])
async def list_hosting_plans(admin: Admin, session: Session) -> list[HostingPlanRead]:
    stmt = select(HostingPlan).order_by(HostingPlan.sort_order, HostingPlan.created_at)
    result = await session.execute(stmt)
    return [_to_read(p) for p in result.scalars().all()]


@router.post("", response_model=HostingPlanRead, status_code=status.HTTP_201_CREATED)
async def create_hosting_plan(
    body: HostingPlanCreate,
    admin: Admin,
    session: Session,
) -> HostingPlanRead:
    slug = body.slug or slugify(body.name)
    if not slug:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Plan name must contain at least one letter or digit",
        )
    await _ensure_slug_free(slug, session)

    sort_order = body.sort_order
    if sort_order is None:
        count = (await session.execute(select(func.count()).select_from(HostingPlan))).scalar_one()
        sort_order = count + 1

    plan = HostingPlan(
        name=body.name,
        slug=slug,
        description=body.description,
        price=body.price,
        period=body.period,
        features=json.dumps(body.features),
        icon_emoji=body.icon_emoji,
        is_popular=body.is_popular,
        is_active=body.is_active,
        sort_order=sort_order,
        upmind_url=body.upmind_url,
    )
    session.add(plan)
    await session.commit()
    await session.refresh(plan)
    return _to_read(plan)


@router.get("/{plan_id}", response_model=HostingPlanRead)
async def get_hosting_plan(plan_id: uuid.UUID, admin: Admin, session: Session) -> HostingPlanRead:
    return _to_read(await _get_or_404(plan_id, session))


@router.patch("/{plan_id}", response_model=HostingPlanRead)
async def update_hosting_plan(
    plan_id: uuid.UUID,
    body: HostingPlanUpdate,
    admin: Admin,
    session: Session,
) -> HostingPlanRead:
    plan = await _get_or_404(plan_id, session)
    update_data = body.model_dump(exclude_unset=True, exclude_none=True)

    if "slug" in update_data and update_data["slug"] != plan.slug:
        await _ensure_slug_free(update_data["slug"], session)
    if "features" in update_data:
        update_data["features"] = json.dumps(update_data["features"])

    for field, value in update_data.items():
        setattr(plan, field, value)

    plan.updated_at = utcnow()
    session.add(plan)
    await session.commit()
    await session.refresh(plan)
    return _to_read(plan)


@router.delete("/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_hosting_plan(plan_id: uuid.UUID, admin: Admin, session: Session) -> None:
    """Delete locally. A linked Upmind product is left in place; use unsync first to remove it."""
    plan = await _get_or_404(plan_id, session)
    await session.delete(plan)
    await session.commit()


@router.post("/{plan_id}/toggle-status", response_model=HostingPlanRead)
async def toggle_hosting_plan(plan_id: uuid.UUID, admin: Admin, session: Session) -> HostingPlanRead:
    plan = await _get_or_404(plan_id, session)
    plan.is_active = not plan.is_active
    plan.updated_at = utcnow()
    session.add(plan)
    await session.commit()
    await session.refresh(plan)
    return _to_read(plan)


@router.post("/{plan_id}/move", response_model=list[HostingPlanRead])
async def move_hosting_plan(
    plan_id: uuid.UUID,
    body: MoveRequest,
    admin: Admin,
    session: Session,
) -> list[HostingPlanRead]:
    """Swap sort_order with the neighbouring plan. Returns the reordered list."""
    stmt = select(HostingPlan).order_by(HostingPlan.sort_order, HostingPlan.created_at)
    plans = list((await session.execute(stmt)).scalars().all())

    index = next((i for i, p in enumerate(plans) if p.id == plan_id), None)
    if index is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Hosting plan not found")

    target = index - 1 if body.direction == MoveDirection.UP else index + 1
    if target < 0 or target >= len(plans):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Plan is already at the {'top' if target < 0 else 'bottom'}",
        )

    current, neighbour = plans[index], plans[target]
    current.sort_order, neighbour.sort_order = neighbour.sort_order, current.sort_order
    if current.sort_order == neighbour.sort_order:
        # Equal orders would make the swap a no-op
        current.sort_order = target + 1
        neighbour.sort_order = index + 1
    now = utcnow()
    current.updated_at = neighbour.updated_at = now
    session.add_all([current, neighbour])
    await session.commit()

    plans[index], plans[target] = neighbour, current
    return [_to_read(p) for p in plans]


# ── Per-plan sync ────────────────────────────────────────────

@router.post("/{plan_id}/sync", response_model=SyncOutcome)
async def sync_hosting_plan(
    plan_id: uuid.UUID,
    admin: Admin,
    sync: PlanSync,
    direction: SyncDirection = SyncDirection.PUSH,
) -> SyncOutcome:
    return await sync.sync_plan(plan_id, direction)


@router.post("/{plan_id}/unsync", response_model=SyncOutcome)
async def unsync_hosting_plan(plan_id: uuid.UUID, admin: Admin, sync: PlanSync) -> SyncOutcome:
    return await sync.unsync_plan(plan_id)


# ── Internal helpers ──────────────────────────────────────────

async def _get_or_404(plan_id: uuid.UUID, session) -> HostingPlan:
    plan = await session.get(HostingPlan, plan_id)
    if plan is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Hosting plan not found")
    return plan


async def _ensure_slug_free(slug: str, session) -> None:
    stmt = select(HostingPlan.id).where(HostingPlan.slug == slug)
    if (await session.execute(stmt)).first() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"A plan with slug '{slug}' already exists",
        )
