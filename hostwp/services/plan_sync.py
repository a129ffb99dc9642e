"""Two-way reconciliation between local hosting plans and Upmind products.

Push sends a plan's shared fields (name, description, price, billing cycle,
features, visibility) to Upmind, creating the product on first push. Pull
overwrites those shared fields from Upmind. Local-only fields (icon, popular
flag, ordering, slug, store URL) are never taken from the remote side.

There is no conflict detection: whichever direction runs last wins on the
shared fields. Bulk runs are sequential and isolate per-plan failures.
"""

from __future__ import annotations

import json
import logging
import uuid
from enum import StrEnum
from typing import Any

from pydantic import BaseModel
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from hostwp.models.base import utcnow
from hostwp.models.hosting_plan import DEFAULT_ICON, HostingPlan, PlanPeriod, slugify
from hostwp.services.errors import PlanNotFoundError
from hostwp.services.payloads import to_float
from hostwp.services.upmind_service import UpmindService

logger = logging.getLogger(__name__)

PERIOD_TO_CYCLE = {PlanPeriod.MONTH: "monthly", PlanPeriod.YEAR: "annually"}
CYCLE_TO_PERIOD = {
    "month": PlanPeriod.MONTH,
    "monthly": PlanPeriod.MONTH,
    "year": PlanPeriod.YEAR,
    "yearly": PlanPeriod.YEAR,
    "annual": PlanPeriod.YEAR,
    "annually": PlanPeriod.YEAR,
}


class SyncDirection(StrEnum):
    PUSH = "push"
    PULL = "pull"


class SyncOutcome(BaseModel):
    success: bool
    plan_id: uuid.UUID | None = None
    upmind_product_id: str | None = None
    action: str | None = None  # created / updated / pulled / imported / detached
    error: str | None = None


class SyncReport(BaseModel):
    direction: SyncDirection
    success: bool
    total: int
    succeeded: int
    failed: int
    errors: list[str]


# ── Field mapping ────────────────────────────────────────────

def product_payload(plan: HostingPlan) -> dict[str, Any]:
    """Shared fields of a plan in Upmind's product shape."""
    return {
        "name": plan.name,
        "description": plan.description,
        "price": plan.price,
        "billing_cycle": PERIOD_TO_CYCLE.get(plan.period, "monthly"),
        "category": "hosting",
        "features": plan.feature_list(),
        "visible": plan.is_active,
    }


def apply_remote(plan: HostingPlan, product: dict[str, Any]) -> None:
    """Overwrite a plan's shared fields from a normalised Upmind product."""
    if product.get("name"):
        plan.name = product["name"]
    plan.description = product.get("description") or ""
    plan.price = to_float(product.get("price")) or 0.0
    cycle = str(product.get("billing_cycle") or "").lower()
    plan.period = CYCLE_TO_PERIOD.get(cycle, plan.period or PlanPeriod.MONTH)
    features = product.get("features") or []
    plan.features = json.dumps([str(f) for f in features] if isinstance(features, list) else [])
    plan.is_active = product.get("visible") is not False


def extract_product_id(data: Any) -> str | None:
    """Find the product id in a create response: ``{id}``, ``{data: {id}}`` or ``{product: {id}}``."""
    if not isinstance(data, dict):
        return None
    if data.get("id") is not None:
        return str(data["id"])
    for key in ("data", "product"):
        inner = data.get(key)
        if isinstance(inner, dict) and inner.get("id") is not None:
            return str(inner["id"])
    return None


def _mark_synced(plan: HostingPlan, product_id: str) -> None:
    plan.upmind_product_id = product_id
    plan.upmind_sync_enabled = True
    plan.upmind_last_synced = utcnow()
    plan.updated_at = utcnow()


# ── Reconciler ───────────────────────────────────────────────

class PlanSyncService:
    def __init__(self, session: AsyncSession, service: UpmindService) -> None:
        self.session = session
        self.service = service

    async def get_plan(self, plan_id: uuid.UUID) -> HostingPlan:
        plan = await self.session.get(HostingPlan, plan_id)
        if plan is None:
            raise PlanNotFoundError(plan_id)
        return plan

    # ── Push ─────────────────────────────────────────────────

    async def push_plan(self, plan: HostingPlan) -> SyncOutcome:
        plan_id, remote_id = plan.id, plan.upmind_product_id
        payload = product_payload(plan)

        if remote_id:
            result = await self.service.update_product(remote_id, payload)
            action = "updated"
        else:
            result = await self.service.create_product(payload)
            action = "created"
        if not result.success:
            return SyncOutcome(success=False, plan_id=plan_id, upmind_product_id=remote_id, error=result.error)

        if not remote_id:
            remote_id = extract_product_id(result.data)
            if remote_id is None:
                return SyncOutcome(
                    success=False,
                    plan_id=plan_id,
                    error="Upmind accepted the product but returned no product id",
                )

        _mark_synced(plan, remote_id)
        self.session.add(plan)
        try:
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            # The remote product exists but the local plan still looks unsynced;
            # the next push will create a duplicate.
            logger.error(
                "Upmind product %s %s for plan %s but the local link was not saved: %s",
                remote_id, action, plan_id, exc,
            )
            return SyncOutcome(
                success=False,
                plan_id=plan_id,
                upmind_product_id=remote_id,
                error=f"Upmind product {remote_id} was {action} but saving the local link failed: {exc}",
            )

        logger.info("Pushed plan %s to Upmind product %s (%s)", plan_id, remote_id, action)
        return SyncOutcome(success=True, plan_id=plan_id, upmind_product_id=remote_id, action=action)

    async def push_all(self) -> SyncReport:
        # A failed commit rolls back and expires every loaded plan, so each
        # plan is re-read inside the loop.
        targets = [(plan.id, plan.name) for plan in await self._all_plans()]
        outcomes: list[tuple[str, SyncOutcome]] = []
        for plan_id, name in targets:
            try:
                plan = await self.session.get(HostingPlan, plan_id, populate_existing=True)
                if plan is None:
                    outcome = SyncOutcome(success=False, plan_id=plan_id, error="Plan no longer exists")
                else:
                    outcome = await self.push_plan(plan)
            except Exception as exc:
                logger.exception("Push failed for plan %s", name)
                await self.session.rollback()
                outcome = SyncOutcome(success=False, plan_id=plan_id, error=str(exc))
            outcomes.append((name, outcome))
        return self._report(SyncDirection.PUSH, outcomes)

    # ── Pull ─────────────────────────────────────────────────

    async def pull_plan(self, plan: HostingPlan) -> SyncOutcome:
        plan_id, remote_id = plan.id, plan.upmind_product_id
        if not remote_id:
            return SyncOutcome(
                success=False,
                plan_id=plan_id,
                error="Plan has not been synced to Upmind yet; push it first",
            )

        result = await self.service.get_product(remote_id)
        if not result.success:
            return SyncOutcome(success=False, plan_id=plan_id, upmind_product_id=remote_id, error=result.error)
        if not isinstance(result.data, dict):
            return SyncOutcome(
                success=False,
                plan_id=plan_id,
                upmind_product_id=remote_id,
                error="Upmind returned an unexpected product shape",
            )

        apply_remote(plan, result.data)
        _mark_synced(plan, remote_id)
        error = await self._save(plan)
        if error is not None:
            return SyncOutcome(success=False, plan_id=plan_id, upmind_product_id=remote_id, error=error)
        logger.info("Pulled Upmind product %s into plan %s", remote_id, plan_id)
        return SyncOutcome(success=True, plan_id=plan_id, upmind_product_id=remote_id, action="pulled")

    async def import_product(self, product: dict[str, Any]) -> SyncOutcome:
        """Apply one remote product to its linked plan, creating the plan if none is linked."""
        remote_id = str(product.get("id")) if product.get("id") is not None else None
        if remote_id is None:
            return SyncOutcome(success=False, error="Upmind product has no id")

        stmt = select(HostingPlan).where(HostingPlan.upmind_product_id == remote_id)
        plan = (await self.session.execute(stmt)).scalars().first()
        action = "pulled"
        if plan is None:
            if not product.get("name"):
                return SyncOutcome(success=False, upmind_product_id=remote_id, error="Upmind product has no name")
            plan = HostingPlan(
                name=product["name"],
                slug=await self._unique_slug(product["name"]),
                icon_emoji=DEFAULT_ICON,
                is_popular=False,
                sort_order=await self._next_sort_order(),
            )
            action = "imported"

        plan_id = plan.id
        apply_remote(plan, product)
        _mark_synced(plan, remote_id)
        error = await self._save(plan)
        if error is not None:
            return SyncOutcome(success=False, plan_id=plan_id, upmind_product_id=remote_id, error=error)
        return SyncOutcome(success=True, plan_id=plan_id, upmind_product_id=remote_id, action=action)

    async def pull_all(self) -> SyncReport:
        result = await self.service.get_products()
        if not result.success:
            return SyncReport(
                direction=SyncDirection.PULL,
                success=False,
                total=0,
                succeeded=0,
                failed=0,
                errors=[result.error or "Failed to fetch products"],
            )

        if not isinstance(result.data, list):
            return SyncReport(
                direction=SyncDirection.PULL,
                success=False,
                total=0,
                succeeded=0,
                failed=0,
                errors=["Unexpected products response shape from Upmind"],
            )

        products = result.data
        outcomes: list[tuple[str, SyncOutcome]] = []
        for product in products:
            name = str(product.get("name") or product.get("id"))
            try:
                outcome = await self.import_product(product)
            except Exception as exc:
                logger.exception("Pull failed for Upmind product %s", name)
                await self.session.rollback()
                outcome = SyncOutcome(success=False, error=str(exc))
            outcomes.append((name, outcome))
        return self._report(SyncDirection.PULL, outcomes)

    # ── Single-plan actions ──────────────────────────────────

    async def sync_plan(self, plan_id: uuid.UUID, direction: SyncDirection) -> SyncOutcome:
        plan = await self.get_plan(plan_id)
        if direction == SyncDirection.PUSH:
            return await self.push_plan(plan)
        return await self.pull_plan(plan)

    async def unsync_plan(self, plan_id: uuid.UUID) -> SyncOutcome:
        """Delete the linked Upmind product and return the plan to local-only."""
        plan = await self.get_plan(plan_id)
        remote_id = plan.upmind_product_id
        if not remote_id:
            return SyncOutcome(success=False, plan_id=plan.id, error="Plan is not linked to an Upmind product")

        result = await self.service.delete_product(remote_id)
        if not result.success and result.status != 404:
            return SyncOutcome(success=False, plan_id=plan.id, upmind_product_id=remote_id, error=result.error)

        plan.upmind_product_id = None
        plan.upmind_sync_enabled = False
        plan.upmind_last_synced = None
        plan.updated_at = utcnow()
        error = await self._save(plan)
        if error is not None:
            return SyncOutcome(success=False, plan_id=plan_id, upmind_product_id=remote_id, error=error)
        logger.info("Detached plan %s from Upmind product %s", plan_id, remote_id)
        return SyncOutcome(success=True, plan_id=plan_id, upmind_product_id=remote_id, action="detached")

    # ── Internal helpers ─────────────────────────────────────

    async def _save(self, plan: HostingPlan) -> str | None:
        """Commit one plan. Returns an error message instead of raising on a storage failure."""
        plan_id = plan.id
        self.session.add(plan)
        try:
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("Saving plan %s failed: %s", plan_id, exc)
            return f"Saving the local plan failed: {exc}"
        return None

    async def _all_plans(self) -> list[HostingPlan]:
        stmt = select(HostingPlan).order_by(HostingPlan.sort_order, HostingPlan.created_at)
        return list((await self.session.execute(stmt)).scalars().all())

    async def _next_sort_order(self) -> int:
        current = (await self.session.execute(select(func.max(HostingPlan.sort_order)))).scalar_one()
        return (current or 0) + 1

    async def _unique_slug(self, name: str) -> str:
        base = slugify(name) or "plan"
        slug, n = base, 1
        while (await self.session.execute(
            select(HostingPlan.id).where(HostingPlan.slug == slug)
        )).first() is not None:
            n += 1
            slug = f"{base}{n}"
        return slug

    @staticmethod
    def _report(direction: SyncDirection, outcomes: list[tuple[str, SyncOutcome]]) -> SyncReport:
        errors = [f"{name}: {o.error}" for name, o in outcomes if not o.success]
        return SyncReport(
            direction=direction,
            success=not errors,
            total=len(outcomes),
            succeeded=len(outcomes) - len(errors),
            failed=len(errors),
            errors=errors,
        )
