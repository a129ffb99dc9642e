"""Two-way plan sync: field ownership, linkage, bulk isolation."""

import json
import uuid
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from hostwp.models.hosting_plan import DEFAULT_ICON, HostingPlan, PlanPeriod, slugify
from hostwp.services.errors import PlanNotFoundError
from hostwp.services.plan_sync import SyncDirection


async def _plan(session, name: str = "Starter", **fields) -> HostingPlan:
    values = {
        "name": name,
        "slug": slugify(name),
        "price": 4.99,
        "features": json.dumps(["1 site", "10 GB SSD"]),
    }
    values.update(fields)
    plan = HostingPlan(**values)
    session.add(plan)
    await session.commit()
    await session.refresh(plan)
    return plan


# ── Push ─────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_push_new_plan_creates_and_links(configured, plan_sync, session, upmind):
    plan = await _plan(session, period=PlanPeriod.YEAR)
    upmind.add("POST", "/products", httpx.Response(201, json={"data": {"id": "prod_1"}}))

    outcome = await plan_sync.push_plan(plan)

    assert outcome.success is True
    assert outcome.action == "created"
    assert outcome.upmind_product_id == "prod_1"
    sent = json.loads(upmind.requests[0].content)
    assert sent == {
        "name": "Starter",
        "description": "",
        "price": 4.99,
        "billing_cycle": "annually",
        "category": "hosting",
        "features": ["1 site", "10 GB SSD"],
        "visible": True,
    }
    await session.refresh(plan)
    assert plan.upmind_product_id == "prod_1"
    assert plan.upmind_sync_enabled is True
    assert plan.upmind_last_synced is not None


@pytest.mark.asyncio
async def test_push_linked_plan_updates(configured, plan_sync, session, upmind):
    plan = await _plan(session, upmind_product_id="prod_7", upmind_sync_enabled=True)
    upmind.add("PUT", "/products/prod_7", httpx.Response(200, json={"id": "prod_7"}))

    outcome = await plan_sync.push_plan(plan)

    assert outcome.action == "updated"
    assert upmind.calls("POST", "/products") == 0


@pytest.mark.asyncio
async def test_push_failure_leaves_plan_unlinked(configured, plan_sync, session, upmind):
    plan = await _plan(session)
    upmind.add("POST", "/products", httpx.Response(400, json={"message": "Invalid category"}))

    outcome = await plan_sync.push_plan(plan)

    assert outcome.success is False
    assert outcome.error == "Product creation failed: Invalid category"
    await session.refresh(plan)
    assert plan.upmind_product_id is None


@pytest.mark.asyncio
async def test_push_without_returned_id_fails(configured, plan_sync, session, upmind):
    plan = await _plan(session)
    upmind.add("POST", "/products", httpx.Response(201, json={"ok": True}))

    outcome = await plan_sync.push_plan(plan)

    assert outcome.success is False
    assert "no product id" in outcome.error


@pytest.mark.asyncio
async def test_push_reports_orphaned_remote_id_when_local_save_fails(configured, plan_sync, session, upmind):
    plan = await _plan(session)
    upmind.add("POST", "/products", httpx.Response(201, json={"id": 99}))

    with patch.object(session, "commit", AsyncMock(side_effect=SQLAlchemyError("disk full"))):
        outcome = await plan_sync.push_plan(plan)

    assert outcome.success is False
    assert outcome.upmind_product_id == "99"
    assert "Upmind product 99 was created" in outcome.error


@pytest.mark.asyncio
async def test_push_without_configuration(plan_sync, session, upmind):
    plan = await _plan(session)
    outcome = await plan_sync.push_plan(plan)
    assert outcome.success is False
    assert "No API configuration found" in outcome.error
    assert upmind.requests == []


# ── Pull ─────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_pull_overwrites_shared_fields_only(configured, plan_sync, session, upmind):
    plan = await _plan(
        session,
        name="Pro",
        icon_emoji="💎",
        is_popular=True,
        sort_order=5,
        upmind_url="https://store.hostwp.test/pro",
        upmind_product_id="prod_9",
    )
    upmind.add("GET", "/products/prod_9", httpx.Response(200, json={
        "id": "prod_9",
        "name": "Pro Max",
        "description": "Bigger",
        "price": "29.5",
        "billing_cycle": "annually",
        "features": ["Unlimited sites"],
        "visible": False,
    }))

    outcome = await plan_sync.pull_plan(plan)

    assert outcome.success is True
    await session.refresh(plan)
    assert plan.name == "Pro Max"
    assert plan.description == "Bigger"
    assert plan.price == 29.5
    assert plan.period == PlanPeriod.YEAR
    assert plan.feature_list() == ["Unlimited sites"]
    assert plan.is_active is False
    # Local-only fields untouched
    assert plan.slug == "pro"
    assert plan.icon_emoji == "💎"
    assert plan.is_popular is True
    assert plan.sort_order == 5
    assert plan.upmind_url == "https://store.hostwp.test/pro"


@pytest.mark.asyncio
async def test_pull_unlinked_plan_is_explicit_failure(configured, plan_sync, session, upmind):
    plan = await _plan(session)
    outcome = await plan_sync.pull_plan(plan)

    assert outcome.success is False
    assert "push it first" in outcome.error
    assert upmind.requests == []


@pytest.mark.asyncio
async def test_pull_all_imports_unknown_products(configured, plan_sync, session, upmind):
    await _plan(session, name="Starter", sort_order=3, upmind_product_id="prod_1")
    upmind.add("GET", "/products", httpx.Response(200, json=[
        {"id": "prod_1", "name": "Starter Plus", "price": 5.99},
        {"id": "prod_2", "name": "Agency Pack", "price": 49, "billing_cycle": "monthly"},
    ]))

    report = await plan_sync.pull_all()

    assert report.direction == SyncDirection.PULL
    assert (report.total, report.succeeded, report.failed) == (2, 2, 0)
    plans = (await session.execute(select(HostingPlan).order_by(HostingPlan.sort_order))).scalars().all()
    assert [p.name for p in plans] == ["Starter Plus", "Agency Pack"]
    imported = plans[1]
    assert imported.slug == "agencypack"
    assert imported.icon_emoji == DEFAULT_ICON
    assert imported.is_popular is False
    assert imported.sort_order == 4
    assert imported.upmind_product_id == "prod_2"


@pytest.mark.asyncio
async def test_pull_all_fetch_failure(configured, plan_sync, upmind):
    upmind.add("GET", "/products", httpx.Response(401, json={"message": "Bad token"}))
    report = await plan_sync.pull_all()

    assert report.success is False
    assert report.total == 0
    assert report.errors == ["Failed to fetch products: Bad token"]


# ── Bulk push ────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_push_all_isolates_failures(configured, plan_sync, session, upmind):
    await _plan(session, name="Broken", sort_order=1, upmind_product_id="prod_x")
    await _plan(session, name="Fresh", sort_order=2)
    upmind.add("PUT", "/products/prod_x", httpx.Response(500, json={"message": "Boom"}))
    upmind.add("POST", "/products", httpx.Response(201, json={"id": "prod_new"}))

    report = await plan_sync.push_all()

    assert (report.total, report.succeeded, report.failed) == (2, 1, 1)
    assert report.errors == ["Broken: Product update failed: Boom"]
    fresh = (await session.execute(select(HostingPlan).where(HostingPlan.name == "Fresh"))).scalar_one()
    assert fresh.upmind_product_id == "prod_new"


# ── Single-plan actions ──────────────────────────────────────

@pytest.mark.asyncio
async def test_sync_plan_unknown_id(plan_sync):
    with pytest.raises(PlanNotFoundError):
        await plan_sync.sync_plan(uuid.uuid4(), SyncDirection.PUSH)


@pytest.mark.asyncio
async def test_unsync_treats_remote_404_as_detached(configured, plan_sync, session, upmind):
    plan = await _plan(session, upmind_product_id="gone", upmind_sync_enabled=True)
    upmind.add("DELETE", "/products/gone", httpx.Response(404, json={"message": "Not found"}))

    outcome = await plan_sync.unsync_plan(plan.id)

    assert outcome.success is True
    assert outcome.action == "detached"
    await session.refresh(plan)
    assert plan.upmind_product_id is None
    assert plan.upmind_sync_enabled is False


@pytest.mark.asyncio
async def test_unsync_keeps_link_on_remote_failure(configured, plan_sync, session, upmind):
    plan = await _plan(session, upmind_product_id="prod_3")
    upmind.add("DELETE", "/products/prod_3", httpx.Response(403, json={"message": "Forbidden"}))

    outcome = await plan_sync.unsync_plan(plan.id)

    assert outcome.success is False
    await session.refresh(plan)
    assert plan.upmind_product_id == "prod_3"


# ── Storage failures inside a batch ──────────────────────────

def _failing_first_commit(session):
    """Replace ``session.commit`` with one that fails once, then commits normally."""
    real_commit = session.commit
    calls = 0

    async def _commit():
        nonlocal calls
        calls += 1
        if calls == 1:
            raise SQLAlchemyError("disk full")
        await real_commit()

    return patch.object(session, "commit", _commit)


@pytest.mark.asyncio
async def test_push_all_continues_after_local_save_failure(configured, plan_sync, session, upmind):
    await _plan(session, name="Alpha", sort_order=1)
    await _plan(session, name="Beta", sort_order=2)
    upmind.add(
        "POST", "/products",
        httpx.Response(201, json={"id": "p1"}),
        httpx.Response(201, json={"id": "p2"}),
    )

    with _failing_first_commit(session):
        report = await plan_sync.push_all()

    assert (report.total, report.succeeded, report.failed) == (2, 1, 1)
    assert report.errors[0].startswith("Alpha: Upmind product p1 was created")
    beta = (await session.execute(select(HostingPlan).where(HostingPlan.name == "Beta"))).scalar_one()
    assert beta.upmind_product_id == "p2"
    alpha = (await session.execute(select(HostingPlan).where(HostingPlan.name == "Alpha"))).scalar_one()
    assert alpha.upmind_product_id is None


@pytest.mark.asyncio
async def test_pull_all_isolates_bad_products(configured, plan_sync, session, upmind):
    upmind.add("GET", "/products", httpx.Response(200, json=[
        {"id": "a", "name": "Alpha"},
        {"name": "Missing id"},
        {"id": "b", "name": "Beta"},
        {"id": "c", "name": "Gamma"},
    ]))

    with _failing_first_commit(session):
        report = await plan_sync.pull_all()

    assert (report.total, report.succeeded, report.failed) == (4, 2, 2)
    assert report.errors[0].startswith("Alpha: Saving the local plan failed")
    assert report.errors[1] == "Missing id: Upmind product has no id"
    names = (await session.execute(select(HostingPlan.name).order_by(HostingPlan.sort_order))).scalars().all()
    assert names == ["Beta", "Gamma"]


@pytest.mark.asyncio
async def test_pull_all_rejects_unexpected_shape(configured, plan_sync, upmind):
    upmind.add("GET", "/products", httpx.Response(200, json={"catalogue": {"items": []}}))
    report = await plan_sync.pull_all()

    assert report.success is False
    assert report.errors == ["Unexpected products response shape from Upmind"]


@pytest.mark.asyncio
async def test_pull_plan_save_failure_is_reported(configured, plan_sync, session, upmind):
    plan = await _plan(session, upmind_product_id="prod_5")
    upmind.add("GET", "/products/prod_5", httpx.Response(200, json={"id": "prod_5", "name": "Renamed"}))

    with _failing_first_commit(session):
        outcome = await plan_sync.pull_plan(plan)

    assert outcome.success is False
    assert outcome.upmind_product_id == "prod_5"
    assert "disk full" in outcome.error
