"""Upmind passthroughs — every response is the RequestResult envelope with HTTP 200."""

from typing import Annotated, Any

from fastapi import APIRouter, Body, Request

from hostwp.api.deps import Admin, Upmind
from hostwp.services.results import RequestResult

router = APIRouter(prefix="/upmind", tags=["upmind"])

JsonBody = Annotated[dict[str, Any] | None, Body()]


# ── Domains ──────────────────────────────────────────────────

@router.post("/domains/search", response_model=RequestResult)
async def search_domain(admin: Admin, upmind: Upmind, body: JsonBody = None) -> RequestResult:
    return await upmind.search_domain((body or {}).get("domain"))


@router.post("/domains/{domain_id}/renew", response_model=RequestResult)
async def renew_domain(domain_id: str, admin: Admin, upmind: Upmind) -> RequestResult:
    return await upmind.renew_domain(domain_id)


# ── Products ─────────────────────────────────────────────────

@router.get("/products", response_model=RequestResult)
async def list_products(admin: Admin, upmind: Upmind) -> RequestResult:
    return await upmind.get_products()


@router.post("/products", response_model=RequestResult)
async def create_product(admin: Admin, upmind: Upmind, body: JsonBody = None) -> RequestResult:
    return await upmind.create_product(body)


@router.get("/products/{product_id}", response_model=RequestResult)
async def get_product(product_id: str, admin: Admin, upmind: Upmind) -> RequestResult:
    return await upmind.get_product(product_id)


@router.put("/products/{product_id}", response_model=RequestResult)
async def update_product(
    product_id: str, admin: Admin, upmind: Upmind, body: JsonBody = None
) -> RequestResult:
    return await upmind.update_product(product_id, body)


@router.delete("/products/{product_id}", response_model=RequestResult)
async def delete_product(product_id: str, admin: Admin, upmind: Upmind) -> RequestResult:
    return await upmind.delete_product(product_id)


# ── Clients ──────────────────────────────────────────────────

@router.get("/clients", response_model=RequestResult)
async def list_clients(request: Request, admin: Admin, upmind: Upmind) -> RequestResult:
    return await upmind.get_clients(dict(request.query_params))


@router.post("/clients", response_model=RequestResult)
async def create_client(admin: Admin, upmind: Upmind, body: JsonBody = None) -> RequestResult:
    return await upmind.create_client(body)


@router.put("/clients/{client_id}", response_model=RequestResult)
async def update_client(
    client_id: str, admin: Admin, upmind: Upmind, body: JsonBody = None
) -> RequestResult:
    return await upmind.update_client(client_id, body)


@router.delete("/clients/{client_id}", response_model=RequestResult)
async def delete_client(client_id: str, admin: Admin, upmind: Upmind) -> RequestResult:
    return await upmind.delete_client(client_id)


# ── Orders ───────────────────────────────────────────────────

@router.get("/orders", response_model=RequestResult)
async def list_orders(request: Request, admin: Admin, upmind: Upmind) -> RequestResult:
    return await upmind.get_orders(dict(request.query_params))


@router.post("/orders", response_model=RequestResult)
async def create_order(admin: Admin, upmind: Upmind, body: JsonBody = None) -> RequestResult:
    return await upmind.create_order(body)


@router.put("/orders/{order_id}", response_model=RequestResult)
async def update_order(
    order_id: str, admin: Admin, upmind: Upmind, body: JsonBody = None
) -> RequestResult:
    return await upmind.update_order(order_id, body)


@router.delete("/orders/{order_id}", response_model=RequestResult)
async def delete_order(order_id: str, admin: Admin, upmind: Upmind) -> RequestResult:
    return await upmind.delete_order(order_id)
