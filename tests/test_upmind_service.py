"""Service facade: normalisation, local validation, error prefixes."""

import json

import httpx
import pytest

from hostwp.models.api_config import ApiConfigCreate
from hostwp.services.upmind_client import ConnectionSettings


@pytest.mark.asyncio
async def test_without_configuration_every_call_fails_cleanly(service, upmind):
    result = await service.get_products()

    assert result.success is False
    assert result.error == (
        "No API configuration found. Please configure your Upmind API credentials in Settings."
    )
    assert upmind.requests == []


@pytest.mark.asyncio
async def test_products_normalised(configured, service, upmind):
    upmind.add("GET", "/products", httpx.Response(200, json={"data": [
        {"id": 11, "name": "Starter", "price": "9.99"},
        {"id": 12, "name": "Pro", "price": 19, "billing_cycle": "annually", "visible": False},
    ]}))
    result = await service.get_products()

    assert result.success is True
    assert result.count == 2
    starter, pro = result.data
    assert starter == {
        "id": 11,
        "name": "Starter",
        "description": "",
        "price": 9.99,
        "currency": "USD",
        "billing_cycle": "monthly",
        "category": "hosting",
        "features": [],
        "visible": True,
        "created_at": None,
        "updated_at": None,
    }
    assert pro["billing_cycle"] == "annually"
    assert pro["visible"] is False


@pytest.mark.asyncio
async def test_create_then_list_round_trip(configured, service, upmind):
    created: list[dict] = []

    def _create(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        created.append({"id": len(created) + 1, **body})
        return httpx.Response(201, json=created[-1])

    upmind.add("POST", "/products", _create)
    upmind.add("GET", "/products", lambda _req: httpx.Response(200, json=created))

    result = await service.create_product({"name": "Basic", "price": "9.99", "colour": "blue"})
    assert result.success is True
    assert "colour" not in created[0]

    listed = await service.get_products()
    assert listed.data[0]["name"] == "Basic"
    assert listed.data[0]["price"] == 9.99


@pytest.mark.asyncio
async def test_invalid_payload_never_reaches_network(configured, service, upmind):
    result = await service.create_product({"name": "Basic", "price": "lots"})

    assert result.success is False
    assert result.error == "Product creation failed: Product price must be a valid number"
    assert result.details == {"errors": ["Product price must be a valid number"]}
    assert upmind.requests == []


@pytest.mark.asyncio
async def test_remote_error_prefixed_with_operation(configured, service, upmind):
    upmind.add("POST", "/clients", httpx.Response(422, json={"message": "Email already taken"}))
    result = await service.create_client(
        {"email": "ada@example.com", "first_name": "Ada", "last_name": "Lovelace"}
    )
    assert result.error == "Client creation failed: Email already taken"
    assert result.status == 422


@pytest.mark.asyncio
async def test_domain_search_lowercases_and_normalises(configured, service, upmind):
    upmind.add("POST", "/domains/search", httpx.Response(200, json=[
        {"name": "example.com", "available": True, "price": 12.5},
        {"domain": "example.net"},
    ]))
    result = await service.search_domain("  Example.COM ")

    assert json.loads(upmind.requests[0].content) == {"domain": "example.com"}
    assert result.data[0] == {
        "domain": "example.com",
        "available": True,
        "price": 12.5,
        "currency": "USD",
        "period": "1 year",
        "premium": False,
    }
    assert result.data[1]["available"] is False
    assert result.data[1]["price"] is None


@pytest.mark.asyncio
@pytest.mark.parametrize("domain", [None, "", "   ", 42])
async def test_domain_search_requires_string(configured, service, upmind, domain):
    result = await service.search_domain(domain)
    assert result.error == "Domain parameter is required and must be a string"
    assert upmind.requests == []


@pytest.mark.asyncio
async def test_get_product_unwraps_data(configured, service, upmind):
    upmind.add("GET", "/products/5", httpx.Response(200, json={"data": {"id": 5, "name": "Pro"}}))
    result = await service.get_product(5)
    assert result.data["id"] == 5
    assert result.data["category"] == "hosting"


@pytest.mark.asyncio
async def test_clients_filters_sent_as_query(configured, service, upmind):
    upmind.add("GET", "/clients", httpx.Response(200, json=[
        {"id": 1, "email": "ada@example.com", "first_name": "Ada", "last_name": "Lovelace"},
    ]))
    result = await service.get_clients({"status": "active", "search": ""})

    assert upmind.requests[0].url.params["status"] == "active"
    assert "search" not in upmind.requests[0].url.params
    assert result.data[0]["full_name"] == "Ada Lovelace"
    assert result.data[0]["status"] == "active"


@pytest.mark.asyncio
async def test_orders_normalised(configured, service, upmind):
    upmind.add("GET", "/orders", httpx.Response(200, json=[{"id": 3, "total": "25.50"}]))
    result = await service.get_orders()
    order = result.data[0]
    assert order["total"] == 25.5
    assert order["quantity"] == 1
    assert order["status"] == "pending"


@pytest.mark.asyncio
async def test_partial_order_update(configured, service, upmind):
    upmind.add("PUT", "/orders/3", httpx.Response(200, json={"id": 3, "quantity": 4}))
    result = await service.update_order(3, {"quantity": 4})
    assert result.success is True
    assert json.loads(upmind.requests[0].content) == {"quantity": 4}


@pytest.mark.asyncio
async def test_delete_requires_id(configured, service, upmind):
    result = await service.delete_product("")
    assert result.success is False
    assert upmind.requests == []


# ── Connection test ──────────────────────────────────────────

@pytest.mark.asyncio
async def test_connection_test_falls_through_endpoints(service, upmind, conn_settings):
    upmind.add("GET", "/services", httpx.Response(200, json={"services": [{"id": 1}, {"id": 2}]}))
    result = await service.test_connection(conn_settings)

    assert result.success is True
    assert result.data == {"working_endpoint": "/services", "data_available": True, "data_count": 2}
    assert upmind.calls("GET", "/products") == 1


@pytest.mark.asyncio
async def test_connection_test_reports_tried_endpoints(service, upmind, conn_settings, connection):
    result = await service.test_connection(conn_settings)

    assert result.success is False
    assert result.error.startswith("Connection test failed: ")
    assert result.details["endpoints_tried"] == ["/products", "/services", "/hosting-plans", "/plans"]
    assert connection.is_configured is False


@pytest.mark.asyncio
async def test_connection_test_validates_candidate(service, upmind):
    result = await service.test_connection(ConnectionSettings(base_url="nope", token=""))
    assert result.success is False
    assert "Missing required configuration fields: token" in result.error
    assert upmind.requests == []


@pytest.mark.asyncio
async def test_switching_profiles_redirects_calls(store, service, upmind, profile):
    await store.add(ApiConfigCreate(**profile))
    other = await store.add(ApiConfigCreate(**{**profile, "label": "EU", "brand_id": "eu-brand"}))
    upmind.add("GET", "/products", httpx.Response(200, json=[]))

    await service.get_products()
    await store.set_active(other.id)
    await service.get_products()

    assert [r.headers["X-Brand-ID"] for r in upmind.requests] == ["brand-1", "eu-brand"]
