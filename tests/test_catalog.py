import httpx
import pytest

from madi_store.catalog import (
    build_catalog_summary, build_system_instruction, derive_categories, fetch_catalog
)

from .conftest import CATALOG_ENVELOPE


def client_for(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://proxy.test")


@pytest.mark.asyncio
async def test_fetch_catalog_flattens_attributes():
    requested = []

    def handler(request):
        requested.append(request.url.path)
        return httpx.Response(200, json=CATALOG_ENVELOPE)

    products = await fetch_catalog(client_for(handler))

    assert requested == ["/api/products.json"]
    phone = products[0]
    assert (phone.id, phone.name, phone.currency, phone.priceKZT) == (7, "Phone X", "KZT", 150000)
    assert products[1].isPreorder is True
    assert products[2].variant is None


@pytest.mark.asyncio
async def test_fetch_catalog_skips_invalid_records():
    envelope = {"data": [
        CATALOG_ENVELOPE["data"][0],
        {"id": 99, "attributes": {"name": "No currency", "category": "X"}},
        {"attributes": {"name": "No id"}},
    ]}

    products = await fetch_catalog(client_for(lambda request: httpx.Response(200, json=envelope)))

    assert [p.id for p in products] == [7]


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [
    httpx.Response(404),
    httpx.Response(200, text="<html>not json</html>"),
    httpx.Response(200, json={"items": []}),
    httpx.Response(200, json={"data": {"id": 1}}),
])
async def test_fetch_catalog_fails_soft(response):
    assert await fetch_catalog(client_for(lambda request: response)) == []


@pytest.mark.asyncio
async def test_fetch_catalog_network_error():
    def handler(request):
        raise httpx.ConnectError("connection refused")

    assert await fetch_catalog(client_for(handler)) == []


def test_categories_and_summary(products):
    assert derive_categories(products) == ["All", "ДРОНЫ", "СМАРТФОНЫ", "УМНЫЕ ОЧКИ"]
    assert build_catalog_summary(products).split("\n") == [
        "Phone X (Категория: СМАРТФОНЫ) - 256GB - 150000 KZT",
        "Sky Drone (Категория: ДРОНЫ) - Fly More - 1299 USD",
        "Smart Glasses (Категория: УМНЫЕ ОЧКИ) -  - N/A",
    ]


def test_system_instruction_embeds_catalog(products):
    summary = build_catalog_summary(products)

    instruction = build_system_instruction(summary)

    assert instruction.endswith("Каталог:\n" + summary)
    assert "MADI ELECTRONICS" in instruction
    assert "###" in instruction
