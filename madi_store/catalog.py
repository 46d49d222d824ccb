import logging
from typing import Iterable, List

import httpx
from pydantic import ValidationError

from .config import settings
from .schema import Product
from .utils import plain_number

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "All"
PRODUCTS_PATH = "/api/products.json"

async def fetch_catalog(client: httpx.AsyncClient) -> List[Product]:
    """
    Loads the product list from the catalog endpoint.

    The endpoint answers with `{"data": [{"id": ..., "attributes": {...}}]}`;
    attributes are flattened onto the id and each record is validated as a
    `Product`. Records that fail validation are skipped.

    Returns:
        The products, or an empty list if the catalog could not be loaded at all.
        An empty list means loading was aborted, not that the catalog is empty.
    """
    try:
        response = await client.get(PRODUCTS_PATH)
        response.raise_for_status()
        envelope = response.json()
        items = envelope["data"]
        if not isinstance(items, list):
            raise TypeError("'data' is not a list")
    except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
        logger.error("Could not fetch products: %s", e)
        return []

    products: List[Product] = []
    for item in items:
        try:
            products.append(Product.model_validate({"id": item["id"], **item["attributes"]}))
        except (ValidationError, KeyError, TypeError) as e:
            logger.warning("Skipping malformed catalog record %r: %s", item, e)
    logger.info("Loaded %d products from catalog", len(products))
    return products

def derive_categories(products: Iterable[Product]) -> List[str]:
    """The filter bar entries: the "All" sentinel followed by sorted unique categories."""
    return [ALL_CATEGORIES] + sorted({p.category for p in products})

def build_catalog_summary(products: Iterable[Product]) -> str:
    """Formats every product as one line of grounding context for the chat assistant."""
    lines = []
    for p in products:
        price = p.price
        price_text = f"{plain_number(price)} {p.currency}" if price is not None else "N/A"
        lines.append(f"{p.name} (Категория: {p.category}) - {p.variant or ''} - {price_text}")
    return "\n".join(lines)

def build_system_instruction(catalog_summary: str) -> str:
    return settings.chat_system_instruction_template.format(
        store_name=settings.store_name,
        catalog=catalog_summary,
    )
