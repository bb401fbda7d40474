"""FastAPI mock product feed for local runs and integration tests."""

import asyncio
import itertools
import os
import random
from typing import List, Optional

from fastapi import FastAPI, Query, Response
from pydantic import BaseModel

CATEGORIES = ["beauty", "fragrances", "furniture", "groceries", "home-decoration", "kitchen accessories"]
NOUNS = ["Mascara", "Perfume", "Sofa", "Apple", "Lamp", "Knife Set", "Chair", "Lipstick"]
BRANDS = ["Essence", "Chanel", "Annibale Colombo", None, "Furniture Co."]


class ProductResponse(BaseModel):
    """Feed page response model."""
    products: List[dict]
    total: int
    skip: int
    limit: int


def generate_product(product_id: int, seed: int, unique_titles: bool = True) -> dict:
    """Deterministic product for ``product_id``."""
    rng = random.Random(seed * 100_003 + product_id)
    noun = rng.choice(NOUNS)
    image_count = rng.randint(1, 3)
    product = {
        "id": product_id,
        "title": f"{noun} {product_id}" if unique_titles else noun,
        "description": f"Description of {noun.lower()} number {product_id}.",
        "price": round(rng.uniform(1.0, 500.0), 2),
        "category": rng.choice(CATEGORIES),
        "thumbnail": f"https://cdn.example.com/products/{product_id}/thumbnail.webp",
        "images": [
            f"https://cdn.example.com/products/{product_id}/{index}.webp"
            for index in range(1, image_count + 1)
        ],
        "rating": round(rng.uniform(1.0, 5.0), 2),
    }
    brand = rng.choice(BRANDS)
    if brand is not None:
        product["brand"] = brand
    return product


def create_mock_app(
    name: str = "mock-feed",
    total: int = 194,
    random_seed: Optional[int] = None,
    error_rate: float = 0.0,
    rate_limit_every: int = 0,
    retry_after: Optional[int] = 1,
    extra_latency_ms: int = 0,
    unique_titles: bool = True,
) -> FastAPI:
    """
    Create a mock feed serving ``GET /products?limit=&skip=``.

    Args:
        name: Server name reported by /health
        total: Number of items in the feed
        random_seed: Seed for item content and injected errors
        error_rate: Probability of answering 503 (0.0-1.0)
        rate_limit_every: Answer every N-th request with 429 (0 disables)
        retry_after: Retry-After seconds sent with 429s (None omits the header)
        extra_latency_ms: Additional latency in milliseconds
        unique_titles: When False, titles repeat so handles collide

    Returns:
        FastAPI application
    """
    app = FastAPI(title=f"Mock Feed - {name}")
    seed = random_seed if random_seed is not None else 42
    error_rng = random.Random(seed)
    request_counter = itertools.count(1)

    @app.get("/products", response_model=ProductResponse)
    async def get_products(
        limit: int = Query(default=30, ge=0),
        skip: int = Query(default=0, ge=0),
    ):
        """Get one page of products; ``limit=0`` returns everything after ``skip``."""
        request_number = next(request_counter)

        if extra_latency_ms > 0:
            await asyncio.sleep(extra_latency_ms / 1000.0)

        if rate_limit_every and request_number % rate_limit_every == 0:
            headers = {"Retry-After": str(retry_after)} if retry_after is not None else {}
            return Response(status_code=429, headers=headers)

        if error_rng.random() < error_rate:
            return Response(status_code=503)

        end = total if limit == 0 else min(total, skip + limit)
        products = [
            generate_product(product_id, seed, unique_titles)
            for product_id in range(skip + 1, end + 1)
        ]
        return {
            "products": products,
            "total": total,
            "skip": skip,
            "limit": len(products),
        }

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy", "server": name}

    return app


def create_app() -> FastAPI:
    """
    Factory function for uvicorn --factory.

    Reads FEED_TOTAL, RANDOM_SEED, ERROR_RATE, RATE_LIMIT_EVERY and
    EXTRA_LATENCY_MS from the environment.
    """
    return create_mock_app(
        name=os.getenv("SERVER_NAME", "mock-feed"),
        total=int(os.getenv("FEED_TOTAL", 194)),
        random_seed=int(os.getenv("RANDOM_SEED", 42)),
        error_rate=float(os.getenv("ERROR_RATE", 0.0)),
        rate_limit_every=int(os.getenv("RATE_LIMIT_EVERY", 0)),
        extra_latency_ms=int(os.getenv("EXTRA_LATENCY_MS", 0)),
    )
