"""Test fixtures with deterministic data for CI stability."""

import random
from typing import Any, Dict, List


def get_sample_items(count: int = 7, seed: int = 42, start_id: int = 1) -> List[Dict[str, Any]]:
    """
    Generate deterministic feed items.

    Args:
        count: Number of items to generate
        seed: Random seed for deterministic results
        start_id: External id of the first item

    Returns:
        List of raw feed item dictionaries
    """
    rng = random.Random(seed)

    categories = ["beauty", "fragrances", "furniture", "groceries"]

    items = []
    for i in range(count):
        external_id = start_id + i
        items.append({
            "id": external_id,
            "title": f"Item {external_id}",
            "description": f"Item number {external_id}",
            "price": round(rng.uniform(1.0, 100.0), 2),
            "category": rng.choice(categories),
            "thumbnail": f"https://cdn.test/{external_id}/thumb.webp",
            "images": [f"https://cdn.test/{external_id}/1.webp"],
            "brand": "Essence",
        })
    return items


def feed_page(items: List[Dict[str, Any]], total: int, skip: int, limit: int) -> Dict[str, Any]:
    """Wrap a slice of ``items`` in the feed page envelope."""
    page = items[skip:skip + limit] if limit else items[skip:]
    return {"products": page, "total": total, "skip": skip, "limit": len(page)}
