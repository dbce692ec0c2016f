"""
tests/conftest.py

Shared fixtures for feed validation tests.
"""

from __future__ import annotations

from typing import Any, Callable

import pytest

from feedcheck.services.validation_service import FeedValidationService
from feedcheck.validators.registry import ValidatorDefinition, ValidatorRegistry, build_default_registry

BASE_RECORD: dict[str, Any] = {
    "item_id": "SKU-001",
    "title": "Classic Cotton T-Shirt",
    "description": "Soft cotton tee with a relaxed fit.",
    "url": "https://shop.example.com/products/classic-tee",
    "brand": "Acme",
    "price": "19.99 USD",
    "availability": "in_stock",
    "image_url": "https://shop.example.com/images/classic-tee.jpg",
    "return_policy": "https://shop.example.com/returns",
    "return_window": 30,
    "target_countries": "US",
    "store_country": "US",
}


@pytest.fixture()
def make_record() -> Callable[..., dict[str, Any]]:
    """Factory for a valid raw OpenAI feed record with per-test overrides."""

    def _make(**overrides: Any) -> dict[str, Any]:
        record = dict(BASE_RECORD)
        for key, value in overrides.items():
            if value is None:
                record.pop(key, None)
            else:
                record[key] = value
        return record

    return _make


@pytest.fixture()
def registry() -> ValidatorRegistry:
    return build_default_registry()


@pytest.fixture()
def openai_validator(registry: ValidatorRegistry) -> ValidatorDefinition:
    return registry.require("openai")


@pytest.fixture()
def service(registry: ValidatorRegistry) -> FeedValidationService:
    return FeedValidationService(registry=registry, chunk_size=50)
