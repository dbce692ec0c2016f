"""
feedcheck/validators/openai_feed.py

Validator definition for OpenAI Commerce product feeds (ChatGPT Shopping).
"""

from __future__ import annotations

from typing import Any, Mapping

from feedcheck.validators.normalizers import (
    normalize_availability,
    normalize_code,
    normalize_code_list,
    normalize_condition,
    normalize_lowercase_token,
    normalize_price,
    normalize_return_window,
)
from feedcheck.validators.registry import ValidatorDefinition
from feedcheck.validators.rules import CrossFieldRule, FieldKind, FieldRule, RuleSet, price_amount

# ISO 4217 subset accepted by the platform.
CURRENCY_CODES: tuple[str, ...] = (
    "USD", "EUR", "GBP", "JPY", "AUD", "CAD", "CHF", "CNY", "HKD", "NZD",
    "SEK", "KRW", "SGD", "NOK", "MXN", "INR", "RUB", "ZAR", "BRL", "TWD",
)

# ISO 3166-1 alpha-2 subset accepted as store country.
COUNTRY_CODES: tuple[str, ...] = (
    "US", "GB", "CA", "AU", "DE", "FR", "IT", "ES", "JP", "CN",
    "KR", "IN", "BR", "MX", "NL", "SE", "NO", "DK", "FI", "PL",
    "AT", "BE", "CH", "IE", "PT", "NZ", "SG", "HK", "TW", "ZA",
)

AVAILABILITY_VALUES: tuple[str, ...] = ("in_stock", "out_of_stock", "pre_order", "backorder", "unknown")
CONDITION_VALUES: tuple[str, ...] = ("new", "refurbished", "used")
GENDER_VALUES: tuple[str, ...] = ("male", "female", "unisex")
AGE_GROUP_VALUES: tuple[str, ...] = ("newborn", "infant", "toddler", "kids", "adult")

URL_MAX_LENGTH = 2048

FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "item_id": ("id", "product_id", "offer_id"),
    "title": ("name", "product_name", "product_title"),
    "description": ("desc", "product_description", "body_html"),
    "url": ("link", "product_url", "landing_page_url"),
    "brand": ("manufacturer", "vendor"),
    "price": ("regular_price", "list_price"),
    "sale_price": ("special_price", "discount_price"),
    "availability": ("stock_status", "inventory_status"),
    "image_url": ("image_link", "image", "main_image_url"),
    "additional_image_urls": ("additional_image_link", "additional_images"),
    "group_id": ("item_group_id", "parent_id"),
    "store_name": ("seller_name", "merchant_name"),
    "return_policy": ("return_policy_url", "returns_url"),
    "return_window": ("return_days", "return_period"),
    "target_countries": ("shipping_countries", "countries"),
    "store_country": ("seller_country", "country"),
    "condition": ("item_condition",),
    "product_category": ("google_product_category", "category"),
    "is_eligible_search": ("enable_search", "search_eligible"),
    "is_eligible_checkout": ("enable_checkout", "checkout_eligible"),
}

FIELD_NORMALIZERS = {
    "price": normalize_price,
    "sale_price": normalize_price,
    "shipping_price": normalize_price,
    "availability": normalize_availability,
    "condition": normalize_condition,
    "return_window": normalize_return_window,
    "currency": normalize_code,
    "store_country": normalize_code,
    "target_countries": normalize_code_list,
    "gender": normalize_lowercase_token,
    "age_group": normalize_lowercase_token,
}

DEFAULT_VALUES: dict[str, Any] = {
    "is_eligible_search": True,
    "is_eligible_checkout": False,
}


def _reject_all_caps_title(title: str) -> str | None:
    if title == title.upper() and len(title) > 10:
        return "Avoid using all-caps for titles."
    return None


def _url(name: str, *, required: bool = False) -> FieldRule:
    return FieldRule(name=name, kind=FieldKind.URL, required=required, max_length=URL_MAX_LENGTH)


def _boolean(name: str, *, required: bool = False) -> FieldRule:
    return FieldRule(name=name, kind=FieldKind.BOOLEAN, required=required)


FIELD_RULES: tuple[FieldRule, ...] = (
    # Control flags
    _boolean("is_eligible_search", required=True),
    _boolean("is_eligible_checkout", required=True),
    # Basic product data
    FieldRule(name="item_id", required=True, min_length=1, max_length=100),
    FieldRule(name="title", required=True, min_length=1, max_length=150, check=_reject_all_caps_title),
    FieldRule(name="description", required=True, min_length=1, max_length=5000),
    _url("url", required=True),
    FieldRule(name="brand", required=True, min_length=1, max_length=70),
    # Pricing
    FieldRule(name="price", kind=FieldKind.PRICE, required=True, minimum=0, exclusive_minimum=True),
    FieldRule(name="currency", kind=FieldKind.ENUM, choices=CURRENCY_CODES),
    FieldRule(name="sale_price", kind=FieldKind.PRICE, minimum=0, exclusive_minimum=True),
    FieldRule(name="sale_price_effective_date_begin", kind=FieldKind.DATE),
    FieldRule(name="sale_price_effective_date_end", kind=FieldKind.DATE),
    # Availability
    FieldRule(name="availability", kind=FieldKind.ENUM, required=True, choices=AVAILABILITY_VALUES),
    FieldRule(name="availability_date", kind=FieldKind.DATE),
    # Media
    _url("image_url", required=True),
    FieldRule(name="additional_image_urls"),
    # Variants
    FieldRule(name="group_id", max_length=70),
    _boolean("listing_has_variations"),
    FieldRule(name="size", max_length=20),
    FieldRule(name="color", max_length=40),
    FieldRule(name="size_system"),
    FieldRule(name="gender", kind=FieldKind.ENUM, choices=GENDER_VALUES),
    # Merchant information
    FieldRule(name="store_name", max_length=70),
    _url("seller_url"),
    _url("seller_privacy_policy"),
    _url("seller_tos"),
    # Returns policy
    _url("return_policy", required=True),
    FieldRule(name="return_window", kind=FieldKind.INTEGER, required=True, minimum=0, exclusive_minimum=True),
    _boolean("accepts_returns"),
    _boolean("accepts_exchanges"),
    # Geo targeting
    FieldRule(name="target_countries", kind=FieldKind.CODE_LIST, required=True, min_length=2),
    FieldRule(name="store_country", kind=FieldKind.ENUM, required=True, choices=COUNTRY_CODES),
    # Item information
    FieldRule(name="condition", kind=FieldKind.ENUM, choices=CONDITION_VALUES),
    FieldRule(name="product_category"),
    FieldRule(name="material"),
    FieldRule(name="dimensions"),
    FieldRule(name="weight"),
    FieldRule(name="age_group", kind=FieldKind.ENUM, choices=AGE_GROUP_VALUES),
    # Fulfillment
    FieldRule(name="shipping_price", kind=FieldKind.PRICE, minimum=0),
    FieldRule(name="delivery_estimate"),
    _boolean("is_digital"),
    # Performance
    FieldRule(name="popularity_score", kind=FieldKind.NUMBER, minimum=0),
    FieldRule(name="return_rate", kind=FieldKind.NUMBER, minimum=0),
    # Compliance
    FieldRule(name="warning"),
    _url("warning_url"),
    FieldRule(name="age_restriction", kind=FieldKind.INTEGER, minimum=0),
    # Reviews
    FieldRule(name="review_count", kind=FieldKind.INTEGER, minimum=0),
    FieldRule(name="star_rating", kind=FieldKind.NUMBER, minimum=0, maximum=5),
    FieldRule(name="q_and_a"),
    # Related products
    FieldRule(name="related_product_id"),
    FieldRule(name="relationship_type"),
)


def _checkout_has_merchant_fields(data: Mapping[str, Any]) -> bool:
    if not data.get("is_eligible_checkout"):
        return True
    return all(data.get(name) for name in ("seller_privacy_policy", "seller_tos", "store_name"))


def _pre_order_has_date(data: Mapping[str, Any]) -> bool:
    if data.get("availability") != "pre_order":
        return True
    return bool(data.get("availability_date"))


def _sale_price_not_above_price(data: Mapping[str, Any]) -> bool:
    price = price_amount(data.get("price"))
    sale_price = price_amount(data.get("sale_price"))
    if price is None or sale_price is None:
        return True
    return sale_price <= price


def _sale_window_ordered(data: Mapping[str, Any]) -> bool:
    begin = data.get("sale_price_effective_date_begin")
    end = data.get("sale_price_effective_date_end")
    if not begin or not end:
        return True
    # Both values passed the ISO 8601 rule, so the date prefixes compare lexically.
    return begin[:10] <= end[:10]


CROSS_FIELD_RULES: tuple[CrossFieldRule, ...] = (
    CrossFieldRule(
        field="is_eligible_checkout",
        message="Checkout-enabled products require seller_privacy_policy, seller_tos, and store_name.",
        fields=("is_eligible_checkout", "seller_privacy_policy", "seller_tos", "store_name"),
        predicate=_checkout_has_merchant_fields,
    ),
    CrossFieldRule(
        field="availability_date",
        message="Pre-order products require availability_date.",
        fields=("availability", "availability_date"),
        predicate=_pre_order_has_date,
    ),
    CrossFieldRule(
        field="sale_price",
        message="sale_price must be less than or equal to price.",
        fields=("price", "sale_price"),
        predicate=_sale_price_not_above_price,
    ),
    CrossFieldRule(
        field="sale_price_effective_date_end",
        message="sale_price_effective_date_end must not be before sale_price_effective_date_begin.",
        fields=("sale_price_effective_date_begin", "sale_price_effective_date_end"),
        predicate=_sale_window_ordered,
    ),
)


def build_openai_validator() -> ValidatorDefinition:
    return ValidatorDefinition(
        id="openai",
        name="OpenAI Product Feed",
        description="Validator for OpenAI Commerce product feeds (ChatGPT Shopping)",
        version="1.0.0",
        supported_formats=("jsonl", "csv"),
        rule_set=RuleSet(FIELD_RULES, CROSS_FIELD_RULES),
        field_aliases=FIELD_ALIASES,
        field_normalizers=FIELD_NORMALIZERS,
        default_values=DEFAULT_VALUES,
    )
