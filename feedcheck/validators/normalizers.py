"""
feedcheck/validators/normalizers.py

Pure value normalizers applied after alias resolution.

Every normalizer is total and idempotent: feeding its own output back in
returns the same value. Non-string inputs are returned unchanged unless
stated otherwise.
"""

from __future__ import annotations

import re
from typing import Any

_PRICE_PATTERN = re.compile(r"^(?P<amount>\d[\d.,\s]*?)\s*(?P<currency>[A-Za-z]{3})?$")
_CURRENCY_FIRST_PATTERN = re.compile(r"^(?P<currency>[A-Za-z]{3})\s*(?P<amount>\d[\d.,]*)$")
_RETURN_WINDOW_PATTERN = re.compile(r"^(?P<days>\d+)\s*(?:d|day|days|tag|tage|jour|jours|dias?)?\.?$", re.IGNORECASE)

AVAILABILITY_SYNONYMS: dict[str, str] = {
    "in_stock": "in_stock",
    "instock": "in_stock",
    "available": "in_stock",
    "in_store_only": "in_stock",
    "limited_availability": "in_stock",
    "out_of_stock": "out_of_stock",
    "outofstock": "out_of_stock",
    "sold_out": "out_of_stock",
    "soldout": "out_of_stock",
    "unavailable": "out_of_stock",
    "discontinued": "out_of_stock",
    "pre_order": "pre_order",
    "preorder": "pre_order",
    "backorder": "backorder",
    "back_order": "backorder",
    "unknown": "unknown",
}

CONDITION_SYNONYMS: dict[str, str] = {
    "new": "new",
    "brand_new": "new",
    "newcondition": "new",
    "neu": "new",
    "nuevo": "new",
    "neuf": "new",
    "used": "used",
    "usedcondition": "used",
    "pre_owned": "used",
    "preowned": "used",
    "second_hand": "used",
    "gebraucht": "used",
    "usado": "used",
    "occasion": "used",
    "refurbished": "refurbished",
    "refurbishedcondition": "refurbished",
    "renewed": "refurbished",
    "reconditioned": "refurbished",
    "generalüberholt": "refurbished",
    "reacondicionado": "refurbished",
}


def _token(value: str) -> str:
    token = value.strip().lower()
    if "schema.org/" in token:
        token = token.rsplit("/", 1)[-1]
    return re.sub(r"[\s\-]+", "_", token)


def normalize_decimal(amount: str) -> str:
    """
    Rewrite a decimal amount using ``.`` as the only decimal separator.

    ``19,99`` becomes ``19.99``; ``1.299,99`` and ``1,299.99`` both become
    ``1299.99``. A lone comma followed by three digits is a thousands
    separator.
    """

    text = amount.replace(" ", "")
    has_comma = "," in text
    has_dot = "." in text

    if has_comma and has_dot:
        if text.rfind(",") > text.rfind("."):
            return text.replace(".", "").replace(",", ".")
        return text.replace(",", "")

    if has_comma:
        integer, _, fraction = text.rpartition(",")
        if text.count(",") == 1 and len(fraction) != 3:
            return f"{integer}.{fraction}"
        return text.replace(",", "")

    if text.count(".") > 1:
        return text.replace(".", "")
    return text


def normalize_price(value: Any) -> Any:
    """
    Fix decimal separators and spacing in ``amount CUR`` price strings.

    ``"19,99 EUR"`` becomes ``"19.99 EUR"`` and ``"EUR 5"`` becomes
    ``"5 EUR"``.
    """

    if not isinstance(value, str):
        return value

    text = value.strip()
    match = _PRICE_PATTERN.match(text) or _CURRENCY_FIRST_PATTERN.match(text)
    if match is None:
        return text

    amount = normalize_decimal(match.group("amount").strip())
    currency = match.group("currency")
    if currency:
        return f"{amount} {currency.upper()}"
    return amount


def normalize_availability(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    token = _token(value)
    return AVAILABILITY_SYNONYMS.get(token, token)


def normalize_condition(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    token = _token(value)
    return CONDITION_SYNONYMS.get(token, token)


def normalize_return_window(value: Any) -> Any:
    """
    Strip a day unit from return windows: ``"30 days"`` becomes ``"30"``.
    """

    if not isinstance(value, str):
        return value
    text = value.strip()
    match = _RETURN_WINDOW_PATTERN.match(text)
    if match is None:
        return text
    return match.group("days")


def normalize_code(value: Any) -> Any:
    """
    Upper-case an ISO code such as a country or currency.
    """

    if not isinstance(value, str):
        return value
    return value.strip().upper()


def normalize_code_list(value: Any) -> Any:
    """
    Canonicalize comma-separated ISO codes: ``"us; gb"`` becomes ``"US,GB"``.
    """

    if not isinstance(value, str):
        return value
    parts = [part.strip().upper() for part in re.split(r"[,;|]", value)]
    return ",".join(part for part in parts if part)


def normalize_lowercase_token(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    return value.strip().lower()
