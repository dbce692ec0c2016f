from __future__ import annotations

import gzip
import json

from fastapi.testclient import TestClient

from feedcheck.main import app

client = TestClient(app)


def _upload(records: list[dict], filename: str = "feed.jsonl") -> dict:
    payload = b"".join(json.dumps(record).encode("utf-8") + b"\n" for record in records)
    return {"file": (filename, payload, "application/octet-stream")}


def test_health() -> None:
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_lists_validators() -> None:
    r = client.get("/validators")
    assert r.status_code == 200

    validators = r.json()["validators"]
    assert [validator["id"] for validator in validators] == ["openai"]
    openai = validators[0]
    assert openai["supported_formats"] == ["jsonl", "csv"]
    assert "item_id" in openai["required_fields"]
    assert "id" in openai["field_aliases"]["item_id"]


def test_validate_feed(make_record) -> None:
    records = [make_record(availability="In Stock"), make_record(url="nope")]

    r = client.post("/validate", data={"validator": "openai"}, files=_upload(records))
    assert r.status_code == 200

    data = r.json()
    assert data["success"] is True
    assert data["file"] == {"name": "feed.jsonl", "format": "jsonl", "size": data["file"]["size"]}
    assert data["summary"]["valid_rows"] == 1
    assert data["summary"]["invalid_rows"] == 1
    assert data["summary"]["issues"][0] == {
        "row": 2,
        "field": "url",
        "message": "Invalid URL.",
        "severity": "error",
        "value": "nope",
    }
    assert data["summary"]["valid_records"][0]["availability"] == "in_stock"
    assert data["raw_issues"][0]["problem"] == "Availability format standardized"


def test_validate_without_valid_records(make_record) -> None:
    r = client.post(
        "/validate",
        data={"validator": "openai", "include_valid_records": "false"},
        files=_upload([make_record()]),
    )
    assert r.status_code == 200
    assert r.json()["summary"]["valid_records"] is None


def test_validate_with_custom_mapping(make_record) -> None:
    raw = make_record(item_id=None)
    raw["sku"] = "A1"

    r = client.post(
        "/validate",
        data={"validator": "openai", "custom_mappings": json.dumps({"sku": "item_id"})},
        files=_upload([raw]),
    )
    assert r.status_code == 200
    assert r.json()["summary"]["valid_records"][0]["item_id"] == "A1"


def test_rejects_unsupported_extension() -> None:
    r = client.post(
        "/validate",
        data={"validator": "openai"},
        files={"file": ("feed.xml", b"<feed/>", "application/xml")},
    )
    assert r.status_code == 400
    assert ".jsonl" in r.json()["detail"]["supported_extensions"]


def test_rejects_unknown_validator(make_record) -> None:
    r = client.post("/validate", data={"validator": "amazon"}, files=_upload([make_record()]))
    assert r.status_code == 400
    assert r.json()["detail"]["available_validators"] == ["openai"]


def test_rejects_malformed_custom_mapping(make_record) -> None:
    r = client.post(
        "/validate",
        data={"validator": "openai", "custom_mappings": "{not json"},
        files=_upload([make_record()]),
    )
    assert r.status_code == 400


def test_rejects_unknown_mapping_target(make_record) -> None:
    r = client.post(
        "/validate",
        data={"validator": "openai", "custom_mappings": json.dumps({"sku": "product_code"})},
        files=_upload([make_record()]),
    )
    assert r.status_code == 400
    assert r.json()["detail"]["errors"][0]["code"] == "unknown_canonical_field"


def test_rejects_malformed_feed() -> None:
    r = client.post(
        "/validate",
        data={"validator": "openai"},
        files={"file": ("feed.jsonl", b"{oops\n", "application/octet-stream")},
    )
    assert r.status_code == 400
    assert "Invalid JSON on line 1" in r.json()["detail"]["error"]


def test_pre_validate(make_record) -> None:
    record = make_record(is_eligible_search=True, is_eligible_checkout=False, price="19,99 EUR")

    r = client.post("/pre-validate", data={"validator": "openai"}, files=_upload([record]))
    assert r.status_code == 200

    data = r.json()
    assert data["analyzed_rows"] == 1
    assert data["raw_issues"][0]["severity"] == "info"
    assert data["raw_issues"][0]["fixed_value"] == "19.99 EUR"


def test_export_jsonl(make_record) -> None:
    records = [make_record(item_id="A1"), make_record(title=None), make_record(item_id="B2")]

    r = client.post("/export", data={"validator": "openai"}, files=_upload(records, "products.jsonl"))
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("application/x-ndjson")
    assert 'filename="products_validated.jsonl"' in r.headers["content-disposition"]

    lines = r.content.decode("utf-8").splitlines()
    assert [json.loads(line)["item_id"] for line in lines] == ["A1", "B2"]


def test_export_gzip(make_record) -> None:
    r = client.post(
        "/export",
        data={"validator": "openai", "compress": "true"},
        files=_upload([make_record()]),
    )
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("application/gzip")

    lines = gzip.decompress(r.content).decode("utf-8").splitlines()
    assert len(lines) == 1


def test_mapping_suggestions() -> None:
    r = client.post(
        "/mapping-suggestions",
        json={"validator": "openai", "headers": ["SKU Id", "Product Name", "whatever"]},
    )
    assert r.status_code == 200

    data = r.json()
    assert data["mappings"]["Product Name"] == "title"
    assert "whatever" in data["unmapped_headers"]
