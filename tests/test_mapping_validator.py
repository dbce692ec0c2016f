from __future__ import annotations

import unittest

from feedcheck.validators.mapping_validator import FieldMappingError, MappingValidator


class TestMappingValidator(unittest.TestCase):
    def setUp(self) -> None:
        self.validator = MappingValidator(
            canonical_fields=(
                "item_id",
                "title",
                "price",
                "availability",
            ),
        )

    def test_returns_cleaned_mapping(self) -> None:
        cleaned = self.validator.validate(mapping={" sku ": " item_id", "name": "title"})

        self.assertEqual(cleaned, {"sku": "item_id", "name": "title"})

    def test_blank_entries_are_dropped(self) -> None:
        cleaned = self.validator.validate(mapping={"sku": "item_id", "unused": "", "": "title"})

        self.assertEqual(cleaned, {"sku": "item_id"})

    def test_raises_on_unknown_canonical_field(self) -> None:
        with self.assertRaises(FieldMappingError) as ctx:
            self.validator.validate(mapping={"sku": "product_code"})

        codes = {error.code for error in ctx.exception.errors}
        self.assertIn("unknown_canonical_field", codes)
        self.assertIn("product_code", str(ctx.exception))

    def test_raises_on_duplicate_target(self) -> None:
        with self.assertRaises(FieldMappingError) as ctx:
            self.validator.validate(mapping={"sku": "item_id", "ean": "item_id"})

        error = ctx.exception.errors[0]
        self.assertEqual(error.code, "duplicate_canonical_field")
        self.assertEqual(error.source_column, "ean")
        self.assertEqual(error.context, {"already_mapped_from": "sku"})

    def test_reports_every_problem_at_once(self) -> None:
        with self.assertRaises(FieldMappingError) as ctx:
            self.validator.validate(
                mapping={"a": "nope", "b": "title", "c": "title"},
            )

        codes = [error.code for error in ctx.exception.errors]
        self.assertEqual(codes, ["unknown_canonical_field", "duplicate_canonical_field"])

    def test_error_serializes_to_dict(self) -> None:
        with self.assertRaises(FieldMappingError) as ctx:
            self.validator.validate(mapping={"sku": "product_code"})

        payload = ctx.exception.to_dict()
        self.assertEqual(payload["errors"][0]["code"], "unknown_canonical_field")
        self.assertEqual(payload["errors"][0]["source_column"], "sku")
        self.assertIn("message", payload)


if __name__ == "__main__":
    unittest.main()
