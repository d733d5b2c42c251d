"""Tests for Pydantic models."""

import pytest
from pydantic import ValidationError

from app.backend.models import (
    Account,
    AggregatedResult,
    ExtractedItem,
    ExtractionStatus,
    FieldType,
    ResultTable,
    SchemaField,
    SchemaFieldUpdate,
    validate_field_list,
)


class TestSchemaField:
    """Tests for SchemaField model."""

    def test_defaults(self):
        """Test that a bare field is an empty text field with an id."""
        field = SchemaField()
        assert field.name == ""
        assert field.type == FieldType.TEXT
        assert field.description == ""
        assert field.id

    def test_ids_are_unique(self):
        """Test that each field gets its own id."""
        assert SchemaField().id != SchemaField().id

    def test_name_is_stripped(self):
        """Test that surrounding whitespace is removed from names."""
        field = SchemaField(name="  invoice_no ", type=FieldType.NUMBER)
        assert field.name == "invoice_no"

    def test_name_keeps_case_and_hyphens(self):
        """Test that names are used as typed."""
        assert SchemaField(name="Invoice-No").name == "Invoice-No"

    def test_unicode_letters_allowed(self):
        """Test that non-ASCII letters are accepted."""
        assert SchemaField(name="data_zawarcia_umowy_ł").name == "data_zawarcia_umowy_ł"

    def test_invalid_field_name_characters(self):
        """Test that invalid characters in field name raise error."""
        with pytest.raises(ValidationError):
            SchemaField(name="field@name!")

    def test_invalid_type_rejected(self):
        """Test that only text, number and date are accepted."""
        with pytest.raises(ValidationError):
            SchemaField(name="flag", type="boolean")

    def test_all_field_types(self):
        """Test that all field types are valid."""
        for field_type in FieldType:
            field = SchemaField(name=f"test_{field_type.value}", type=field_type)
            assert field.type == field_type


class TestSchemaFieldUpdate:
    """Tests for partial field updates."""

    def test_all_optional(self):
        update = SchemaFieldUpdate()
        assert update.model_dump(exclude_none=True) == {}

    def test_name_validated(self):
        with pytest.raises(ValidationError):
            SchemaFieldUpdate(name="bad name!")


class TestValidateFieldList:
    """Tests for the pre-extraction field list check."""

    def test_empty_list(self):
        assert validate_field_list([]) == ["Please define at least one field to extract."]

    def test_valid_list(self):
        fields = [SchemaField(name="a"), SchemaField(name="b")]
        assert validate_field_list(fields) == []

    def test_blank_name(self):
        fields = [SchemaField(name="a"), SchemaField()]
        assert validate_field_list(fields) == ["Every field needs a name."]

    def test_duplicate_names(self):
        fields = [SchemaField(name="a"), SchemaField(name="b"), SchemaField(name="a")]
        assert validate_field_list(fields) == ["Field names must be unique: a."]


class TestAggregatedResult:
    """Tests for AggregatedResult model."""

    def test_success(self):
        result = AggregatedResult.success({"total": ExtractedItem(value=10, source="a.pdf")})
        assert result.status == ExtractionStatus.SUCCESS
        assert result.is_success
        assert result.error is None
        assert result.data["total"].value == 10

    def test_failure(self):
        result = AggregatedResult.failure("Empty response from AI")
        assert result.status == ExtractionStatus.ERROR
        assert not result.is_success
        assert result.data == {}
        assert result.error == "Empty response from AI"

    def test_failure_without_message_gets_default(self):
        assert AggregatedResult.failure("").error == "Extraction failed"

    def test_error_with_data_rejected(self):
        """Test that data and error are never both populated."""
        with pytest.raises(ValidationError):
            AggregatedResult(
                status=ExtractionStatus.ERROR,
                data={"total": ExtractedItem(value=1)},
                error="boom",
            )

    def test_success_with_error_rejected(self):
        with pytest.raises(ValidationError):
            AggregatedResult(status=ExtractionStatus.SUCCESS, error="boom")

    def test_error_without_message_rejected(self):
        with pytest.raises(ValidationError):
            AggregatedResult(status=ExtractionStatus.ERROR)

    def test_result_is_immutable(self):
        result = AggregatedResult.failure("boom")
        with pytest.raises(ValidationError):
            result.error = "changed"

    def test_serialization(self):
        result = AggregatedResult.success({"name": ExtractedItem(value=None, source=None)})
        assert result.model_dump(mode="json") == {
            "status": "success",
            "data": {"name": {"value": None, "source": None}},
            "error": None,
            "warnings": [],
        }


class TestAccount:
    """Tests for Account model."""

    def test_numeric_id_coerced(self):
        assert Account.model_validate({"id": 7, "name": "Acme"}).id == "7"

    def test_missing_name_rejected(self):
        with pytest.raises(ValidationError):
            Account.model_validate({"id": "1"})


class TestResultTable:
    """Tests for the results table view."""

    @pytest.fixture
    def fields(self) -> list[SchemaField]:
        return [
            SchemaField(name="customer", description="Customer name"),
            SchemaField(name="total", type=FieldType.NUMBER),
            SchemaField(name="note"),
        ]

    def test_rows_follow_schema_order(self, fields):
        result = AggregatedResult.success(
            {
                "note": ExtractedItem(value="", source=None),
                "total": ExtractedItem(value=99.5, source="invoice.pdf"),
                "customer": ExtractedItem(value="Acme", source="call.mp3"),
            }
        )
        table = ResultTable.from_result(result, fields)

        assert [row.name for row in table.rows] == ["customer", "total", "note"]
        assert table.rows[0].label == "Customer name"
        assert table.rows[1].label == "number"
        assert table.rows[1].value == 99.5
        assert table.rows[1].source == "invoice.pdf"
        assert table.rows[0].found is True
        assert table.rows[2].found is False

    def test_error_result_has_no_rows(self, fields):
        table = ResultTable.from_result(AggregatedResult.failure("Invalid JSON"), fields)
        assert table.status == ExtractionStatus.ERROR
        assert table.rows == []
        assert table.error == "Invalid JSON"
