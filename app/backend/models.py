"""
Pydantic models for the multimodal extraction service.

Defines strict types for schema fields, extracted items, aggregated
extraction results, CRM accounts, and the HTTP request/response payloads.
"""

import uuid
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class FieldType(str, Enum):
    """Supported field types for extraction."""

    TEXT = "text"
    NUMBER = "number"
    DATE = "date"


def _new_field_id() -> str:
    return uuid.uuid4().hex


def _validate_field_name(v: str) -> str:
    v = v.strip()
    if v and not v.replace("_", "").replace("-", "").isalnum():
        raise ValueError(
            "Field name must contain only letters, digits, underscores, or hyphens"
        )
    return v


class SchemaField(BaseModel):
    """
    Definition of a single field to extract from the uploaded files.

    Attributes:
        id: Unique token identifying the field in the editor.
        name: JSON key used for the field in the extraction result.
        type: The expected data type of the extracted value.
        description: Optional hint to guide AI extraction.

    An empty name is allowed while the field is being edited; it is
    rejected when an extraction is started.
    """

    id: str = Field(default_factory=_new_field_id, description="Unique field token")
    name: str = Field(
        default="",
        max_length=100,
        description="Field name, used as the JSON key",
        examples=["invoice_no", "contract_date"],
    )
    type: FieldType = Field(
        default=FieldType.TEXT,
        description="Expected data type for the field",
    )
    description: str = Field(
        default="",
        max_length=500,
        description="Description to guide AI extraction",
    )

    @field_validator("name")
    @classmethod
    def validate_name_format(cls, v: str) -> str:
        """Ensure field name is usable as a JSON key."""
        return _validate_field_name(v)


class SchemaFieldUpdate(BaseModel):
    """Partial update of a schema field."""

    name: str | None = Field(default=None, max_length=100)
    type: FieldType | None = None
    description: str | None = Field(default=None, max_length=500)

    @field_validator("name")
    @classmethod
    def validate_name_format(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return _validate_field_name(v)


def validate_field_list(fields: list[SchemaField]) -> list[str]:
    """
    Check a field list before it is sent for extraction.

    Returns:
        A list of human-readable problems; empty when the list is usable.
    """
    problems: list[str] = []
    if not fields:
        problems.append("Please define at least one field to extract.")
        return problems

    names = [f.name for f in fields]
    if any(not name for name in names):
        problems.append("Every field needs a name.")

    seen: set[str] = set()
    duplicates: list[str] = []
    for name in names:
        if name and name in seen and name not in duplicates:
            duplicates.append(name)
        seen.add(name)
    if duplicates:
        problems.append(f"Field names must be unique: {', '.join(duplicates)}.")

    return problems


class ExtractedItem(BaseModel):
    """A single extracted value and the file it was found in."""

    value: str | int | float | None = None
    source: str | None = None


class ExtractionStatus(str, Enum):
    """Outcome of an extraction."""

    SUCCESS = "success"
    ERROR = "error"


class AggregatedResult(BaseModel):
    """
    Result of one extraction across all uploaded files.

    Either ``data`` or ``error`` is meaningful, depending on ``status``:
    {
        "status": "success" | "error",
        "data": {field_name: {"value": ..., "source": ...}},
        "error": str | null,
        "warnings": List[str]
    }
    """

    model_config = ConfigDict(frozen=True)

    status: ExtractionStatus
    data: dict[str, ExtractedItem] = Field(default_factory=dict)
    error: str | None = None
    warnings: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_status_consistency(self) -> "AggregatedResult":
        if self.status == ExtractionStatus.SUCCESS and self.error is not None:
            raise ValueError("A successful result cannot carry an error message")
        if self.status == ExtractionStatus.ERROR:
            if self.data:
                raise ValueError("A failed result cannot carry extracted data")
            if not self.error:
                raise ValueError("A failed result needs an error message")
        return self

    @classmethod
    def success(
        cls, data: dict[str, ExtractedItem], warnings: list[str] | None = None
    ) -> "AggregatedResult":
        return cls(
            status=ExtractionStatus.SUCCESS,
            data=data,
            warnings=warnings or [],
        )

    @classmethod
    def failure(cls, message: str) -> "AggregatedResult":
        return cls(
            status=ExtractionStatus.ERROR,
            data={},
            error=message or "Extraction failed",
        )

    @property
    def is_success(self) -> bool:
        return self.status == ExtractionStatus.SUCCESS


class Account(BaseModel):
    """A CRM account the result can be assigned to."""

    id: str
    name: str

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        """Webhooks often return numeric ids."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class CrmStatus(str, Enum):
    """Status of the last CRM submission."""

    IDLE = "idle"
    SUCCESS = "success"
    ERROR = "error"


# =============================================================================
# Schema Templates
# =============================================================================


class TemplateField(BaseModel):
    """A field preset inside a schema template."""

    name: str
    type: FieldType
    description: str = ""


class SchemaTemplate(BaseModel):
    """A named set of field presets that can be appended to a schema."""

    id: str
    label: str
    fields: list[TemplateField]


# =============================================================================
# Results Table
# =============================================================================


class ResultTableRow(BaseModel):
    """One row of the results table, in schema order."""

    field_id: str
    name: str
    label: str = Field(..., description="Field description, or its type when empty")
    value: str | int | float | None = None
    source: str | None = None
    found: bool


class ResultTable(BaseModel):
    """Rendered view of an aggregated result against the schema."""

    status: ExtractionStatus
    rows: list[ResultTableRow] = Field(default_factory=list)
    error: str | None = None

    @classmethod
    def from_result(
        cls, result: AggregatedResult, fields: list[SchemaField]
    ) -> "ResultTable":
        """
        Build the table rows for a result.

        A failed result never produces rows, so a partial table is never
        shown as if it were valid.
        """
        if not result.is_success:
            return cls(status=result.status, error=result.error)

        rows = []
        for field in fields:
            item = result.data.get(field.name)
            value = item.value if item else None
            source = item.source if item else None
            rows.append(
                ResultTableRow(
                    field_id=field.id,
                    name=field.name,
                    label=field.description or field.type.value,
                    value=value,
                    source=source or None,
                    found=value is not None and value != "",
                )
            )
        return cls(status=result.status, rows=rows)


# =============================================================================
# HTTP Models
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(default="healthy")
    version: str = Field(default="1.0.0")
    message: str = Field(default="")


class UploadedFileInfo(BaseModel):
    """Metadata of a file held by a session."""

    index: int = Field(..., ge=0)
    name: str
    media_type: str
    size: int = Field(..., ge=0, description="Size in bytes")


class DataUrlUpload(BaseModel):
    """A file sent as a browser data URL (``data:<mime>;base64,<payload>``)."""

    name: str = Field(..., min_length=1, max_length=255)
    data_url: str = Field(..., min_length=1)


class SessionResponse(BaseModel):
    """Full state of an extraction session."""

    id: str
    fields: list[SchemaField]
    files: list[UploadedFileInfo]
    result: AggregatedResult | None = None
    accounts: list[Account] = Field(default_factory=list)
    selected_account_id: str | None = None
    crm_status: CrmStatus = CrmStatus.IDLE
    is_extracting: bool = False
    is_sending_to_crm: bool = False
    can_send_to_crm: bool = False


class SelectAccountRequest(BaseModel):
    """Request model for selecting the CRM account."""

    account_id: str | None = None


class CrmSendResponse(BaseModel):
    """Response model for a CRM submission."""

    status: CrmStatus
    account_id: str | None = None
