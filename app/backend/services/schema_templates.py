"""
Built-in schema templates.

Applying a template appends its fields to the session's schema with fresh
ids, so the same template can be applied more than once.
"""

# Handle both package imports and standalone imports
try:
    from ..models import FieldType, SchemaField, SchemaTemplate, TemplateField
except ImportError:
    from models import FieldType, SchemaField, SchemaTemplate, TemplateField

TEMPLATES: list[SchemaTemplate] = [
    SchemaTemplate(
        id="contract",
        label="Contract",
        fields=[
            TemplateField(name="contract_number", type=FieldType.NUMBER, description="Contract number"),
            TemplateField(name="contract_date", type=FieldType.DATE, description="Date the contract was signed"),
        ],
    ),
    SchemaTemplate(
        id="invoice",
        label="Invoice",
        fields=[
            TemplateField(
                name="invoice_number",
                type=FieldType.TEXT,
                description="The unique invoice identifier, usually at the top",
            ),
            TemplateField(name="invoice_date", type=FieldType.DATE, description="The date the invoice was issued"),
            TemplateField(
                name="vendor_name",
                type=FieldType.TEXT,
                description="Name of the company/person issuing the invoice",
            ),
            TemplateField(
                name="total_amount",
                type=FieldType.NUMBER,
                description="Total amount due including tax",
            ),
        ],
    ),
]


def get_template(template_id: str) -> SchemaTemplate | None:
    """Look up a template by id."""
    return next((t for t in TEMPLATES if t.id == template_id), None)


def instantiate_template(template: SchemaTemplate) -> list[SchemaField]:
    """Create new schema fields (with new ids) from a template."""
    return [
        SchemaField(name=f.name, type=f.type, description=f.description)
        for f in template.fields
    ]
