"""Tests for the extraction session state container."""

import json

import pytest
import pytest_asyncio

from app.backend.models import (
    CrmStatus,
    ExtractionStatus,
    FieldType,
    SchemaField,
    SchemaFieldUpdate,
)
from app.backend.session import (
    ExtractionInputError,
    ExtractionSession,
    SessionBusyError,
    SessionNotFoundError,
    SessionStore,
)


@pytest.fixture
def session(invoice_fields, sample_files) -> ExtractionSession:
    """A session ready to extract."""
    session = ExtractionSession()
    session.fields = list(invoice_fields)
    session.add_files(list(sample_files))
    return session


@pytest_asyncio.fixture
async def extracted_session(session, ai_service, ai_client, invoice_response_text):
    """A session holding a successful result."""
    ai_client.models.text = invoice_response_text
    await session.extract(ai_service)
    return session


class TestSchemaEditing:
    """Tests for field editing and templates."""

    def test_add_and_update_field(self):
        session = ExtractionSession()
        field = session.add_field()

        updated = session.update_field(
            field.id, SchemaFieldUpdate(name="total", type=FieldType.NUMBER)
        )

        assert updated.id == field.id
        assert updated.name == "total"
        assert updated.type == FieldType.NUMBER
        assert session.fields == [updated]

    def test_update_keeps_unset_attributes(self):
        session = ExtractionSession()
        field = session.add_field(name="total", description="Grand total")

        updated = session.update_field(field.id, SchemaFieldUpdate(type=FieldType.NUMBER))

        assert updated.name == "total"
        assert updated.description == "Grand total"

    def test_unknown_field(self):
        session = ExtractionSession()
        with pytest.raises(SessionNotFoundError):
            session.remove_field("missing")

    def test_remove_and_clear(self):
        session = ExtractionSession()
        first = session.add_field(name="a")
        session.add_field(name="b")

        session.remove_field(first.id)
        assert [f.name for f in session.fields] == ["b"]

        session.clear_fields()
        assert session.fields == []

    def test_template_applied_twice(self):
        """Test that a template appends fresh copies every time."""
        session = ExtractionSession()
        session.add_field(name="notes")

        session.apply_template("contract")
        session.apply_template("contract")

        assert [f.name for f in session.fields] == [
            "notes",
            "contract_number",
            "contract_date",
            "contract_number",
            "contract_date",
        ]
        assert len({f.id for f in session.fields}) == 5
        assert session.fields[1].type == FieldType.NUMBER
        assert session.fields[2].type == FieldType.DATE

    def test_unknown_template(self):
        with pytest.raises(SessionNotFoundError):
            ExtractionSession().apply_template("payslip")


class TestFiles:
    """Tests for uploaded file handling."""

    def test_file_infos(self, session):
        infos = session.file_infos()
        assert [(i.index, i.name, i.media_type) for i in infos] == [
            (0, "invoice.txt", "text/plain"),
            (1, "call.mp3", "audio/mpeg"),
        ]

    def test_remove_file(self, session):
        session.remove_file(0)
        assert [f.filename for f in session.files] == ["call.mp3"]

    def test_remove_file_out_of_range(self, session):
        with pytest.raises(SessionNotFoundError):
            session.remove_file(5)


class TestExtract:
    """Tests for running an extraction."""

    @pytest.mark.asyncio
    async def test_success(self, session, ai_service, ai_client, invoice_response_text):
        ai_client.models.text = invoice_response_text

        result = await session.extract(ai_service)

        assert result.status == ExtractionStatus.SUCCESS
        assert session.result is result
        assert list(result.data) == ["invoice_no", "issue_date", "customer"]
        assert session.is_extracting is False

    @pytest.mark.asyncio
    async def test_no_files(self, session, ai_service, ai_client):
        session.clear_files()

        with pytest.raises(ExtractionInputError, match="Please upload at least one file."):
            await session.extract(ai_service)

        assert ai_client.models.calls == []
        assert session.result is None

    @pytest.mark.asyncio
    async def test_no_fields(self, session, ai_service, ai_client):
        session.clear_fields()

        with pytest.raises(ExtractionInputError, match="Please define at least one field"):
            await session.extract(ai_service)

        assert ai_client.models.calls == []

    @pytest.mark.asyncio
    async def test_blank_field_name(self, session, ai_service, ai_client):
        session.add_field()

        with pytest.raises(ExtractionInputError, match="Every field needs a name."):
            await session.extract(ai_service)

        assert ai_client.models.calls == []

    @pytest.mark.asyncio
    async def test_duplicate_names_from_template(self, session, ai_service, ai_client):
        session.apply_template("contract")
        session.apply_template("contract")

        with pytest.raises(ExtractionInputError, match="must be unique: contract_number"):
            await session.extract(ai_service)

        assert ai_client.models.calls == []

    @pytest.mark.asyncio
    async def test_input_error_keeps_previous_result(self, extracted_session, ai_service):
        previous = extracted_session.result
        extracted_session.clear_files()

        with pytest.raises(ExtractionInputError):
            await extracted_session.extract(ai_service)

        assert extracted_session.result is previous

    @pytest.mark.asyncio
    async def test_busy(self, session, ai_service, ai_client):
        session.is_extracting = True

        with pytest.raises(SessionBusyError):
            await session.extract(ai_service)

        assert ai_client.models.calls == []

    @pytest.mark.asyncio
    async def test_error_result_replaces_previous(self, extracted_session, ai_service, ai_client):
        ai_client.models.error = RuntimeError("quota exceeded")

        result = await extracted_session.extract(ai_service)

        assert result.status == ExtractionStatus.ERROR
        assert extracted_session.result is result
        assert extracted_session.result_table().rows == []

    @pytest.mark.asyncio
    async def test_uses_fields_at_call_time(self, session, ai_service, ai_client, invoice_response_text):
        ai_client.models.text = invoice_response_text
        await session.extract(ai_service)

        schema = ai_client.models.calls[0]["config"].response_schema
        assert schema.required == [f.name for f in session.fields]

    @pytest.mark.asyncio
    async def test_result_table(self, extracted_session):
        table = extracted_session.result_table()
        assert [row.name for row in table.rows] == ["invoice_no", "issue_date", "customer"]
        assert all(row.found for row in table.rows)

    def test_no_result_table_before_extraction(self):
        assert ExtractionSession().result_table() is None


class TestCrm:
    """Tests for account selection and CRM submission."""

    @pytest.mark.asyncio
    async def test_accounts_loaded_once(self, session, crm_bridge, fake_crm):
        first = await session.load_accounts(crm_bridge)
        second = await session.load_accounts(crm_bridge)

        assert [a.name for a in first] == ["Acme Corp", "Globex"]
        assert second == first
        assert len(fake_crm.requests) == 1

    @pytest.mark.asyncio
    async def test_refresh_fetches_again(self, session, crm_bridge, fake_crm):
        await session.load_accounts(crm_bridge)
        await session.load_accounts(crm_bridge, refresh=True)
        assert len(fake_crm.requests) == 2

    @pytest.mark.asyncio
    async def test_send_without_account_is_noop(self, extracted_session, crm_bridge, fake_crm):
        status = await extracted_session.send_to_crm(crm_bridge)

        assert status == CrmStatus.IDLE
        assert fake_crm.requests == []

    @pytest.mark.asyncio
    async def test_send_without_result_is_noop(self, session, crm_bridge, fake_crm):
        session.select_account("acc-1")

        assert not session.can_send_to_crm
        assert await session.send_to_crm(crm_bridge) == CrmStatus.IDLE
        assert fake_crm.requests == []

    @pytest.mark.asyncio
    async def test_send_after_error_result_is_noop(self, session, ai_service, ai_client, crm_bridge, fake_crm):
        ai_client.models.text = ""
        await session.extract(ai_service)
        session.select_account("acc-1")

        assert await session.send_to_crm(crm_bridge) == CrmStatus.IDLE
        assert fake_crm.requests == []

    @pytest.mark.asyncio
    async def test_send_success_disables_resend(self, extracted_session, crm_bridge, fake_crm):
        extracted_session.select_account("acc-1")

        assert await extracted_session.send_to_crm(crm_bridge) == CrmStatus.SUCCESS
        assert not extracted_session.can_send_to_crm
        assert await extracted_session.send_to_crm(crm_bridge) == CrmStatus.SUCCESS

        assert len(fake_crm.posted_bodies) == 1
        body = fake_crm.posted_bodies[0]
        assert body["account_id"] == "acc-1"
        assert body["data"] == json.loads(
            json.dumps({k: v.model_dump() for k, v in extracted_session.result.data.items()})
        )

    @pytest.mark.asyncio
    async def test_failed_send_can_be_retried(self, extracted_session, crm_bridge, fake_crm):
        extracted_session.select_account("acc-1")
        fake_crm.post_status = 500

        assert await extracted_session.send_to_crm(crm_bridge) == CrmStatus.ERROR
        assert extracted_session.can_send_to_crm
        assert extracted_session.is_sending_to_crm is False

        fake_crm.post_status = 200
        assert await extracted_session.send_to_crm(crm_bridge) == CrmStatus.SUCCESS
        assert len(fake_crm.posted_bodies) == 2

    @pytest.mark.asyncio
    async def test_selecting_account_resets_status(self, extracted_session, crm_bridge):
        extracted_session.select_account("acc-1")
        await extracted_session.send_to_crm(crm_bridge)

        extracted_session.select_account("2")

        assert extracted_session.crm_status == CrmStatus.IDLE
        assert extracted_session.can_send_to_crm

    @pytest.mark.asyncio
    async def test_new_extraction_resets_status(
        self, extracted_session, ai_service, crm_bridge
    ):
        extracted_session.select_account("acc-1")
        await extracted_session.send_to_crm(crm_bridge)

        await extracted_session.extract(ai_service)

        assert extracted_session.crm_status == CrmStatus.IDLE
        assert extracted_session.can_send_to_crm


class TestSessionStore:
    """Tests for the in-memory session registry."""

    def test_create_get_delete(self):
        store = SessionStore()
        session = store.create()

        assert store.get(session.id) is session
        assert len(store) == 1

        store.delete(session.id)
        assert len(store) == 0
        with pytest.raises(SessionNotFoundError):
            store.get(session.id)

    def test_delete_unknown(self):
        with pytest.raises(SessionNotFoundError):
            SessionStore().delete("nope")

    def test_sessions_are_isolated(self):
        store = SessionStore()
        first, second = store.create(), store.create()
        first.fields.append(SchemaField(name="a"))
        assert second.fields == []
