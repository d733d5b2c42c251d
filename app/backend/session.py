"""
Session-scoped state for the extraction workflow.

An ExtractionSession holds everything one user works on: the schema being
edited, the uploaded files, the current result and the CRM selection.
Sessions live in memory only and disappear with the process.
"""

import logging
import uuid

# Handle both package imports and standalone imports
try:
    from .models import (
        Account,
        AggregatedResult,
        CrmStatus,
        FieldType,
        ResultTable,
        SchemaField,
        SchemaFieldUpdate,
        SessionResponse,
        UploadedFileInfo,
        validate_field_list,
    )
    from .services.ai import AIService
    from .services.crm_bridge import CRMBridge
    from .services.file_encoder import SourceFile
    from .services.schema_templates import get_template, instantiate_template
except ImportError:
    from models import (
        Account,
        AggregatedResult,
        CrmStatus,
        FieldType,
        ResultTable,
        SchemaField,
        SchemaFieldUpdate,
        SessionResponse,
        UploadedFileInfo,
        validate_field_list,
    )
    from services.ai import AIService
    from services.crm_bridge import CRMBridge
    from services.file_encoder import SourceFile
    from services.schema_templates import get_template, instantiate_template

logger = logging.getLogger(__name__)

NO_FILES_MESSAGE = "Please upload at least one file."


class SessionNotFoundError(LookupError):
    """Raised when a session, field, file or template does not exist."""

    pass


class SessionBusyError(RuntimeError):
    """Raised when an action is started while the same action is in flight."""

    pass


class ExtractionInputError(ValueError):
    """Raised when an extraction is started with unusable input."""

    pass


class ExtractionSession:
    """
    State container owned by one user's workflow.

    Attributes:
        id: Session identifier.
        fields: Ordered schema fields.
        files: Uploaded files, in upload order.
        result: The latest extraction result (replaced wholesale).
        accounts: CRM accounts, fetched once.
        selected_account_id: Account the result will be sent to.
        crm_status: Outcome of the last CRM submission.
    """

    def __init__(self, session_id: str | None = None):
        self.id = session_id or uuid.uuid4().hex
        self.fields: list[SchemaField] = []
        self.files: list[SourceFile] = []
        self.result: AggregatedResult | None = None
        self.accounts: list[Account] = []
        self.selected_account_id: str | None = None
        self.crm_status = CrmStatus.IDLE
        self.is_extracting = False
        self.is_sending_to_crm = False

    # -------------------------------------------------------------------------
    # Schema editor
    # -------------------------------------------------------------------------

    def add_field(
        self,
        name: str = "",
        type: FieldType = FieldType.TEXT,
        description: str = "",
    ) -> SchemaField:
        field = SchemaField(name=name, type=type, description=description)
        self.fields.append(field)
        return field

    def _field_index(self, field_id: str) -> int:
        for index, field in enumerate(self.fields):
            if field.id == field_id:
                return index
        raise SessionNotFoundError(f"Field '{field_id}' not found")

    def update_field(self, field_id: str, update: SchemaFieldUpdate) -> SchemaField:
        index = self._field_index(field_id)
        changes = update.model_dump(exclude_none=True)
        updated = self.fields[index].model_copy(update=changes)
        self.fields[index] = updated
        return updated

    def remove_field(self, field_id: str) -> None:
        del self.fields[self._field_index(field_id)]

    def clear_fields(self) -> None:
        self.fields = []

    def apply_template(self, template_id: str) -> list[SchemaField]:
        """Append a template's fields (with new ids) to the schema."""
        template = get_template(template_id)
        if template is None:
            raise SessionNotFoundError(f"Template '{template_id}' not found")
        new_fields = instantiate_template(template)
        self.fields.extend(new_fields)
        logger.info("Session %s: applied template '%s'", self.id, template_id)
        return new_fields

    # -------------------------------------------------------------------------
    # Files
    # -------------------------------------------------------------------------

    def add_files(self, files: list[SourceFile]) -> None:
        self.files.extend(files)

    def remove_file(self, index: int) -> None:
        if not 0 <= index < len(self.files):
            raise SessionNotFoundError(f"File #{index} not found")
        del self.files[index]

    def clear_files(self) -> None:
        self.files = []

    def file_infos(self) -> list[UploadedFileInfo]:
        return [
            UploadedFileInfo(index=i, name=f.filename, media_type=f.media_type, size=f.size)
            for i, f in enumerate(self.files)
        ]

    # -------------------------------------------------------------------------
    # Extraction
    # -------------------------------------------------------------------------

    def check_ready(self) -> None:
        """
        Validate the input of an extraction without touching any state.

        Raises:
            ExtractionInputError: With the message to show next to the
                extract button.
        """
        if not self.files:
            raise ExtractionInputError(NO_FILES_MESSAGE)
        problems = validate_field_list(self.fields)
        if problems:
            raise ExtractionInputError(problems[0])

    async def extract(self, ai_service: AIService) -> AggregatedResult:
        """
        Run one extraction over the session's files and fields.

        Raises:
            ExtractionInputError: If there are no files or no usable fields.
            SessionBusyError: If an extraction is already running.
        """
        self.check_ready()
        if self.is_extracting:
            raise SessionBusyError("An extraction is already running")

        self.is_extracting = True
        self.result = None
        self.crm_status = CrmStatus.IDLE
        try:
            fields = list(self.fields)
            result = await ai_service.extract(list(self.files), fields)
            self.result = result
        finally:
            self.is_extracting = False

        logger.info("Session %s: extraction finished with status %s", self.id, result.status.value)
        return result

    def result_table(self) -> ResultTable | None:
        if self.result is None:
            return None
        return ResultTable.from_result(self.result, self.fields)

    # -------------------------------------------------------------------------
    # CRM
    # -------------------------------------------------------------------------

    async def load_accounts(self, bridge: CRMBridge, refresh: bool = False) -> list[Account]:
        """Fetch the account list once (or again when refresh is set)."""
        if refresh or not self.accounts:
            self.accounts = await bridge.fetch_accounts()
        return self.accounts

    def select_account(self, account_id: str | None) -> None:
        self.selected_account_id = account_id or None
        self.crm_status = CrmStatus.IDLE

    @property
    def can_send_to_crm(self) -> bool:
        return (
            bool(self.selected_account_id)
            and self.result is not None
            and self.result.is_success
            and not self.is_sending_to_crm
            and self.crm_status != CrmStatus.SUCCESS
        )

    async def send_to_crm(self, bridge: CRMBridge) -> CrmStatus:
        """
        Send the current result to the selected account.

        A no-op returning the current status when sending is not possible
        (no account, no successful result, already sent or in flight).
        """
        if not self.can_send_to_crm:
            return self.crm_status

        self.is_sending_to_crm = True
        self.crm_status = CrmStatus.IDLE
        try:
            self.crm_status = await bridge.send_result(
                self.selected_account_id, self.result.data
            )
        finally:
            self.is_sending_to_crm = False
        return self.crm_status

    def to_response(self) -> SessionResponse:
        return SessionResponse(
            id=self.id,
            fields=self.fields,
            files=self.file_infos(),
            result=self.result,
            accounts=self.accounts,
            selected_account_id=self.selected_account_id,
            crm_status=self.crm_status,
            is_extracting=self.is_extracting,
            is_sending_to_crm=self.is_sending_to_crm,
            can_send_to_crm=self.can_send_to_crm,
        )


class SessionStore:
    """In-memory registry of extraction sessions."""

    def __init__(self):
        self._sessions: dict[str, ExtractionSession] = {}

    def create(self) -> ExtractionSession:
        session = ExtractionSession()
        self._sessions[session.id] = session
        logger.info("Created session %s", session.id)
        return session

    def get(self, session_id: str) -> ExtractionSession:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise SessionNotFoundError(f"Session '{session_id}' not found") from None

    def delete(self, session_id: str) -> None:
        self.get(session_id)
        del self._sessions[session_id]
        logger.info("Deleted session %s", session_id)

    def __len__(self) -> int:
        return len(self._sessions)


_session_store: SessionStore | None = None


def get_session_store() -> SessionStore:
    """Get or create the session store singleton."""
    global _session_store
    if _session_store is None:
        _session_store = SessionStore()
    return _session_store
