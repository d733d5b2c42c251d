"""Pytest configuration and fixtures."""

import json
from types import SimpleNamespace
from typing import Generator

import httpx
import pytest
from fastapi.testclient import TestClient

from app.backend.main import app
from app.backend.models import FieldType, SchemaField
from app.backend.services.ai import AIService, get_ai_service
from app.backend.services.crm_bridge import CRMBridge, get_crm_bridge
from app.backend.services.file_encoder import SourceFile
from app.backend.session import SessionStore, get_session_store

CRM_URL = "https://crm.test/webhook/accounts"


class FakeModels:
    """Stands in for ``client.aio.models`` of the Gemini SDK."""

    def __init__(self):
        self.text: str | None = None
        self.error: Exception | None = None
        self.calls: list[dict] = []

    async def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.text)


class FakeGenAIClient:
    """Minimal async Gemini client double."""

    def __init__(self):
        self.models = FakeModels()
        self.aio = SimpleNamespace(models=self.models)


class FakeCRM:
    """Records webhook requests and serves configurable responses."""

    def __init__(self):
        self.accounts: object = [
            {"id": "acc-1", "name": "Acme Corp"},
            {"id": 2, "name": "Globex"},
        ]
        self.get_status = 200
        self.post_status = 200
        self.fail_with: Exception | None = None
        self.requests: list[httpx.Request] = []

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            raise self.fail_with
        if request.method == "GET":
            return httpx.Response(self.get_status, json=self.accounts)
        return httpx.Response(self.post_status, json={"ok": self.post_status < 300})

    @property
    def posted_bodies(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests if r.method == "POST"]


@pytest.fixture
def ai_client() -> FakeGenAIClient:
    """A fake Gemini client; set ``ai_client.models.text`` to the model's answer."""
    return FakeGenAIClient()


@pytest.fixture
def ai_service(ai_client: FakeGenAIClient) -> AIService:
    """AI service wired to the fake client."""
    return AIService(api_key="test-key", client=ai_client)


@pytest.fixture
def fake_crm() -> FakeCRM:
    return FakeCRM()


@pytest.fixture
def crm_bridge(fake_crm: FakeCRM) -> CRMBridge:
    """CRM bridge talking to the fake webhook through a mock transport."""
    return CRMBridge(
        webhook_url=CRM_URL,
        timeout=5,
        transport=httpx.MockTransport(fake_crm.handle),
    )


@pytest.fixture
def session_store() -> SessionStore:
    return SessionStore()


@pytest.fixture
def client(
    ai_service: AIService,
    crm_bridge: CRMBridge,
    session_store: SessionStore,
) -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI application."""
    app.dependency_overrides[get_ai_service] = lambda: ai_service
    app.dependency_overrides[get_crm_bridge] = lambda: crm_bridge
    app.dependency_overrides[get_session_store] = lambda: session_store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def invoice_fields() -> list[SchemaField]:
    """A small schema covering all field types."""
    return [
        SchemaField(name="invoice_no", type=FieldType.NUMBER, description="Invoice number"),
        SchemaField(name="issue_date", type=FieldType.DATE, description="Date of issue"),
        SchemaField(name="customer", type=FieldType.TEXT),
    ]


@pytest.fixture
def sample_files() -> list[SourceFile]:
    """A text document and an audio note."""
    return [
        SourceFile(filename="invoice.txt", content_type="text/plain", content=b"Invoice 1042 for Acme"),
        SourceFile(filename="call.mp3", content_type="audio/mpeg", content=b"ID3fake-audio-bytes"),
    ]


@pytest.fixture
def invoice_response_text() -> str:
    """A model answer matching ``invoice_fields``."""
    return json.dumps(
        {
            "invoice_no": {"value": 1042, "source": "invoice.txt"},
            "issue_date": {"value": "2024-03-01", "source": "call.mp3"},
            "customer": {"value": "Acme", "source": "invoice.txt"},
        }
    )
