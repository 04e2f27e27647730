"""Pytest fixtures and shared test configuration.

Fixtures:
    - fake_ollama: Scriptable stand-in for the Ollama HTTP API
    - inference_client: InferenceClient wired to fake_ollama
    - async_client: HTTPX client for the relay app, using inference_client
    - upload_tmpdir: Isolated temp directory for upload spooling
    - text_pdf / blank_pdf: Generated PDF documents
"""

import asyncio
import io
import json
import tempfile
from collections.abc import AsyncIterator
from pathlib import Path

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from pypdf import PdfWriter

from chat_relay.api import app
from chat_relay.inference.client import InferenceClient, get_inference_client
from chat_relay.inference.config import InferenceConfig

BACKEND_URL = "http://ollama.test"


def ndjson(*events: dict) -> bytes:
    """Encode events as newline-delimited JSON."""
    return b"".join(json.dumps(event).encode() + b"\n" for event in events)


class FakeOllama:
    """Scriptable fake of Ollama's /api/generate and /api/tags.

    Attributes:
        chunks: Body chunks streamed by /api/generate, sent as-is.
        fail_midstream: Raised after the last chunk, if set.
        generate_error: Raised instead of responding, if set.
        generate_status: Status code for /api/generate.
        delay: Seconds to wait before responding to /api/generate.
        models_payload: JSON returned by /api/tags.
        tags_error: Raised instead of responding to /api/tags, if set.
        requests: Decoded bodies of every /api/generate call.
    """

    def __init__(self) -> None:
        self.chunks: list[bytes] = []
        self.fail_midstream: Exception | None = None
        self.generate_error: Exception | None = None
        self.generate_status = 200
        self.delay = 0.0
        self.models_payload: object = {"models": [{"name": "llama2:latest"}]}
        self.tags_error: Exception | None = None
        self.requests: list[dict] = []

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    async def handle(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/tags":
            if self.tags_error is not None:
                raise self.tags_error
            return httpx.Response(200, json=self.models_payload)

        if request.url.path == "/api/generate":
            self.requests.append(json.loads(request.content))
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.generate_error is not None:
                raise self.generate_error
            return httpx.Response(
                self.generate_status,
                content=self._body(),
                headers={"Content-Type": "application/x-ndjson"},
            )

        return httpx.Response(404, json={"error": "not found"})

    async def _body(self) -> AsyncIterator[bytes]:
        for chunk in self.chunks:
            yield chunk
        if self.fail_midstream is not None:
            raise self.fail_midstream


@pytest.fixture
def fake_ollama() -> FakeOllama:
    return FakeOllama()


@pytest.fixture
def inference_config() -> InferenceConfig:
    return InferenceConfig(backend_base_url=BACKEND_URL, model="llama2", timeout_seconds=2.0)


@pytest.fixture
async def inference_client(
    fake_ollama: FakeOllama, inference_config: InferenceConfig
) -> AsyncIterator[InferenceClient]:
    client = InferenceClient(inference_config, transport=fake_ollama.transport())
    yield client
    await client.aclose()


@pytest.fixture
async def async_client(inference_client: InferenceClient) -> AsyncIterator[AsyncClient]:
    """Create async HTTP client for the relay app.

    Yields:
        AsyncClient whose requests reach the app with the fake backend.
    """
    app.dependency_overrides[get_inference_client] = lambda: inference_client
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def upload_tmpdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point tempfile at an empty directory so leftovers are visible."""
    spool = tmp_path / "spool"
    spool.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(spool))
    return spool


def build_text_pdf(text: str) -> bytes:
    """Assemble a minimal one-page PDF showing ``text`` in Helvetica."""
    stream = f"BT /F1 24 Tf 72 720 Td ({text}) Tj ET".encode()
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        b"/Contents 4 0 R /Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]

    out = bytearray(b"%PDF-1.4\n")
    offsets: list[int] = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"

    xref_offset = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\n" % (len(objects) + 1)
    out += b"startxref\n%d\n%%%%EOF\n" % xref_offset
    return bytes(out)


@pytest.fixture
def text_pdf() -> bytes:
    return build_text_pdf("Quarterly revenue grew")


@pytest.fixture
def blank_pdf() -> bytes:
    writer = PdfWriter()
    writer.add_blank_page(width=612, height=792)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()
