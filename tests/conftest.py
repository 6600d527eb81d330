"""
Pytest configuration and shared fixtures for test suite.

This module provides:
- Test client fixtures for FastAPI
- An in-memory stand-in for the Supabase table/auth API
- Settings pointing at a temporary downloads directory
- A fake yt-dlp section download that writes a small audio file
"""

import os
import pytest
import pytest_asyncio
from types import SimpleNamespace
from httpx import AsyncClient, ASGITransport
from unittest.mock import patch
from yt_dlp.postprocessor.ffmpeg import ACODECS

from app.config import Settings
from app.services.ringtone_repository import RingtoneRepository
from app.utils.logging_utils import get_request_logger
from app.utils.process_utils import ProcessResult


# =============================================================================
# In-memory Supabase
# =============================================================================

class FakeQuery:
    """Subset of the PostgREST query builder used by RingtoneRepository."""

    def __init__(self, table, op, payload=None, columns="*"):
        self.table = table
        self.op = op
        self.payload = payload
        self.columns = columns
        self.filters = []
        self.order_by = None
        self.limit_count = None

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, count):
        self.limit_count = count
        return self

    def _matching(self):
        return [
            row for row in self.table.rows
            if all(row.get(column) == value for column, value in self.filters)
        ]

    def execute(self):
        self.table.calls.append(self.op)
        if self.op in self.table.fail_ops:
            raise RuntimeError(f"simulated {self.op} failure")

        if self.op == "insert":
            row = dict(self.payload)
            self.table.rows.append(row)
            return SimpleNamespace(data=[dict(row)])

        rows = self._matching()
        if self.op == "select":
            if self.order_by:
                column, desc = self.order_by
                rows = sorted(rows, key=lambda row: row.get(column) or "", reverse=desc)
            if self.limit_count is not None:
                rows = rows[:self.limit_count]
            if self.columns != "*":
                wanted = [c.strip() for c in self.columns.split(",")]
                rows = [{c: row.get(c) for c in wanted} for row in rows]
            return SimpleNamespace(data=[dict(row) for row in rows])
        if self.op == "update":
            for row in rows:
                row.update(self.payload)
            return SimpleNamespace(data=[dict(row) for row in rows])
        if self.op == "delete":
            for row in rows:
                self.table.rows.remove(row)
            return SimpleNamespace(data=[dict(row) for row in rows])
        raise ValueError(self.op)


class FakeTable:
    def __init__(self):
        self.rows = []
        self.calls = []
        self.fail_ops = set()

    def select(self, columns="*"):
        return FakeQuery(self, "select", columns=columns)

    def insert(self, row):
        return FakeQuery(self, "insert", payload=row)

    def update(self, values):
        return FakeQuery(self, "update", payload=values)

    def delete(self):
        return FakeQuery(self, "delete")


class FakeAuth:
    def __init__(self, tokens):
        self.tokens = tokens

    def get_user(self, token):
        user_id = self.tokens.get(token)
        return SimpleNamespace(user=SimpleNamespace(id=user_id) if user_id else None)


class FakeSupabaseClient:
    def __init__(self, tokens=None):
        self.tables = {}
        self.auth = FakeAuth(tokens or {})

    def table(self, name):
        return self.tables.setdefault(name, FakeTable())


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(scope="session")
def mock_env_vars(tmp_path_factory):
    """Mock environment variables for testing."""
    with patch.dict(os.environ, {
        "ALLOWED_ORIGIN": "*",
        "DOWNLOADS_DIR": str(tmp_path_factory.mktemp("public_downloads")),
        "YTDLP_BINARY": "yt-dlp",
        "FFMPEG_BINARY": "ffmpeg",
    }):
        yield


@pytest.fixture
def downloads_dir(tmp_path):
    path = tmp_path / "downloads"
    path.mkdir()
    return path


@pytest.fixture
def settings(downloads_dir):
    """Settings isolated from the environment and .env file."""
    return Settings(
        _env_file=None,
        DOWNLOADS_DIR=str(downloads_dir),
        YTDLP_BINARY="yt-dlp",
        FFMPEG_BINARY="ffmpeg",
        PRECISE_TRIM=False,
        TRIM_BUFFER_SECONDS=5,
    )


@pytest.fixture
def alice_id():
    return "11111111-1111-1111-1111-111111111111"


@pytest.fixture
def bob_id():
    return "22222222-2222-2222-2222-222222222222"


@pytest.fixture
def fake_supabase(alice_id, bob_id):
    return FakeSupabaseClient(tokens={"alice-token": alice_id, "bob-token": bob_id})


@pytest.fixture
def ringtone_table(fake_supabase):
    return fake_supabase.table("ringtone")


@pytest.fixture
def repository(fake_supabase):
    return RingtoneRepository(fake_supabase, "ringtone")


@pytest.fixture
def logger():
    return get_request_logger("test")


@pytest.fixture
def alice_headers():
    return {"Authorization": "Bearer alice-token"}


@pytest.fixture
def bob_headers():
    return {"Authorization": "Bearer bob-token"}


@pytest.fixture
def youtube_url():
    """Sample YouTube URL for testing."""
    return "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


def write_fake_download(url, output_template, start_seconds, end_seconds, audio_format, audio_quality, settings):
    """Stand-in for download_audio_section: writes a tiny file where yt-dlp would."""
    # yt-dlp names extracted audio after its own codec table, not after --audio-format
    path = output_template.replace("%(ext)s", ACODECS[audio_format][0])
    with open(path, "wb") as f:
        f.write(b"ID3fake-audio")
    return ProcessResult("", "", 0)


@pytest.fixture
def fake_download():
    """Patch the yt-dlp section download used by the ringtone builder."""
    with patch(
        "app.services.ringtone_service.download_audio_section",
        side_effect=write_fake_download
    ) as mock_download:
        yield mock_download


@pytest_asyncio.fixture
async def client(mock_env_vars, settings, fake_supabase):
    """
    Create async test client for FastAPI app.

    Uses httpx AsyncClient with ASGITransport to test the FastAPI app
    without needing to run a server. Settings and the Supabase client are
    replaced through dependency overrides.
    """
    # Import app after env vars are mocked
    from main import app
    from app.config import get_settings
    from app.services.supabase_service import get_supabase_client

    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_supabase_client] = lambda: fake_supabase

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
