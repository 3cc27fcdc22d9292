import os

import httpx
import pytest

from ai_service import BookAssistant
from config import settings
from library import Library


@pytest.fixture
def db_file(tmp_path, request):
    # A unique database file per test
    return str(tmp_path / f"test_{request.node.name}.db")


@pytest.fixture
def lib(db_file):
    lib = Library(db_file=db_file)
    yield lib
    lib.close()


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch, db_file):
    # Keep the CLI and the app away from a developer's real catalog and credentials
    monkeypatch.delenv("LIB_CLI_OUTPUT", raising=False)
    monkeypatch.setattr(settings, "database_file", db_file)
    monkeypatch.setattr(settings, "enable_ai_features", True)
    monkeypatch.setattr(settings, "seed_file", os.path.join(os.path.dirname(db_file), "missing-seed.json"))


def make_assistant(handler, account_id="acct-123", api_token="token-abc"):
    """BookAssistant whose HTTP calls are answered by ``handler``."""
    return BookAssistant(
        account_id=account_id,
        api_token=api_token,
        model="@cf/meta/llama-3-8b-instruct",
        base_url="https://ai.test/client/v4",
        transport=httpx.MockTransport(handler),
    )


@pytest.fixture
def assistant_factory():
    return make_assistant
