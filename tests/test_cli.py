"""Tests for the assistant query CLI."""

import asyncio
import importlib.util
from pathlib import Path
from types import SimpleNamespace

import pytest

ASK_CLI = Path(__file__).resolve().parent.parent / "scripts" / "ask_cli.py"


@pytest.fixture
def ask_cli():
    spec = importlib.util.spec_from_file_location("ask_cli", ASK_CLI)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class ClosingEmbedder:
    def __init__(self):
        self.closed = False

    async def aclose(self):
        self.closed = True


def _services(search_error=None):
    async def search_or_raise(query, k):
        if search_error is not None:
            raise search_error
        return []

    return SimpleNamespace(
        embedder=ClosingEmbedder(),
        search=SimpleNamespace(search_or_raise=search_or_raise),
    )


def test_show_matches_closes_embedding_client(ask_cli, monkeypatch, capsys):
    services = _services()
    monkeypatch.setattr(ask_cli, "build_services", lambda config: services)

    asyncio.run(ask_cli.show_matches("red dress", 3))

    assert services.embedder.closed
    assert "Top 0 products for: 'red dress'" in capsys.readouterr().out


def test_show_matches_closes_embedding_client_on_error(ask_cli, monkeypatch):
    services = _services(search_error=RuntimeError("provider down"))
    monkeypatch.setattr(ask_cli, "build_services", lambda config: services)

    with pytest.raises(RuntimeError):
        asyncio.run(ask_cli.show_matches("red dress", 3))

    assert services.embedder.closed
