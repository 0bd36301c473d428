"""Tests for the CLI (click CliRunner)."""

import asyncio

import pytest
from click.testing import CliRunner
from mongomock_motor import AsyncMongoMockClient

from accountsync.cli.main import cli
from accountsync.models.entities import User, UserStatus
from accountsync.services.identity_events import WebhookVerifier
from accountsync.services.mongo import MongoService
from accountsync.services.users import users_repository
from fakes import TEST_WEBHOOK_SECRET, event_body, user_payload


@pytest.fixture
def uvicorn_calls(monkeypatch):
    calls = []
    monkeypatch.setattr("uvicorn.run", lambda **config: calls.append(config))
    return calls


@pytest.fixture
def shared_client(monkeypatch):
    """One in-memory client handed to every MongoService the CLI creates."""
    client = AsyncMongoMockClient()
    monkeypatch.setattr(
        "accountsync.services.mongo.service.AsyncIOMotorClient",
        lambda uri, **kwargs: client,
    )
    return client


class TestServe:
    def test_defaults_from_settings(self, uvicorn_calls):
        from accountsync.settings import settings

        result = CliRunner().invoke(cli, ["serve"])

        assert result.exit_code == 0, result.output
        [config] = uvicorn_calls
        assert config["app"] == "accountsync.api.main:app"
        assert config["port"] == settings.api.port
        if settings.api.reload:
            assert config["reload"] is True
        else:
            assert config["workers"] == settings.api.workers

    def test_workers_override_reload(self, uvicorn_calls):
        result = CliRunner().invoke(
            cli, ["serve", "--host", "127.0.0.1", "--port", "9000", "--workers", "2"]
        )

        assert result.exit_code == 0, result.output
        [config] = uvicorn_calls
        assert config["host"] == "127.0.0.1"
        assert config["port"] == 9000
        assert config["workers"] == 2
        assert "reload" not in config

    def test_reload_flag(self, uvicorn_calls):
        result = CliRunner().invoke(cli, ["serve", "--reload", "--log-level", "debug"])

        assert result.exit_code == 0, result.output
        [config] = uvicorn_calls
        assert config["reload"] is True
        assert config["log_level"] == "debug"


class TestDatabaseCommands:
    def test_ensure_indexes(self, shared_client):
        result = CliRunner().invoke(cli, ["db", "ensure-indexes"])
        assert result.exit_code == 0, result.output
        assert "Indexes ensured" in result.output

    def test_status_counts_users_by_status(self, shared_client):
        async def seed():
            repo = users_repository(MongoService(client_factory=lambda uri, **kwargs: shared_client))
            await repo.create(User(clerk_id="user_1", email="ada@example.com"))
            await repo.create(
                User(clerk_id="user_2", email="grace@example.com", status=UserStatus.INACTIVE)
            )

        asyncio.run(seed())
        result = CliRunner().invoke(cli, ["db", "status"])

        assert result.exit_code == 0, result.output
        assert "users (active): 1" in result.output
        assert "users (inactive): 1" in result.output
        assert "activity log entries: 0" in result.output


class TestWebhookSign:
    def test_sign_prints_verifiable_headers(self, tmp_path):
        payload = event_body("user.created", user_payload())
        path = tmp_path / "event.json"
        path.write_bytes(payload)

        result = CliRunner().invoke(
            cli, ["webhook", "sign", str(path), "--secret", TEST_WEBHOOK_SECRET, "--msg-id", "msg_1"]
        )

        assert result.exit_code == 0, result.output
        headers = dict(line.split(": ", 1) for line in result.output.strip().splitlines())
        assert headers["svix-id"] == "msg_1"
        WebhookVerifier(secret=TEST_WEBHOOK_SECRET).verify(payload, headers)

    def test_sign_without_secret_fails(self, tmp_path, monkeypatch):
        from accountsync.settings import settings

        monkeypatch.setattr(settings.clerk, "webhook_secret", "")
        path = tmp_path / "event.json"
        path.write_bytes(b"{}")

        result = CliRunner().invoke(cli, ["webhook", "sign", str(path)])

        assert result.exit_code != 0
