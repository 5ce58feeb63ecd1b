"""CLI commands via click's CliRunner."""

import json

import pytest
from click.testing import CliRunner

from ws402.cli import main as cli_main
from ws402.errors import NegotiationError
from ws402.models.schema import SessionDescriptor
from ws402.transport.websocket import CloseInfo

KEY = "0x" + "4c" * 32
DESCRIPTOR = SessionDescriptor(endpoint_url="wss://x402.test/ws?t=abc123", token="abc123", stream_id="mempool-sniff")


class FakeClient:
    instances = []
    outcome = None

    def __init__(self, config):
        self.config = config
        self.closed = False
        FakeClient.instances.append(self)

    async def negotiate(self):
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return DESCRIPTOR

    async def run(self):
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome or CloseInfo(code=1000, reason="bye")

    async def close(self):
        self.closed = True

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def env_file(tmp_path):
    path = tmp_path / ".env"
    path.write_text(f"PAYER_PRIVATE_KEY={KEY}\nWATCH_ACCOUNTS=A1,A2\n")
    return str(path)


@pytest.fixture
def fake_client(monkeypatch):
    FakeClient.instances = []
    FakeClient.outcome = None
    monkeypatch.setattr("ws402.cli.stream.AsyncStreamClient", FakeClient)
    monkeypatch.setattr("ws402.cli.schema.AsyncStreamClient", FakeClient)
    monkeypatch.setattr(cli_main, "_configure_logging", lambda level: None)
    return FakeClient


def test_config_redacts_key(runner, env_file):
    result = runner.invoke(cli_main.main, ["config", "--env-file", env_file, "--set", "RENEW_METHOD=inband"],
                           env={"PAYER_PRIVATE_KEY": None})
    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["renew_method"] == "inband"
    assert data["watchlist"]["accounts"] == ["A1", "A2"]
    assert KEY not in result.output


def test_missing_key_exits_1(runner, tmp_path):
    result = runner.invoke(cli_main.main, ["config", "--env-file", str(tmp_path / "none.env")],
                           env={"PAYER_PRIVATE_KEY": None})
    assert result.exit_code == 1
    assert "PAYER_PRIVATE_KEY" in result.output


def test_bad_override(runner, env_file):
    result = runner.invoke(cli_main.main, ["config", "--env-file", env_file, "--set", "NOVALUE"])
    assert result.exit_code == 2


def test_schema_json(runner, env_file, fake_client):
    result = runner.invoke(cli_main.main, ["schema", "--env-file", env_file, "--json"], env={"PAYER_PRIVATE_KEY": None})
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["token"] == "abc123"
    assert fake_client.instances[0].closed


def test_stream_flags_reach_config(runner, env_file, fake_client):
    result = runner.invoke(
        cli_main.main,
        ["stream", "--env-file", env_file, "--renew-method", "inband", "--summary"],
        env={"PAYER_PRIVATE_KEY": None},
    )
    assert result.exit_code == 0, result.output
    cfg = fake_client.instances[0].config
    assert cfg.renew_method == "inband"
    assert cfg.tx_log_mode == "summary"
    assert fake_client.instances[0].closed


def test_stream_negotiation_failure_exits_1(runner, env_file, fake_client):
    fake_client.outcome = NegotiationError("x402 schema missing token")
    result = runner.invoke(cli_main.main, ["stream", "--env-file", env_file], env={"PAYER_PRIVATE_KEY": None})
    assert result.exit_code == 1
    assert "missing token" in result.output


def test_stream_connection_error_exits_1(runner, env_file, fake_client):
    fake_client.outcome = CloseInfo(code=1006, error="connection reset")
    result = runner.invoke(cli_main.main, ["stream", "--env-file", env_file], env={"PAYER_PRIVATE_KEY": None})
    assert result.exit_code == 1
    assert "connection reset" in result.output


def test_unknown_setting_exits_1(runner, env_file):
    result = runner.invoke(cli_main.main, ["config", "--env-file", env_file, "--set", "RENEW_METHD=inband"],
                           env={"PAYER_PRIVATE_KEY": None})
    assert result.exit_code == 1
    assert "Unknown setting" in result.output
