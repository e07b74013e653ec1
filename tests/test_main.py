"""Tests for the main entry point."""

import json
import logging
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests

from traefik_cf_sync import cli


@pytest.fixture
def configured(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Point the module settings at a temporary config with one instance."""
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        """
defaults:
  type: A
instances:
  - name: core
    url: http://traefik:8080
    ignored_rules: [internal]
"""
    )
    records_file = tmp_path / "records.yaml"
    records_file.write_text("- name: known.example.com\n")

    monkeypatch.setattr(cli, "TRAEFIK_CONFIG_PATH", str(config_file))
    monkeypatch.setattr(cli, "TRAEFIK_INSTANCES", "")
    monkeypatch.setattr(cli, "TRAEFIK_URL", "")
    monkeypatch.setattr(cli, "CURRENT_IP", "203.0.113.5")
    monkeypatch.setattr(cli, "ZONE_NAME", "")
    monkeypatch.setattr(cli, "DNS_RECORD_TYPE", "A")
    monkeypatch.setattr(cli, "DNS_PROXIED", "false")
    monkeypatch.setattr(cli, "DNS_TTL", "1")
    monkeypatch.setattr(cli, "EXISTING_RECORDS_PATH", str(records_file))
    return tmp_path


def routers_response(routers: list, status_code: int = 200) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = routers
    return response


def test_main_prints_new_records(configured: Path, capsys: pytest.CaptureFixture) -> None:
    routers = [
        {"name": "app@docker", "rule": "Host(`app.example.com`)"},
        {"name": "known@docker", "rule": "Host(`known.example.com`)"},
        {"name": "tool@docker", "rule": "Host(`internal-tool.example.com`)"},
        {"name": "api@docker", "rule": "PathPrefix(`/api`)"},
    ]

    with patch("requests.Session.get", return_value=routers_response(routers)):
        cli.main()

    output = json.loads(capsys.readouterr().out)
    assert output == [
        {
            "name": "app.example.com",
            "type": "A",
            "content": "203.0.113.5",
            "proxied": False,
            "ttl": 1,
        }
    ]


def test_main_looks_up_ip_when_unset(
    configured: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture
) -> None:
    monkeypatch.setattr(cli, "CURRENT_IP", "")
    routers = [{"name": "app@docker", "rule": "Host(`app.example.com`)"}]

    with patch("requests.Session.get", return_value=routers_response(routers)):
        with patch.object(cli, "lookup_current_ip", return_value="198.51.100.9") as mock_lookup:
            cli.main()

    mock_lookup.assert_called_once()
    output = json.loads(capsys.readouterr().out)
    assert output[0]["content"] == "198.51.100.9"


def test_main_exits_on_fetch_error(configured: Path) -> None:
    with patch("requests.Session.get", side_effect=requests.exceptions.ConnectionError("refused")):
        with pytest.raises(SystemExit) as exc_info:
            cli.main()

    assert exc_info.value.code == 1


def test_main_exits_on_bad_status(configured: Path) -> None:
    with patch("requests.Session.get", return_value=routers_response([], status_code=503)):
        with pytest.raises(SystemExit) as exc_info:
            cli.main()

    assert exc_info.value.code == 1


def test_main_exits_without_instances(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "TRAEFIK_CONFIG_PATH", "/nonexistent/path.yaml")
    monkeypatch.setattr(cli, "TRAEFIK_INSTANCES", "")
    monkeypatch.setattr(cli, "TRAEFIK_URL", "")

    with pytest.raises(SystemExit) as exc_info:
        cli.main()

    assert exc_info.value.code == 1


def test_main_logs_router_source(configured: Path, caplog: pytest.LogCaptureFixture) -> None:
    with patch("requests.Session.get", return_value=routers_response([])):
        with caplog.at_level(logging.INFO, logger="traefik_cf_sync.cli"):
            cli.main()

    assert "Router source: Traefik" in [r.getMessage() for r in caplog.records]
