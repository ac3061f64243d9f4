"""
Tests for the Typer CLI output modes.
"""

import json

import pytest
from typer.testing import CliRunner

from cli import main as cli_main
from core.domain.models import Network

runner = CliRunner()


@pytest.fixture
def fake_networks(monkeypatch):
    found = [Network(id="netA1", name="Branch A1", organization_id="A")]
    monkeypatch.setattr(cli_main, "_run", lambda operation: found)
    return found


class TestNetworksCommand:
    """Test `networks` output selection."""

    def test_defaults_to_plain_output(self, fake_networks):
        result = runner.invoke(cli_main.app, ["networks"])

        assert result.exit_code == 0
        assert "A  netA1  Branch A1" in result.output
        assert "organizationId" not in result.output

    def test_json_flag_prints_camel_case(self, fake_networks):
        result = runner.invoke(cli_main.app, ["networks", "--json"])

        assert result.exit_code == 0
        assert json.loads(result.output) == [
            {"id": "netA1", "name": "Branch A1", "organizationId": "A", "productTypes": []}
        ]
