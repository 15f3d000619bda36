"""
Unit tests for the fairdeploy command line.

Test Coverage:
- No-argument invocation runs a deployment
- Exit codes for success, validation failure and missing IP
- deploy options
- status and teardown subcommands
"""

from unittest.mock import patch

import pytest
from click.testing import CliRunner

from fairdeploy.cli import main
from fairdeploy.exceptions import ProviderCallError

VALID_ENV = {"FAIRDEPLOY_ADMIN_PASSWORD": "ValidPassword123"}


@pytest.fixture
def runner():
    # Wide console so rich does not wrap long lines
    return CliRunner(env={"COLUMNS": "200"})


@pytest.fixture
def patched_client(stub_client):
    """Make the CLI use the stub client instead of az."""
    with patch("fairdeploy.cli.AzureCLIClient", return_value=stub_client):
        yield stub_client


# ============================================================================
# DEPLOY TESTS
# ============================================================================


class TestDeploy:
    """Test deployment through the CLI."""

    def test_no_arguments_deploys(self, runner, patched_client):
        result = runner.invoke(main, [], env=VALID_ENV)

        assert result.exit_code == 0, result.output
        assert len(patched_client.calls_to("create_nsg_rule")) == 5
        assert "Deployment script finished." in result.output

    def test_progress_lines_not_duplicated(self, runner, patched_client):
        result = runner.invoke(main, [], env=VALID_ENV)

        assert result.exit_code == 0, result.output
        assert result.output.count("Creating resource group...") == 1
        assert result.output.count("Opening port 8080") == 1

    def test_markup_like_username_exits_1_without_traceback(self, runner, patched_client):
        env = {**VALID_ENV, "FAIRDEPLOY_ADMIN_USERNAME": "[/x]"}

        result = runner.invoke(main, [], env=env)

        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "Invalid admin username" in result.output
        assert patched_client.calls == []

    def test_deploy_subcommand(self, runner, patched_client):
        result = runner.invoke(main, ["deploy"], env=VALID_ENV)

        assert result.exit_code == 0, result.output
        assert len(patched_client.calls_to("create_vm")) == 1

    def test_weak_password_exits_1_without_calls(self, runner, patched_client):
        result = runner.invoke(main, [], env={"FAIRDEPLOY_ADMIN_PASSWORD": "short"})

        assert result.exit_code == 1
        assert patched_client.calls == []

    def test_require_special_char_option(self, runner, patched_client):
        result = runner.invoke(main, ["deploy", "--require-special-char"], env=VALID_ENV)

        assert result.exit_code == 1
        assert "special character" in result.output
        assert patched_client.calls == []

    def test_missing_ip_exits_1_with_cleanup_command(self, runner, patched_client):
        patched_client.public_ip = ""

        result = runner.invoke(main, [], env=VALID_ENV)

        assert result.exit_code == 1
        (rg, _location) = patched_client.calls_to("create_resource_group")[0]
        assert f"az group delete --name {rg} --yes --no-wait" in result.output

    def test_provider_failure_propagates_status(self, runner, patched_client):
        patched_client.fail_on["create_resource_group"] = ProviderCallError(
            "denied", returncode=2, stderr="AuthorizationFailed"
        )

        result = runner.invoke(main, [], env=VALID_ENV)

        assert result.exit_code == 2

    def test_auto_teardown_option(self, runner, patched_client):
        patched_client.public_ip = ""

        result = runner.invoke(main, ["deploy", "--auto-teardown"], env=VALID_ENV)

        assert result.exit_code == 1
        assert len(patched_client.calls_to("delete_resource_group")) == 1

    def test_config_file(self, runner, patched_client, tmp_path):
        path = tmp_path / "demo.toml"
        path.write_text('[deployment]\nregion = "westus2"\n')

        result = runner.invoke(main, ["deploy", "--config", str(path)], env=VALID_ENV)

        assert result.exit_code == 0, result.output
        assert patched_client.calls_to("create_resource_group")[0][1] == "westus2"

    def test_bad_config_file(self, runner, patched_client, tmp_path):
        result = runner.invoke(
            main, ["deploy", "--config", str(tmp_path / "missing.toml")], env=VALID_ENV
        )

        assert result.exit_code == 1
        assert "Config file not found" in result.output
        assert patched_client.calls == []

    def test_help(self, runner):
        result = runner.invoke(main, ["--help"])

        assert result.exit_code == 0
        assert "deploy" in result.output
        assert "status" in result.output
        assert "teardown" in result.output


# ============================================================================
# STATUS AND TEARDOWN TESTS
# ============================================================================


class TestStatus:
    """Test the status subcommand."""

    def test_shows_state(self, runner, patched_client):
        result = runner.invoke(main, ["status", "rg", "vm"])

        assert result.exit_code == 0
        assert "VM running" in result.output
        assert "ssh fairscape@203.0.113.5" in result.output

    def test_no_ip_yet(self, runner, patched_client):
        patched_client.vm_data = {"powerState": "VM starting"}

        result = runner.invoke(main, ["status", "rg", "vm"])

        assert result.exit_code == 0
        assert "No public IP yet" in result.output

    def test_query_failure(self, runner, patched_client):
        patched_client.fail_on["show_vm"] = ProviderCallError("not found", returncode=3)

        result = runner.invoke(main, ["status", "rg", "vm"])

        assert result.exit_code == 3


class TestTeardown:
    """Test the teardown subcommand."""

    def test_with_yes(self, runner, patched_client):
        result = runner.invoke(main, ["teardown", "rg", "--yes"])

        assert result.exit_code == 0
        assert patched_client.calls_to("delete_resource_group") == [("rg",)]

    def test_confirmation_declined(self, runner, patched_client):
        result = runner.invoke(main, ["teardown", "rg"], input="n\n")

        assert result.exit_code == 0
        assert "Cancelled." in result.output
        assert patched_client.calls == []

    def test_confirmation_accepted(self, runner, patched_client):
        result = runner.invoke(main, ["teardown", "rg"], input="y\n")

        assert result.exit_code == 0
        assert patched_client.calls_to("delete_resource_group") == [("rg",)]

    def test_failure(self, runner, patched_client):
        patched_client.fail_on["delete_resource_group"] = ProviderCallError("x", returncode=5)

        result = runner.invoke(main, ["teardown", "rg", "--yes"])

        assert result.exit_code == 5
