"""
Tests for CLI commands: the executor or its subprocess is mocked, no real Terraform needed.
"""

import json
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from terrarunner import __version__
from terrarunner.cli import cli
from terrarunner.core import CommandResult, TerraformExecutorError


@pytest.fixture
def workspace(tmp_path):
    ws = tmp_path / "ws"
    ws.mkdir()
    (ws / "variables.tf").write_text(
        'variable "region" {\n  type = string\n}\n'
        'variable "db_password" {\n  type = string\n  sensitive = true\n}\n'
    )
    return ws


@pytest.fixture
def config_file(tmp_path):
    return str(tmp_path / "settings.json")


@pytest.fixture
def executor():
    mock_executor = MagicMock()
    ok = CommandResult(success=True, stdout="No changes.", stderr="")
    mock_executor.plan.return_value = ok
    mock_executor.apply.return_value = ok
    mock_executor.destroy.return_value = ok
    mock_executor.validate.return_value = CommandResult(success=True, stdout='{"valid": true}', stderr="")
    mock_executor.plan_as_json.return_value = '{"format_version": "1.2"}'
    with patch("terrarunner.cli.TerraformExecutor") as executor_cls, \
            patch("terrarunner.cli.setup_logging"):
        executor_cls.from_settings.return_value = mock_executor
        yield mock_executor


def _invoke(config_file, *args):
    return CliRunner().invoke(cli, ["--config", config_file, *args])


class TestCLIGlobal:
    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "plan-json" in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestLifecycleCommands:
    def test_init(self, executor, workspace, config_file):
        result = _invoke(config_file, "init", "-w", str(workspace), "--executor", "/usr/bin/terraform")
        assert result.exit_code == 0
        executor.init.assert_called_once_with("/usr/bin/terraform", str(workspace))

    def test_plan_collects_variables(self, executor, workspace, config_file, tmp_path):
        var_file = tmp_path / "prod.tfvars.json"
        var_file.write_text(json.dumps({"region": "us-east-1", "tags": {"env": "prod"}}))

        result = _invoke(
            config_file, "plan", "-w", str(workspace),
            "--var-file", str(var_file),
            "--var", "region=eu-west-1",
            "--var", "replicas=3",
            "--env", "AWS_PROFILE=prod",
        )

        assert result.exit_code == 0, result.output
        assert "No changes." in result.output
        executor.plan.assert_called_once_with(
            "terraform",
            {"region": "eu-west-1", "tags": {"env": "prod"}, "replicas": 3},
            {"AWS_PROFILE": "prod"},
            str(workspace),
        )

    def test_apply(self, executor, workspace, config_file):
        result = _invoke(config_file, "apply", "-w", str(workspace), "--var", "region=x")
        assert result.exit_code == 0
        executor.apply.assert_called_once()

    def test_destroy(self, executor, workspace, config_file):
        result = _invoke(config_file, "destroy", "-w", str(workspace))
        assert result.exit_code == 0
        executor.destroy.assert_called_once_with("terraform", {}, {}, str(workspace))

    def test_plan_json(self, executor, workspace, config_file):
        result = _invoke(config_file, "plan-json", "-w", str(workspace))
        assert result.exit_code == 0
        assert '{"format_version": "1.2"}' in result.output

    def test_sensitive_values_registered_for_redaction(self, executor, workspace, config_file):
        result = _invoke(
            config_file, "plan", "-w", str(workspace),
            "--var", "region=x", "--var", "db_password=hunter2",
        )
        assert result.exit_code == 0
        redactor = executor.system_cmd.set_redactor.call_args[0][0]
        assert redactor.redact("pw=hunter2") == "pw=[REDACTED]"

    def test_plan_json_keeps_numbers_matching_sensitive_value(self, workspace, config_file):
        plan_doc = {
            "format_version": "1.2",
            "planned_values": {"root_module": {"resources": [{"values": {"count": 10}}]}},
        }

        def _popen(cmd, **kwargs):
            proc = MagicMock()
            stdout = [json.dumps(plan_doc) + "\n"] if cmd[1] == "show" else []
            proc.stdout = iter(stdout)
            proc.stderr = iter([])
            proc.wait.return_value = 0
            return proc

        with patch("terrarunner.cli.setup_logging"), \
                patch("subprocess.Popen", side_effect=_popen):
            result = _invoke(
                config_file, "plan-json", "-w", str(workspace),
                "--var", "region=x", "--var", "db_password=10",
            )

        assert result.exit_code == 0, result.output
        last_line = result.output.strip().splitlines()[-1]
        assert json.loads(last_line) == plan_doc

    def test_executor_error_exits_nonzero(self, executor, workspace, config_file):
        executor.apply.side_effect = TerraformExecutorError(
            "apply", "Terraform apply failed.", "Error: quota exceeded"
        )
        result = _invoke(config_file, "apply", "-w", str(workspace))
        assert result.exit_code == 1
        assert "Terraform apply failed." in result.output
        assert "quota exceeded" in result.output

    def test_bad_var_syntax(self, executor, workspace, config_file):
        result = _invoke(config_file, "plan", "-w", str(workspace), "--var", "novalue")
        assert result.exit_code == 2
        executor.plan.assert_not_called()

    def test_bad_var_name(self, executor, workspace, config_file):
        result = _invoke(config_file, "plan", "-w", str(workspace), "--var", "bad name=1")
        assert result.exit_code == 2


class TestValidateCommand:
    def test_valid(self, executor, workspace, config_file):
        result = _invoke(config_file, "validate", "-w", str(workspace))
        assert result.exit_code == 0
        assert '{"valid": true}' in result.output

    def test_invalid_exits_one(self, executor, workspace, config_file):
        executor.validate.return_value = CommandResult(
            success=False, stdout='{"valid": false}', stderr="", exit_code=1
        )
        result = _invoke(config_file, "validate", "-w", str(workspace))
        assert result.exit_code == 1
        assert '{"valid": false}' in result.output


class TestVariablesCommand:
    def test_lists_variables(self, workspace, config_file):
        with patch("terrarunner.cli.setup_logging"):
            result = _invoke(config_file, "variables", "-w", str(workspace))
        assert result.exit_code == 0
        assert "region" in result.output
        assert "sensitive" in result.output

    def test_json_output(self, workspace, config_file):
        with patch("terrarunner.cli.setup_logging"):
            result = _invoke(config_file, "variables", "-w", str(workspace), "--json")
        assert result.exit_code == 0
        data = {item["name"]: item for item in json.loads(result.output)}
        assert data["db_password"]["sensitive"] is True
        assert data["region"]["required"] is True


class TestCheckCommand:
    def test_terraform_missing(self, workspace, config_file):
        with patch("terrarunner.cli.setup_logging"), \
                patch("terrarunner.cli.validate_terraform_installed", return_value=(False, None)):
            result = _invoke(config_file, "check", "-w", str(workspace))
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_terraform_present(self, workspace, config_file):
        with patch("terrarunner.cli.setup_logging"), \
                patch("terrarunner.cli.validate_terraform_installed",
                      return_value=(True, "Terraform v1.7.5")) as check:
            result = _invoke(config_file, "--binary", "/opt/tf", "check", "-w", str(workspace))
        assert result.exit_code == 0
        assert "Terraform v1.7.5" in result.output
        check.assert_called_once_with("/opt/tf")
