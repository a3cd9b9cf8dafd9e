"""Tests for SystemCmd: subprocess is mocked except for the decoding check."""

import dataclasses
import logging
import sys
from unittest.mock import MagicMock, patch

import pytest

from terrarunner.core.system_cmd import CommandResult, SystemCmd
from terrarunner.security.redactor import OutputRedactor


def _make_mock_popen(stdout_lines, stderr_lines=None, returncode=0):
    """Create a mock Popen that yields the given lines."""
    mock_proc = MagicMock()
    mock_proc.stdout = iter([line + "\n" for line in stdout_lines])
    mock_proc.stderr = iter([line + "\n" for line in (stderr_lines or [])])
    mock_proc.returncode = returncode
    mock_proc.wait = MagicMock(return_value=returncode)
    return mock_proc


class TestExecute:
    def test_captures_output(self, tmp_path):
        mock_proc = _make_mock_popen(["line1", "line2"], ["warn1"])
        with patch("subprocess.Popen", return_value=mock_proc):
            result = SystemCmd().execute(["terraform", "init"], str(tmp_path))
        assert result.success is True
        assert result.exit_code == 0
        assert result.stdout == "line1\nline2"
        assert result.stderr == "warn1"
        assert result.command == "terraform init"

    def test_failure_exit_code(self, tmp_path):
        mock_proc = _make_mock_popen([], ["Error: something"], returncode=1)
        with patch("subprocess.Popen", return_value=mock_proc):
            result = SystemCmd().execute(["terraform", "plan"], str(tmp_path))
        assert result.success is False
        assert result.exit_code == 1
        assert result.stderr == "Error: something"

    def test_popen_arguments(self, tmp_path, monkeypatch):
        monkeypatch.setenv("HOME_MARKER", "present")
        mock_proc = _make_mock_popen([])
        with patch("subprocess.Popen", return_value=mock_proc) as popen:
            SystemCmd().execute(["terraform", "plan"], str(tmp_path), env={"TF_LOG": "INFO"})
        args, kwargs = popen.call_args
        assert args[0] == ["terraform", "plan"]
        assert kwargs["cwd"] == str(tmp_path)
        assert kwargs["shell"] is False
        assert kwargs["env"]["TF_LOG"] == "INFO"
        assert kwargs["env"]["HOME_MARKER"] == "present"

    def test_decodes_utf8_with_replacement(self, tmp_path):
        mock_proc = _make_mock_popen([])
        with patch("subprocess.Popen", return_value=mock_proc) as popen:
            SystemCmd().execute(["terraform", "plan"], str(tmp_path))
        _, kwargs = popen.call_args
        assert kwargs["encoding"] == "utf-8"
        assert kwargs["errors"] == "replace"

    def test_invalid_utf8_output_is_replaced(self, tmp_path):
        script = "import sys; sys.stdout.buffer.write(b'ok \\xff\\xfe\\n')"
        result = SystemCmd().execute([sys.executable, "-c", script], str(tmp_path))
        assert result.success is True
        assert result.stdout.startswith("ok ")
        assert "\ufffd" in result.stdout

    def test_read_failure_kills_process(self, tmp_path):
        def _broken_stdout():
            yield "first\n"
            raise RuntimeError("pipe broke")

        mock_proc = _make_mock_popen([])
        mock_proc.stdout = _broken_stdout()
        with patch("subprocess.Popen", return_value=mock_proc):
            with pytest.raises(RuntimeError):
                SystemCmd().execute(["terraform", "plan"], str(tmp_path))
        mock_proc.kill.assert_called_once()
        mock_proc.wait.assert_called()

    def test_missing_binary_returns_failure(self, tmp_path):
        with patch("subprocess.Popen", side_effect=FileNotFoundError("No such file: 'terraform'")):
            result = SystemCmd().execute(["terraform", "init"], str(tmp_path))
        assert result.success is False
        assert result.exit_code == -1
        assert "No such file" in result.stderr

    def test_logs_output_when_enabled(self, tmp_path, caplog):
        mock_proc = _make_mock_popen(["Plan: 1 to add"], ["Warning: deprecated"])
        with caplog.at_level(logging.INFO, logger="terrarunner.core.system_cmd"):
            with patch("subprocess.Popen", return_value=mock_proc):
                SystemCmd().execute(["terraform", "plan"], str(tmp_path), log_output=True)
        assert "Plan: 1 to add" in caplog.text
        assert "Warning: deprecated" in caplog.text

    def test_no_output_logging_when_disabled(self, tmp_path, caplog):
        mock_proc = _make_mock_popen(["Plan: 1 to add"], ["Warning: deprecated"])
        with caplog.at_level(logging.INFO, logger="terrarunner.core.system_cmd"):
            with patch("subprocess.Popen", return_value=mock_proc):
                result = SystemCmd().execute(["terraform", "plan"], str(tmp_path), log_output=False)
        assert "Plan: 1 to add" not in caplog.text
        assert "Warning: deprecated" not in caplog.text
        assert result.stdout == "Plan: 1 to add"

    def test_redacts_sensitive_values(self, tmp_path, caplog):
        system_cmd = SystemCmd(OutputRedactor(["SUPERSECRET"]))
        mock_proc = _make_mock_popen(["token is SUPERSECRET here"], ["bad SUPERSECRET"])
        with caplog.at_level(logging.INFO, logger="terrarunner.core.system_cmd"):
            with patch("subprocess.Popen", return_value=mock_proc):
                result = system_cmd.execute(["terraform", "plan"], str(tmp_path))
        assert "SUPERSECRET" not in result.stdout
        assert "SUPERSECRET" not in result.stderr
        assert "[REDACTED]" in result.stdout
        assert "SUPERSECRET" not in caplog.text

    def test_set_redactor(self):
        system_cmd = SystemCmd()
        redactor = OutputRedactor(["x"])
        system_cmd.set_redactor(redactor)
        assert system_cmd.redactor is redactor


class TestCommandResult:
    def test_is_immutable(self):
        result = CommandResult(success=True, stdout="", stderr="")
        with pytest.raises(dataclasses.FrozenInstanceError):
            result.success = False
