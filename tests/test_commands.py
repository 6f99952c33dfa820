"""Tests for the CommandRunner."""

import subprocess
from unittest.mock import patch

from etd_ingest.transformers import CommandResult, CommandRunner


class TestCommandRunner:
    """Tests for running external tools."""

    @patch("etd_ingest.transformers.commands.subprocess.run")
    def test_success(self, mock_run, tmp_path):
        mock_run.return_value = subprocess.CompletedProcess(
            args=["fop"], returncode=0, stdout="done", stderr=""
        )

        result = CommandRunner(timeout=60).run(["fop", tmp_path / "a.xml"], cwd=tmp_path)

        assert result.ok
        assert result.stdout == "done"
        assert result.args == ["fop", str(tmp_path / "a.xml")]
        assert mock_run.call_args.kwargs["timeout"] == 60
        assert mock_run.call_args.kwargs["cwd"] == tmp_path

    @patch("etd_ingest.transformers.commands.subprocess.run")
    def test_nonzero_exit(self, mock_run):
        mock_run.return_value = subprocess.CompletedProcess(
            args=["pdftotext"], returncode=1, stdout="", stderr="Syntax Error"
        )

        result = CommandRunner().run(["pdftotext", "a.pdf", "a.txt"])

        assert not result.ok
        assert result.stderr == "Syntax Error"

    @patch("etd_ingest.transformers.commands.subprocess.run")
    def test_missing_executable(self, mock_run):
        mock_run.side_effect = FileNotFoundError("No such file or directory: 'fop'")

        result = CommandRunner().run(["fop"])

        assert result.returncode == 127
        assert not result.ok

    @patch("etd_ingest.transformers.commands.subprocess.run")
    def test_timeout(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="fop", timeout=5)

        result = CommandRunner(timeout=5).run(["fop"])

        assert result.returncode == -1
        assert "timed out" in result.stderr

    def test_result_ok(self):
        assert CommandResult(args=["true"], returncode=0).ok
        assert not CommandResult(args=["false"], returncode=1).ok
