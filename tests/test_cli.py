from unittest.mock import Mock

from conftest import ENV, FakeCredentials
from sheetscribe import cli


def make_workflow():
    wf = Mock()
    wf.credentials = FakeCredentials()
    wf.list_files.return_value = 2
    wf.start_transcriptions.return_value = 1
    wf.summarize.return_value = 5
    return wf


def test_list_command(capsys):
    wf = make_workflow()
    assert cli.main(["list", "bucket/calls"], workflow=wf) == 0
    wf.list_files.assert_called_once_with("bucket/calls")
    assert "list: 2 cell(s) written" in capsys.readouterr().out


def test_task_commands():
    wf = make_workflow()
    assert cli.main(["submit"], workflow=wf) == 0
    assert cli.main(["summarize"], workflow=wf) == 0
    wf.start_transcriptions.assert_called_once_with()
    wf.summarize.assert_called_once_with()


def test_reset_token():
    wf = make_workflow()
    assert cli.main(["reset-token"], workflow=wf) == 0
    assert wf.credentials.reset_calls == 1


def test_failed_step_exit_status():
    wf = make_workflow()
    wf.fetch_transcriptions.side_effect = RuntimeError("boom")
    assert cli.main(["poll"], workflow=wf) == 1


def test_missing_configuration(monkeypatch, tmp_path, capsys):
    monkeypatch.chdir(tmp_path)
    for name in ("SHEETSCRIBE_PRIVATE_KEY", "SHEETSCRIBE_CLIENT_EMAIL", "SHEETSCRIBE_PROJECT_ID", "OPENAI_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    assert cli.main(["--env-file", str(tmp_path / "missing.env"), "poll"]) == 2
    assert "Missing required configuration" in capsys.readouterr().err


def test_unreadable_key_exits_with_config_error(monkeypatch, tmp_path, capsys):
    monkeypatch.chdir(tmp_path)
    for name, value in ENV.items():
        monkeypatch.setenv(name, value)
    monkeypatch.setenv("SHEETSCRIBE_SPREADSHEET_ID", "sheet-id")
    assert cli.main(["--env-file", str(tmp_path / "missing.env"), "poll"]) == 2
    assert "Invalid SHEETSCRIBE_PRIVATE_KEY" in capsys.readouterr().err
