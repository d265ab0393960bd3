from __future__ import annotations

from study_tool.core import workspace as workspace_mod
from study_tool.workspace import cli


def test_study_init_uses_env_home(tmp_path, capsys, monkeypatch):
    target = tmp_path / "from-env"
    monkeypatch.setenv("STUDY_TOOL_DATA_HOME", str(target))

    code = cli.main([])

    out = capsys.readouterr().out
    assert code == 0
    assert "Workspace ready" in out
    assert "(created)" in out
    for name in ("config", "logs", "state"):
        assert (target / name).is_dir()


def test_study_init_reports_existing_dirs(tmp_path, capsys):
    target = tmp_path / "custom"
    cli.main(["--path", str(target)])
    capsys.readouterr()

    code = cli.main(["--path", str(target)])

    out = capsys.readouterr().out
    assert code == 0
    assert "(created)" not in out
    assert str(target.resolve()) in out
    assert "study quiz config init" in out


def test_study_init_quiet_mode(tmp_path, capsys):
    code = cli.main(["--quiet", "--path", str(tmp_path / "quiet")])

    assert code == 0
    assert capsys.readouterr().out == ""


def test_study_init_reports_errors(tmp_path, capsys, monkeypatch):
    def fail(**kwargs):
        raise workspace_mod.WorkspaceError("cannot create workspace")

    monkeypatch.setattr(workspace_mod, "ensure_workspace", fail)

    code = cli.main(["--path", str(tmp_path)])

    assert code == 1
    assert "cannot create workspace" in capsys.readouterr().err
