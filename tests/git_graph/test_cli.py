import pytest

from git_graph.__main__ import build_settings, main, parse_args

from tests.git_graph.fakes import make_repo


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("GIT_GRAPH_GIT_PATH", "GIT_GRAPH_MAX_DEPTH"):
        monkeypatch.delenv(var, raising=False)


def test_build_settings_overrides_environment(monkeypatch):
    monkeypatch.setenv("GIT_GRAPH_MAX_DEPTH", "4")

    settings = build_settings(parse_args(["--max-depth", "1", "--git-path", "/opt/git/bin/git"]))

    assert settings.max_depth_of_repo_search == 1
    assert settings.git_path == "/opt/git/bin/git"


def test_build_settings_keeps_environment(monkeypatch):
    monkeypatch.setenv("GIT_GRAPH_MAX_DEPTH", "4")
    assert build_settings(parse_args([])).max_depth_of_repo_search == 4


def test_main_lists_repositories(tmp_path, capsys):
    make_repo(tmp_path / "alpha")
    make_repo(tmp_path / "group" / "beta")

    code = main(["--workspace", str(tmp_path), "--max-depth", "1"])

    out = capsys.readouterr().out
    repo_lines = [line for line in out.splitlines() if line.startswith("repo: ")]
    assert code == 0
    assert any(line.startswith("git: ") for line in out.splitlines())
    assert repo_lines == [f"repo: {tmp_path / 'alpha'}"]
