from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

import version_files
from errors import CollaboratorFailure
from version_files import VersionFileSpec


VALUES_YAML = """\
# Chart values
app:
  name: hello  # the service name
  tag: v0.1.0
replicas: 2
"""


class TestParseFileSpecs:
    def test_skip_sentinel(self):
        assert version_files.parse_file_specs("skip") == ()

    def test_empty(self):
        assert version_files.parse_file_specs("  ") == ()

    def test_entries(self):
        specs = version_files.parse_file_specs('[{"file": "chart/values.yaml", "property": "app.tag"}]')
        assert specs == (VersionFileSpec(file="chart/values.yaml", property="app.tag"),)
        assert specs[0].keys == ["app", "tag"]

    def test_rejects_non_list(self):
        with pytest.raises(ValueError, match="JSON array"):
            version_files.parse_file_specs('{"file": "a.yaml"}')

    def test_rejects_missing_property(self):
        with pytest.raises(ValueError, match="missing 'property'"):
            version_files.parse_file_specs('[{"file": "a.yaml"}]')

    def test_rejects_invalid_json(self):
        with pytest.raises(ValueError):
            version_files.parse_file_specs("[{")


class TestFileVersion:
    def test_keep_full_tag(self):
        assert version_files.file_version("api-v1.4.0", "api-", keep_tag=True, strip_component_prefix=False) == "api-v1.4.0"

    def test_keep_tag_without_prefix(self):
        assert version_files.file_version("api-v1.4.0", "api-", keep_tag=True, strip_component_prefix=True) == "v1.4.0"

    def test_bare_number(self):
        assert version_files.file_version("api-v1.4.0", "api-", keep_tag=False, strip_component_prefix=False) == "1.4.0"

    def test_bare_pre_release(self):
        assert version_files.file_version("v0.24-rc.0", "", keep_tag=False, strip_component_prefix=False) == "0.24-rc.0"


def test_updates_property_and_preserves_comments(tmp_path: Path):
    values = tmp_path / "values.yaml"
    values.write_text(VALUES_YAML, encoding="utf-8")

    updated = version_files.update_version_in_files(
        [VersionFileSpec("values.yaml", "app.tag")], "v0.2.0", root=tmp_path
    )

    text = values.read_text(encoding="utf-8")
    assert updated == ["values.yaml"]
    assert "tag: v0.2.0" in text
    assert "# Chart values" in text
    assert "# the service name" in text
    assert "replicas: 2" in text


def test_numeric_looking_version_is_written_as_string(tmp_path: Path):
    values = tmp_path / "Chart.yaml"
    values.write_text("appVersion: '0.1'\n", encoding="utf-8")

    version_files.update_version_in_files([VersionFileSpec("Chart.yaml", "appVersion")], "0.2", root=tmp_path)

    assert "appVersion: '0.2'" in values.read_text(encoding="utf-8")


def test_creates_missing_intermediate_keys(tmp_path: Path):
    values = tmp_path / "values.yml"
    values.write_text("replicas: 1\n", encoding="utf-8")

    version_files.update_version_in_files([VersionFileSpec("values.yml", "image.tag")], "v1.0.0", root=tmp_path)

    assert "image:\n  tag: v1.0.0" in values.read_text(encoding="utf-8")


def test_two_properties_in_same_file(tmp_path: Path):
    values = tmp_path / "values.yaml"
    values.write_text(VALUES_YAML, encoding="utf-8")

    updated = version_files.update_version_in_files(
        [VersionFileSpec("values.yaml", "app.tag"), VersionFileSpec("values.yaml", "appVersion")],
        "v3.4",
        root=tmp_path,
    )

    text = values.read_text(encoding="utf-8")
    assert updated == ["values.yaml", "values.yaml"]
    assert "tag: v3.4" in text
    assert "appVersion: v3.4" in text


def test_skips_non_yaml_and_missing_files(tmp_path: Path):
    script = tmp_path / "values.js"
    script.write_text("module.exports = {}\n", encoding="utf-8")

    updated = version_files.update_version_in_files(
        [VersionFileSpec("values.js", "app.tag"), VersionFileSpec("missing.yaml", "app.tag")],
        "v1.0.0",
        root=tmp_path,
    )

    assert updated == []
    assert script.read_text(encoding="utf-8") == "module.exports = {}\n"


def test_scalar_in_property_path_fails(tmp_path: Path):
    values = tmp_path / "values.yaml"
    values.write_text("app: hello\n", encoding="utf-8")

    with pytest.raises(CollaboratorFailure, match="'app' is not a mapping"):
        version_files.update_version_in_files([VersionFileSpec("values.yaml", "app.tag")], "v1.0.0", root=tmp_path)


def test_updater_commits_only_when_files_changed(tmp_path: Path, monkeypatch):
    commands: list[list[str]] = []

    def fake_run(cmd, **kwargs):
        commands.append(cmd)
        return subprocess.CompletedProcess(cmd, 0, "", "")

    monkeypatch.setattr(version_files.subprocess, "run", fake_run)
    updater = version_files.VersionFileUpdater(tmp_path)

    updated = updater.update_and_commit(
        [VersionFileSpec("values.js", "app.tag")],
        "v1.0.0",
        branch="main",
        commit_message="bump",
        author_name="bot",
        author_email="bot@example.test",
    )

    assert updated == []
    assert commands == []


def test_updater_commit_sequence(tmp_path: Path, monkeypatch):
    (tmp_path / "values.yaml").write_text(VALUES_YAML, encoding="utf-8")
    commands: list[list[str]] = []

    def fake_run(cmd, **kwargs):
        commands.append(cmd)
        assert kwargs["cwd"] == tmp_path
        return subprocess.CompletedProcess(cmd, 0, "", "")

    monkeypatch.setattr(version_files.subprocess, "run", fake_run)

    version_files.VersionFileUpdater(tmp_path).update_and_commit(
        [VersionFileSpec("values.yaml", "app.tag")],
        "v0.2.0",
        branch="release/v0.2",
        commit_message="chore: bump to v0.2.0",
        author_name="bot",
        author_email="bot@example.test",
    )

    assert commands == [
        ["git", "checkout", "release/v0.2"],
        ["git", "add", "-A"],
        ["git", "config", "--local", "user.name", "bot"],
        ["git", "config", "--local", "user.email", "bot@example.test"],
        ["git", "commit", "--no-verify", "-m", "chore: bump to v0.2.0"],
        ["git", "push"],
    ]


def test_git_failure_is_reported(tmp_path: Path, monkeypatch):
    def fake_run(cmd, **kwargs):
        raise subprocess.CalledProcessError(1, cmd, output="", stderr="rejected: non-fast-forward")

    monkeypatch.setattr(version_files.subprocess, "run", fake_run)

    with pytest.raises(CollaboratorFailure, match="git push failed: rejected"):
        version_files.git(tmp_path, "push")


def test_unparseable_yaml_is_reported(tmp_path: Path):
    (tmp_path / "values.yaml").write_text("image: [unclosed\n", encoding="utf-8")

    with pytest.raises(CollaboratorFailure, match="updating values.yaml failed"):
        version_files.update_version_in_files([VersionFileSpec("values.yaml", "image.tag")], "v1.0.0", root=tmp_path)


def test_missing_git_binary_is_reported(tmp_path: Path, monkeypatch):
    def fake_run(cmd, **kwargs):
        raise FileNotFoundError(2, "No such file or directory", "git")

    monkeypatch.setattr(version_files.subprocess, "run", fake_run)

    with pytest.raises(CollaboratorFailure, match="git checkout could not run"):
        version_files.git(tmp_path, "checkout", "main")
