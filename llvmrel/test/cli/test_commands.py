from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from llvmrel import __version__
from llvmrel.cli.app import app
from llvmrel.core.errors import ErrorCode
from llvmrel.core.result import Err, Ok, Result
from llvmrel.release import publisher as publisher_mod
from llvmrel.release.errors import PublishError
from llvmrel.release.model import UploadOutcome
from llvmrel.tools.http import HttpError

runner = CliRunner()

_ENV_VARS = ("GIT_TOKEN", "BRANCH", "TELEGRAM_TOKEN", "TELEGRAM_CHAT", "GITHUB_ACTIONS")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_version() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert result.stdout.strip() == __version__


class _MarkerHttp:
    marker: str | None = None
    urls: list[str] = []

    def __init__(self, timeout: float = 30.0) -> None:
        del timeout

    def get_text(self, url: str) -> Result[str, HttpError]:
        self.urls.append(url)
        if self.marker is None:
            return Err(HttpError(url=url, status=404, message="Not Found"))
        return Ok(self.marker)


@pytest.mark.parametrize(
    ("marker", "expected"),
    [("2026-10-19\n", "skip"), ("2026-10-18\n", "build"), (None, "build")],
)
def test_check_date(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, marker: str | None, expected: str
) -> None:
    import llvmrel.cli.commands.check_date_cmd as check_date_cmd

    monkeypatch.setattr(_MarkerHttp, "marker", marker)
    monkeypatch.setattr(_MarkerHttp, "urls", [])
    monkeypatch.setattr(check_date_cmd, "RealHttpClient", _MarkerHttp)

    result = runner.invoke(
        app, ["check-date", "--date", "2026-10-19", "--workdir", str(tmp_path)]
    )

    assert result.exit_code == 0
    assert result.stdout.strip() == expected
    assert _MarkerHttp.urls == [
        "https://raw.githubusercontent.com/XSans0/WeebX-Clang/main/build-date.txt"
    ]


def test_check_date_reads_repo_from_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    import llvmrel.cli.commands.check_date_cmd as check_date_cmd

    (tmp_path / "llvmrel.toml").write_text('[repo]\nowner = "someone"\nname = "Clang"\n')
    monkeypatch.setattr(_MarkerHttp, "marker", None)
    monkeypatch.setattr(_MarkerHttp, "urls", [])
    monkeypatch.setattr(check_date_cmd, "RealHttpClient", _MarkerHttp)

    result = runner.invoke(app, ["check-date", "--workdir", str(tmp_path)])

    assert result.exit_code == 0
    assert _MarkerHttp.urls == [
        "https://raw.githubusercontent.com/someone/Clang/main/build-date.txt"
    ]


def test_invalid_config_exits_with_config_error(tmp_path: Path) -> None:
    (tmp_path / "llvmrel.toml").write_text('[publish]\npostprocess = "never"\n')

    result = runner.invoke(app, ["check-date", "--workdir", str(tmp_path)])

    assert result.exit_code == int(ErrorCode.CONFIG_ERROR)


def test_run_without_credentials(tmp_path: Path) -> None:
    result = runner.invoke(app, ["run", "--workdir", str(tmp_path)])

    assert result.exit_code == int(ErrorCode.CONFIG_ERROR)
    assert "GIT_TOKEN" in result.stdout
    assert "BRANCH" in result.stdout


def test_branch_flavor_requires_telegram(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("GIT_TOKEN", "tok")

    result = runner.invoke(
        app, ["run", "--flavor", "branch", "--branch", "main", "--workdir", str(tmp_path)]
    )

    assert result.exit_code == int(ErrorCode.CONFIG_ERROR)
    assert "TELEGRAM_TOKEN" in result.stdout


class _FakeReleaseCli:
    uploads: list[UploadOutcome] = []
    calls: list[str] = []

    def __init__(self, **kwargs: object) -> None:
        assert kwargs["token"] == "tok"

    def release_exists(self, tag: str) -> Result[bool, PublishError]:
        self.calls.append(f"info {tag}")
        return Ok(True)

    def create_release(self, tag: str, description: str) -> Result[None, PublishError]:
        self.calls.append(f"create {tag}")
        return Ok(None)

    def edit_release(self, tag: str, description: str) -> Result[None, PublishError]:
        self.calls.append(f"edit {tag} {description}")
        return Ok(None)

    def upload_asset(self, tag: str, name: str, path: Path, *, overwrite: bool) -> UploadOutcome:
        self.calls.append(f"upload {name} {overwrite}")
        return self.uploads.pop(0) if self.uploads else "failure"


def _setup_publish(monkeypatch: pytest.MonkeyPatch, uploads: list[UploadOutcome]) -> list[str]:
    import llvmrel.cli.commands.publish_cmd as publish_cmd

    calls: list[str] = []
    monkeypatch.setenv("GIT_TOKEN", "tok")
    monkeypatch.setattr(_FakeReleaseCli, "uploads", uploads)
    monkeypatch.setattr(_FakeReleaseCli, "calls", calls)
    monkeypatch.setattr(publish_cmd, "GithubReleaseCli", _FakeReleaseCli)
    monkeypatch.setattr(publisher_mod, "sleep", lambda seconds: None)
    return calls


def test_publish_existing_release(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    calls = _setup_publish(monkeypatch, ["failure", "exists"])
    archive = tmp_path / "Foo-1.0.0.tar.gz"
    archive.write_bytes(b"tgz")

    result = runner.invoke(
        app,
        [
            "publish",
            "--tag",
            "Foo-1.0.0-release",
            "--file",
            str(archive),
            "--description",
            "notes",
            "--workdir",
            str(tmp_path),
        ],
    )

    assert result.exit_code == 0, result.stdout
    assert calls == [
        "info Foo-1.0.0-release",
        "edit Foo-1.0.0-release notes",
        "upload Foo-1.0.0.tar.gz True",
        "upload Foo-1.0.0.tar.gz True",
    ]


def test_publish_exhausted_without_release_repo(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    calls = _setup_publish(monkeypatch, [])
    archive = tmp_path / "Foo-1.0.0.tar.gz"
    archive.write_bytes(b"tgz")

    result = runner.invoke(
        app,
        ["publish", "--tag", "t", "--file", str(archive), "--workdir", str(tmp_path)],
    )

    assert result.exit_code == int(ErrorCode.PUBLISH_ERROR)
    assert sum(1 for c in calls if c.startswith("upload")) == 5


def test_package_command(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    install = tmp_path / "install"
    (install / "bin").mkdir(parents=True)
    (install / "bin" / "ld.lld.sh").write_text("#!/bin/sh\n")
    (install / "include").mkdir()

    result = runner.invoke(
        app,
        [
            "package",
            "--install-dir",
            str(install),
            "--version",
            "18.0.0",
            "--commit",
            "0123456789abcdef",
            "--flavor",
            "branch",
            "--workdir",
            str(tmp_path),
        ],
    )

    assert result.exit_code == 0, result.stdout
    assert (tmp_path / "WeebX-Clang-18.0.0.tar.gz").is_file()
    assert not (install / "include").exists()
    assert "Quick Info" in (install / "README.md").read_text()
