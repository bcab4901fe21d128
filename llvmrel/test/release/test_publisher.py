from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pytest

from llvmrel.core.result import Err, Ok, Result
from llvmrel.output.console import MockConsole
from llvmrel.release import publisher as pub_mod
from llvmrel.release.errors import PublishError
from llvmrel.release.model import Artifact, UploadOutcome
from llvmrel.release.publisher import RetryPolicy, publish


@dataclass
class FakeApi:
    exists: bool = False
    uploads: list[UploadOutcome] = field(default_factory=list)
    query_error: PublishError | None = None
    calls: list[tuple[str, ...]] = field(default_factory=list)
    overwrites: list[bool] = field(default_factory=list)

    def release_exists(self, tag: str) -> Result[bool, PublishError]:
        self.calls.append(("info", tag))
        if self.query_error is not None:
            return Err(self.query_error)
        return Ok(self.exists)

    def create_release(self, tag: str, description: str) -> Result[None, PublishError]:
        self.calls.append(("create", tag, description))
        return Ok(None)

    def edit_release(self, tag: str, description: str) -> Result[None, PublishError]:
        self.calls.append(("edit", tag, description))
        return Ok(None)

    def upload_asset(self, tag: str, name: str, path: Path, *, overwrite: bool) -> UploadOutcome:
        self.calls.append(("upload", tag, name))
        self.overwrites.append(overwrite)
        return self.uploads.pop(0) if self.uploads else "failure"

    def count(self, action: str) -> int:
        return sum(1 for c in self.calls if c[0] == action)


@dataclass
class FakeRollback:
    fail: bool = False
    tags: list[str | None] = field(default_factory=list)

    def rollback(self, *, tag: str | None) -> Result[None, PublishError]:
        self.tags.append(tag)
        if self.fail:
            return Err(PublishError(kind="repo_failed", message="git push failed", hint="denied"))
        return Ok(None)


@pytest.fixture
def sleeps(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    recorded: list[float] = []
    monkeypatch.setattr(pub_mod, "sleep", recorded.append)
    return recorded


@pytest.fixture
def artifact(tmp_path: Path) -> Artifact:
    path = tmp_path / "Foo-1.0.0.tar.gz"
    path.write_bytes(b"archive")
    return Artifact(path=path, size_bytes=7)


def test_missing_release_is_created_and_uploaded_once(
    sleeps: list[float], artifact: Artifact
) -> None:
    api = FakeApi(exists=False, uploads=["success"])
    console = MockConsole()

    result = publish(
        api=api, tag="Foo-1.0.0-release", artifact=artifact, description="d", console=console
    )

    assert isinstance(result, Ok)
    assert result.value.created is True
    assert result.value.final_outcome == "success"
    assert api.calls == [
        ("info", "Foo-1.0.0-release"),
        ("create", "Foo-1.0.0-release", "d"),
        ("upload", "Foo-1.0.0-release", "Foo-1.0.0.tar.gz"),
    ]
    assert api.overwrites == [False]
    assert sleeps == []


def test_existing_release_is_edited_not_created(sleeps: list[float], artifact: Artifact) -> None:
    api = FakeApi(exists=True, uploads=["success"])

    result = publish(api=api, tag="t", artifact=artifact, description="d", console=MockConsole())

    assert isinstance(result, Ok)
    assert result.value.created is False
    assert api.count("edit") == 1
    assert api.count("create") == 0
    assert api.overwrites == [True]


def test_already_exists_on_second_attempt_is_success(
    sleeps: list[float], artifact: Artifact
) -> None:
    api = FakeApi(uploads=["failure", "exists", "success"])
    rollback = FakeRollback()

    result = publish(
        api=api,
        tag="t",
        artifact=artifact,
        description="d",
        console=MockConsole(),
        rollback=rollback,
    )

    assert isinstance(result, Ok)
    assert [a.outcome for a in result.value.attempts] == ["failure", "exists"]
    assert api.count("upload") == 2
    assert sleeps == [10.0]
    assert rollback.tags == []


def test_retries_use_replace(sleeps: list[float], artifact: Artifact) -> None:
    api = FakeApi(exists=False, uploads=["failure", "failure", "success"])

    result = publish(api=api, tag="t", artifact=artifact, description="d", console=MockConsole())

    assert isinstance(result, Ok)
    assert api.overwrites == [False, True, True]


def test_exhaustion_makes_five_attempts_and_rolls_back(
    sleeps: list[float], artifact: Artifact
) -> None:
    api = FakeApi(exists=False, uploads=["failure"] * 10)
    rollback = FakeRollback()
    console = MockConsole()

    result = publish(
        api=api,
        tag="Foo-1.0.0-20261019-release",
        artifact=artifact,
        description="d",
        console=console,
        rollback=rollback,
    )

    assert isinstance(result, Err)
    assert result.error.kind == "upload_exhausted"
    assert result.error.rolled_back is True
    assert api.count("upload") == 5
    # One delay between consecutive attempts, none after the last.
    assert sleeps == [10.0] * 4
    assert rollback.tags == ["Foo-1.0.0-20261019-release"]
    assert console.has_error()


def test_exhaustion_on_existing_release_keeps_its_tag(
    sleeps: list[float], artifact: Artifact
) -> None:
    api = FakeApi(exists=True, uploads=["failure"] * 5)
    rollback = FakeRollback()

    result = publish(
        api=api,
        tag="t",
        artifact=artifact,
        description="d",
        console=MockConsole(),
        rollback=rollback,
    )

    assert isinstance(result, Err)
    assert rollback.tags == [None]


def test_exhaustion_without_rollback_target(sleeps: list[float], artifact: Artifact) -> None:
    api = FakeApi(uploads=["failure"] * 5)

    result = publish(api=api, tag="t", artifact=artifact, description="d", console=MockConsole())

    assert isinstance(result, Err)
    assert result.error.kind == "upload_exhausted"
    assert result.error.rolled_back is False
    assert result.error.hint is not None


def test_failed_rollback_is_reported(sleeps: list[float], artifact: Artifact) -> None:
    api = FakeApi(uploads=["failure"] * 5)

    result = publish(
        api=api,
        tag="t",
        artifact=artifact,
        description="d",
        console=MockConsole(),
        rollback=FakeRollback(fail=True),
    )

    assert isinstance(result, Err)
    assert result.error.kind == "rollback_failed"
    assert "git push failed" in result.error.message
    assert result.error.hint == "denied"


def test_query_failure_stops_before_any_upload(sleeps: list[float], artifact: Artifact) -> None:
    api = FakeApi(query_error=PublishError(kind="release_query_failed", message="boom"))

    result = publish(api=api, tag="t", artifact=artifact, description="d", console=MockConsole())

    assert isinstance(result, Err)
    assert result.error.kind == "release_query_failed"
    assert api.count("upload") == 0
    assert api.count("create") == 0


def test_custom_policy_bounds_attempts(sleeps: list[float], artifact: Artifact) -> None:
    api = FakeApi(uploads=["failure"] * 5)

    result = publish(
        api=api,
        tag="t",
        artifact=artifact,
        description="d",
        console=MockConsole(),
        policy=RetryPolicy(max_attempts=2, delay_seconds=0.5),
    )

    assert isinstance(result, Err)
    assert api.count("upload") == 2
    assert sleeps == [0.5]


def test_policy_cannot_exceed_five_uploads(sleeps: list[float], artifact: Artifact) -> None:
    api = FakeApi(uploads=["failure"] * 10)

    result = publish(
        api=api,
        tag="t",
        artifact=artifact,
        description="d",
        console=MockConsole(),
        policy=RetryPolicy(max_attempts=10, delay_seconds=0.0),
    )

    assert isinstance(result, Err)
    assert api.count("upload") == 5
    assert len(sleeps) == 4
