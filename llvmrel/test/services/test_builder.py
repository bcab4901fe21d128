from __future__ import annotations

from pathlib import Path

import pytest

from llvmrel.core.config import BuildConfig, Credentials, PipelineConfig
from llvmrel.core.result import Err, Ok, Result
from llvmrel.git import repository as repo_mod
from llvmrel.output.console import MockConsole
from llvmrel.platform.process import ProcessError
from llvmrel.release.model import BuildDate, ReleaseFlavor
from llvmrel.services import builder as builder_mod
from llvmrel.services.build_errors import BuildFailed, OutputMissing, ToolMissing
from llvmrel.services.builder import (
    build_binutils_command,
    build_llvm_command,
    build_toolchain,
    find_binutils_version,
    find_clang_binary,
    parse_clang_version,
)
from llvmrel.services.context import RunContext


def _ctx(
    tmp_path: Path,
    *,
    ci: bool = False,
    config: PipelineConfig | None = None,
    flavor: ReleaseFlavor = "nightly",
) -> RunContext:
    return RunContext(
        workdir=tmp_path,
        config=config or PipelineConfig(),
        credentials=Credentials(git_token="tok", branch="main"),
        flavor=flavor,
        date=BuildDate(iso="2026-10-19", stamp="20261019"),
        ci=ci,
    )


class TestCommands:
    def test_llvm_command(self, tmp_path: Path) -> None:
        cmd = build_llvm_command(_ctx(tmp_path), jobs=8)
        assert cmd[:5] == ["./build-llvm.py", "--branch", "main", "--clang-vendor", "WeebX"]
        assert "LLVM_PARALLEL_COMPILE_JOBS=8" in cmd
        assert "LLVM_PARALLEL_LINK_JOBS=8" in cmd
        assert "CMAKE_C_FLAGS=-O3" in cmd
        assert cmd[cmd.index("--projects") + 1] == "clang;compiler-rt;lld;polly"
        assert cmd[cmd.index("--targets") + 1] == "ARM;AArch64;X86"
        assert "--shallow-clone" in cmd
        assert "--no-ccache" not in cmd
        assert cmd[-1] == "--incremental"

    def test_ci_nightly_flags(self, tmp_path: Path) -> None:
        cmd = build_llvm_command(_ctx(tmp_path, ci=True), jobs=2)
        assert cmd[-2:] == ["--incremental", "--no-ccache"]

    def test_branch_flavor_builds_openmp_from_scratch(self, tmp_path: Path) -> None:
        cmd = build_llvm_command(_ctx(tmp_path, flavor="branch"), jobs=2)
        assert cmd[cmd.index("--projects") + 1] == "clang;compiler-rt;lld;polly;openmp"
        assert "--incremental" not in cmd
        assert cmd[-1] == "--no-ccache"

    def test_configured_values_override_flavor_defaults(self, tmp_path: Path) -> None:
        config = PipelineConfig(build=BuildConfig(projects="clang;lld", incremental=False))
        cmd = build_llvm_command(_ctx(tmp_path, config=config), jobs=2)
        assert cmd[cmd.index("--projects") + 1] == "clang;lld"
        assert "--incremental" not in cmd

    def test_binutils_command(self, tmp_path: Path) -> None:
        assert build_binutils_command(_ctx(tmp_path)) == [
            "./build-binutils.py",
            "--targets",
            "arm",
            "aarch64",
            "x86_64",
        ]


class TestBuildOutputs:
    def test_parse_clang_version(self) -> None:
        text = "WeebX clang version 18.0.0 (https://github.com/llvm/llvm-project 0123abcd)\n"
        text += "Target: x86_64-unknown-linux-gnu\n"
        assert parse_clang_version(text) == "18.0.0"
        assert parse_clang_version("") is None
        assert parse_clang_version("gcc (GCC) 13.2.0") is None

    def test_find_clang_binary(self, tmp_path: Path) -> None:
        assert find_clang_binary(tmp_path) is None
        bin_dir = tmp_path / "bin"
        bin_dir.mkdir()
        (bin_dir / "clang").write_text("")
        (bin_dir / "clang-format").write_text("")
        assert find_clang_binary(tmp_path) is None
        (bin_dir / "clang-18").write_text("")
        assert find_clang_binary(tmp_path) == bin_dir / "clang-18"

    def test_find_binutils_version(self, tmp_path: Path) -> None:
        assert find_binutils_version(tmp_path) is None
        (tmp_path / "binutils-2.41").mkdir()
        assert find_binutils_version(tmp_path) == "2.41"


class FakeBuild:
    """Replaces run_logged; produces the clang binary when the LLVM script runs."""

    def __init__(
        self, install_dir: Path, *, fail_step: str | None = None, produce: bool = True
    ) -> None:
        self.install_dir = install_dir
        self.fail_step = fail_step
        self.produce = produce
        self.commands: list[list[str]] = []

    def __call__(
        self, cmd: list[str], cwd: Path, log_path: Path, env: object = None
    ) -> Result[None, ProcessError]:
        del cwd, env
        self.commands.append(cmd)
        log_path.write_text("$ " + " ".join(cmd) + "\n", encoding="utf-8")
        if self.fail_step is not None and self.fail_step in cmd[0]:
            return Err(ProcessError(tuple(cmd), 2, "", "ninja: build stopped"))
        if "build-llvm" in cmd[0] and self.produce:
            bin_dir = self.install_dir / "bin"
            bin_dir.mkdir(parents=True, exist_ok=True)
            (bin_dir / "clang-18").write_text("")
        return Ok(None)


@pytest.fixture
def workdir(tmp_path: Path) -> Path:
    (tmp_path / "build-llvm.py").write_text("#!/usr/bin/env python3\n")
    (tmp_path / "build-binutils.py").write_text("#!/usr/bin/env python3\n")
    (tmp_path / "binutils-2.41").mkdir()
    return tmp_path


def _fake_clang(cmd: list[str], cwd: Path, **kwargs: object) -> Result[str, ProcessError]:
    del cmd, cwd, kwargs
    return Ok("WeebX clang version 18.0.0 (https://github.com/llvm/llvm-project 0123abcd)\n")


def _fake_git(cmd: list[str], cwd: Path, **kwargs: object) -> Result[str, ProcessError]:
    del cwd, kwargs
    assert cmd[-2:] == ["rev-parse", "HEAD"]
    return Ok("0123456789abcdef0123\n")


def test_build_toolchain_success(monkeypatch: pytest.MonkeyPatch, workdir: Path) -> None:
    ctx = _ctx(workdir)
    fake = FakeBuild(ctx.install_dir)
    monkeypatch.setattr(builder_mod, "run_logged", fake)
    monkeypatch.setattr(builder_mod, "run_process", _fake_clang)
    monkeypatch.setattr(repo_mod, "run_process", _fake_git)

    result = build_toolchain(ctx, console=MockConsole())

    assert isinstance(result, Ok)
    build = result.value
    assert build.version == "18.0.0"
    assert build.source_commit == "0123456789abcdef0123"
    assert build.binutils_version == "2.41"
    assert build.output_dir == ctx.install_dir
    assert [c[0] for c in fake.commands] == ["./build-llvm.py", "./build-binutils.py"]


def test_missing_script_is_tool_missing(tmp_path: Path) -> None:
    result = build_toolchain(_ctx(tmp_path), console=MockConsole())
    assert isinstance(result, Err)
    assert isinstance(result.error, ToolMissing)
    assert result.error.tool == "./build-llvm.py"


def test_llvm_failure(monkeypatch: pytest.MonkeyPatch, workdir: Path) -> None:
    ctx = _ctx(workdir)
    fake = FakeBuild(ctx.install_dir, fail_step="build-llvm")
    monkeypatch.setattr(builder_mod, "run_logged", fake)

    result = build_toolchain(ctx, console=MockConsole())

    assert result == Err(BuildFailed(step="build-llvm", returncode=2, log_path=ctx.log_path))
    assert len(fake.commands) == 1


def test_no_clang_binary(monkeypatch: pytest.MonkeyPatch, workdir: Path) -> None:
    ctx = _ctx(workdir)
    monkeypatch.setattr(builder_mod, "run_logged", FakeBuild(ctx.install_dir, produce=False))

    result = build_toolchain(ctx, console=MockConsole())

    assert isinstance(result, Err)
    assert isinstance(result.error, OutputMissing)


def test_binutils_failure_is_fatal(monkeypatch: pytest.MonkeyPatch, workdir: Path) -> None:
    ctx = _ctx(workdir)
    monkeypatch.setattr(
        builder_mod, "run_logged", FakeBuild(ctx.install_dir, fail_step="build-binutils")
    )

    result = build_toolchain(ctx, console=MockConsole())

    assert isinstance(result, Err)
    assert isinstance(result.error, BuildFailed)
    assert result.error.step == "build-binutils"
