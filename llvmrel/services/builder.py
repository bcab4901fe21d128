"""Toolchain build stage.

Drives the external ``build-llvm.py`` and ``build-binutils.py`` scripts,
collecting their output in the run log, then reads back what they
produced: the clang version, the llvm-project commit and the binutils
version.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

from llvmrel.core.result import Err, Ok, Result
from llvmrel.git.repository import Repository
from llvmrel.output.console import ConsoleProtocol
from llvmrel.platform.process import run as run_process
from llvmrel.platform.process import run_logged
from llvmrel.release.model import BuildResult
from llvmrel.services.build_errors import BuildError, BuildFailed, OutputMissing, ToolMissing
from llvmrel.services.context import RunContext

_CLANG_BINARY_RE = re.compile(r"^clang-\d+$")
_CLANG_VERSION_RE = re.compile(r"clang version (\S+)")


def build_llvm_command(ctx: RunContext, *, jobs: int) -> list[str]:
    build = ctx.config.build
    defines = [
        f"LLVM_PARALLEL_COMPILE_JOBS={jobs}",
        f"LLVM_PARALLEL_LINK_JOBS={jobs}",
        *build.extra_defines,
    ]
    cmd = [
        build.build_llvm,
        "--branch",
        ctx.credentials.branch,
        "--clang-vendor",
        ctx.config.product.vendor,
        "--defines",
        *defines,
        "--projects",
        build.projects_for(ctx.flavor),
        "--targets",
        build.targets,
        "--shallow-clone",
        "--quiet-cmake",
    ]
    if build.incremental_for(ctx.flavor):
        cmd.append("--incremental")
    # Branch builds never use ccache.
    if ctx.ci or ctx.flavor == "branch":
        cmd.append("--no-ccache")
    return cmd


def build_binutils_command(ctx: RunContext) -> list[str]:
    build = ctx.config.build
    return [build.build_binutils, "--targets", *build.binutils_targets]


def parse_clang_version(text: str) -> str | None:
    """Version from the first line of ``clang --version``.

    >>> parse_clang_version("WeebX clang version 17.0.0 (https://github.com/llvm/llvm-project)")
    '17.0.0'
    """
    first = text.strip().splitlines()[0] if text.strip() else ""
    match = _CLANG_VERSION_RE.search(first)
    return match.group(1) if match else None


def find_clang_binary(install_dir: Path) -> Path | None:
    """The versioned ``clang-<major>`` binary, present only after a good build."""
    bin_dir = install_dir / "bin"
    if not bin_dir.is_dir():
        return None
    for p in sorted(bin_dir.iterdir()):
        if _CLANG_BINARY_RE.match(p.name) and p.is_file():
            return p
    return None


def find_binutils_version(workdir: Path) -> str | None:
    for p in sorted(workdir.glob("binutils-*")):
        if p.is_dir():
            return p.name.removeprefix("binutils-")
    return None


def _ensure_script(path: str, *, workdir: Path) -> Result[None, BuildError]:
    script = Path(path)
    if not script.is_absolute():
        script = workdir / script
    if not script.is_file():
        return Err(ToolMissing(tool=path, hint=f"Expected the build script at {script}"))
    return Ok(None)


def build_toolchain(
    ctx: RunContext, *, console: ConsoleProtocol
) -> Result[BuildResult, BuildError]:
    """Build LLVM and binutils into ``ctx.install_dir``.

    Returns:
        Ok(BuildResult) when clang exists and its version could be read,
        Err(BuildError) otherwise. The run log holds the build output.
    """
    build = ctx.config.build
    for script in (build.build_llvm, build.build_binutils):
        present = _ensure_script(script, workdir=ctx.workdir)
        if isinstance(present, Err):
            return present

    console.header("Building LLVM...")
    llvm_cmd = build_llvm_command(ctx, jobs=os.cpu_count() or 1)
    console.command(" ".join(llvm_cmd))
    llvm = run_logged(llvm_cmd, cwd=ctx.workdir, log_path=ctx.log_path)
    if isinstance(llvm, Err):
        return Err(
            BuildFailed(step="build-llvm", returncode=llvm.error.returncode, log_path=ctx.log_path)
        )

    clang_bin = find_clang_binary(ctx.install_dir)
    if clang_bin is None:
        return Err(OutputMissing(path=ctx.install_dir / "bin" / "clang-*", log_path=ctx.log_path))
    console.success("LLVM build successful")

    console.header("Building binutils...")
    binutils_cmd = build_binutils_command(ctx)
    console.command(" ".join(binutils_cmd))
    binutils = run_logged(binutils_cmd, cwd=ctx.workdir, log_path=ctx.log_path)
    if isinstance(binutils, Err):
        return Err(
            BuildFailed(
                step="build-binutils", returncode=binutils.error.returncode, log_path=ctx.log_path
            )
        )

    clang = ctx.install_dir / "bin" / "clang"
    version_out = run_process([str(clang), "--version"], cwd=ctx.workdir, timeout=30.0)
    version = parse_clang_version(version_out.value) if isinstance(version_out, Ok) else None
    if version is None:
        return Err(OutputMissing(path=clang, log_path=ctx.log_path, reason="version unreadable"))

    head = Repository(ctx.llvm_dir).head_sha()
    if isinstance(head, Err):
        return Err(
            OutputMissing(path=ctx.llvm_dir, log_path=ctx.log_path, reason="commit unreadable")
        )

    return Ok(
        BuildResult(
            success=True,
            version=version,
            source_commit=head.value,
            output_dir=ctx.install_dir,
            binutils_version=find_binutils_version(ctx.workdir),
        )
    )
