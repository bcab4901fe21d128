"""Toolchain packaging.

Turns the build's install tree into the single release archive:

- drop developer-only files (headers, static and libtool archives)
- strip unstripped ELF files
- point the rpath of ELF executables at ``$ORIGIN/../lib`` so the
  toolchain runs without LD_LIBRARY_PATH
- append the quick-info block to README.md (also the release body)
- tar+gzip the tree, recording size and sha256

``strip``/``patchelf`` failures are warnings under the ``best_effort``
policy and abort packaging under ``strict``.
"""

from __future__ import annotations

import hashlib
import shutil
import tarfile
from dataclasses import dataclass
from pathlib import Path

from llvmrel.core.config import PostProcessPolicy
from llvmrel.core.result import Err, Ok, Result
from llvmrel.output.console import ConsoleProtocol, Style
from llvmrel.platform.process import run as run_process
from llvmrel.release.model import Artifact, BuildDate, BuildResult
from llvmrel.services.build_errors import PackageFailed

RPATH = "$ORIGIN/../lib"

_ELF_MAGIC = b"\x7fELF"
_DEV_DIRS = ("include",)
_DEV_LIB_SUFFIXES = (".a", ".la")
_TOOL_TIMEOUT_SECONDS = 120.0


@dataclass(frozen=True, slots=True)
class Package:
    artifact: Artifact
    description: str
    readme: Path


def _sha256_file(path: Path) -> str:
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()


def _is_elf(path: Path) -> bool:
    try:
        with path.open("rb") as f:
            return f.read(4) == _ELF_MAGIC
    except OSError:
        return False


def remove_dev_files(install_dir: Path) -> list[Path]:
    """Delete headers and static/libtool archives; return what was removed."""
    removed: list[Path] = []
    for name in _DEV_DIRS:
        d = install_dir / name
        if d.is_dir():
            shutil.rmtree(d)
            removed.append(d)

    lib_dir = install_dir / "lib"
    if lib_dir.is_dir():
        for p in sorted(lib_dir.iterdir()):
            if p.is_file() and p.suffix in _DEV_LIB_SUFFIXES:
                p.unlink()
                removed.append(p)
    return removed


def _describe(path: Path) -> str | None:
    result = run_process(["file", "-b", str(path)], cwd=path.parent, timeout=_TOOL_TIMEOUT_SECONDS)
    if isinstance(result, Err):
        return None
    return result.value.strip()


def _tool_failed(
    *,
    step: str,
    message: str,
    policy: PostProcessPolicy,
    console: ConsoleProtocol,
) -> Result[None, PackageFailed]:
    if policy == "strict":
        return Err(PackageFailed(step=step, message=message))
    console.warning(message)
    return Ok(None)


def postprocess_binaries(
    install_dir: Path,
    *,
    policy: PostProcessPolicy,
    console: ConsoleProtocol,
) -> Result[tuple[int, int], PackageFailed]:
    """Strip ELF files and fix executable rpaths.

    Returns:
        Ok((stripped, patched)) counts, or Err on the first tool failure
        under the strict policy.
    """
    stripped = 0
    patched = 0

    for path in sorted(p for p in install_dir.rglob("*") if p.is_file() and not p.is_symlink()):
        if not _is_elf(path):
            continue

        desc = _describe(path)
        if desc is None:
            failed = _tool_failed(
                step="file",
                message=f"could not inspect {path.relative_to(install_dir)}",
                policy=policy,
                console=console,
            )
            if isinstance(failed, Err):
                return failed
            continue

        if "not stripped" in desc:
            result = run_process(
                ["strip", "-s", str(path)], cwd=install_dir, timeout=_TOOL_TIMEOUT_SECONDS
            )
            if isinstance(result, Err):
                failed = _tool_failed(
                    step="strip",
                    message=f"strip failed: {path.relative_to(install_dir)}",
                    policy=policy,
                    console=console,
                )
                if isinstance(failed, Err):
                    return failed
            else:
                stripped += 1

        # bin/<exe> and one level below it, as produced by build-llvm.py.
        depth = len(path.relative_to(install_dir).parts)
        if "interpreter" in desc and 2 <= depth <= 3:
            console.print(str(path.relative_to(install_dir)), Style.DIM)
            result = run_process(
                ["patchelf", "--set-rpath", RPATH, str(path)],
                cwd=install_dir,
                timeout=_TOOL_TIMEOUT_SECONDS,
            )
            if isinstance(result, Err):
                failed = _tool_failed(
                    step="patchelf",
                    message=f"patchelf failed: {path.relative_to(install_dir)}",
                    policy=policy,
                    console=console,
                )
                if isinstance(failed, Err):
                    return failed
            else:
                patched += 1

    return Ok((stripped, patched))


def quick_info(build: BuildResult, *, date: BuildDate) -> str:
    """Build metadata block used as README section and release body."""
    return "\n".join(
        [
            "# Quick Info",
            f"* Build Date : {date.iso}",
            f"* Clang Version : {build.version}",
            f"* Binutils Version : {build.binutils_version or 'unknown'}",
            f"* Compiled Based : {build.commit_url}",
        ]
    )


def write_readme(install_dir: Path, info: str) -> Path:
    """Append ``info`` to README.md in the install tree; return its path."""
    readme = install_dir / "README.md"
    with readme.open("a", encoding="utf-8") as f:
        f.write(info + "\n")
    return readme


def create_archive(install_dir: Path, archive: Path) -> Artifact:
    """Gzip-compressed tar of the install dir contents, rooted at ``./``."""
    archive.parent.mkdir(parents=True, exist_ok=True)
    with tarfile.open(archive, "w:gz") as tar:
        for p in sorted(install_dir.iterdir()):
            tar.add(p, arcname=f"./{p.name}")
    return Artifact(path=archive, size_bytes=archive.stat().st_size, sha256=_sha256_file(archive))


def package_toolchain(
    *,
    build: BuildResult,
    archive_name: str,
    out_dir: Path,
    date: BuildDate,
    policy: PostProcessPolicy,
    console: ConsoleProtocol,
) -> Result[Package, PackageFailed]:
    install_dir = build.output_dir
    if not install_dir.is_dir():
        return Err(PackageFailed(step="collect", message=f"install dir missing: {install_dir}"))

    console.header("Packaging toolchain...")
    for p in remove_dev_files(install_dir):
        console.print(f"removed {p.relative_to(install_dir)}", Style.DIM)

    post = postprocess_binaries(install_dir, policy=policy, console=console)
    if isinstance(post, Err):
        return post
    stripped, patched = post.value
    console.print(f"stripped {stripped} files, patched {patched} rpaths", Style.DIM)

    info = quick_info(build, date=date)
    try:
        readme = write_readme(install_dir, info)
        description = readme.read_text(encoding="utf-8").strip()
        artifact = create_archive(install_dir, out_dir / archive_name)
    except (OSError, tarfile.TarError) as e:
        return Err(PackageFailed(step="archive", message=str(e)))

    console.success(f"{artifact.name} ({artifact.size_bytes} bytes)")
    return Ok(Package(artifact=artifact, description=description, readme=readme))
