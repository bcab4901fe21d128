"""End-to-end release run.

    guard -> notify start -> build -> package -> record in release repo
          -> publish (retry / rollback) -> notify result

Stages only talk to each other through the RunContext and the values they
return. The first Err stops the run.
"""

from __future__ import annotations

from dataclasses import dataclass

from llvmrel.core.result import Err, Ok, Result
from llvmrel.output.console import ConsoleProtocol
from llvmrel.release.build_date import fetch_marker, should_skip
from llvmrel.release.errors import PublishError
from llvmrel.release.github_release import ReleaseApi
from llvmrel.release.model import BuildResult, PublishReport, ReleaseNames, release_names
from llvmrel.release.publisher import RetryPolicy, publish
from llvmrel.release.release_repo import ReleaseRepo
from llvmrel.services.build_errors import BuildError, PackageFailed
from llvmrel.services.builder import build_toolchain
from llvmrel.services.context import RunContext
from llvmrel.services.notifier import (
    Notifier,
    failed_caption,
    publish_failed_message,
    started_message,
    success_caption,
    summary_message,
)
from llvmrel.services.packager import Package, package_toolchain
from llvmrel.tools.http import HttpClient

PipelineError = BuildError | PackageFailed | PublishError


@dataclass(frozen=True, slots=True)
class PipelineReport:
    skipped: bool
    build: BuildResult | None = None
    names: ReleaseNames | None = None
    publish: PublishReport | None = None


def check_already_built(ctx: RunContext, *, http: HttpClient, console: ConsoleProtocol) -> bool:
    """True when a scheduled nightly already ran today."""
    if not (ctx.ci and ctx.flavor == "nightly"):
        return False
    marker = fetch_marker(http, ctx.config.repo.build_date_url)
    if should_skip(ctx.date.iso, marker):
        console.success("Clang is already made for today")
        return True
    return False


def record_release(
    ctx: RunContext,
    *,
    build: BuildResult,
    names: ReleaseNames,
    package: Package,
    console: ConsoleProtocol,
) -> Result[ReleaseRepo, PublishError]:
    """Commit the download link (and build-date marker) to the release repo,
    tagging nightly releases."""
    repo_cfg = ctx.config.repo
    opened = ReleaseRepo.ensure(
        workdir=ctx.workdir,
        config=repo_cfg,
        token=ctx.credentials.git_token,
        console=console,
    )
    if isinstance(opened, Err):
        return opened
    rel = opened.value

    link = repo_cfg.download_url(tag=names.tag, file_name=names.archive)
    if ctx.flavor == "nightly":
        rel.record_nightly(version=build.version, link=link, build_date=ctx.date.iso)
    else:
        rel.record_branch(branch=ctx.credentials.branch, link=link, readme=package.readme)

    message = f"{ctx.config.product.name}-{build.version}: {ctx.date.stamp}"
    pushed = rel.commit_and_push(message)
    if isinstance(pushed, Err):
        return pushed

    if ctx.flavor == "nightly":
        tagged = rel.tag_and_push(names.tag)
        if isinstance(tagged, Err):
            return tagged

    return Ok(rel)


def run_pipeline(
    ctx: RunContext,
    *,
    api: ReleaseApi,
    http: HttpClient,
    notifier: Notifier,
    console: ConsoleProtocol,
) -> Result[PipelineReport, PipelineError]:
    if check_already_built(ctx, http=http, console=console):
        return Ok(PipelineReport(skipped=True))

    branch = ctx.credentials.branch
    notifier.send_text(started_message(branch))

    built = build_toolchain(ctx, console=console)
    if isinstance(built, Err):
        console.error("LLVM build failed!")
        notifier.send_file(ctx.log_path, failed_caption(branch))
        return built
    build = built.value

    names = release_names(
        product=ctx.config.product.name,
        version=build.version,
        date_stamp=ctx.date_stamp,
    )

    packaged = package_toolchain(
        build=build,
        archive_name=names.archive,
        out_dir=ctx.workdir,
        date=ctx.date,
        policy=ctx.config.publish.postprocess,
        console=console,
    )
    if isinstance(packaged, Err):
        notifier.send_file(ctx.log_path, failed_caption(branch))
        return packaged
    package = packaged.value

    console.header("Publishing release...")
    recorded = record_release(ctx, build=build, names=names, package=package, console=console)
    if isinstance(recorded, Err):
        notifier.send_text(publish_failed_message(branch, recorded.error.message))
        return recorded

    published = publish(
        api=api,
        tag=names.tag,
        artifact=package.artifact,
        description=package.description,
        console=console,
        rollback=recorded.value,
        policy=RetryPolicy(
            max_attempts=ctx.config.publish.max_attempts,
            delay_seconds=ctx.config.publish.retry_delay_seconds,
        ),
    )
    if isinstance(published, Err):
        notifier.send_text(publish_failed_message(branch, published.error.message))
        return published

    repo_cfg = ctx.config.repo
    notifier.send_file(ctx.log_path, success_caption(branch))
    notifier.send_text(
        summary_message(build, date=ctx.date, repo_url=repo_cfg.web_url, repo_name=repo_cfg.name)
    )
    return Ok(PipelineReport(skipped=False, build=build, names=names, publish=published.value))
