"""End-to-end formula synchronization."""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import PurePosixPath
from typing import Optional

from .args import SyncArgs
from .assets import bottle_pattern, match_bottles
from .auth import require_auth_token
from .checksums import resolve_checksums
from .config import load_settings
from .console import log, log_debug, log_warning
from .constants import COMMIT_MESSAGE_TEMPLATE, EXIT_CODE_OK
from .context import AppContext
from .document import FormulaDocument
from .errors import ConfigurationError, NotFoundError
from .github import GitHubClient, Release, Repository, Tag
from .rewriter import RewriteSpec, rewrite_formula
from .utils import strip_or_none


@dataclass(frozen=True)
class SyncResult:
    formula_name: str
    tag: str
    text: str
    updated: bool
    commit_sha: Optional[str] = None


def default_commit_message(formula_name: str, tag: str) -> str:
    return COMMIT_MESSAGE_TEMPLATE.format(name=formula_name, tag=tag)


def _require(value: Optional[str], flag: str) -> str:
    stripped = strip_or_none(value)
    if not stripped:
        raise ConfigurationError(f"missing argument: {flag}")
    return stripped


def latest_release(github: GitHubClient, repository: Repository) -> Release:
    releases = github.list_releases(repository.full_name)
    if not releases:
        raise NotFoundError("No releases found")
    return releases[0]


def describe_release(release: Release) -> str:
    text = release.tag_name
    if release.name and release.name != release.tag_name:
        text = f"{text} \"{release.name}\""
    if release.published_at:
        text = f"{text}, published {release.published_at}"
    return text


def release_tag(github: GitHubClient, repository: Repository, release: Release) -> Tag:
    tag = github.find_tag(repository.full_name, release.tag_name)
    if tag is None:
        raise NotFoundError(f"Tag {release.tag_name} not found")
    return tag


def run_sync(args: SyncArgs, *, ctx: Optional[AppContext] = None) -> SyncResult:
    ctx = ctx or AppContext(settings=load_settings())
    token = require_auth_token(ctx.environ)
    repository_name = _require(args.repository, "-r/--repository")
    tap = _require(args.tap, "-t/--tap")
    formula_path = _require(args.formula, "-f/--formula")
    if strip_or_none(args.rubocop_config):
        ctx = replace(ctx, settings=replace(ctx.settings, rubocop_config=args.rubocop_config.strip()))

    with GitHubClient(ctx.new_http_client(), token, api_url=ctx.settings.api_url) as github:
        repository = github.fetch_repository(repository_name)
        release = latest_release(github, repository)
        tag = release_tag(github, repository, release)
        formula_name = strip_or_none(args.name) or repository.name
        log(f"latest release of {repository.full_name} is {describe_release(release)} at {tag.commit_sha}")

        bottles = match_bottles(formula_name, release.tag_name, release.assets)
        if bottles.is_empty and release.assets:
            log_warning(
                f"release {release.tag_name} has {len(release.assets)} asset(s) but none match "
                f"{bottle_pattern(formula_name, release.tag_name).pattern}; "
                "the formula will have no bottle block"
            )
        checksums = resolve_checksums(bottles.platforms, github.download)

        blob = github.fetch_contents(tap, formula_path)
        document = FormulaDocument.parse(blob.content)
        spec = RewriteSpec(
            tag=release.tag_name,
            clone_url=repository.clone_url,
            revision=tag.commit_sha,
            owner=repository.owner,
            repository=repository.name,
            checksums=checksums,
            rebuild=bottles.rebuild,
        )
        updated = rewrite_formula(document, spec)
        if args.skip_normalize:
            log_debug("skipping rubocop normalization")
        else:
            updated = ctx.normalize(updated, name=PurePosixPath(formula_path).name)
        log_debug(updated)

        if updated == blob.content:
            log("Formula is up-to-date")
            return SyncResult(formula_name, release.tag_name, updated, updated=False)

        message = strip_or_none(args.message) or default_commit_message(formula_name, release.tag_name)
        if args.dry_run:
            log(f"dry-run enabled; not committing {formula_path} to {tap} ({message})")
            print(updated, end="")
            return SyncResult(formula_name, release.tag_name, updated, updated=True)

        log(message)
        commit_sha = github.update_contents(
            tap,
            formula_path,
            message=message,
            sha=blob.sha,
            content=updated,
        )
        log(f"committed {formula_path} to {tap}" + (f" ({commit_sha})" if commit_sha else ""))
        return SyncResult(formula_name, release.tag_name, updated, updated=True, commit_sha=commit_sha)


def handle_sync(args: SyncArgs, *, ctx: Optional[AppContext] = None) -> int:
    run_sync(args, ctx=ctx)
    return EXIT_CODE_OK
