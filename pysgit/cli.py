"""CLI interface for pysgit."""

import logging
from pathlib import Path
from typing import Any, Optional

import click
from rich.progress import Progress, SpinnerColumn, TextColumn

from . import __version__
from .api import GitHubClient
from .config import (
    DEFAULT_API_URL,
    DEFAULT_MAX_WORKERS,
    DEFAULT_TIMEOUT,
    ENV_API_URL,
    ENV_BASE_DIR,
    ENV_MAX_WORKERS,
    ENV_TIMEOUT,
    ENV_TOKEN,
    ENV_USERNAME,
    Config,
)
from .exceptions import SgitAggregateError, SgitError
from .git import GitClient
from .output import OutputFormatter
from .sync import (
    DirectoryScanner,
    GitHubRemoteSource,
    ReconcileResult,
    Reconciler,
    RepoFilter,
    RepoOperations,
    RepoState,
    RepoStatePair,
    RunContext,
    map_bounded,
)

logger = logging.getLogger(__name__)

TARGET_LOCAL = "local"
TARGET_REMOTE = "remote"
TARGET_BOTH = "both"


class Session:
    """Clients and collaborators built from a validated config."""

    def __init__(self, config: Config):
        self.config = config
        self.client = GitHubClient(
            config.token, api_url=config.api_url, timeout=config.timeout
        )
        self.git = GitClient()
        self.operations = RepoOperations(config, self.client, self.git)
        self.reconciler = Reconciler(
            GitHubRemoteSource(self.client, max_workers=config.max_workers),
            DirectoryScanner(
                config.base_dir,
                self.git,
                max_workers=config.max_workers,
                owner_directories=config.owner_directories,
            ),
            config,
            operations=self.operations,
        )

    def context(self) -> RunContext:
        return RunContext(self.config.run_timeout)

    def close(self) -> None:
        self.client.close()


def _open_session(ctx: Any) -> Session:
    """Validate configuration and build a session, exiting on failure."""
    out: OutputFormatter = ctx.obj["out"]
    settings = ctx.obj["settings"]
    try:
        config = Config(
            token=settings["token"] or "",
            username=settings["username"] or "",
            base_dir=Path(settings["base_dir"]).expanduser()
            if settings["base_dir"]
            else Path(""),
            api_url=settings["api_url"],
            timeout=settings["timeout"],
            max_workers=settings["workers"],
            owner_directories=settings["owner_dirs"],
            run_timeout=settings["run_timeout"],
        ).validate()
        session = Session(config)
    except SgitError as e:
        out.error(f"Configuration error: {e}")
        ctx.exit(1)
    ctx.call_on_close(session.close)
    return session


def _build_filter(
    ctx: Any,
    langs: Optional[str],
    states: Optional[str],
    names: Optional[str],
    forks: Optional[bool],
) -> RepoFilter:
    out: OutputFormatter = ctx.obj["out"]
    try:
        return RepoFilter.from_strings(
            languages=langs, states=states, names=names, forks=forks
        )
    except SgitError as e:
        out.error(str(e))
        ctx.exit(1)


def _reconcile(
    session: Session,
    out: OutputFormatter,
    repo_filter: RepoFilter,
    remediate: bool = False,
) -> ReconcileResult:
    """Run the reconciler behind a spinner."""
    description = "Cloning missing repositories..." if remediate else "Scanning..."
    if out.quiet or out.json_output:
        return session.reconciler.reconcile(
            repo_filter, session.context(), remediate=remediate
        )
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        transient=True,
    ) as progress:
        progress.add_task(description, total=None)
        return session.reconciler.reconcile(
            repo_filter, session.context(), remediate=remediate
        )


def _report_errors(out: OutputFormatter, errors: list[Exception]) -> None:
    if not errors:
        return
    out.warning(f"{len(errors)} error(s) occurred:")
    for line in str(SgitAggregateError(errors)).splitlines():
        out.warning(f"  {line}")


def _flatten(result: ReconcileResult) -> list[RepoStatePair]:
    return list(result.pairs())


filter_options = [
    click.option(
        "--langs",
        "-l",
        default="",
        help="Comma-separated list of languages to target",
    ),
    click.option(
        "--names",
        "-n",
        default="",
        help="Comma-separated list of name fragments to target",
    ),
    click.option(
        "--forks/--no-forks",
        "-f/-F",
        default=None,
        help="Target only forked (or only non-forked) repositories",
    ),
]


def with_filter_options(func: Any) -> Any:
    for option in reversed(filter_options):
        func = option(func)
    return func


@click.group()
@click.option("--token", envvar=ENV_TOKEN, help="GitHub access token")
@click.option("--username", "-u", envvar=ENV_USERNAME, help="GitHub account name")
@click.option(
    "--base-dir",
    "-b",
    envvar=ENV_BASE_DIR,
    help="Root of the <language>/<repo> project tree",
)
@click.option(
    "--api-url",
    envvar=ENV_API_URL,
    default=DEFAULT_API_URL,
    show_default=True,
    help="GitHub API base URL",
)
@click.option(
    "--timeout",
    envvar=ENV_TIMEOUT,
    type=float,
    default=DEFAULT_TIMEOUT,
    show_default=True,
    help="Per-request timeout in seconds",
)
@click.option(
    "--workers",
    "-j",
    envvar=ENV_MAX_WORKERS,
    type=int,
    default=DEFAULT_MAX_WORKERS,
    show_default=True,
    help="Maximum number of concurrent network/filesystem operations",
)
@click.option(
    "--owner-dirs",
    is_flag=True,
    envvar="SGIT_OWNER_DIRECTORIES",
    help="Use the <owner>/<language>/<repo> layout",
)
@click.option(
    "--run-timeout",
    type=float,
    default=None,
    help="Abort the whole run after this many seconds",
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(__version__)
@click.pass_context
def main(
    ctx: Any,
    token: Optional[str],
    username: Optional[str],
    base_dir: Optional[str],
    api_url: str,
    timeout: float,
    workers: int,
    owner_dirs: bool,
    run_timeout: Optional[float],
    quiet: bool,
    json: bool,
    verbose: bool,
) -> None:
    """sgit - git synchronization made simple."""
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["settings"] = {
        "token": token,
        "username": username,
        "base_dir": base_dir,
        "api_url": api_url,
        "timeout": timeout,
        "workers": workers,
        "owner_dirs": owner_dirs,
        "run_timeout": run_timeout,
    }

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pysgit").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@with_filter_options
@click.option(
    "--states",
    "-s",
    default="",
    help="Comma-separated list of states (case-insensitive prefixes) to target",
)
@click.pass_context
def ls(
    ctx: Any,
    langs: str,
    names: str,
    forks: Optional[bool],
    states: str,
) -> None:
    """List repositories and their states, grouped by language."""
    out: OutputFormatter = ctx.obj["out"]
    repo_filter = _build_filter(ctx, langs, states, names, forks)
    session = _open_session(ctx)

    try:
        result = _reconcile(session, out, repo_filter)
    except KeyboardInterrupt:
        out.warning("\nCancelled by user")
        ctx.exit(130)
    except SgitError as e:
        out.error(f"Error: {e}")
        ctx.exit(1)

    out.print_repo_states(result.groups)
    if not result.groups:
        out.info("No repositories match the given filters.")

    _report_errors(out, result.errors)
    if result.errors:
        ctx.exit(1)


@main.command()
@with_filter_options
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def sync(
    ctx: Any,
    langs: str,
    names: str,
    forks: Optional[bool],
    yes: bool,
) -> None:
    """Clone every remote repository that has no local copy."""
    out: OutputFormatter = ctx.obj["out"]
    preview_filter = _build_filter(
        ctx, langs, RepoState.NOT_CLONED.value, names, forks
    )
    remediation_filter = _build_filter(ctx, langs, "", names, forks)
    session = _open_session(ctx)

    try:
        preview = _reconcile(session, out, preview_filter)
        targets = _flatten(preview)
        if not targets:
            if out.json_output:
                out.output_json({"cloned": [], "failed": []})
            else:
                out.success("Everything is cloned - nothing to do!")
            _report_errors(out, preview.errors)
            ctx.exit(1 if preview.errors else 0)

        out.print_repo_list(targets)
        noun = "repo" if len(targets) == 1 else "repos"
        if not yes and not click.confirm(
            f"You're about to clone {len(targets)} {noun}, would you like to proceed?"
        ):
            out.warning("Cancelled.")
            return

        result = _reconcile(session, out, remediation_filter, remediate=True)
    except KeyboardInterrupt:
        out.warning("\nCancelled by user")
        ctx.exit(130)
    except SgitError as e:
        out.error(f"Error: {e}")
        ctx.exit(1)

    wanted = {(p.owner, p.name) for p in targets}
    touched = [p for p in result.pairs() if (p.owner, p.name) in wanted]
    cloned = [p for p in touched if p.state == RepoState.UP_TO_DATE]
    failed = [p for p in touched if p.state != RepoState.UP_TO_DATE]

    if out.json_output:
        out.output_json(
            {
                "cloned": [out.pair_to_dict(p) for p in cloned],
                "failed": [out.pair_to_dict(p) for p in failed],
            }
        )
    else:
        summary = [("Cloned", f"{len(cloned)} repo(s)")]
        if failed:
            summary.append(("Failed", f"{len(failed)} repo(s)"))
        out.print_summary("Sync Complete", summary)

    _report_errors(out, result.errors)
    if result.errors:
        ctx.exit(1)


@main.command()
@click.argument("repos", nargs=-1, required=True)
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def clone(ctx: Any, repos: tuple[str, ...], yes: bool) -> None:
    """Clone specific repositories.

    REPOS may be given as NAME, OWNER/NAME or a clone URL. Repositories that
    already exist locally are skipped.
    """
    out: OutputFormatter = ctx.obj["out"]
    session = _open_session(ctx)
    context = session.context()
    errors: list[Exception] = []

    targets = []
    for argument, remote, error in map_bounded(
        lambda arg: session.operations.resolve_remote(arg, context),
        list(repos),
        session.config.max_workers,
        context,
    ):
        if error is not None:
            errors.append(SgitError(f"Failed to look up {argument}: {error}"))
        elif session.operations.target_path(remote).exists():
            out.info(f"Skipping {remote.owner}/{remote.name}: already cloned")
        else:
            targets.append(remote)

    if targets:
        for remote in targets:
            out.print(
                f"[bold blue]{remote.language}[/bold blue] {remote.owner}/{remote.name}"
            )
        noun = "repo" if len(targets) == 1 else "repos"
        if yes or click.confirm(
            f"You're about to clone {len(targets)} {noun}, would you like to proceed?"
        ):
            for remote, path, error in map_bounded(
                lambda r: session.operations.clone(r, context),
                targets,
                session.config.max_workers,
                context,
            ):
                if error is not None:
                    errors.append(error)
                else:
                    out.success(f"✓ Cloned {remote.owner}/{remote.name} into {path}")
        else:
            out.warning("Cancelled.")

    _report_errors(out, errors)
    if errors:
        ctx.exit(1)


@main.command()
@click.option("--name", prompt="Name", help="Name of the new repository")
@click.option(
    "--private/--public",
    prompt="Private",
    default=False,
    help="Create a private repository",
)
@click.option("--no-clone", is_flag=True, help="Do not clone the new repository")
@click.pass_context
def create(ctx: Any, name: str, private: bool, no_clone: bool) -> None:
    """Create a repository and clone it under the 'unknown' language."""
    out: OutputFormatter = ctx.obj["out"]
    name = name.strip()
    if not name:
        out.error("You must enter a non-empty repository name.")
        ctx.exit(1)

    session = _open_session(ctx)
    try:
        remote = session.operations.create_remote(name, private=private)
        out.success(f"✓ Created {remote.owner}/{remote.name}")

        if not no_clone:
            path = session.operations.target_path(remote)
            if path.exists():
                out.info(f"{path} already exists, skipping clone")
            else:
                path = session.operations.clone(remote, session.context())
                out.success(f"✓ Cloned into {path}")
    except SgitError as e:
        out.error(f"Error: {e}")
        ctx.exit(1)


@main.command()
@with_filter_options
@click.option(
    "--states",
    "-s",
    default="",
    help="Comma-separated list of states (case-insensitive prefixes) to target",
)
@click.option(
    "--target",
    "-t",
    type=click.Choice([TARGET_LOCAL, TARGET_REMOTE, TARGET_BOTH]),
    prompt="What would you like to delete?",
    help="Delete the local copy, the remote repository, or both",
)
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete(
    ctx: Any,
    langs: str,
    names: str,
    forks: Optional[bool],
    states: str,
    target: str,
    yes: bool,
) -> None:
    """Delete repositories matching the filters."""
    out: OutputFormatter = ctx.obj["out"]
    repo_filter = _build_filter(ctx, langs, states, names, forks)
    if repo_filter == RepoFilter():
        out.error("Refusing to delete without any filter.")
        ctx.exit(1)
    session = _open_session(ctx)

    try:
        result = _reconcile(session, out, repo_filter)
    except SgitError as e:
        out.error(f"Error: {e}")
        ctx.exit(1)

    targets = _flatten(result)
    if not targets:
        out.info("No repositories match the given filters.")
        return

    out.print_repo_list(targets)
    noun = "repo" if len(targets) == 1 else "repos"
    if not yes and not click.confirm(
        f"You're about to delete {len(targets)} {noun} ({target}), "
        "would you like to proceed?"
    ):
        out.warning("Cancelled.")
        return

    local_only = {RepoState.NOT_GIT_REPO, RepoState.NO_REMOTE_REPO}

    def delete_one(pair: RepoStatePair) -> bool:
        removed = False
        if target in (TARGET_REMOTE, TARGET_BOTH) and pair.state not in local_only:
            session.operations.delete_remote(pair)
            removed = True
        if target in (TARGET_LOCAL, TARGET_BOTH):
            removed = session.operations.delete_local(pair) or removed
        return removed

    errors = list(result.errors)
    deleted = 0
    for pair, removed, error in map_bounded(
        delete_one, targets, session.config.max_workers, session.context()
    ):
        if error is not None:
            errors.append(SgitError(f"Failed to delete {pair.full_name}: {error}"))
        elif removed:
            deleted += 1

    out.print_summary("Delete Complete", [("Deleted", f"{deleted} repo(s)")])
    _report_errors(out, errors)
    if errors:
        ctx.exit(1)


if __name__ == "__main__":
    main()
