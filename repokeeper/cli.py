"""repokeeper CLI — the main entry point."""

from __future__ import annotations

import functools
import logging

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from repokeeper import __version__
from repokeeper.config import Settings, load_settings
from repokeeper.exceptions import GitHubAPIError, ReconcileAborted, RepokeeperError
from repokeeper.log import configure_logging

console = Console()
logger = logging.getLogger(__name__)


def handle_errors(func):
    """Print repokeeper errors and exit with status 1."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ReconcileAborted:
            console.print("[yellow]Aborted.[/]")
            raise SystemExit(1)
        except RepokeeperError as e:
            console.print(f"[red]Error:[/] {e}")
            raise SystemExit(1)

    return wrapper


def _client(settings: Settings):
    from repokeeper.github.client import GitHubClient

    return GitHubClient.from_settings(settings)


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "config_path", default=None, help="Path to a YAML config file")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, verbose: bool):
    """repokeeper — keep GitHub repositories protected and licensed.

    Reconciles the default branch's protection rules against a fixed
    baseline, lists repositories, and checks or adds licenses.
    Authenticate with GITHUB_TOKEN (or GH_TOKEN).
    """
    configure_logging(verbose)
    try:
        ctx.obj = load_settings(config_path)
    except RepokeeperError as e:
        console.print(f"[red]Error:[/] {e}")
        raise SystemExit(1)


# ── Protection ───────────────────────────────────────────────────────


@main.group()
def protect():
    """Compare and apply default-branch protection."""


def _resolve_repo(gh, repo_arg: str, branch: str | None):
    from repokeeper.protection.state import RepoRef
    from repokeeper.utils.git_ops import resolve_full_name

    bare = "/" not in repo_arg and repo_arg not in (".", "..") and not repo_arg.startswith("~")
    try:
        full_name = resolve_full_name(repo_arg, gh.authenticated_login() if bare else None)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="REPO")

    try:
        branch = branch or gh.default_branch(full_name)
    except GitHubAPIError as e:
        raise RepokeeperError(f"Could not find repo '{full_name}' or determine its default branch: {e}")

    owner, _, name = full_name.partition("/")
    return RepoRef(owner=owner, name=name, branch=branch)


def _print_diff(diff, title: str, left: str = "Current", right: str = "Desired") -> None:
    from repokeeper.protection.diff import format_value

    table = Table(title=title)
    table.add_column("Rule", style="cyan")
    table.add_column(left, justify="center")
    table.add_column(right, justify="center")
    table.add_column("", width=2)

    for entry in diff.entries:
        marker = "[yellow]*[/]" if entry.changed else ""
        right_value = format_value(entry.rule, entry.desired)
        if entry.changed:
            right_value = f"[bold]{right_value}[/]"
        table.add_row(entry.rule.label, format_value(entry.rule, entry.current), right_value, marker)

    console.print(table)


def _prompt_strategy(preview):
    from repokeeper.protection.strategies import Strategy

    _print_diff(preview.diff, f"Protection for {preview.repo}")
    console.print(
        "\n  [bold]o[/]verwrite  replace every rule with the baseline\n"
        "  [bold]m[/]erge      keep whichever side is more protective, rule by rule\n"
        "  [bold]q[/]uit       change nothing\n"
    )
    choice = click.prompt(
        "Choose [o/m/q]",
        type=click.Choice(["o", "m", "q"], case_sensitive=False),
        default="q",
        show_choices=False,
    ).lower()
    return {"o": Strategy.OVERWRITE, "m": Strategy.MERGE}.get(choice)


@protect.command(name="diff")
@click.argument("repo")
@click.option("--branch", "-b", default=None, help="Branch to inspect (default: the default branch)")
@click.pass_obj
@handle_errors
def protect_diff(settings: Settings, repo: str, branch: str | None):
    """Show how REPO's protection differs from the baseline. Changes nothing.

    REPO can be owner/name, a bare name owned by you, or a path to a local
    checkout (e.g. '.').
    """
    from repokeeper.github.protection_api import GitHubProtectionApi
    from repokeeper.protection.reconciler import diff_only

    with _client(settings) as gh:
        ref = _resolve_repo(gh, repo, branch)
        console.print(f"\n[bold blue]repokeeper[/] — Protection diff: {ref}\n")
        report = diff_only(GitHubProtectionApi(gh), ref)

    _print_diff(report.diff, f"Protection for {ref}")
    for name in report.unmanaged:
        console.print(f"  [yellow]![/] {name} is set on GitHub and would be removed by apply")
    if report.any_changed:
        console.print(f"\n[yellow]{report.diff.summary()}[/]")
    else:
        console.print("\n[green]No changes needed.[/]")


@protect.command(name="apply")
@click.argument("repo")
@click.option("--branch", "-b", default=None, help="Branch to protect (default: the default branch)")
@click.option(
    "--strategy",
    "-s",
    type=click.Choice(["overwrite", "merge"]),
    default=None,
    help="Conflict strategy; prompts when omitted",
)
@click.pass_obj
@handle_errors
def protect_apply(settings: Settings, repo: str, branch: str | None, strategy: str | None):
    """Reconcile REPO's branch protection with the baseline.

    With --strategy the change is applied without prompting, which is
    what automated runs should use.
    """
    from repokeeper.github.protection_api import GitHubProtectionApi
    from repokeeper.protection.reconciler import reconcile

    with _client(settings) as gh:
        ref = _resolve_repo(gh, repo, branch)
        console.print(f"\n[bold blue]repokeeper[/] — Protecting: {ref}\n")
        report = reconcile(GitHubProtectionApi(gh), ref, strategy or _prompt_strategy)

    if not report.changed:
        _print_diff(report.diff, f"Protection for {ref}")
        console.print("\n[green]No changes needed.[/]")
        return

    _print_diff(report.target_diff, f"Applied ({report.strategy.value})", left="Before", right="Applied")
    for warning in report.warnings:
        console.print(f"  [yellow]![/] {warning}")
    console.print(Panel(report.summary(), title="Done"))


# ── Repositories ─────────────────────────────────────────────────────


@main.group()
def repos():
    """List repositories."""


def _truncate(name: str, width: int = 28) -> str:
    return name if len(name) <= width else name[: width - 3] + "..."


@repos.command(name="list")
@click.option("--sort", "sort_method", default="latest", type=click.Choice(["latest", "stars", "name", "visibility"]))
@click.option("--filter", "visibility", default="all", type=click.Choice(["all", "public", "private"]))
@click.option("--limit", default=100, type=click.IntRange(min=1), help="Max repos to show")
@click.option("--owner", default=None, help="List another user's public repositories")
@click.pass_obj
@handle_errors
def list_repos(settings: Settings, sort_method: str, visibility: str, limit: int, owner: str | None):
    """List repositories (yours by default)."""
    from repokeeper.fleet.repos import fetch_repos, sort_repos

    with _client(settings) as gh:
        if owner is None:
            console.print(f"Authenticated as: {gh.authenticated_login()}")
        console.print(f"Fetching repositories (filter: {visibility}, sort: {sort_method}, limit: {limit})...")
        found = sort_repos(fetch_repos(gh, owner, visibility, limit), sort_method)

    if not found:
        console.print("[yellow]No repositories found.[/]")
        return

    table = Table(title=f"Repositories ({len(found)})")
    table.add_column("#", style="dim", width=4)
    table.add_column("Name", style="cyan")
    table.add_column("Visibility")
    table.add_column("Stars", justify="right")
    table.add_column("License")
    table.add_column("Updated")

    for i, repo in enumerate(found, start=1):
        table.add_row(
            str(i),
            _truncate(repo.name),
            repo.visibility,
            str(repo.stars),
            repo.license_key or "none",
            repo.updated_at[:10],
        )

    console.print(table)


# ── Licenses ─────────────────────────────────────────────────────────


@main.group(name="license")
def license_group():
    """Check or add a license across your repositories."""


def _fetch_for_license(gh, visibility: str):
    from repokeeper.fleet.repos import fetch_repos, sort_repos

    console.print(f"Fetching repositories (filter: {visibility})...")
    return sort_repos(fetch_repos(gh, None, visibility, limit=1000), "name")


def _print_license_summary(summary, visibility: str) -> None:
    key = summary.license_key
    table = Table(title=f"License summary ({visibility} repos)", show_header=False)
    table.add_column("Group", style="bold")
    table.add_column("Count", justify="right")
    table.add_row(f"{key}:", str(len(summary.matching)))
    table.add_row("Other:", str(len(summary.other)))
    table.add_row("None:", str(len(summary.unlicensed)))
    table.add_row("Total:", str(summary.total))
    console.print(table)

    if summary.other:
        other = Table(title=f"Repos with non-{key} licenses")
        other.add_column("Name", style="cyan")
        other.add_column("License")
        other.add_column("Visibility")
        for repo in summary.other:
            other.add_row(_truncate(repo.name), repo.license_key, repo.visibility)
        console.print(other)

    if summary.unlicensed:
        none = Table(title="Repos with no license")
        none.add_column("Name", style="cyan")
        none.add_column("Visibility")
        none.add_column("Flags")
        for repo in summary.unlicensed:
            none.add_row(_truncate(repo.name), repo.visibility, " ".join(repo.flags))
        console.print(none)


@license_group.command(name="check")
@click.option("--filter", "visibility", default="public", type=click.Choice(["all", "public", "private"]))
@click.pass_obj
@handle_errors
def license_check(settings: Settings, visibility: str):
    """Show which repositories carry the configured license."""
    from repokeeper.fleet.licenses import summarize_licenses

    with _client(settings) as gh:
        found = _fetch_for_license(gh, visibility)

    if not found:
        console.print("[yellow]No repositories found.[/]")
        return

    summary = summarize_licenses(found, settings.license_key)
    _print_license_summary(summary, visibility)
    if summary.all_compliant:
        console.print(f"\n[green]All repos already have {settings.license_key}. Nothing to do.[/]")


@license_group.command(name="add")
@click.option("--filter", "visibility", default="public", type=click.Choice(["all", "public", "private"]))
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Add to every eligible repo without prompting")
@click.pass_obj
@handle_errors
def license_add(settings: Settings, visibility: str, assume_yes: bool):
    """Add the configured license to repositories missing it.

    Archived and empty repositories are skipped. Repositories with a
    different license are only changed after confirmation.
    """
    from repokeeper.fleet.licenses import add_license, license_candidates

    key = settings.license_key
    with _client(settings) as gh:
        candidates = license_candidates(_fetch_for_license(gh, visibility), key)
        if not candidates:
            console.print(f"\n[green]No eligible repos to add {key} to.[/] (Archived and empty repos are excluded.)")
            return

        console.print(f"\nEligible repos for {key} ({len(candidates)}):\n")
        for i, repo in enumerate(candidates, start=1):
            console.print(
                f"  {i:2d}. [cyan]{repo.name:<30}[/] {repo.visibility:<10} "
                f"license: {repo.license_key or 'none'}  {' '.join(repo.flags)}"
            )

        if assume_yes:
            mode = "a"
        else:
            console.print("\n  [bold]a[/]  add to all listed repos\n  [bold]s[/]  select individual repos\n  [bold]q[/]  quit\n")
            mode = click.prompt(
                "Choose [a/s/q]",
                type=click.Choice(["a", "s", "q"], case_sensitive=False),
                default="q",
                show_choices=False,
            ).lower()
        if mode == "q":
            raise ReconcileAborted("license add: nothing selected")

        console.print(f"\nFetching {key} license text...")
        body = gh.license_body(key)

        failed = 0
        for i, repo in enumerate(candidates, start=1):
            if not assume_yes:
                if mode == "s":
                    current = repo.license_key or "no license"
                    console.print(f"\n  [{i}/{len(candidates)}] {repo.name} ({current})")
                    question = f"  {'Replace with' if repo.license_key else 'Add'} {key}?"
                elif repo.license_key:
                    console.print(f"\n  [yellow]WARNING:[/] {repo.name} currently has '{repo.license_key}'.")
                    question = f"  Replace with {key}?"
                else:
                    question = None
                if question and not click.confirm(question, default=False):
                    console.print(f"  Skipping {repo.name}.")
                    continue

            try:
                add_license(gh, repo, body, settings.license_message)
            except GitHubAPIError as e:
                failed += 1
                logger.warning("Adding license to %s failed: %s", repo.full_name, e)
                console.print(f"  Adding {key} to {repo.name}... [red]FAILED[/]")
            else:
                console.print(f"  Adding {key} to {repo.name}... [green]done[/]")

    console.print("\nDone.")
    if failed:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
