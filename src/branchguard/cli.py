# src/branchguard/cli.py: Command-Line Interface (CLI) entry point.
# Implemented using Typer, this module provides the 'branchguard' command. It
# lists the protection rules in scope for a repository, checks a rules file
# for broken rules, and verifies a pull request merge against the rules,
# exiting non-zero when the merge is blocked.

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import Config, load_config
from .context import background
from .manager import Manager
from .membership import PermissionCache
from .store import YamlRuleStore
from .types import MergeMethod, MergeVerifyInput, Principal, PullReq, Repository
from .util.errors import BranchGuardError, PolicyViolationError, RuleError
from .util.log import setup_logging
from .violations import is_blocked

app = typer.Typer(
    name="branchguard",
    help="Evaluate branch protection rules for pull request merges.",
    add_completion=False,
)
console = Console()


def version_callback(value: bool):
    """Print the version and exit."""
    if value:
        print(f"branchguard version: {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to the config.yaml file."
    ),
    rules_path: Optional[Path] = typer.Option(
        None, "--rules", "-r", help="Path to the rules file. Overrides the config."
    ),
    version: Optional[bool] = typer.Option(
        None, "--version", callback=version_callback, is_eager=True
    ),
):
    """
    branchguard CLI.
    """
    try:
        cfg = load_config(config_path)
    except BranchGuardError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=e.exit_code)
    setup_logging(cfg.logging)
    ctx.obj = {"config": cfg, "rules_path": cfg.resolve_rules_file(rules_path)}


def _load_manager(ctx: typer.Context) -> tuple[YamlRuleStore, Manager]:
    cfg: Config = ctx.obj["config"]
    try:
        store = YamlRuleStore.load(ctx.obj["rules_path"])
    except BranchGuardError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=e.exit_code)
    resolver = PermissionCache(store.spaces, store.memberships, cfg.permission_cache)
    return store, Manager(store, resolver=resolver)


@app.command()
def rules(
    ctx: typer.Context,
    repo_path: str = typer.Argument(..., help="Repository path, e.g. 'acme/platform/api'."),
):
    """List the protection rules in scope for a repository."""
    store, _ = _load_manager(ctx)
    in_scope = store.list_repo_rules(Repository(id=0, path=repo_path))

    table = Table("ID", "Identifier", "Scope", "Type", "State")
    for rule in in_scope:
        info = rule.info
        table.add_row(str(info.id), info.identifier, info.scope, info.type, info.state.value)
    console.print(table)


@app.command()
def check(ctx: typer.Context):
    """Check that every rule's pattern and definition can be parsed."""
    store, manager = _load_manager(ctx)

    failures = 0
    table = Table("ID", "Identifier", "Scope", "Result")
    for rule in store.all_rules():
        info = rule.info
        try:
            manager.sanitize_rule(rule)
            result = "[green]ok[/green]"
        except RuleError as e:
            failures += 1
            result = f"[red]{e}[/red]"
        table.add_row(str(info.id), info.identifier, info.scope, result)
    console.print(table)

    if failures:
        console.print(f"[bold red]{failures} broken rule(s).[/bold red]")
        raise typer.Exit(code=RuleError.exit_code)


@app.command()
def verify(
    ctx: typer.Context,
    repo_path: str = typer.Argument(..., help="Repository path, e.g. 'acme/platform/api'."),
    target_branch: Optional[str] = typer.Option(
        None, "--target-branch", "-t", help="Branch being merged into. Defaults to the default branch."
    ),
    source_branch: str = typer.Option("", "--source-branch", "-s", help="Branch being merged."),
    default_branch: str = typer.Option("main", "--default-branch", help="Repository default branch."),
    method: Optional[MergeMethod] = typer.Option(None, "--method", "-m", help="Requested merge method."),
    actor_id: int = typer.Option(..., "--actor", "-a", help="Principal ID of the merging user."),
    admin: bool = typer.Option(False, "--admin", help="Treat the actor as a system administrator."),
    approvals: int = typer.Option(0, "--approvals", min=0, help="Approvals given to the pull request."),
    unresolved: int = typer.Option(0, "--unresolved", min=0, help="Unresolved comment threads."),
    pullreq_id: int = typer.Option(1, "--pullreq", help="Pull request ID."),
):
    """Verify whether a pull request may be merged."""
    _, manager = _load_manager(ctx)
    eval_ctx = background()

    repo = Repository(id=0, path=repo_path, default_branch=default_branch)
    in_ = MergeVerifyInput(
        actor=Principal(id=actor_id, admin=admin),
        target_repo=repo,
        pull_req=PullReq(
            id=pullreq_id,
            source_branch=source_branch,
            target_branch=target_branch or default_branch,
            approval_count=approvals,
            unresolved_count=unresolved,
        ),
        method=method,
    )

    try:
        rule_set = manager.for_repository(eval_ctx, repo)
        out, violations = rule_set.merge_verify(eval_ctx, in_)
    except BranchGuardError as e:
        console.print(f"[bold red]Verification failed:[/bold red] {e}")
        raise typer.Exit(code=e.exit_code)

    if out.allowed_methods is None:
        allowed = "unrestricted" if method is None else f"n/a (requested '{method.value}')"
    else:
        allowed = ", ".join(m.value for m in out.allowed_methods) or "none"
    console.print(f"Allowed merge methods: [bold]{allowed}[/bold]")
    console.print(f"Delete source branch: [bold]{'yes' if out.delete_source_branch else 'no'}[/bold]")

    if violations:
        table = Table("Rule", "Scope", "Code", "Message", "Bypassed")
        for entry in violations:
            for violation in entry.violations:
                table.add_row(
                    entry.rule.identifier,
                    entry.rule.scope,
                    violation.code,
                    violation.message,
                    "yes" if entry.bypassed else "no",
                )
        console.print(table)

    if is_blocked(violations):
        console.print("[bold red]Merge blocked by branch protection rules.[/bold red]")
        raise typer.Exit(code=PolicyViolationError.exit_code)
    console.print("[bold green]Merge allowed.[/bold green]")


if __name__ == "__main__":
    app()
