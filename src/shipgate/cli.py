"""shipgate CLI - verify a tree, then ship exactly what was verified."""

import logging
import os
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from shipgate import __version__
from shipgate.config import (
    VERIFY_STATE_FILENAME,
    ProjectConfig,
    ReviewConfig,
    ShipConfig,
    VerifyConfig,
    load_project_config,
)
from shipgate.errors import ConfigurationError, IntegrityViolation
from shipgate.gates.types import GateResult
from shipgate.review.run import ReviewOutcome, run_review
from shipgate.ship.orchestrator import ShipDecision, run_ship
from shipgate.verify.orchestrator import run_verify
from shipgate.verify.record import VerificationRecord

API_KEY_ENV = "GEMINI_API_KEY"

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_POLICY = 2

cli = typer.Typer(
    name="shipgate",
    help="shipgate - verify a source tree, then ship only what was verified",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False, rich_tracebacks=True)],
        force=True,
    )


def _version_option_callback(value: bool) -> None:
    """Handle eager --version option."""
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@cli.callback()
def _cli_callback(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show shipgate version and exit.",
        is_eager=True,
        callback=_version_option_callback,
    ),
) -> None:
    """shipgate - verify a source tree, then ship only what was verified."""


def _load_project(repo_root: Path, config_path: Path | None) -> ProjectConfig:
    try:
        return load_project_config(repo_root, config_path)
    except ConfigurationError as exc:
        console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        raise typer.Exit(EXIT_ERROR) from exc


def _pass_fail(flag: bool) -> str:
    return "[green]PASS[/green]" if flag else "[red]FAIL[/red]"


def _gate_line(label: str, gate: GateResult, passed: bool) -> str:
    line = f"{label:<16} {_pass_fail(passed)}"
    if gate.status == "skipped":
        line += f" [dim](skipped: {gate.reason})[/dim]"
    elif gate.status == "failed" and gate.error:
        first = gate.error.strip().splitlines()[0] if gate.error.strip() else ""
        line += f" [dim]({escape(first[:120])})[/dim]"
    return line


def _print_verify_summary(record: VerificationRecord, output_path: Path) -> None:
    summary = record.summary
    review = record.ai_review
    console.print("=" * 60)
    console.print("[bold]VERIFICATION SUMMARY[/bold]")
    console.print("=" * 60)
    console.print(f"{'Timestamp:':<16} {record.timestamp}")
    console.print(f"{'Files hashed:':<16} {len(record.hashes)}")
    console.print(_gate_line("Tests:", record.tests, summary.tests_pass))
    console.print(_gate_line("Lint:", record.lint, summary.lint_pass))
    console.print(_gate_line("Security Audit:", record.audit, summary.audit_pass))
    method = record.audit.details.get("method")
    if method:
        console.print(f"  [dim]audit method: {method} ({record.audit.details.get('confidence')} confidence)[/dim]")

    review_line = f"{'AI Review:':<16} " + ("[green]PASS[/green]" if summary.ai_review_pass else "[yellow]NEEDS ATTENTION[/yellow]")
    if review.status == "skipped":
        review_line += f" [dim](skipped: {review.reason})[/dim]"
    console.print(review_line)
    if review.status != "skipped":
        console.print(f"  Security Risk: {review.security_risk} ({review.security_issues} issues)")
        console.print(f"  Code Quality:  {review.code_quality} ({review.quality_issues} issues)")
        if review.inconclusive:
            console.print("  [yellow]Review inconclusive: model response was not machine-parseable[/yellow]")
        if review.error:
            console.print(f"  [red]{escape(review.error)}[/red]")
    console.print("-" * 60)
    console.print(f"{'OVERALL:':<16} {_pass_fail(summary.overall_pass)}")
    console.print("=" * 60)
    console.print(f"\n[cyan]Verification state written to:[/cyan] {output_path}")
    if review.result_path and review.status == "failed":
        console.print(f"[cyan]Review details in:[/cyan] {review.result_path}")


@cli.command()
def verify(
    repo_root: Path = typer.Option(Path("."), "--repo-root", help="Repository root to verify."),
    config_path: Path | None = typer.Option(None, "--config", help="Path to shipgate.yaml."),
    output: Path | None = typer.Option(None, "--output", "-o", help="Where to write the verification state."),
    skip_tests: bool = typer.Option(False, "--skip-tests", help="Skip running tests."),
    skip_lint: bool = typer.Option(False, "--skip-lint", help="Skip running the linter."),
    skip_ai_review: bool = typer.Option(False, "--skip-ai-review", help="Skip AI code review."),
    require_review: bool = typer.Option(
        False, "--require-review", help="Fail instead of skipping when the review cannot run."
    ),
    security_focus: bool = typer.Option(False, "--security-focus", help="Run the security review only."),
    diff: bool = typer.Option(False, "--diff", help="Review the git diff instead of the full tree."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging."),
) -> None:
    """Snapshot the tree, run every gate, and record the verdict."""
    _configure_logging(verbose)
    if skip_ai_review and require_review:
        console.print("[bold red]Error:[/bold red] --skip-ai-review and --require-review are mutually exclusive")
        raise typer.Exit(EXIT_ERROR)

    root = repo_root.resolve()
    config = VerifyConfig(
        repo_root=root,
        project=_load_project(root, config_path),
        api_key=os.environ.get(API_KEY_ENV) or None,
        skip_tests=skip_tests,
        skip_lint=skip_lint,
        skip_ai_review=skip_ai_review,
        require_review=require_review,
        security_focus=security_focus,
        use_diff=diff,
        output_path=output,
    )
    if config.api_key is None and not skip_ai_review:
        console.print(f"[yellow]Warning:[/yellow] {API_KEY_ENV} not set; AI review will not run.")

    with console.status("Running verification..."):
        record = run_verify(config)

    _print_verify_summary(record, config.resolved_output_path())
    raise typer.Exit(EXIT_OK if record.overall_pass else EXIT_POLICY)


def _print_review_summary(outcome: ReviewOutcome) -> None:
    for verdict in (outcome.security, outcome.quality):
        if verdict is None:
            continue
        console.print(f"\n[bold]{verdict.kind.capitalize()} Review[/bold] [dim]({verdict.strategy or 'raw'})[/dim]")
        if verdict.raw:
            console.print("[yellow]Could not parse structured JSON from the model response.[/yellow]")
        for finding in verdict.sorted_findings():
            console.print(f"  [{finding.severity}] {finding.location}: {finding.description}", markup=False)
        if not verdict.findings and not verdict.raw:
            console.print(f"  No {verdict.kind} issues found.")
    for error in outcome.errors:
        console.print(f"[red]{escape(error)}[/red]")

    console.print("\n" + "=" * 60)
    console.print("[bold]AI REVIEW SUMMARY[/bold]")
    console.print("=" * 60)
    console.print(f"Security Risk:  {outcome.security_risk}")
    console.print(f"Code Quality:   {outcome.code_quality}")
    console.print("-" * 60)
    result = "[green]PASS[/green]" if outcome.status != "failed" else "[yellow]NEEDS ATTENTION[/yellow]"
    if outcome.status == "skipped":
        result += f" [dim](skipped: {outcome.reason})[/dim]"
    console.print(f"REVIEW RESULT:  {result}")
    console.print("=" * 60)
    if outcome.result_path:
        console.print(f"\n[cyan]Review results written to:[/cyan] {outcome.result_path}")


@cli.command()
def review(
    repo_root: Path = typer.Option(Path("."), "--repo-root", help="Repository root to review."),
    config_path: Path | None = typer.Option(None, "--config", help="Path to shipgate.yaml."),
    files: str | None = typer.Option(None, "--files", help="Comma-separated file paths to review."),
    diff: bool = typer.Option(False, "--diff", help="Review the git diff instead of full files."),
    security_focus: bool = typer.Option(False, "--security-focus", help="Run the security review only."),
    output: Path | None = typer.Option(None, "--output", "-o", help="Where to write the review result."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging."),
) -> None:
    """Run the AI security and quality review on its own."""
    _configure_logging(verbose)
    root = repo_root.resolve()
    file_list = tuple(f.strip() for f in files.split(",") if f.strip()) if files else ()
    config = ReviewConfig(
        repo_root=root,
        project=_load_project(root, config_path),
        api_key=os.environ.get(API_KEY_ENV) or None,
        security_focus=security_focus,
        use_diff=diff,
        files=file_list,
        output_path=output,
    )
    console.print(f"[bold]AI CODE REVIEW[/bold] [dim](model: {config.project.review.model})[/dim]")
    try:
        with console.status("Waiting for the reviewer..."):
            outcome = run_review(config)
    except ConfigurationError as exc:
        console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        console.print(f'Set it with: export {API_KEY_ENV}="your-api-key"')
        raise typer.Exit(EXIT_ERROR) from exc

    _print_review_summary(outcome)
    raise typer.Exit(EXIT_POLICY if outcome.status == "failed" else EXIT_OK)


def _print_ship_decision(decision: ShipDecision, state_path: Path) -> None:
    record = decision.record
    integrity = decision.integrity
    console.print(f"[cyan]Loaded verification state from:[/cyan] {state_path}")
    console.print(f"[cyan]Verification timestamp:[/cyan] {record.timestamp}")
    if decision.stale:
        console.print(
            f"\n[yellow]WARNING: Verification is {decision.age_hours:.1f} hours old.[/yellow]\n"
            "Consider re-running verification for fresh state."
        )

    console.print("\n[bold]Gate Status:[/bold]")
    console.print(f"  verificationPassed: {_pass_fail(record.overall_pass)}")
    for name, ok in record.summary.as_items():
        console.print(f"  {name}: {_pass_fail(ok)}")

    console.print("\n[bold]Integrity Results:[/bold]")
    console.print(f"  Verified: {len(integrity.verified)}/{integrity.total}")
    if integrity.modified:
        console.print("\n[bold red]Files modified since verification:[/bold red]")
        for item in integrity.modified:
            console.print(f"  {item.path}")
            console.print(f"    Expected: {item.expected_prefix}")
            console.print(f"    Actual:   {item.actual_prefix}")
    if integrity.missing:
        console.print("\n[bold red]Files missing since verification:[/bold red]")
        for path in integrity.missing:
            console.print(f"  {path}")


@cli.command()
def ship(
    repo_root: Path = typer.Option(Path("."), "--repo-root", help="Repository root to ship."),
    state: Path | None = typer.Option(None, "--state", help="Path to verify-state.json."),
    config_path: Path | None = typer.Option(None, "--config", help="Path to shipgate.yaml."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be done without doing it."),
    create_pr: bool = typer.Option(False, "--create-pr", help="Create a GitHub PR (requires gh)."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging."),
) -> None:
    """Re-check the verified snapshot and gates, then release."""
    _configure_logging(verbose)
    root = repo_root.resolve()
    state_path = state or _load_project(root, config_path).state_path(root, VERIFY_STATE_FILENAME)
    if dry_run:
        console.print("\n[bold]*** DRY RUN MODE - No changes will be made ***[/bold]\n")

    try:
        decision = run_ship(ShipConfig(repo_root=root, state_path=state_path, dry_run=dry_run, create_pr=create_pr))
    except ConfigurationError as exc:
        console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        raise typer.Exit(EXIT_ERROR) from exc

    _print_ship_decision(decision, state_path)

    if not decision.allowed:
        if not decision.gates_pass:
            console.print(
                f"\n[bold red]Error:[/bold red] Gates not passed ({', '.join(decision.failed_gates)}). "
                "Cannot proceed with ship."
            )
        try:
            decision.raise_for_denial()
        except IntegrityViolation as exc:
            console.print(f"\n[bold red]Error:[/bold red] {escape(str(exc))}")
            console.print("Cannot ship code that differs from verified state.")
        console.print("Run verification again to capture current state.")
        raise typer.Exit(EXIT_POLICY)

    console.print("\n" + "=" * 60)
    console.print("[bold green]ALL CHECKS PASSED - READY TO SHIP[/bold green]")
    console.print("=" * 60)

    if not create_pr:
        console.print("\nNext steps:")
        console.print("1. Create a pull request with the verification evidence")
        console.print("2. Include the verification timestamp in the PR description")
        console.print("3. Request human review")
        console.print("\nOr run with --create-pr to open a GitHub PR automatically")
        raise typer.Exit(EXIT_OK)

    if decision.pr_error:
        console.print(f"[bold red]Error:[/bold red] {escape(decision.pr_error)}")
        raise typer.Exit(EXIT_OK if dry_run else EXIT_ERROR)

    if dry_run and decision.pr_plan is not None:
        console.print(f"[DRY RUN] Would execute: {decision.pr_plan.rendered_command()}", markup=False)
        raise typer.Exit(EXIT_OK)

    console.print("[green]✓ Pull request created[/green]")
    if decision.pr_url:
        console.print(f"[cyan]PR URL:[/cyan] {decision.pr_url}")
    raise typer.Exit(EXIT_OK)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
