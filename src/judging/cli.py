"""CLI for judging reports."""

import json
import logging
import sys
from typing import List, Optional

import click

from .config import config
from .errors import JudgingError, PortalAPIError
from .models import ConflictLevel, ProblemStatementRankings
from .portal_client import PortalClient
from .roster_loader import CSVRosterLoader
from .service import RankingService

logger = logging.getLogger(__name__)

CONFLICT_MARKERS = {
    ConflictLevel.LOW: "🟢",
    ConflictLevel.MEDIUM: "🟡",
    ConflictLevel.HIGH: "🔴",
}


def _fmt(value: Optional[float], digits: int = 2) -> str:
    return "-" if value is None else f"{value:.{digits}f}"


def format_consensus_report(report: ProblemStatementRankings) -> str:
    """Render the consensus view as a plain-text table."""
    stats = report.statistics
    lines = [
        f"{report.problem_statement.ps_number} - {report.problem_statement.title}",
        f"Teams: {stats.total_teams}  Evaluators: {stats.total_evaluators}  "
        f"Finalized: {stats.completed_evaluations}  Pending: {stats.pending_evaluations}  "
        f"High conflict: {stats.conflicting_teams}",
        "",
        f"{'#':>3}  {'Team':<30} {'Avg rank':>8} {'Avg score':>9} {'Std dev':>7} {'Judges':>6}  Conflict",
    ]

    for position, team in enumerate(report.consensus_analysis, start=1):
        lines.append(
            f"{position:>3}  {team.team.team_name[:30]:<30} {_fmt(team.average_rank):>8} "
            f"{_fmt(team.average_score, 1):>9} {_fmt(team.rank_standard_deviation):>7} "
            f"{team.evaluator_count:>6}  {CONFLICT_MARKERS[team.conflict_level]} {team.conflict_level.value}"
        )

    return "\n".join(lines)


def _build_service(data_dir: Optional[str], portal: bool) -> RankingService:
    if portal:
        errors = config.validate(require_portal=True)
        if errors:
            for error in errors:
                click.echo(f"Configuration error: {error}", err=True)
            sys.exit(1)
        return RankingService(PortalClient())

    loader = CSVRosterLoader(data_dir)
    service = RankingService(loader.build_store())
    accepted = loader.replay_rankings(service)
    logger.info(f"Replayed {accepted} ranking submissions")
    return service


def _fail(e: Exception) -> None:
    if isinstance(e, JudgingError):
        click.echo(f"Error: {e.user_message}", err=True)
    else:
        click.echo(f"Error: {e}", err=True)
    sys.exit(1)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool):
    """Hackathon judging reports."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


source_options = [
    click.option("--data-dir", default="data", show_default=True, help="Directory with roster CSV files"),
    click.option("--portal", is_flag=True, help="Read from the portal data API instead of CSV files"),
    click.option("--as-admin", "admin_id", envvar="JUDGING_ADMIN_ID", required=True,
                 help="Super admin account id used for the report"),
]


def with_source_options(func):
    for option in reversed(source_options):
        func = option(func)
    return func


@cli.command()
@click.argument("problem_statement_id")
@with_source_options
@click.option("--json", "as_json", is_flag=True, help="Print the raw JSON payload")
def consensus(problem_statement_id: str, data_dir: str, portal: bool, admin_id: str, as_json: bool):
    """Show the evaluator consensus for one problem statement."""
    try:
        service = _build_service(data_dir, portal)
        report = service.get_problem_statement_rankings(admin_id, problem_statement_id)
    except (JudgingError, PortalAPIError, FileNotFoundError) as e:
        _fail(e)
        return

    if as_json:
        click.echo(json.dumps(report.to_payload(), indent=2))
    else:
        click.echo(format_consensus_report(report))


@cli.command()
@with_source_options
def overview(data_dir: str, portal: bool, admin_id: str):
    """List judging progress per problem statement."""
    try:
        service = _build_service(data_dir, portal)
        rows = service.list_problem_statement_overview(admin_id)
    except (JudgingError, PortalAPIError, FileNotFoundError) as e:
        _fail(e)
        return

    if not rows:
        click.echo("No problem statements with teams and evaluators.")
        return

    for ps in rows:
        click.echo(
            f"{ps.ps_number:<8} {ps.title[:40]:<40} teams={ps.total_teams} "
            f"evaluators={ps.completed_evaluations}/{ps.assigned_evaluators} "
            f"conflicts={ps.conflicting_teams} (high={ps.high_conflict_teams})"
        )


@cli.command()
@with_source_options
def evaluators(data_dir: str, portal: bool, admin_id: str):
    """List evaluator completion."""
    try:
        service = _build_service(data_dir, portal)
        rows = service.list_evaluator_progress(admin_id)
    except (JudgingError, PortalAPIError, FileNotFoundError) as e:
        _fail(e)
        return

    for evaluator in rows:
        click.echo(
            f"{evaluator.email:<35} {evaluator.completed_evaluations}/{evaluator.total_assignments} finalized, "
            f"{evaluator.draft_evaluations} draft, {evaluator.progress_percentage}%"
        )


@cli.command("check-config")
@click.option("--portal", is_flag=True, help="Also require portal credentials")
def check_config(portal: bool):
    """Validate configuration from the environment."""
    errors: List[str] = config.validate(require_portal=portal)
    if errors:
        for error in errors:
            click.echo(f"❌ {error}", err=True)
        sys.exit(1)
    click.echo("✅ Configuration OK")


def main():
    cli()


if __name__ == "__main__":
    main()
