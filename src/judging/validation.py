"""
Validation of evaluator ranking submissions.

A submission is accepted or rejected as a whole. Every check raises
``RankingValidationError`` carrying the message shown to the evaluator, so a
rejected submission never reaches the store.
"""
import logging
from typing import Any, Iterable, List, Mapping, Sequence

from pydantic import ValidationError

from .errors import RankingValidationError
from .models import RankingSubmission, Team, ranks_are_sequential

logger = logging.getLogger(__name__)

RANKINGS_REQUIRED = "Rankings array is required"
RANKS_NOT_SEQUENTIAL = "Rankings must be sequential starting from 1"
INVALID_TEAMS = "Invalid teams in ranking"


def validate_rank_sequence(ranks: Sequence[Any]) -> None:
    """Require the ranks to be exactly 1..K, where K is the number of entries."""
    if not ranks_are_sequential(ranks):
        raise RankingValidationError(
            f"Non-sequential ranks: {sorted(ranks, key=str)}",
            RANKS_NOT_SEQUENTIAL
        )


def _has_field(entry: Mapping, snake: str, camel: str) -> bool:
    return entry.get(camel) is not None or entry.get(snake) is not None


def parse_submission(payload: Any) -> RankingSubmission:
    """Validate a raw submission body and build a ``RankingSubmission``."""
    if not isinstance(payload, Mapping):
        raise RankingValidationError("Submission body is not an object", RANKINGS_REQUIRED)

    rankings = payload.get("rankings")
    if not isinstance(rankings, list) or not rankings:
        raise RankingValidationError("Rankings missing or empty", RANKINGS_REQUIRED)

    for entry in rankings:
        if not isinstance(entry, Mapping):
            raise RankingValidationError(f"Malformed ranking entry: {entry!r}", RANKINGS_REQUIRED)
        if not _has_field(entry, "team_id", "teamId") or not _has_field(entry, "rank", "rank"):
            raise RankingValidationError(f"Ranking entry missing teamId or rank: {entry!r}", RANKINGS_REQUIRED)

    validate_rank_sequence([entry["rank"] for entry in rankings])

    try:
        return RankingSubmission.model_validate(payload)
    except ValidationError as e:
        errors = e.errors()
        detail = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in errors
        )
        if all(err['loc'] and err['loc'][0] == "rankings" for err in errors):
            raise RankingValidationError(str(e), f"Invalid ranking entry: {detail}")
        raise RankingValidationError(str(e), f"Invalid ranking submission: {detail}")


def check_team_eligibility(team_ids: Iterable[str], eligible_teams: Iterable[Team]) -> None:
    """Every referenced team must be eligible under the problem statement and ranked once."""
    team_ids = list(team_ids)
    eligible = {team.team_id for team in eligible_teams if team.is_eligible}

    duplicates = len(team_ids) != len(set(team_ids))
    unknown = [team_id for team_id in team_ids if team_id not in eligible]

    if duplicates or unknown:
        raise RankingValidationError(
            f"Invalid teams in ranking: unknown={unknown}, duplicates={duplicates}",
            INVALID_TEAMS
        )


def validate_submission(payload: Any, eligible_teams: List[Team]) -> RankingSubmission:
    """Run every submission check and return the parsed submission."""
    submission = parse_submission(payload)
    check_team_eligibility([r.team_id for r in submission.rankings], eligible_teams)
    logger.debug(f"Submission with {len(submission.rankings)} rankings passed validation")
    return submission
