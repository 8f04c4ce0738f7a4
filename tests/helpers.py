"""Builders for ranking payloads and evaluations used across tests."""

from typing import Dict, List, Optional

from judging.models import Evaluation, RankingEntry


def ranking_payload(team_ids: List[str], is_finalized: bool = False,
                    scores: Optional[Dict[str, float]] = None) -> Dict:
    """Payload ranking the given teams best first."""
    scores = scores or {}
    rankings = []
    for i, team_id in enumerate(team_ids):
        entry = {"teamId": team_id, "rank": i + 1}
        if team_id in scores:
            entry["score"] = scores[team_id]
        rankings.append(entry)
    return {"rankings": rankings, "isFinalized": is_finalized}


def make_evaluation(evaluator_id: str, team_ids: List[str], is_finalized: bool = True,
                    problem_statement_id: str = "ps-1",
                    scores: Optional[Dict[str, float]] = None) -> Evaluation:
    """Evaluation ranking the given teams best first."""
    scores = scores or {}
    return Evaluation(
        problem_statement_id=problem_statement_id,
        evaluator_id=evaluator_id,
        rankings=[
            RankingEntry(team_id=team_id, rank=i + 1, score=scores.get(team_id))
            for i, team_id in enumerate(team_ids)
        ],
        is_finalized=is_finalized,
        total_teams=len(team_ids)
    )
