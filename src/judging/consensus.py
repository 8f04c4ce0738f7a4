"""
Consensus engine combining several evaluators' rankings of the same teams.
"""
import logging
import math
from collections import defaultdict
from typing import Dict, List, Optional, Sequence

from .models import (
    Admin, ConflictLevel, ConsensusStatistics, Evaluation, Team,
    TeamConsensus, TeamRankingRecord, TeamSummary
)

logger = logging.getLogger(__name__)


def mean(values: Sequence[float]) -> Optional[float]:
    if not values:
        return None
    return sum(values) / len(values)


def population_std_dev(values: Sequence[float]) -> Optional[float]:
    """Population standard deviation; None below two samples."""
    if len(values) < 2:
        return None
    avg = sum(values) / len(values)
    variance = sum((v - avg) ** 2 for v in values) / len(values)
    return math.sqrt(variance)


def sort_by_average_rank(records: List[TeamConsensus]) -> List[TeamConsensus]:
    """Best average rank first; unranked teams last in their original order."""
    return sorted(
        records,
        key=lambda r: (r.average_rank is None, r.average_rank if r.average_rank is not None else 0.0)
    )


class ConsensusEngine:
    """Aggregates finalized evaluations into per-team consensus records."""

    def __init__(self, high_threshold: float = 3.0, medium_threshold: float = 1.5,
                 lenient_threshold: float = 2.0):
        self.high_threshold = high_threshold
        self.medium_threshold = medium_threshold
        self.lenient_threshold = lenient_threshold

    def classify_conflict(self, std_dev: Optional[float]) -> ConflictLevel:
        """Map the rank standard deviation onto a conflict level."""
        if std_dev is None:
            return ConflictLevel.LOW
        if std_dev > self.high_threshold:
            return ConflictLevel.HIGH
        if std_dev > self.medium_threshold:
            return ConflictLevel.MEDIUM
        return ConflictLevel.LOW

    def team_consensus(self, team: Team, evaluations: Sequence[Evaluation],
                       evaluator_emails: Optional[Dict[str, str]] = None) -> TeamConsensus:
        """Summarize how the finalized evaluations ranked a single team."""
        evaluator_emails = evaluator_emails or {}
        records = []

        for evaluation in evaluations:
            if not evaluation.is_finalized:
                continue
            entry = evaluation.ranking_for(team.team_id)
            if entry is None:
                continue
            records.append(TeamRankingRecord(
                evaluator_id=evaluation.evaluator_id,
                evaluator_email=evaluator_emails.get(evaluation.evaluator_id),
                rank=entry.rank,
                score=entry.score,
                comments=entry.comments
            ))

        ranks = [r.rank for r in records if r.rank is not None]
        scores = [r.score for r in records if r.score is not None]
        std_dev = population_std_dev(ranks)

        return TeamConsensus(
            team=TeamSummary.from_team(team),
            rankings=records,
            average_rank=mean(ranks),
            average_score=mean(scores),
            rank_standard_deviation=std_dev,
            conflict_level=self.classify_conflict(std_dev),
            evaluator_count=len(records)
        )

    def build_consensus(self, teams: Sequence[Team], evaluations: Sequence[Evaluation],
                        evaluator_emails: Optional[Dict[str, str]] = None) -> List[TeamConsensus]:
        """Per-team consensus for every team, sorted best first."""
        records = [self.team_consensus(team, evaluations, evaluator_emails) for team in teams]
        finalized = sum(1 for e in evaluations if e.is_finalized)
        logger.info(f"Built consensus for {len(records)} teams from {finalized} finalized evaluations")
        return sort_by_average_rank(records)

    def compute_statistics(self, teams: Sequence[Team], evaluators: Sequence[Admin],
                           evaluations: Sequence[Evaluation],
                           consensus: Sequence[TeamConsensus]) -> ConsensusStatistics:
        """Aggregate progress and conflict counts for one problem statement."""
        assigned = {evaluator.admin_id for evaluator in evaluators}
        completed = sum(
            1 for evaluation in evaluations
            if evaluation.is_finalized and evaluation.evaluator_id in assigned
        )

        return ConsensusStatistics(
            total_teams=len(teams),
            total_evaluators=len(assigned),
            completed_evaluations=completed,
            pending_evaluations=len(assigned) - completed,
            conflicting_teams=sum(1 for c in consensus if c.conflict_level == ConflictLevel.HIGH)
        )

    def count_lenient_conflicts(self, evaluations: Sequence[Evaluation]) -> int:
        """Count teams whose finalized ranks spread beyond the lenient threshold."""
        if len(evaluations) < 2:
            return 0

        finalized = [e for e in evaluations if e.is_finalized]
        if len(finalized) < 2:
            return 0

        team_ranks = defaultdict(list)
        for evaluation in finalized:
            for entry in evaluation.rankings:
                team_ranks[entry.team_id].append(entry.rank)

        conflicting = 0
        for ranks in team_ranks.values():
            std_dev = population_std_dev(ranks)
            if std_dev is not None and std_dev > self.lenient_threshold:
                conflicting += 1

        return conflicting
