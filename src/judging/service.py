"""
Judging workflow: ranking submission and consensus reports.
"""
import logging
from typing import Dict, List, Optional

from .config import ConsensusConfig, config
from .consensus import ConsensusEngine
from .errors import AuthorizationError, NotFoundError, RankingValidationError
from .models import (
    Admin, AdminRole, AssignmentProgress, ConflictLevel, EvaluationSummary, EvaluatorRanking,
    EvaluatorProgress, EvaluatorSummary, ProblemStatement, ProblemStatementOverview,
    ProblemStatementRankings, RankableTeam, RankingEntry, RankingWorkspace,
    SubmissionResult, TeamSummary, utcnow
)
from .store import JudgingStore
from .validation import validate_submission

logger = logging.getLogger(__name__)


class RankingService:
    """Runs evaluator submissions and super-admin reports against a store."""

    def __init__(self, store: JudgingStore, consensus_config: Optional[ConsensusConfig] = None):
        self.store = store
        consensus_config = consensus_config or config.consensus
        self.engine = ConsensusEngine(
            high_threshold=consensus_config.high_conflict_threshold,
            medium_threshold=consensus_config.medium_conflict_threshold,
            lenient_threshold=consensus_config.lenient_conflict_threshold
        )

    def _require_evaluator(self, evaluator_id: str, problem_statement_id: Optional[str] = None) -> Admin:
        evaluator = self.store.get_admin(evaluator_id)
        if evaluator is None or evaluator.role != AdminRole.EVALUATOR:
            raise AuthorizationError(f"Admin {evaluator_id} is not an evaluator", "Evaluator access required")
        if problem_statement_id is not None and not evaluator.is_assigned_to(problem_statement_id):
            raise AuthorizationError(
                f"Evaluator {evaluator_id} not assigned to {problem_statement_id}",
                "Problem statement not assigned to this evaluator"
            )
        return evaluator

    def _require_super_admin(self, requester_id: str) -> Admin:
        admin = self.store.get_admin(requester_id)
        if admin is None or admin.role != AdminRole.SUPER_ADMIN:
            raise AuthorizationError(f"Admin {requester_id} is not a super admin", "Super admin access required")
        return admin

    def _require_problem_statement(self, problem_statement_id: str) -> ProblemStatement:
        problem_statement = self.store.get_problem_statement(problem_statement_id)
        if problem_statement is None:
            raise NotFoundError(
                f"Problem statement {problem_statement_id} not found", "Problem statement not found"
            )
        return problem_statement

    def get_ranking_workspace(self, evaluator_id: str, problem_statement_id: str) -> RankingWorkspace:
        """Teams an evaluator can rank, with their current draft or final ranking."""
        evaluator = self._require_evaluator(evaluator_id, problem_statement_id)
        problem_statement = self._require_problem_statement(problem_statement_id)

        teams = self.store.list_teams(problem_statement_id)
        evaluation = self.store.get_evaluation(problem_statement_id, evaluator.admin_id)

        rankable = []
        for team in teams:
            entry = evaluation.ranking_for(team.team_id) if evaluation else None
            rankable.append(RankableTeam(
                team=TeamSummary.from_team(team),
                status=team.status,
                submitted_tasks=team.submitted_tasks,
                current_rank=entry.rank if entry else None,
                score=entry.score if entry else None,
                comments=entry.comments if entry else None
            ))

        return RankingWorkspace(
            problem_statement=problem_statement,
            teams=rankable,
            evaluation=EvaluationSummary.from_evaluation(evaluation) if evaluation else None
        )

    def submit_rankings(self, evaluator_id: str, problem_statement_id: str, payload) -> SubmissionResult:
        """Validate and store an evaluator's rankings, replacing any earlier submission."""
        evaluator = self._require_evaluator(evaluator_id, problem_statement_id)
        self._require_problem_statement(problem_statement_id)

        eligible_teams = self.store.list_teams(problem_statement_id)
        try:
            submission = validate_submission(payload, eligible_teams)
        except RankingValidationError as e:
            logger.warning(f"Rejected rankings from {evaluator.email} for {problem_statement_id}: {e}")
            raise

        previous = self.store.get_evaluation(problem_statement_id, evaluator.admin_id)
        if previous is not None and previous.is_finalized:
            logger.warning(
                f"Evaluator {evaluator.email} is overwriting a finalized evaluation for {problem_statement_id}"
            )

        evaluated_at = utcnow()
        rankings = [
            RankingEntry(
                team_id=r.team_id,
                rank=r.rank,
                score=r.score,
                comments=r.comments,
                evaluated_at=evaluated_at
            )
            for r in submission.rankings
        ]

        evaluation = self.store.upsert_evaluation(
            problem_statement_id,
            evaluator.admin_id,
            rankings,
            submission.is_finalized,
            total_teams=len(rankings)
        )

        state = "finalized" if submission.is_finalized else "draft"
        logger.info(f"Saved {state} rankings of {len(rankings)} teams from {evaluator.email} for {problem_statement_id}")

        return SubmissionResult(
            message="Rankings finalized successfully" if submission.is_finalized else "Rankings saved as draft",
            evaluation=EvaluationSummary.from_evaluation(evaluation)
        )

    def get_problem_statement_rankings(self, requester_id: str, problem_statement_id: str) -> ProblemStatementRankings:
        """Every assigned evaluator's ranking plus the per-team consensus."""
        self._require_super_admin(requester_id)
        problem_statement = self._require_problem_statement(problem_statement_id)

        teams = self.store.list_teams(problem_statement_id)
        evaluators = self.store.list_evaluators(problem_statement_id)
        evaluations = {
            e.evaluator_id: e for e in self.store.list_evaluations(problem_statement_id=problem_statement_id)
        }

        evaluator_rankings = []
        assigned_evaluations = []
        for evaluator in evaluators:
            evaluation = evaluations.get(evaluator.admin_id)
            if evaluation is not None:
                assigned_evaluations.append(evaluation)
            evaluator_rankings.append(EvaluatorRanking(
                evaluator=EvaluatorSummary(admin_id=evaluator.admin_id, email=evaluator.email),
                evaluation=EvaluationSummary.from_evaluation(evaluation) if evaluation else None
            ))

        emails = {evaluator.admin_id: evaluator.email for evaluator in evaluators}
        consensus = self.engine.build_consensus(teams, assigned_evaluations, emails)
        statistics = self.engine.compute_statistics(teams, evaluators, assigned_evaluations, consensus)

        return ProblemStatementRankings(
            problem_statement=problem_statement,
            statistics=statistics,
            evaluator_rankings=evaluator_rankings,
            consensus_analysis=consensus
        )

    def list_problem_statement_overview(self, requester_id: str) -> List[ProblemStatementOverview]:
        """Judging progress for active problem statements that have teams and evaluators."""
        self._require_super_admin(requester_id)

        evaluators = self.store.list_evaluators()
        all_evaluations = self.store.list_evaluations()

        team_counts: Dict[str, int] = {}
        for team in self.store.list_teams():
            if team.submitted_tasks >= 1:
                team_counts[team.problem_statement_id] = team_counts.get(team.problem_statement_id, 0) + 1

        overview = []
        for ps in self.store.list_problem_statements(active_only=True):
            ps_id = ps.problem_statement_id
            assigned_ids = {evaluator.admin_id for evaluator in evaluators if evaluator.is_assigned_to(ps_id)}
            total_teams = team_counts.get(ps_id, 0)
            if total_teams == 0 or not assigned_ids:
                continue

            ps_evaluations = [e for e in all_evaluations if e.problem_statement_id == ps_id]
            # strict count matches the detail view, which only sees assigned evaluators
            assigned_evaluations = [e for e in ps_evaluations if e.evaluator_id in assigned_ids]
            teams = self.store.list_teams(ps_id)
            consensus = self.engine.build_consensus(teams, assigned_evaluations)

            overview.append(ProblemStatementOverview(
                problem_statement_id=ps_id,
                ps_number=ps.ps_number,
                title=ps.title,
                description=ps.description,
                assigned_evaluators=len(assigned_ids),
                completed_evaluations=sum(1 for e in ps_evaluations if e.is_finalized),
                total_teams=total_teams,
                conflicting_teams=self.engine.count_lenient_conflicts(ps_evaluations),
                high_conflict_teams=sum(1 for c in consensus if c.conflict_level == ConflictLevel.HIGH)
            ))

        return overview

    def _evaluator_progress(self, evaluator: Admin, include_rankings: bool = False) -> EvaluatorProgress:
        evaluations = {
            e.problem_statement_id: e for e in self.store.list_evaluations(evaluator_id=evaluator.admin_id)
        }

        assignments = []
        for ps_id in evaluator.assigned_problem_statements:
            problem_statement = self.store.get_problem_statement(ps_id)
            if problem_statement is None:
                logger.warning(f"Evaluator {evaluator.email} assigned to missing problem statement {ps_id}")
                continue
            evaluation = evaluations.get(ps_id)
            assignments.append(AssignmentProgress(
                problem_statement_id=ps_id,
                title=problem_statement.title,
                total_teams=len(self.store.list_teams(ps_id)),
                is_evaluated=evaluation is not None,
                is_finalized=bool(evaluation and evaluation.is_finalized),
                submitted_at=evaluation.submitted_at if evaluation else None,
                ranked_teams=len(evaluation.rankings) if evaluation else 0,
                evaluation=EvaluationSummary.from_evaluation(evaluation) if evaluation and include_rankings else None
            ))

        total = len(assignments)
        completed = sum(1 for a in assignments if a.is_finalized)

        return EvaluatorProgress(
            admin_id=evaluator.admin_id,
            email=evaluator.email,
            is_active=evaluator.is_active,
            created_at=evaluator.created_at,
            total_assignments=total,
            completed_evaluations=completed,
            draft_evaluations=sum(1 for a in assignments if a.is_evaluated and not a.is_finalized),
            total_teams_evaluated=sum(a.ranked_teams for a in assignments),
            progress_percentage=round(completed / total * 100) if total > 0 else 0,
            problem_statements=assignments
        )

    def list_evaluator_progress(self, requester_id: str) -> List[EvaluatorProgress]:
        """Completion of every active evaluator."""
        self._require_super_admin(requester_id)
        return [self._evaluator_progress(evaluator) for evaluator in self.store.list_evaluators()]

    def get_evaluator_detail(self, requester_id: str, evaluator_id: str) -> EvaluatorProgress:
        """One evaluator's assignments including their submitted rankings."""
        self._require_super_admin(requester_id)
        evaluator = self.store.get_admin(evaluator_id)
        if evaluator is None or evaluator.role != AdminRole.EVALUATOR:
            raise NotFoundError(f"Evaluator {evaluator_id} not found", "Evaluator not found")
        return self._evaluator_progress(evaluator, include_rankings=True)

    def get_evaluator_dashboard(self, evaluator_id: str) -> EvaluatorProgress:
        """An evaluator's own assignment status."""
        evaluator = self.store.get_admin(evaluator_id)
        if evaluator is None:
            raise NotFoundError(f"Evaluator {evaluator_id} not found", "Evaluator not found")
        if evaluator.role != AdminRole.EVALUATOR:
            raise AuthorizationError(
                f"Admin {evaluator_id} is not an evaluator", "Access restricted to evaluators only"
            )
        return self._evaluator_progress(evaluator)
