"""
Storage collaborators for teams, staff accounts and evaluations.
"""
import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Tuple

from .models import (
    Admin, AdminRole, Evaluation, ProblemStatement, RankingEntry, Team, utcnow
)

logger = logging.getLogger(__name__)


class JudgingStore(ABC):
    """Lookups and the evaluation upsert the judging workflow depends on.

    ``upsert_evaluation`` must be atomic on the (problem statement, evaluator)
    key: implementations use a unique-index upsert or an equivalent
    compare-and-swap, never read-then-write from the caller's side.
    """

    @abstractmethod
    def get_problem_statement(self, problem_statement_id: str) -> Optional[ProblemStatement]:
        ...

    @abstractmethod
    def list_problem_statements(self, active_only: bool = True) -> List[ProblemStatement]:
        ...

    @abstractmethod
    def get_admin(self, admin_id: str) -> Optional[Admin]:
        ...

    @abstractmethod
    def list_evaluators(self, problem_statement_id: Optional[str] = None) -> List[Admin]:
        """Active evaluators, optionally only those assigned to a problem statement."""
        ...

    @abstractmethod
    def list_teams(self, problem_statement_id: Optional[str] = None,
                   include_rejected: bool = False) -> List[Team]:
        ...

    @abstractmethod
    def get_evaluation(self, problem_statement_id: str, evaluator_id: str) -> Optional[Evaluation]:
        ...

    @abstractmethod
    def list_evaluations(self, problem_statement_id: Optional[str] = None,
                         evaluator_id: Optional[str] = None) -> List[Evaluation]:
        ...

    @abstractmethod
    def upsert_evaluation(self, problem_statement_id: str, evaluator_id: str,
                          rankings: List[RankingEntry], is_finalized: bool,
                          total_teams: int) -> Evaluation:
        """Replace the evaluation for the key, creating it if absent."""
        ...


def apply_upsert(existing: Optional[Evaluation], problem_statement_id: str, evaluator_id: str,
                 rankings: List[RankingEntry], is_finalized: bool, total_teams: int) -> Evaluation:
    """Build the evaluation that replaces ``existing`` for the same key."""
    now = utcnow()
    fields = dict(
        problem_statement_id=problem_statement_id,
        evaluator_id=evaluator_id,
        rankings=rankings,
        is_finalized=is_finalized,
        total_teams=total_teams,
        updated_at=now,
    )
    if is_finalized:
        fields["submitted_at"] = now
    elif existing is not None:
        fields["submitted_at"] = existing.submitted_at

    if existing is not None:
        fields["evaluation_id"] = existing.evaluation_id
        fields["created_at"] = existing.created_at
    else:
        fields["created_at"] = now

    return Evaluation(**fields)


class InMemoryStore(JudgingStore):
    """Dict-backed store; a lock makes the evaluation upsert atomic."""

    def __init__(self, problem_statements: Iterable[ProblemStatement] = (),
                 admins: Iterable[Admin] = (), teams: Iterable[Team] = ()):
        self._problem_statements: Dict[str, ProblemStatement] = {}
        self._admins: Dict[str, Admin] = {}
        self._teams: Dict[str, Team] = {}
        self._evaluations: Dict[Tuple[str, str], Evaluation] = {}
        self._lock = threading.Lock()

        for ps in problem_statements:
            self.add_problem_statement(ps)
        for admin in admins:
            self.add_admin(admin)
        for team in teams:
            self.add_team(team)

    def add_problem_statement(self, problem_statement: ProblemStatement) -> None:
        self._problem_statements[problem_statement.problem_statement_id] = problem_statement

    def add_admin(self, admin: Admin) -> None:
        self._admins[admin.admin_id] = admin

    def add_team(self, team: Team) -> None:
        self._teams[team.team_id] = team

    def get_problem_statement(self, problem_statement_id: str) -> Optional[ProblemStatement]:
        return self._problem_statements.get(problem_statement_id)

    def list_problem_statements(self, active_only: bool = True) -> List[ProblemStatement]:
        return [ps for ps in self._problem_statements.values() if ps.is_active or not active_only]

    def get_admin(self, admin_id: str) -> Optional[Admin]:
        return self._admins.get(admin_id)

    def list_evaluators(self, problem_statement_id: Optional[str] = None) -> List[Admin]:
        evaluators = [
            admin for admin in self._admins.values()
            if admin.role == AdminRole.EVALUATOR and admin.is_active
        ]
        if problem_statement_id is not None:
            evaluators = [e for e in evaluators if e.is_assigned_to(problem_statement_id)]
        return evaluators

    def list_teams(self, problem_statement_id: Optional[str] = None,
                   include_rejected: bool = False) -> List[Team]:
        teams = list(self._teams.values())
        if problem_statement_id is not None:
            teams = [t for t in teams if t.problem_statement_id == problem_statement_id]
        if not include_rejected:
            teams = [t for t in teams if t.is_eligible]
        return teams

    def get_evaluation(self, problem_statement_id: str, evaluator_id: str) -> Optional[Evaluation]:
        return self._evaluations.get((problem_statement_id, evaluator_id))

    def list_evaluations(self, problem_statement_id: Optional[str] = None,
                         evaluator_id: Optional[str] = None) -> List[Evaluation]:
        with self._lock:
            snapshot = list(self._evaluations.items())
        return [
            evaluation for (ps_id, ev_id), evaluation in snapshot
            if (problem_statement_id is None or ps_id == problem_statement_id)
            and (evaluator_id is None or ev_id == evaluator_id)
        ]

    def upsert_evaluation(self, problem_statement_id: str, evaluator_id: str,
                          rankings: List[RankingEntry], is_finalized: bool,
                          total_teams: int) -> Evaluation:
        key = (problem_statement_id, evaluator_id)
        with self._lock:
            evaluation = apply_upsert(
                self._evaluations.get(key), problem_statement_id, evaluator_id,
                rankings, is_finalized, total_teams
            )
            self._evaluations[key] = evaluation
        logger.debug(f"Stored evaluation {evaluation.evaluation_id} for {key}")
        return evaluation
