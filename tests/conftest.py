"""Pytest configuration and shared fixtures."""

from typing import List

import pytest

from judging.config import ConsensusConfig
from judging.models import (
    Admin, AdminRole, ProblemStatement, Team, TeamStatus
)
from judging.service import RankingService
from judging.store import InMemoryStore


@pytest.fixture
def problem_statements() -> List[ProblemStatement]:
    return [
        ProblemStatement(problem_statement_id="ps-1", ps_number="PS01", title="Smart Campus Energy"),
        ProblemStatement(problem_statement_id="ps-2", ps_number="PS02", title="Accessible Transit"),
        ProblemStatement(problem_statement_id="ps-3", ps_number="PS03", title="Unjudged Topic"),
    ]


@pytest.fixture
def teams() -> List[Team]:
    return [
        Team(team_id="t-1", team_name="Watt Watchers", problem_statement_id="ps-1", submitted_tasks=1),
        Team(team_id="t-2", team_name="Grid Gurus", problem_statement_id="ps-1", submitted_tasks=1),
        Team(team_id="t-3", team_name="Kilojoules", problem_statement_id="ps-1", submitted_tasks=2,
             status=TeamStatus.SELECTED),
        Team(team_id="t-rej", team_name="Phantom Load", problem_statement_id="ps-1",
             status=TeamStatus.REJECTED),
        Team(team_id="t-other", team_name="Route Sense", problem_statement_id="ps-2", submitted_tasks=1),
        Team(team_id="t-idle", team_name="Quiet Corner", problem_statement_id="ps-3", submitted_tasks=1),
    ]


@pytest.fixture
def admins() -> List[Admin]:
    return [
        Admin(admin_id="root", email="root@example.com", role=AdminRole.SUPER_ADMIN),
        Admin(admin_id="staff", email="staff@example.com", role=AdminRole.ADMIN),
        Admin(admin_id="ev-1", email="One@Example.com", role=AdminRole.EVALUATOR,
              assigned_problem_statements=["ps-1"]),
        Admin(admin_id="ev-2", email="two@example.com", role=AdminRole.EVALUATOR,
              assigned_problem_statements=["ps-1"]),
        Admin(admin_id="ev-3", email="three@example.com", role=AdminRole.EVALUATOR,
              assigned_problem_statements=["ps-1"]),
        Admin(admin_id="ev-x", email="x@example.com", role=AdminRole.EVALUATOR,
              assigned_problem_statements=["ps-2"]),
    ]


@pytest.fixture
def store(problem_statements, admins, teams) -> InMemoryStore:
    return InMemoryStore(problem_statements=problem_statements, admins=admins, teams=teams)


@pytest.fixture
def service(store) -> RankingService:
    return RankingService(store, ConsensusConfig())
