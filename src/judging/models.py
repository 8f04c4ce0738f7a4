"""
Data models for hackathon ranking submission and evaluator consensus.
"""
from datetime import datetime, timezone
from typing import List, Optional, Sequence
from uuid import uuid4
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


MAX_SCORE = 100
MAX_COMMENT_LENGTH = 1000


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ranks_are_sequential(ranks: Sequence) -> bool:
    """Return True when the ranks are exactly the integers 1..K in some order."""
    for rank in ranks:
        if isinstance(rank, bool) or not isinstance(rank, int):
            return False
    for i, rank in enumerate(sorted(ranks)):
        if rank != i + 1:
            return False
    return True


class PortalModel(BaseModel):
    """Base model speaking the portal's camelCase JSON."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class TeamStatus(str, Enum):
    """Registration status of a team."""
    REGISTERED = "registered"
    SELECTED = "selected"
    REJECTED = "rejected"
    FINALIST = "finalist"


class AdminRole(str, Enum):
    """Roles of portal staff accounts."""
    ADMIN = "admin"
    EVALUATOR = "evaluator"
    SUPER_ADMIN = "super-admin"


class ConflictLevel(str, Enum):
    """How much evaluators disagree on a team's rank."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Team(PortalModel):
    """A team registered against a problem statement."""
    team_id: str
    team_name: str
    problem_statement_id: str
    status: TeamStatus = TeamStatus.REGISTERED
    leader_name: Optional[str] = None
    leader_email: Optional[str] = None
    submitted_tasks: int = 0

    @property
    def is_eligible(self) -> bool:
        return self.status != TeamStatus.REJECTED


class ProblemStatement(PortalModel):
    """A challenge topic teams register against."""
    problem_statement_id: str
    ps_number: str
    title: str
    description: str = ""
    domain: str = ""
    is_active: bool = True
    max_teams: int = Field(default=3, ge=1)


class Admin(PortalModel):
    """A staff account; evaluators carry their problem statement assignments."""
    admin_id: str
    email: str
    role: AdminRole = AdminRole.ADMIN
    assigned_problem_statements: List[str] = Field(default_factory=list)
    is_active: bool = True
    created_at: Optional[datetime] = None

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower()

    def is_assigned_to(self, problem_statement_id: str) -> bool:
        return problem_statement_id in self.assigned_problem_statements


class RankingInput(PortalModel):
    """One entry of a ranking submission as sent by an evaluator."""
    team_id: str
    rank: int = Field(ge=1)
    score: Optional[float] = Field(default=None, ge=0, le=MAX_SCORE)
    comments: Optional[str] = Field(default=None, max_length=MAX_COMMENT_LENGTH)

    @field_validator('comments', mode='before')
    @classmethod
    def blank_comments_to_none(cls, v):
        # trimmed before the length limit applies
        if not isinstance(v, str):
            return v
        v = v.strip()
        return v or None


class RankingSubmission(PortalModel):
    """A full ranking submission for one (evaluator, problem statement) pair."""
    rankings: List[RankingInput]
    is_finalized: bool = False

    @field_validator('is_finalized', mode='before')
    @classmethod
    def missing_flag_is_draft(cls, v):
        return False if v is None else v


class RankingEntry(RankingInput):
    """A persisted ranking of one team by one evaluator."""
    evaluated_at: datetime = Field(default_factory=utcnow)


class Evaluation(PortalModel):
    """One evaluator's ranking set for one problem statement."""
    evaluation_id: str = Field(default_factory=lambda: uuid4().hex)
    problem_statement_id: str
    evaluator_id: str
    rankings: List[RankingEntry]
    is_finalized: bool = False
    submitted_at: Optional[datetime] = None
    total_teams: int = Field(ge=1)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator('rankings')
    @classmethod
    def validate_sequential_ranks(cls, v):
        if not ranks_are_sequential([entry.rank for entry in v]):
            raise ValueError("Rankings must be sequential starting from 1 with no duplicates")
        return v

    def ranking_for(self, team_id: str) -> Optional[RankingEntry]:
        for entry in self.rankings:
            if entry.team_id == team_id:
                return entry
        return None

    def sorted_rankings(self) -> List[RankingEntry]:
        return sorted(self.rankings, key=lambda r: r.rank)


class TeamSummary(PortalModel):
    """Team identity as shown in ranking views."""
    team_id: str
    team_name: str
    leader_name: Optional[str] = None
    leader_email: Optional[str] = None

    @classmethod
    def from_team(cls, team: Team) -> "TeamSummary":
        return cls(
            team_id=team.team_id,
            team_name=team.team_name,
            leader_name=team.leader_name,
            leader_email=team.leader_email
        )


class EvaluatorSummary(PortalModel):
    admin_id: str
    email: str


class TeamRankingRecord(PortalModel):
    """One evaluator's view of one team; absent values are None, never falsy defaults."""
    evaluator_id: str
    evaluator_email: Optional[str] = None
    rank: Optional[int] = None
    score: Optional[float] = None
    comments: Optional[str] = None


class TeamConsensus(PortalModel):
    """Aggregated ranking statistics for one team."""
    team: TeamSummary
    rankings: List[TeamRankingRecord]
    average_rank: Optional[float] = None
    average_score: Optional[float] = None
    rank_standard_deviation: Optional[float] = None
    conflict_level: ConflictLevel = ConflictLevel.LOW
    evaluator_count: int = 0


class ConsensusStatistics(PortalModel):
    total_teams: int
    total_evaluators: int
    completed_evaluations: int
    pending_evaluations: int
    conflicting_teams: int


class EvaluationSummary(PortalModel):
    """Evaluation state returned to callers, rankings ordered best first."""
    evaluation_id: str
    is_finalized: bool
    submitted_at: Optional[datetime] = None
    rankings: List[RankingEntry] = Field(default_factory=list)
    total_ranked: int = 0

    @classmethod
    def from_evaluation(cls, evaluation: Evaluation) -> "EvaluationSummary":
        return cls(
            evaluation_id=evaluation.evaluation_id,
            is_finalized=evaluation.is_finalized,
            submitted_at=evaluation.submitted_at,
            rankings=evaluation.sorted_rankings(),
            total_ranked=len(evaluation.rankings)
        )


class EvaluatorRanking(PortalModel):
    """An assigned evaluator and their evaluation, if any."""
    evaluator: EvaluatorSummary
    evaluation: Optional[EvaluationSummary] = None


class ProblemStatementRankings(PortalModel):
    """Full consensus view of one problem statement."""
    problem_statement: ProblemStatement
    statistics: ConsensusStatistics
    evaluator_rankings: List[EvaluatorRanking]
    consensus_analysis: List[TeamConsensus]


class SubmissionResult(PortalModel):
    message: str
    evaluation: EvaluationSummary


class RankableTeam(PortalModel):
    """A team offered to an evaluator, with the evaluator's current ranking of it."""
    team: TeamSummary
    status: TeamStatus
    submitted_tasks: int = 0
    current_rank: Optional[int] = None
    score: Optional[float] = None
    comments: Optional[str] = None


class RankingWorkspace(PortalModel):
    problem_statement: ProblemStatement
    teams: List[RankableTeam]
    evaluation: Optional[EvaluationSummary] = None


class ProblemStatementOverview(PortalModel):
    """Judging progress of one problem statement."""
    problem_statement_id: str
    ps_number: str
    title: str
    description: str = ""
    assigned_evaluators: int
    completed_evaluations: int
    total_teams: int
    conflicting_teams: int
    high_conflict_teams: int


class AssignmentProgress(PortalModel):
    problem_statement_id: str
    title: str
    total_teams: int
    is_evaluated: bool
    is_finalized: bool
    submitted_at: Optional[datetime] = None
    ranked_teams: int = 0
    evaluation: Optional[EvaluationSummary] = None


class EvaluatorProgress(PortalModel):
    """Completion of one evaluator across their assignments."""
    admin_id: str
    email: str
    is_active: bool
    created_at: Optional[datetime] = None
    total_assignments: int
    completed_evaluations: int
    draft_evaluations: int
    total_teams_evaluated: int
    progress_percentage: int
    problem_statements: List[AssignmentProgress]
