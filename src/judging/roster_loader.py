"""
Judging roster loading from CSV files.
"""
import csv
from pathlib import Path
from typing import Dict, List, Optional, Tuple
from collections import defaultdict
from dataclasses import dataclass, field
import logging

from .errors import JudgingError
from .models import Admin, ProblemStatement, Team
from .store import InMemoryStore

logger = logging.getLogger(__name__)

PROBLEM_STATEMENTS_FILE = "problem_statements.csv"
TEAMS_FILE = "teams.csv"
EVALUATORS_FILE = "evaluators.csv"
RANKINGS_FILE = "rankings.csv"


def _parse_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "y")


def _parse_number(value: Optional[str]):
    """Int when possible, float otherwise; the raw text is kept so validation can reject it."""
    if value is None or not value.strip():
        return None
    value = value.strip()
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        return value


@dataclass
class RankingSubmissionData:
    """One evaluator's rankings for one problem statement, loaded from CSV."""
    evaluator_id: str
    problem_statement_id: str
    rankings: List[Dict] = field(default_factory=list)
    is_finalized: bool = False

    def to_payload(self) -> Dict:
        return {"rankings": self.rankings, "isFinalized": self.is_finalized}


class CSVRosterLoader:
    """Load problem statements, teams, evaluators and rankings from a data directory."""

    def __init__(self, data_dir: str):
        self.data_dir = Path(data_dir)

    def _read_rows(self, filename: str, required: bool = True) -> List[Dict[str, str]]:
        path = self.data_dir / filename
        if not path.exists():
            if required:
                raise FileNotFoundError(f"Roster CSV file not found: {path}")
            return []

        with open(path, 'r', newline='', encoding='utf-8') as f:
            return list(csv.DictReader(f))

    def load_problem_statements(self) -> List[ProblemStatement]:
        """Load problem statements from CSV file."""
        problem_statements = [
            ProblemStatement(
                problem_statement_id=row['problem_statement_id'],
                ps_number=row['ps_number'],
                title=row['title'],
                description=row.get('description') or "",
                domain=row.get('domain') or "",
                is_active=_parse_bool(row.get('is_active'), default=True)
            )
            for row in self._read_rows(PROBLEM_STATEMENTS_FILE)
        ]
        logger.info(f"Loaded {len(problem_statements)} problem statements from CSV")
        return problem_statements

    def load_teams(self) -> List[Team]:
        """Load teams from CSV file."""
        teams = []
        for row in self._read_rows(TEAMS_FILE):
            teams.append(Team(
                team_id=row['team_id'],
                team_name=row['team_name'],
                problem_statement_id=row['problem_statement_id'],
                status=(row.get('status') or "registered").strip().lower(),
                leader_name=row.get('leader_name') or None,
                leader_email=row.get('leader_email') or None,
                submitted_tasks=int(row.get('submitted_tasks') or 0)
            ))
        logger.info(f"Loaded {len(teams)} teams from CSV")
        return teams

    def load_admins(self) -> List[Admin]:
        """Load staff accounts; evaluators have one row per assigned problem statement."""
        admins_dict = defaultdict(lambda: {
            'admin_id': '',
            'email': '',
            'role': 'evaluator',
            'assigned_problem_statements': [],
            'is_active': True
        })

        for row in self._read_rows(EVALUATORS_FILE):
            admin_data = admins_dict[row['admin_id']]

            # Same for every row of one admin
            admin_data['admin_id'] = row['admin_id']
            admin_data['email'] = row['email']
            admin_data['role'] = (row.get('role') or 'evaluator').strip().lower()
            admin_data['is_active'] = _parse_bool(row.get('is_active'), default=True)

            ps_id = (row.get('problem_statement_id') or '').strip()
            if ps_id and ps_id not in admin_data['assigned_problem_statements']:
                admin_data['assigned_problem_statements'].append(ps_id)

        admins = [Admin(**admin_data) for admin_data in admins_dict.values()]
        logger.info(f"Loaded {len(admins)} staff accounts from CSV")
        return admins

    def load_ranking_submissions(self) -> List[RankingSubmissionData]:
        """Group ranking rows into one submission per (evaluator, problem statement)."""
        submissions: Dict[Tuple[str, str], RankingSubmissionData] = {}

        for row in self._read_rows(RANKINGS_FILE, required=False):
            key = (row['evaluator_id'], row['problem_statement_id'])
            if key not in submissions:
                submissions[key] = RankingSubmissionData(evaluator_id=key[0], problem_statement_id=key[1])
            submission = submissions[key]

            entry = {"teamId": row['team_id'], "rank": _parse_number(row.get('rank'))}
            score = _parse_number(row.get('score'))
            if score is not None:
                entry["score"] = score
            if (row.get('comments') or '').strip():
                entry["comments"] = row['comments']
            submission.rankings.append(entry)

            # A submission is finalized when any of its rows says so
            submission.is_finalized = submission.is_finalized or _parse_bool(row.get('is_finalized'))

        logger.info(f"Loaded {len(submissions)} ranking submissions from CSV")
        return list(submissions.values())

    def build_store(self) -> InMemoryStore:
        """Create an in-memory store holding the roster."""
        return InMemoryStore(
            problem_statements=self.load_problem_statements(),
            admins=self.load_admins(),
            teams=self.load_teams()
        )

    def replay_rankings(self, service) -> int:
        """Submit the loaded rankings through the service; returns the number accepted."""
        accepted = 0
        for submission in self.load_ranking_submissions():
            try:
                service.submit_rankings(
                    submission.evaluator_id,
                    submission.problem_statement_id,
                    submission.to_payload()
                )
                accepted += 1
            except JudgingError as e:
                logger.warning(
                    f"Skipping rankings of {submission.evaluator_id} for "
                    f"{submission.problem_statement_id}: {e.user_message}"
                )
        return accepted
