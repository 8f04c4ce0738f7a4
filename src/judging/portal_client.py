"""
Portal data API client implementing the judging store over HTTP.
"""
import logging
import time
from typing import Any, Dict, List, Optional
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import config
from .errors import PortalAPIError
from .models import Admin, Evaluation, ProblemStatement, RankingEntry, Team
from .store import JudgingStore


logger = logging.getLogger(__name__)


class PortalClient(JudgingStore):
    """Portal data API client with rate limiting and error handling.

    The evaluation upsert is a single ``PUT`` on the unique
    (problem statement, evaluator) key; the portal performs it atomically.
    """

    def __init__(self, base_url: Optional[str] = None, token: Optional[str] = None):
        self.base_url = (base_url or config.portal.base_url).rstrip('/')
        self.token = token or config.portal.token
        self.timeout = config.portal.timeout
        self.max_retries = config.portal.max_retries
        self.rate_limit_delay = config.portal.rate_limit_delay

        self.session = requests.Session()
        # PUT is idempotent on the unique key, so it is safe to retry
        retry_strategy = Retry(
            total=self.max_retries,
            backoff_factor=1,
            status_forcelist=[500, 502, 503, 504],
            allowed_methods=["GET", "PUT"],
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

        if self.token:
            self.session.headers.update({"Authorization": f"Bearer {self.token}"})

    def _make_request(self, method: str, endpoint: str, params: Optional[Dict] = None,
                      payload: Optional[Dict] = None, allow_not_found: bool = False) -> Any:
        """Make a request to the portal API with error handling."""
        url = f"{self.base_url}/{endpoint}"

        try:
            response = self.session.request(method, url, params=params, json=payload, timeout=self.timeout)

            if response.status_code == 429:
                retry_after = int(response.headers.get('Retry-After', self.rate_limit_delay))
                logger.warning(f"Rate limit hit. Sleeping for {retry_after} seconds")
                time.sleep(retry_after)
                return self._make_request(method, endpoint, params, payload, allow_not_found)

            if response.status_code == 404 and allow_not_found:
                return None

            response.raise_for_status()
            return response.json()

        except requests.exceptions.RequestException as e:
            logger.error(f"Portal API request failed: {e}")
            raise PortalAPIError(f"API request failed: {e}")

    def get_problem_statement(self, problem_statement_id: str) -> Optional[ProblemStatement]:
        data = self._make_request("GET", f"problem-statements/{problem_statement_id}", allow_not_found=True)
        return ProblemStatement.model_validate(data) if data else None

    def list_problem_statements(self, active_only: bool = True) -> List[ProblemStatement]:
        params = {"active": "true"} if active_only else None
        data = self._make_request("GET", "problem-statements", params)
        return [ProblemStatement.model_validate(item) for item in data]

    def get_admin(self, admin_id: str) -> Optional[Admin]:
        data = self._make_request("GET", f"admins/{admin_id}", allow_not_found=True)
        return Admin.model_validate(data) if data else None

    def list_evaluators(self, problem_statement_id: Optional[str] = None) -> List[Admin]:
        params = {"role": "evaluator", "active": "true"}
        if problem_statement_id:
            params["problemStatementId"] = problem_statement_id
        data = self._make_request("GET", "admins", params)
        return [Admin.model_validate(item) for item in data]

    def list_teams(self, problem_statement_id: Optional[str] = None,
                   include_rejected: bool = False) -> List[Team]:
        params = {"includeRejected": "true" if include_rejected else "false"}
        if problem_statement_id:
            params["problemStatementId"] = problem_statement_id
        data = self._make_request("GET", "teams", params)
        return [Team.model_validate(item) for item in data]

    def get_evaluation(self, problem_statement_id: str, evaluator_id: str) -> Optional[Evaluation]:
        data = self._make_request(
            "GET", f"evaluations/{problem_statement_id}/{evaluator_id}", allow_not_found=True
        )
        return Evaluation.model_validate(data) if data else None

    def list_evaluations(self, problem_statement_id: Optional[str] = None,
                         evaluator_id: Optional[str] = None) -> List[Evaluation]:
        params = {}
        if problem_statement_id:
            params["problemStatementId"] = problem_statement_id
        if evaluator_id:
            params["evaluatorId"] = evaluator_id
        data = self._make_request("GET", "evaluations", params)
        return [Evaluation.model_validate(item) for item in data]

    def upsert_evaluation(self, problem_statement_id: str, evaluator_id: str,
                          rankings: List[RankingEntry], is_finalized: bool,
                          total_teams: int) -> Evaluation:
        payload = {
            "rankings": [entry.to_payload() for entry in rankings],
            "isFinalized": is_finalized,
            "totalTeams": total_teams,
        }
        logger.info(f"Upserting evaluation for {problem_statement_id}/{evaluator_id}")
        data = self._make_request("PUT", f"evaluations/{problem_statement_id}/{evaluator_id}", payload=payload)
        return Evaluation.model_validate(data)
