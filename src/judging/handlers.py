"""
Request handlers wrapping the judging service in the portal's JSON envelope.

Each handler returns ``(status_code, payload)``. Known judging errors keep
their user-facing message; anything else is logged and reported with a
generic failure message.
"""
import logging
from typing import Any, Callable, Dict, Tuple

from .errors import JudgingError
from .service import RankingService

logger = logging.getLogger(__name__)

Response = Tuple[int, Dict[str, Any]]


def _run(action: Callable[[], Dict[str, Any]], failure_message: str) -> Response:
    try:
        body = action()
    except JudgingError as e:
        return e.status_code, {"success": False, "error": e.user_message}
    except Exception:
        logger.exception(failure_message)
        return 500, {"success": False, "error": failure_message}
    return 200, {"success": True, **body}


def get_ranking_teams(service: RankingService, evaluator_id: str, problem_statement_id: str) -> Response:
    """GET /api/admin/evaluator/ranking/<problem_statement_id>"""
    return _run(
        lambda: service.get_ranking_workspace(evaluator_id, problem_statement_id).to_payload(),
        "Failed to fetch teams for ranking"
    )


def save_rankings(service: RankingService, evaluator_id: str, problem_statement_id: str, body: Any) -> Response:
    """POST /api/admin/evaluator/ranking/<problem_statement_id>"""
    return _run(
        lambda: service.submit_rankings(evaluator_id, problem_statement_id, body).to_payload(),
        "Failed to save rankings"
    )


def get_problem_statement_rankings(service: RankingService, requester_id: str, problem_statement_id: str) -> Response:
    """GET /api/admin/rankings/problem-statement/<problem_statement_id>"""
    return _run(
        lambda: service.get_problem_statement_rankings(requester_id, problem_statement_id).to_payload(),
        "Failed to fetch problem statement rankings"
    )


def get_problem_statements_overview(service: RankingService, requester_id: str) -> Response:
    """GET /api/admin/rankings/problem-statements"""
    return _run(
        lambda: {"problemStatements": [
            ps.to_payload() for ps in service.list_problem_statement_overview(requester_id)
        ]},
        "Failed to fetch problem statements rankings"
    )


def get_evaluators_progress(service: RankingService, requester_id: str) -> Response:
    """GET /api/admin/rankings/evaluators"""
    return _run(
        lambda: {"evaluators": [e.to_payload() for e in service.list_evaluator_progress(requester_id)]},
        "Failed to fetch evaluator rankings"
    )


def get_evaluator_details(service: RankingService, requester_id: str, evaluator_id: str) -> Response:
    """GET /api/admin/rankings/evaluator/<evaluator_id>"""
    return _run(
        lambda: {"evaluator": service.get_evaluator_detail(requester_id, evaluator_id).to_payload()},
        "Failed to fetch evaluator details"
    )


def get_evaluator_dashboard(service: RankingService, evaluator_id: str) -> Response:
    """GET /api/admin/evaluator/dashboard"""
    return _run(
        lambda: {"evaluator": service.get_evaluator_dashboard(evaluator_id).to_payload()},
        "Failed to fetch evaluator dashboard"
    )
