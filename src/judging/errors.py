"""
Exceptions raised by the judging workflow.
"""
from typing import Optional


class JudgingError(Exception):
    """Base exception for judging errors that carry a user-facing message."""
    status_code = 500

    def __init__(self, message: str, user_message: Optional[str] = None):
        super().__init__(message)
        self.user_message = user_message or message


class RankingValidationError(JudgingError):
    """Raised when a ranking submission is rejected before persistence."""
    status_code = 400


class AuthorizationError(JudgingError):
    """Raised when the caller's role or assignment does not allow the operation."""
    status_code = 403


class NotFoundError(JudgingError):
    """Raised when an evaluator, problem statement or team does not exist."""
    status_code = 404


class PortalAPIError(Exception):
    """Custom exception for portal data API errors."""
    pass
