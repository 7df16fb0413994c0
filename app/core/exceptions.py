# =============================================================================
# app/core/exceptions.py
# =============================================================================
from typing import Optional


class SlackConnectionError(Exception):
    """Base error for a single Slack connection attempt"""

    def __init__(self, detail: str, *, cause: Optional[BaseException] = None):
        super().__init__(detail)
        self.detail = detail
        self.cause = cause


class InvalidRequest(SlackConnectionError):
    """Authorization code (or another required input) is missing"""


class ExchangeFailed(SlackConnectionError):
    """Slack (or the token relay) refused to turn the code into a token"""


class MissingField(SlackConnectionError):
    """Token payload lacks access_token or team.id"""


class ProbeUnavailable(SlackConnectionError):
    """auth.test could not be reached; the token's validity is unknown"""


class StoreUnavailable(SlackConnectionError):
    """Local token store or remote profile store call failed"""
