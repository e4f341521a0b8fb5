"""
Shared-secret verification for machine-to-machine triggers.

The periodic adherence job is invoked by an external scheduler that sends
`Authorization: Bearer <CRON_SECRET>`.

SECURITY REQUIREMENTS:
- CRON_SECRET must be set via environment variable
- If CRON_SECRET is not configured every request is rejected (fail closed)
- Comparison is constant-time
"""
import hmac
import logging
from typing import Optional

from fastapi import Header

from core.config import settings
from core.exceptions import UnauthorizedError

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def verify_bearer_secret(authorization: Optional[str], secret: Optional[str]) -> bool:
    """True only when a secret is configured and the header carries exactly it."""
    if not secret:
        logger.warning("CRON_SECRET not set, rejecting trigger request")
        return False
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return False

    presented = authorization[len(BEARER_PREFIX):]
    return hmac.compare_digest(presented.encode("utf-8"), secret.encode("utf-8"))


def require_cron_secret(authorization: Optional[str] = Header(None)) -> None:
    """FastAPI dependency guarding the cron endpoints."""
    if not verify_bearer_secret(authorization, settings.CRON_SECRET):
        raise UnauthorizedError()
