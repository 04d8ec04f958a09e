"""
Photo Enhancement Backend — Cron Trigger Authentication
========================================================

What:  FastAPI dependency that admits only callers holding a cron secret.
How:   Compares the `Authorization: Bearer <secret>` header against every
       secret in CRON_SECRETS with hmac.compare_digest.
Who:   Attached to the cron routes via `dependencies=[Depends(require_cron_secret)]`.
When:  Before the database session dependency and before any handler code,
       so a rejected request never touches storage.

Rotation:
    CRON_SECRETS="new-secret,old-secret"   → both accepted
    CRON_SECRETS="new-secret"              → old one retired
    CRON_SECRETS=""                        → every request rejected

Logging:
    Accepted callers are logged by the index of the matching secret
    ("cron-secret-0"); secrets themselves are never logged.
"""

import hmac
import logging
from typing import Optional, Sequence

from fastapi import Request

from app.config import settings
from app.exceptions import AuthorizationError

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def match_secret(token: str, secrets: Sequence[str]) -> Optional[int]:
    """
    Return the index of the secret equal to `token`, or None.

    Every secret is compared (no early exit) so timing does not reveal
    which secret, if any, matched.
    """
    matched = None
    token_bytes = token.encode("utf-8")
    for index, secret in enumerate(secrets):
        if hmac.compare_digest(token_bytes, secret.encode("utf-8")) and matched is None:
            matched = index
    return matched


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """
    Pull the token out of an Authorization header value.

    The token is taken verbatim; surrounding whitespace is part of it and
    will not match a configured secret.
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):]
    return token or None


async def require_cron_secret(request: Request) -> str:
    """
    Dependency guarding the cron endpoints.

    Returns:
        Caller identity string ("cron-secret-<index>"), also stored on
        request.state.caller for the handlers.

    Raises:
        AuthorizationError: Missing header, malformed header, unknown secret,
            or no secrets configured (→ 401 via the global handler).
    """
    secrets = settings.cron_secrets_list
    token = extract_bearer_token(request.headers.get("Authorization"))
    client_ip = request.client.host if request.client else "unknown"

    if not secrets:
        logger.error("Cron request from %s rejected: CRON_SECRETS is not configured", client_ip)
        raise AuthorizationError(context={"reason": "no_secrets_configured"})

    if token is None:
        logger.warning("Cron request from %s rejected: missing bearer token", client_ip)
        raise AuthorizationError(context={"reason": "missing_token"})

    index = match_secret(token, secrets)
    if index is None:
        logger.warning("Cron request from %s rejected: invalid bearer token", client_ip)
        raise AuthorizationError(context={"reason": "invalid_token"})

    caller = f"cron-secret-{index}"
    request.state.caller = caller
    logger.info("Cron request from %s authenticated as %s", client_ip, caller)
    return caller
