import hmac
import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from media_server.core.errors import AuthenticationError, ForbiddenError, RateLimitedError
from .container import API_RULE, UPLOAD_RULE, MediaServices

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

RATE_LIMIT_MESSAGES = {
    UPLOAD_RULE: "Too many uploads, please try again later",
    API_RULE: "Too many requests, please try again later",
}


def get_services(request: Request) -> MediaServices:
    return request.app.state.services


def require_api_key(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    services: MediaServices = Depends(get_services),
) -> None:
    """No-op when API_KEY is unset; otherwise a matching bearer token is required."""
    expected = services.settings.API_KEY
    if not expected:
        return

    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Missing authorization header")

    if not hmac.compare_digest(credentials.credentials.encode("utf-8"), expected.encode("utf-8")):
        logger.warning("Rejected request with an invalid API key")
        raise ForbiddenError("Invalid API key")


def rate_limit(rule_name: str):
    def dependency(services: MediaServices = Depends(get_services)) -> None:
        allowed, retry_after = services.limiter.check(rule_name)
        if not allowed:
            raise RateLimitedError(RATE_LIMIT_MESSAGES.get(rule_name, "Too many requests"), retry_after)

    return dependency


upload_limit = rate_limit(UPLOAD_RULE)
api_limit = rate_limit(API_RULE)
