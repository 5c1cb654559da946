import hmac
import logging

from fastapi import Request, HTTPException, status

from autopublish import config

log = logging.getLogger("autopublish.auth")


def _extract_token(request: Request) -> str:
    """Bearer token, raw Authorization value, or X-API-Key header"""
    token = request.headers.get("X-API-Key")
    if token:
        return token.strip()

    auth = request.headers.get("Authorization", "")
    if auth.lower().startswith("bearer "):
        return auth.split(" ", 1)[1].strip()
    return auth.strip()


def _check(request: Request, secret: str, name: str) -> None:
    if not secret:
        # an unset secret locks the endpoint rather than opening it
        log.error("AUTH: %s is not configured; rejecting %s", name, request.url.path)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=f"{name} not configured")

    token = _extract_token(request)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")

    if not hmac.compare_digest(token.encode(), secret.encode()):
        log.warning("AUTH: invalid credential for %s", request.url.path)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credential")


def require_cron_secret(request: Request) -> None:
    """Scheduler trigger credential"""
    _check(request, config.CRON_SECRET, "CRON_SECRET")


def require_admin(request: Request) -> None:
    """Operator credential for /v1/admin"""
    _check(request, config.ADMIN_API_KEY, "ADMIN_API_KEY")
