"""
Logging helpers shared by routers, services and middleware.
"""

import logging
from typing import Any, Dict, Optional


SENSITIVE_FIELDS = {
    'password', 'token', 'secret', 'id_token', 'idtoken',
    'access_token', 'accesstoken', 'refresh_token', 'refreshtoken', 'authorization'
}


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Usage:
        from utils.logger import get_logger
        logger = get_logger(__name__)
    """
    return logging.getLogger(name)


def is_sensitive_field(key: str) -> bool:
    lowered = key.lower()
    return any(sensitive in lowered for sensitive in SENSITIVE_FIELDS)


def mask_value(value: str, keep: int = 3) -> str:
    """
    Keep only the edges of an identifier, e.g. an OAuth client id.

    "123456789-abc.apps.googleusercontent.com" -> "123...com"
    """
    if not value or len(value) < keep * 3:
        return "***"
    return f"{value[:keep]}...{value[-keep:]}"


def sanitize_log_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Return a copy of data that is safe to log.

    Passwords are fully redacted; tokens keep their first 8 characters so two
    log lines about the same token can still be correlated. Nested dicts are
    sanitized recursively.
    """
    sanitized = data.copy()

    for key, value in sanitized.items():
        if is_sensitive_field(key):
            if isinstance(value, str) and "token" in key.lower() and len(value) > 8:
                sanitized[key] = f"{value[:8]}..."
            else:
                sanitized[key] = "***REDACTED***"
        elif isinstance(value, dict):
            sanitized[key] = sanitize_log_data(value)

    return sanitized


def log_request(
    logger: logging.Logger,
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    client_ip: Optional[str] = None,
    extra: Optional[Dict[str, Any]] = None
):
    """
    Log one HTTP request; the level follows the status code
    (5xx error, 4xx warning, everything else info).
    """
    log_data = {
        "method": method,
        "path": path,
        "status_code": status_code,
        "duration_ms": round(duration_ms, 2),
        "client_ip": client_ip or "unknown",
    }

    if extra:
        log_data.update(sanitize_log_data(extra))

    message = f'{log_data["client_ip"]} - "{method} {path}" {status_code}'
    if status_code >= 500:
        logger.error(message, extra=log_data)
    elif status_code >= 400:
        logger.warning(message, extra=log_data)
    else:
        logger.info(message, extra=log_data)
