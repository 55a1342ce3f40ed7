"""
HTTP helpers shared by the WooCommerce and Baserow clients:
retry with exponential backoff and error-body extraction for logs.
"""
import asyncio
import logging
from functools import wraps
from typing import Any

import httpx

logger = logging.getLogger(__name__)


def is_retryable(exc: Exception) -> bool:
    """Network failures, timeouts and 5xx are transient. 4xx never is."""
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return isinstance(exc, httpx.TransportError)


def async_retry(max_attempts: int = 3, base_delay: float = 1.0, max_delay: float = 10.0):
    """
    Async retry decorator with exponential backoff.

    Args:
        max_attempts: Total attempts, first call included
        base_delay: Initial delay in seconds
        max_delay: Maximum delay between retries
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)
                except httpx.HTTPError as e:
                    if not is_retryable(e) or attempt == max_attempts - 1:
                        if is_retryable(e):
                            logger.error(f"All {max_attempts} attempts failed for {func.__name__}: {e}")
                        raise
                    delay = min(base_delay * (2 ** attempt), max_delay)
                    logger.warning(f"Retry {attempt + 1}/{max_attempts - 1} for {func.__name__} after {delay}s: {e}")
                    await asyncio.sleep(delay)
        return wrapper
    return decorator


def error_detail(exc: BaseException) -> Any:
    """Best available description of a failed call: the upstream body when there is one."""
    if isinstance(exc, httpx.HTTPStatusError):
        try:
            return exc.response.json()
        except ValueError:
            return exc.response.text or str(exc)
    return str(exc)


def upstream_message(exc: BaseException, default: str) -> str:
    """The human message WooCommerce/Baserow put in an error body, else `default`."""
    detail = error_detail(exc)
    if isinstance(detail, dict):
        return detail.get("message") or detail.get("detail") or default
    return default


def upstream_code(exc: BaseException):
    """WooCommerce error code (e.g. `woocommerce_rest_coupon_code_already_exists`)."""
    detail = error_detail(exc)
    if isinstance(detail, dict):
        return detail.get("code") or detail.get("error")
    return None
