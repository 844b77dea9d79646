"""Shared HTTP helpers used by the version catalogs and the artifact fetcher.

Encapsulates request/timeout/retry handling so callers avoid duplicating
try/except blocks. Responses are never cached: every catalog query and every
download goes to the network.
"""
from __future__ import annotations

import json
import logging
import time
from typing import Any, BinaryIO, Dict, Optional, Tuple

import requests

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from errors import FetchFailed

logger = logging.getLogger(__name__)


def _default_headers(headers: Optional[Dict[str, str]]) -> Dict[str, str]:
    merged = {"User-Agent": Constants.USER_AGENT}
    if headers:
        merged.update(headers)
    return merged


def _backoff(attempt: int) -> None:
    """Sleep before retry ``attempt`` (0-based) using exponential backoff."""
    time.sleep(Constants.HTTP_RETRY_BASE_DELAY_SEC * (2 ** attempt))


def robust_get(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any
) -> Tuple[int, Dict[str, str], str]:
    """Perform GET request with timeout and retries with DEBUG traces.

    Connection errors, timeouts and 5xx responses are retried up to
    ``Constants.HTTP_RETRY_MAX`` attempts. A status code of 0 means every
    attempt failed before a response arrived; the text then describes why.
    """
    safe_target = safe_url(url)
    last_exception = None
    last_response: Optional[Tuple[int, Dict[str, str], str]] = None

    for attempt in range(Constants.HTTP_RETRY_MAX):
        if attempt:
            _backoff(attempt - 1)
        with Timer() as t:
            try:
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP request",
                        extra=extra_context(
                            event="http_request",
                            component="http_client",
                            action="GET",
                            target=safe_target,
                            attempt=attempt + 1
                        )
                    )

                response = requests.get(
                    url,
                    timeout=Constants.REQUEST_TIMEOUT,
                    headers=_default_headers(headers),
                    **kwargs
                )

                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP response",
                        extra=extra_context(
                            event="http_response",
                            component="http_client",
                            action="GET",
                            status_code=response.status_code,
                            duration_ms=t.duration_ms(),
                            target=safe_target
                        )
                    )
                last_response = (response.status_code, dict(response.headers), response.text)
                if response.status_code >= 500:
                    continue
                return last_response

            except requests.Timeout:
                last_exception = "timeout"
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP timeout",
                        extra=extra_context(
                            event="http_exception",
                            component="http_client",
                            action="GET",
                            outcome="timeout",
                            attempt=attempt + 1,
                            target=safe_target
                        )
                    )
                continue
            except requests.RequestException as exc:
                last_exception = str(exc)
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP request exception",
                        extra=extra_context(
                            event="http_exception",
                            component="http_client",
                            action="GET",
                            outcome="request_exception",
                            attempt=attempt + 1,
                            target=safe_target
                        )
                    )
                continue

    if last_response is not None:
        return last_response
    return 0, {}, f"Request failed after {Constants.HTTP_RETRY_MAX} attempts: {last_exception}"


def get_json(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any
) -> Tuple[int, Dict[str, str], Optional[Any]]:
    """Perform GET request and parse JSON response with DEBUG traces.

    Args:
        url: Target URL
        headers: Optional request headers
        **kwargs: Additional requests.get parameters

    Returns:
        Tuple of (status_code, headers_dict, parsed_json_or_none)
    """
    status_code, response_headers, text = robust_get(url, headers=headers, **kwargs)

    if status_code == 200 and text:
        try:
            parsed = json.loads(text)
            if is_debug_enabled(logger):
                logger.debug(
                    "Parsed JSON response",
                    extra=extra_context(
                        event="parse",
                        component="http_client",
                        action="get_json",
                        outcome="success",
                        status_code=status_code,
                        target=safe_url(url)
                    )
                )
            return status_code, response_headers, parsed
        except json.JSONDecodeError:
            if is_debug_enabled(logger):
                logger.debug(
                    "JSON decode error",
                    extra=extra_context(
                        event="parse",
                        component="http_client",
                        action="get_json",
                        outcome="json_decode_error",
                        status_code=status_code,
                        target=safe_url(url)
                    )
                )
            return status_code, response_headers, None

    return status_code, response_headers, None


def download(url: str, out: BinaryIO) -> int:
    """Stream the body of ``url`` into ``out`` and return the byte count.

    The request is retried like ``robust_get``. ``out`` must be seekable: it is
    truncated before every attempt so a broken stream never leaves partial
    bytes behind a retried one.

    Raises:
        FetchFailed: on connection errors, timeouts, or a non-200 status.
    """
    safe_target = safe_url(url)
    last_error = "no attempts made"
    status_code: Optional[int] = None

    for attempt in range(Constants.HTTP_RETRY_MAX):
        if attempt:
            _backoff(attempt - 1)
        out.seek(0)
        out.truncate()
        try:
            with Timer() as t:
                with requests.get(
                    url,
                    timeout=Constants.REQUEST_TIMEOUT,
                    headers=_default_headers(None),
                    stream=True,
                ) as response:
                    status_code = response.status_code
                    if status_code >= 500:
                        last_error = f"HTTP {status_code}"
                        continue
                    if status_code != 200:
                        raise FetchFailed(
                            url,
                            f"GET {safe_target} returned HTTP {status_code}",
                            status_code=status_code,
                        )
                    written = 0
                    for chunk in response.iter_content(chunk_size=Constants.DOWNLOAD_CHUNK_SIZE):
                        if chunk:
                            out.write(chunk)
                            written += len(chunk)
            if is_debug_enabled(logger):
                logger.debug(
                    "Download complete",
                    extra=extra_context(
                        event="download",
                        component="http_client",
                        action="GET",
                        outcome="success",
                        bytes=written,
                        duration_ms=t.duration_ms(),
                        target=safe_target
                    )
                )
            return written
        except requests.Timeout:
            last_error = "timeout"
        except requests.ConnectionError as exc:
            last_error = str(exc)
        except requests.RequestException as exc:
            raise FetchFailed(url, f"GET {safe_target} failed: {exc}") from exc

    raise FetchFailed(
        url,
        f"GET {safe_target} failed after {Constants.HTTP_RETRY_MAX} attempts: {last_error}",
        status_code=status_code,
    )
