# pml/http/client.py
from __future__ import annotations
import asyncio
import json
import logging
import random
from typing import Any
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

import httpx

logger = logging.getLogger(__name__)

__all__ = ["HTTPError", "request", "getJson", "getText"]



class HTTPError(Exception):
    def __init__(self, status: int, body: str, *, url: str | None = None):
        super().__init__(f"HTTP {status}: {body[:200]}")
        self.status = status
        self.body = body
        self.url = url



def _parseRetryAfter(value: str | None) -> float | None:
    """Return seconds suggested by Retry-After header, if parsable."""
    if not value:
        return None
    # Retry-After: seconds
    try:
        secondsF = float(value)
        if secondsF >= 0:
            return secondsF
        return None
    except ValueError:
        pass
    # Retry-After: HTTP-date
    try:
        dt = parsedate_to_datetime(value)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        now = datetime.now(timezone.utc).timestamp()
        return max(0.0, dt.timestamp() - now)
    except (TypeError, ValueError):
        return None



def _shouldRetry(status: int) -> bool:
    # Typical transient HTTP errors upon which retry makes sense
    return status in (408, 429, 500, 502, 503, 504)



def _backoffMs(attempt: int, backoffBaseMs: int, backoffMaxMs: int) -> float:
    # Exponential backoff with jitter
    base = min(backoffMaxMs, backoffBaseMs * (2 ** attempt))
    jitter = base * 0.25
    return max(0.0, base + random.uniform(-jitter, jitter))



async def request(
    method: str,
    url: str,
    *,
    headers: dict[str, str] | None = None,
    params: dict[str, Any] | None = None,
    timeoutMs: int = 30_000,
    retries: int = 2,
    backoffBaseMs: int = 250,
    backoffMaxMs: int = 1_000,
    followRedirects: bool = True
) -> dict[str, Any]:
    """
    Simple outbound HTTP client with timeout and retries (408/429/5xx).

    Returns:
    {
        "status": int,
        "headers": dict[str,str],
        "text": str,
        "content": bytes,
        "json": Any? # Present when response looks like JSON and parses
    }

    - Raises HTTPError for 408/429/5xx after exhausting retries.
    - Transport errors (httpx.HTTPError) propagate after exhausting retries.
    """
    if timeoutMs <= 0:
        timeoutMs = 1
    timeout = httpx.Timeout(timeoutMs / 1_000)
    attempt = 0
    method = str(method).upper()
    retries = max(0, retries)

    async with httpx.AsyncClient(timeout=timeout, http2=True) as cli:
        while True:
            try:
                resp = await cli.request(
                    method,
                    url,
                    headers=headers,
                    params=params,
                    follow_redirects=followRedirects
                )
                status = resp.status_code

                if _shouldRetry(status) and attempt < retries:
                    retryAfter = _parseRetryAfter(resp.headers.get("Retry-After"))
                    if retryAfter is not None:
                        delay = retryAfter
                    else:
                        delay = _backoffMs(attempt, backoffBaseMs, backoffMaxMs) / 1000.0
                    logger.debug("HTTP %s %s -> %d, retry %d in %.3fs", method, url, status, attempt + 1, delay)
                    attempt += 1
                    await asyncio.sleep(delay)
                    continue

                if status >= 500 or status in (408, 429):
                    raise HTTPError(status, resp.text, url=url)

                # Success or non-retryable 4xx: return payload (no exception)
                out: dict[str, Any] = {
                    "status": status,
                    "headers": dict(resp.headers), # note: Duplicate header keys are collapsed
                    "text": resp.text,
                    "content": resp.content,
                }

                ctype = resp.headers.get("Content-Type", "")
                if "json" in ctype.lower():
                    try:
                        out["json"] = resp.json()
                    except ValueError:
                        # Keep going; caller still has "text"
                        pass

                logger.debug("HTTP %s %s -> %d (%d bytes)", method, url, status, len(resp.content))
                return out

            except httpx.HTTPError as err:
                # Transport-level error. Retry with backoff.
                if attempt >= retries:
                    logger.warning("HTTP %s %s failed after %d attempt(s): %s", method, url, attempt + 1, err)
                    raise
                delayMs = _backoffMs(attempt, backoffBaseMs, backoffMaxMs)
                attempt += 1
                logger.debug("HTTP %s %s transport error, retry %d in %.0fms: %s", method, url, attempt, delayMs, err)
                await asyncio.sleep(delayMs / 1000.0)



async def getText(url: str, **kwargs: Any) -> str:
    """GET `url` and return its body; raises HTTPError for any status >= 400."""
    resp = await request("GET", url, **kwargs)
    if resp["status"] >= 400:
        raise HTTPError(resp["status"], resp["text"], url=url)
    return resp["text"]



async def getJson(url: str, **kwargs: Any) -> Any:
    """
    GET `url` and decode it as JSON regardless of the Content-Type header.

    Static mod hosts often serve manifest.json as text/plain.
    """
    resp = await request("GET", url, **kwargs)
    if resp["status"] >= 400:
        raise HTTPError(resp["status"], resp["text"], url=url)
    if "json" in resp:
        return resp["json"]
    return json.loads(resp["text"])
