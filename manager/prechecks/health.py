"""Cluster health gate: block until a node reports the required color."""

from __future__ import annotations

import asyncio
import logging
import math
import time
from typing import Optional

import httpx

from common.models.cluster import HealthColor
from common.utils import format_duration
from manager.errors import SetupTimeoutError

logger = logging.getLogger(__name__)

HEALTH_PATH = "/_cluster/health/"


def health_url(node: str, port: int = 44200) -> str:
    return f"http://{node}:{port}{HEALTH_PATH}"


def _is_ready(response: httpx.Response, color: HealthColor) -> bool:
    """A 200 answer whose reported status, if any, is good enough."""
    if response.status_code != 200:
        return False
    try:
        body = response.json()
    except ValueError:
        return False
    status = body.get("status") if isinstance(body, dict) else None
    if status is None:
        return True
    try:
        return HealthColor(status).satisfies(color)
    except ValueError:
        return False


async def wait_for_health(
    node: str,
    timeout_secs: float,
    color: HealthColor | str,
    *,
    port: int = 44200,
    poll_interval: float = 0.0,
    http: Optional[httpx.AsyncClient] = None,
) -> None:
    """
    Poll a node's cluster health until it reaches ``color``.

    Each attempt asks the server to wait for the color itself, bounded by
    the remaining budget. Transport errors and non-200 answers are retried
    after ``poll_interval`` seconds.

    Raises:
        SetupTimeoutError: When ``timeout_secs`` elapses first.
    """
    color = HealthColor(color)
    url = health_url(node, port)
    owns_client = http is None
    if owns_client:
        http = httpx.AsyncClient()

    started = time.monotonic()
    deadline = started + timeout_secs
    attempts = 0
    try:
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            attempts += 1
            params = {
                "wait_for_status": color.value,
                "timeout": f"{max(1, math.ceil(remaining))}s",
            }
            try:
                response = await asyncio.wait_for(
                    http.get(url, params=params, timeout=remaining),
                    timeout=remaining,
                )
                if _is_ready(response, color):
                    elapsed = format_duration(time.monotonic() - started)
                    logger.info(f"{node} is {color.value} after {elapsed} ({attempts} attempts)")
                    return
                logger.debug(f"{node} health not {color.value} yet: HTTP {response.status_code}")
            except asyncio.TimeoutError:
                break
            except httpx.TransportError as e:
                logger.debug(f"{node} health query failed: {type(e).__name__}")

            await asyncio.sleep(poll_interval)
    finally:
        if owns_client:
            await http.aclose()

    logger.error(f"{node} did not reach {color.value} within {timeout_secs}s")
    raise SetupTimeoutError(node, timeout_secs)
