"""HTTP health probe for a deployed service."""

import asyncio
import logging

import httpx

logger = logging.getLogger(__name__)

HEALTHY = "healthy"
UNHEALTHY = "unhealthy"
SKIPPED = "skipped"


async def check_health(url, retries=10, interval=10, timeout=30, expected_status=200, sleep=asyncio.sleep, transport=None):
    """Poll *url* until it answers with *expected_status*.

    Connection errors and unexpected statuses count as failed attempts.

    Returns:
        'healthy' on the first matching response, 'unhealthy' once every
        attempt has failed.
    """
    logger.info(f"Health check: {url} (retries: {retries}, interval: {interval}s)")
    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True, transport=transport) as client:
        for attempt in range(1, retries + 1):
            try:
                resp = await client.get(url)
                if resp.status_code == expected_status:
                    logger.info(f"Health check passed (attempt {attempt}/{retries})")
                    return HEALTHY
                logger.info(f"  Attempt {attempt}/{retries}: HTTP {resp.status_code}")
            except httpx.HTTPError as e:
                logger.debug(f"  Attempt {attempt}/{retries}: {e.__class__.__name__}: {e}")
                logger.info(f"  Attempt {attempt}/{retries}: no response")

            if attempt < retries:
                await sleep(interval)

    logger.warning(f"Health check failed after {retries} attempts")
    return UNHEALTHY
