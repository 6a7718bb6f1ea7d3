"""Discovery of preview deployment URLs from pull request comments."""

import asyncio
import logging
import re
from collections.abc import Sequence

from pr_test_generator.clients.base import SourceControlClient
from pr_test_generator.models.pull_request import IssueComment

log = logging.getLogger(__name__)

PREVIEW_HOST_SUFFIXES: Sequence[str] = (
    ".vercel.app",
    ".netlify.app",
    ".pages.dev",
    ".onrender.com",
    ".herokuapp.com",
    ".surge.sh",
    ".up.railway.app",
    ".fly.dev",
    ".amplifyapp.com",
    ".azurestaticapps.net",
    ".web.app",
    ".firebaseapp.com",
)

URL_PATTERN = re.compile(r"https?://[^\s<>()\[\]\"'`|]+")


def _is_preview_url(url: str) -> bool:
    host = url.split("://", 1)[1].split("/", 1)[0].split(":", 1)[0].lower()
    return host.endswith(PREVIEW_HOST_SUFFIXES)


def extract_preview_urls(comments: Sequence[IssueComment]) -> Sequence[str]:
    """Collect preview deployment URLs posted by bots, in comment order.

    Deployment integrations (Vercel, Netlify, ...) comment as bot accounts;
    links in human comments are ignored.
    """
    urls: list[str] = []
    for comment in comments:
        if comment.author_type != "Bot" or not comment.body:
            continue
        for match in URL_PATTERN.finditer(comment.body):
            url = match.group(0).rstrip(".,;:")
            if _is_preview_url(url) and url not in urls:
                urls.append(url)
    return urls


async def wait_for_preview_urls(
    client: SourceControlClient,
    timeout: float,
    poll_interval: float = 10,
) -> Sequence[str]:
    """Poll pull request comments until a preview URL shows up.

    Args:
        client: Source-control client for the pull request
        timeout: Maximum wait time in seconds
        poll_interval: Seconds between polls

    Returns:
        Preview URLs found, empty if none appeared before the deadline

    """
    deadline = asyncio.get_running_loop().time() + timeout

    while True:
        comments = await client.list_comments()
        if urls := extract_preview_urls(comments):
            log.info("Found preview URLs: %s", ", ".join(urls))
            return urls

        remaining = deadline - asyncio.get_running_loop().time()
        if remaining <= 0:
            log.info("No preview URL appeared within %.0fs", timeout)
            return []

        await asyncio.sleep(min(poll_interval, remaining))
