"""
HTTP metadata fetches — JSON / text lookups against upstream sources.

Used by engine installers to resolve versions and, for a few engines,
download URLs.  Every failure (network, HTTP status, malformed body)
is raised as ``error_cls`` — ``VersionResolutionError`` by default —
so callers get a taxonomy error, never a raw ``URLError``.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from typing import Any

from esvu import __version__
from esvu.core.errors import EsvuError, VersionResolutionError

logger = logging.getLogger(__name__)

USER_AGENT = f"esvu/{__version__}"
DEFAULT_TIMEOUT = 30


def build_request(url: str, *, accept: str | None = None) -> urllib.request.Request:
    headers = {"User-Agent": USER_AGENT}
    if accept:
        headers["Accept"] = accept
    return urllib.request.Request(url, headers=headers)


def fetch_text(
    url: str,
    *,
    timeout: int = DEFAULT_TIMEOUT,
    error_cls: type[EsvuError] = VersionResolutionError,
) -> str:
    """GET ``url`` and return the decoded body."""
    logger.debug("GET %s", url)
    try:
        with urllib.request.urlopen(build_request(url), timeout=timeout) as resp:
            charset = resp.headers.get_content_charset() or "utf-8"
            return resp.read().decode(charset, errors="replace")
    except urllib.error.HTTPError as e:
        raise error_cls(f"HTTP {e.code} from {url}") from e
    except (urllib.error.URLError, TimeoutError, OSError) as e:
        raise error_cls(f"Cannot reach {url}: {e}") from e


def fetch_json(
    url: str,
    *,
    timeout: int = DEFAULT_TIMEOUT,
    error_cls: type[EsvuError] = VersionResolutionError,
) -> Any:
    """GET ``url`` and parse the body as JSON."""
    body = fetch_text(url, timeout=timeout, error_cls=error_cls)
    try:
        return json.loads(body)
    except json.JSONDecodeError as e:
        raise error_cls(f"Malformed JSON from {url}: {e}") from e


def github_releases(repo: str, *, timeout: int = DEFAULT_TIMEOUT) -> list[dict[str, Any]]:
    """All releases of ``owner/repo``, newest first."""
    data = fetch_json(f"https://api.github.com/repos/{repo}/releases", timeout=timeout)
    if not isinstance(data, list) or not data:
        raise VersionResolutionError(f"No releases found for {repo}")
    return data


def github_latest_tag(repo: str, *, timeout: int = DEFAULT_TIMEOUT) -> str:
    """Tag name of the latest (non-prerelease) release of ``owner/repo``."""
    data = fetch_json(f"https://api.github.com/repos/{repo}/releases/latest", timeout=timeout)
    tag = data.get("tag_name") if isinstance(data, dict) else None
    if not tag:
        raise VersionResolutionError(f"No latest release tag for {repo}")
    return tag
