"""
Artifact download — stream one engine archive to a deterministic temp file.

The temp file is named ``md5(url) + <extension>`` inside the system
temp directory.  The name depends only on the requested URL, so a run
that is interrupted mid-download leaves a file the next run for the
same URL overwrites instead of accumulating garbage.  The extension
comes from the final (post-redirect) URL so archive-type dispatch sees
the real artifact name.
"""

from __future__ import annotations

import hashlib
import logging
import posixpath
import tempfile
import urllib.error
import urllib.parse
import urllib.request
from pathlib import Path

from esvu.core.errors import DownloadError
from esvu.core.observability.status import StatusReporter
from esvu.core.services.http_fetch import build_request

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

# Multi-part extensions that must survive ``splitext``.
_DOUBLE_EXTENSIONS = (".tar.gz", ".tar.xz", ".tar.bz2")


def url_hash(url: str) -> str:
    return hashlib.md5(url.encode("utf-8")).hexdigest()


def url_extension(url: str) -> str:
    """Extension of the URL's path component (``""`` if it has none)."""
    path = urllib.parse.urlparse(url).path.lower()
    for ext in _DOUBLE_EXTENSIONS:
        if path.endswith(ext):
            return ext
    return posixpath.splitext(path)[1]


def artifact_path(url: str, final_url: str | None = None, temp_dir: Path | None = None) -> Path:
    """Deterministic temp path for ``url``'s artifact."""
    base = temp_dir or Path(tempfile.gettempdir())
    return base / (url_hash(url) + url_extension(final_url or url))


def _fmt_size(n: int | float) -> str:
    """Format byte count to human-readable string."""
    for unit in ("B", "KB", "MB", "GB"):
        if n < 1024:
            return f"{n:.1f} {unit}"
        n /= 1024
    return f"{n:.1f} TB"


def download_artifact(
    url: str,
    status: StatusReporter,
    *,
    timeout: int = 60,
    temp_dir: Path | None = None,
) -> Path:
    """Stream ``url`` to its deterministic temp path, reporting byte progress.

    Args:
        url: Artifact URL for a concrete version and the current platform.
        status: Reporter receiving ``progress(total)`` updates.
        timeout: Socket timeout in seconds.
        temp_dir: Override for the system temp directory.

    Returns:
        Path to the downloaded file.

    Raises:
        DownloadError: On a non-success HTTP status or a broken stream.
    """
    try:
        resp = urllib.request.urlopen(build_request(url), timeout=timeout)
    except urllib.error.HTTPError as e:
        raise DownloadError(f"HTTP {e.code} downloading {url}") from e
    except (urllib.error.URLError, TimeoutError, OSError) as e:
        raise DownloadError(f"Cannot download {url}: {e}") from e

    with resp:
        dest = artifact_path(url, resp.geturl(), temp_dir)
        total = int(resp.headers.get("Content-Length") or 0)
        bar = status.progress(total) if total > 0 else None
        downloaded = 0
        try:
            with open(dest, "wb") as f:
                while True:
                    chunk = resp.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    f.write(chunk)
                    downloaded += len(chunk)
                    if bar:
                        bar.update(downloaded)
        except (OSError, urllib.error.URLError) as e:
            raise DownloadError(f"Download of {url} interrupted: {e}") from e
        finally:
            if bar:
                bar.stop()

    if total and downloaded < total:
        raise DownloadError(
            f"Download of {url} truncated: {_fmt_size(downloaded)} of {_fmt_size(total)}"
        )

    logger.info("Downloaded %s (%s) → %s", url, _fmt_size(downloaded), dest)
    return dest
