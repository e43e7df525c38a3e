"""
Platform detection — one canonical ``<os>-<arch>`` token.

Every capability check (engine descriptors) and every download-URL
lookup (engine installers) uses the same token scheme:

    os:    linux | darwin | win32
    arch:  x64 | ia32 | arm64 | arm

e.g. ``linux-x64``, ``darwin-arm64``, ``win32-ia32``.
"""

from __future__ import annotations

import functools
import platform

# Architecture name normalization.
#
# ``platform.machine()`` reports raw uname-style names on POSIX
# (x86_64, aarch64) and Windows-style names on Windows (AMD64, x86).
_ARCH_MAP: dict[str, str] = {
    "x86_64": "x64",
    "amd64": "x64",
    "x64": "x64",
    "i386": "ia32",
    "i686": "ia32",
    "x86": "ia32",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv7l": "arm",
    "armv6l": "arm",
}

_OS_MAP: dict[str, str] = {
    "linux": "linux",
    "darwin": "darwin",
    "windows": "win32",
}

def platform_token(system: str, machine: str) -> str:
    """Build the canonical token from raw ``platform`` values.

    Unknown values are passed through lowercased so the token stays
    informative in error messages (and simply matches no engine).
    """
    os_name = _OS_MAP.get(system.lower(), system.lower())
    arch = _ARCH_MAP.get(machine.lower(), machine.lower())
    return f"{os_name}-{arch}"


@functools.lru_cache(maxsize=1)
def current_platform() -> str:
    """Canonical token for the running interpreter's platform."""
    return platform_token(platform.system(), platform.machine())


def is_windows(token: str) -> bool:
    return token.startswith("win32")
