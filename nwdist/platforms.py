"""Turn a ``--platforms`` request into the ordered set of targets to build."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from loguru import logger

from .errors import EmptyPlatformSetError
from .system import canonical_platform

ALL_PLATFORMS = "all"

# 32-bit builds run on 64-bit hosts, so a missing 64-bit target falls back.
ARCH_FALLBACKS = {
    "win64": "win32",
    "osx64": "osx32",
}


def _split_request(request: Optional[str], host_platform: str) -> list[str]:
    if not request:
        return [str(host_platform)]
    return [token.strip() for token in request.split(",") if token.strip()]


def _match_token(token: str, supported: Sequence[str]) -> Optional[str]:
    if token in supported:
        return token

    fallback = ARCH_FALLBACKS.get(token)
    if fallback is not None:
        logger.debug("Platform {} not available, substituting {}", token, fallback)
        if fallback in supported:
            return fallback
        token = fallback

    canonical = canonical_platform(token)
    if canonical is not None and canonical in supported:
        return next(tag for tag in supported if tag == canonical)
    return None


def parse_platforms(
    request: Optional[str],
    supported: Sequence[str],
    host_platform: str,
) -> list[str]:
    """Resolve a platform request against the supported platforms.

    Parameters
    ----------
    request:
        Comma-separated platform tokens, the literal ``"all"``, or ``None``
        to build for the host only.
    supported:
        Supported platform tags in canonical order.
    host_platform:
        Platform tag of the machine running the build.

    A first token of ``"all"`` short-circuits to every supported platform.
    Otherwise unknown tokens are dropped, 64-bit variants absent from
    ``supported`` fall back to their 32-bit variant, sub-variants normalize to
    their platform tag and duplicates collapse onto their first occurrence.
    The result may be empty; see :func:`require_platforms`.
    """

    tokens = _split_request(request, host_platform)
    if tokens and tokens[0] == ALL_PLATFORMS:
        return list(supported)

    resolved: list[str] = []
    for token in tokens:
        match = _match_token(token, supported)
        if match is None:
            logger.warning("Ignoring unsupported platform '{}'", token)
            continue
        if match not in resolved:
            resolved.append(match)
    return resolved


def require_platforms(
    platforms: Iterable[str],
    *,
    request: Optional[str],
    supported: Sequence[str],
) -> list[str]:
    """Fail loudly when nothing is left to build."""

    resolved = list(platforms)
    if not resolved:
        raise EmptyPlatformSetError(request, supported)
    return resolved


__all__ = ["ALL_PLATFORMS", "ARCH_FALLBACKS", "parse_platforms", "require_platforms"]
