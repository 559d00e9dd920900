"""Extract (owner, name) references from free-form repository URLs."""

from __future__ import annotations

import re

from repo_health_sync.models import RepositoryReference

# https://github.com/owner/repo[.git][/more][?query][#fragment]
_URL_PATTERN = re.compile(
    r"^[a-z][a-z0-9+.-]*://(?:[^@/]+@)?(?:www\.)?github\.com(?::\d+)?/"
    r"(?P<owner>[^/?#\s]+)/(?P<name>[^/?#\s]+)",
    re.IGNORECASE,
)

# git@github.com:owner/repo[.git] or github.com:owner/repo
_SCP_PATTERN = re.compile(
    r"^(?:[^@/\s]+@)?(?:www\.)?github\.com:(?P<owner>[^/?#\s]+)/(?P<name>[^/?#\s]+)",
    re.IGNORECASE,
)


def parse_repository_reference(url: object) -> RepositoryReference | None:
    """Extract a stable (owner, name) reference from a GitHub URL.

    Accepts ``https://github.com/owner/repo`` and ``git@github.com:owner/repo``
    forms, dropping a trailing ``.git`` and any extra path, query or fragment.
    Owner and name keep their original case.

    Returns None if the value is not a recognisable GitHub repository URL.
    """
    if not isinstance(url, str):
        return None
    text = url.strip()
    if not text:
        return None

    m = _URL_PATTERN.match(text) or _SCP_PATTERN.match(text)
    if not m:
        return None

    owner = m.group("owner")
    name = m.group("name")
    if name.lower().endswith(".git"):
        name = name[:-4]
    if not name or owner in (".", "..") or name in (".", ".."):
        return None
    return RepositoryReference(owner=owner, name=name)
