"""Repository slug utilities.

Repository slugs are GitHub identifiers in ``owner/name`` format. Role cache
keys and search qualifiers are built from them, so parsing stays here rather
than being repeated with ad hoc ``split`` calls.
"""

from __future__ import annotations


def repo_slug(owner: str, name: str) -> str:
    """Build a repository slug from owner and name.

    Examples
    --------
    >>> repo_slug("mattleibow", "triage-assistant")
    'mattleibow/triage-assistant'

    """
    return f"{owner}/{name}"


def parse_repo_slug(slug: str) -> tuple[str, str]:
    """Parse a repository slug into ``(owner, name)``.

    Raises
    ------
    ValueError
        If the slug is not in ``owner/name`` format.

    """
    owner, sep, name = slug.partition("/")
    if not sep or not owner or not name or "/" in name:
        msg = f"Invalid repository slug: expected 'owner/name', got {slug!r}"
        raise ValueError(msg)
    return owner, name
