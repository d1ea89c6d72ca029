"""Dynalist deep links.

Format: ``https://dynalist.io/d/{document_id}#z={node_id}``. Without the
``#z=`` fragment the link addresses the whole document.
"""

import re
from dataclasses import dataclass
from urllib.parse import urlsplit

from .models import InvalidUrlError

DEFAULT_DOCUMENT_BASE = "https://dynalist.io/d"

_PATH_RE = re.compile(r"^/d/([A-Za-z0-9_-]+)")
_FRAGMENT_RE = re.compile(r"^z=([A-Za-z0-9_-]+)")


@dataclass(frozen=True)
class DynalistUrl:
    document_id: str
    node_id: str | None = None


def parse_dynalist_url(value: str) -> DynalistUrl:
    """Split a deep link into document and node id.

    Anything that is neither a dynalist.io address nor an http(s) URL is
    taken to be a bare document id.
    """
    value = value.strip()
    if not value:
        raise InvalidUrlError("Empty Dynalist URL")

    if "dynalist.io" not in value and not value.startswith("http"):
        return DynalistUrl(document_id=value)

    parts = urlsplit(value if "://" in value else f"https://{value}")
    path_match = _PATH_RE.match(parts.path)
    if not path_match:
        raise InvalidUrlError(f"Invalid Dynalist URL format: {value}")

    node_id = None
    if parts.fragment:
        fragment_match = _FRAGMENT_RE.match(parts.fragment)
        if fragment_match:
            node_id = fragment_match.group(1)

    return DynalistUrl(document_id=path_match.group(1), node_id=node_id)


def build_dynalist_url(
    document_id: str,
    node_id: str | None = None,
    document_base: str = DEFAULT_DOCUMENT_BASE,
) -> str:
    url = f"{document_base.rstrip('/')}/{document_id}"
    if node_id:
        url += f"#z={node_id}"
    return url
