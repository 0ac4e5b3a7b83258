from __future__ import annotations

from typing import List, Optional, Sequence, Union

from multiformats import CID

from .constants import ROOTS_SEPARATOR
from .errors import InvalidArgumentError
from .keys import cid_to_key, is_cid, parse_cid, PARSE_ERRORS


def roots_to_comment(roots: Union[CID, Sequence[CID]]) -> str:
    """Serialize one CID or a list of CIDs into an archive comment."""
    if is_cid(roots):
        roots = [roots]
    elif isinstance(roots, (str, bytes)) or not isinstance(roots, Sequence):
        raise InvalidArgumentError("Roots may only be a CID or a list of CIDs")
    lines: List[str] = []
    for root in roots:
        if not is_cid(root):
            raise InvalidArgumentError("Roots may only be a CID or a list of CIDs")
        lines.append(cid_to_key(root))
    return ROOTS_SEPARATOR.join(lines)


def comment_to_roots(comment: Optional[str]) -> List[CID]:
    # Lines that do not parse are dropped; foreign tools may write other text here.
    roots: List[CID] = []
    if not comment:
        return roots
    for line in comment.split(ROOTS_SEPARATOR):
        line = line.strip()
        if not line:
            continue
        try:
            roots.append(parse_cid(line))
        except PARSE_ERRORS:
            continue
    return roots
