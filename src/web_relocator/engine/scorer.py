"""
Candidate Scorer - How well a node matches a recorded fingerprint.

Signals (summed):
- Tag match                      +2.0
- Link identity (href)           +5.0
- Attribute match                +2.0 per attribute
- Text match                     +2.5 exact, +1.2 containment
- Ancestor similarity            up to +3.0
- Class token overlap            +0.4 per token
- Visibility                     +1.0

Scoring is pure: the same node, descriptor and frame always produce the
same number.
"""

from typing import Any, Dict, List, Optional, TYPE_CHECKING
from urllib.parse import urlsplit

from web_relocator.engine.descriptor import AncestorStep, TargetDescriptor
from web_relocator.engine.fingerprint import (
    class_tokens,
    is_element,
    node_text,
    sibling_index,
    tag_of,
)

if TYPE_CHECKING:
    from web_relocator.interfaces.tree import IFrame


TAG_WEIGHT = 2.0
LINK_IDENTITY_WEIGHT = 5.0
ATTRIBUTE_WEIGHT = 2.0
TEXT_EXACT_WEIGHT = 2.5
TEXT_PARTIAL_WEIGHT = 1.2
ANCESTOR_WEIGHT = 3.0
CLASS_TOKEN_WEIGHT = 0.4
VISIBLE_WEIGHT = 1.0

ANCESTOR_TAG_CREDIT = 0.6
ANCESTOR_INDEX_CREDIT = 0.4
ANCESTOR_INDEX_DECAY = 0.2

# hrefs that appear in almost any URL and identify nothing
_TRIVIAL_HREFS = {"#", "/"}


def explain_score(
    node: Any,
    target: TargetDescriptor,
    frame: Optional["IFrame"] = None,
) -> Dict[str, float]:
    """
    Per-signal contributions for ``node``.

    Args:
        node: Element to score
        target: Recorded descriptor
        frame: Frame supplying layout introspection (visibility is 0 without it)

    Returns:
        Mapping of signal name to contribution; only non-zero signals appear
    """
    if node is None or target is None or not is_element(node):
        return {}

    fp = target.fingerprint
    signals: Dict[str, float] = {}

    if fp.tag and tag_of(node) == fp.tag:
        signals["tag"] = TAG_WEIGHT

    if link_identity_matches(node, target.recorded_href):
        signals["href"] = LINK_IDENTITY_WEIGHT

    attribute_hits = sum(
        1 for name, expected in fp.attrs.items()
        if node.get(name) and node.get(name) == expected
    )
    if attribute_hits:
        signals["attrs"] = attribute_hits * ATTRIBUTE_WEIGHT

    if fp.text:
        text = node_text(node)
        if text:
            if text == fp.text:
                signals["text"] = TEXT_EXACT_WEIGHT
            elif fp.text in text or text in fp.text:
                signals["text"] = TEXT_PARTIAL_WEIGHT

    if target.ancestor_trail:
        similarity = ancestor_similarity(node, target.ancestor_trail)
        if similarity:
            signals["ancestors"] = similarity * ANCESTOR_WEIGHT

    if fp.class_tokens:
        hits = len(fp.class_tokens & class_tokens(node))
        if hits:
            signals["classes"] = hits * CLASS_TOKEN_WEIGHT

    if frame is not None and frame.layout(node).is_visible:
        signals["visible"] = VISIBLE_WEIGHT

    return signals


def score_candidate(
    node: Any,
    target: TargetDescriptor,
    frame: Optional["IFrame"] = None,
) -> float:
    """Total match score of ``node`` against ``target``."""
    return sum(explain_score(node, target, frame).values())


def link_identity_matches(node: Any, recorded_href: Optional[str]) -> bool:
    """
    True when a link-shaped node points at the recorded location.

    Matches when the node's href is contained in the recorded absolute URL,
    or when the node's href contains the recorded URL's path part.
    """
    if not recorded_href:
        return False
    if tag_of(node) != "a" and node.get("href") is None:
        return False
    href = (node.get("href") or "").strip()
    if not href or href in _TRIVIAL_HREFS:
        return False
    if href in recorded_href:
        return True

    parts = urlsplit(recorded_href)
    tail = parts.path
    if parts.query:
        tail += "?" + parts.query
    if parts.fragment:
        tail += "#" + parts.fragment
    return bool(tail) and tail != "/" and tail in href


def ancestor_similarity(node: Any, trail: List[AncestorStep]) -> float:
    """
    Similarity in [0, 1] between the node's ancestors and the recorded trail.

    The trail is root-first, so the node's parent is compared with the last
    entry, the grandparent with the one before, and so on.
    """
    if not trail:
        return 0.0

    actual = []
    current = node
    for _ in range(len(trail)):
        parent = current.getparent()
        if parent is None:
            break
        current = parent
        actual.append((tag_of(current), sibling_index(current)))

    matches = 0.0
    for level, (tag, index) in enumerate(actual):
        recorded = trail[len(trail) - 1 - level]
        if recorded.tag and tag == recorded.tag:
            matches += ANCESTOR_TAG_CREDIT
        diff = abs(recorded.index - index)
        matches += max(ANCESTOR_INDEX_CREDIT - diff * ANCESTOR_INDEX_DECAY, 0.0)

    return min(matches / len(trail), 1.0)
