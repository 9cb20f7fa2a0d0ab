"""
Element Fingerprinting - Node signals shared by the strategies and the scorer.

Every helper here reads an ``lxml`` element and never modifies it:
- normalized text content (script/style content excluded)
- tag name and class tokens
- element children and sibling position
"""

import re
from typing import Any, Iterator, List, Optional, Set

from lxml import etree


# Elements whose text content is never user-visible
NON_CONTENT_TAGS = frozenset({
    "script", "style", "noscript", "template", "head", "title", "meta", "link",
})

_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: Optional[str]) -> str:
    """
    Normalize text for matching.
    
    - Remove leading/trailing whitespace
    - Collapse internal whitespace runs to a single space
    
    Case is preserved.
    """
    if not text:
        return ""
    return _WHITESPACE.sub(" ", text).strip()


def is_element(node: Any) -> bool:
    """True for element nodes (not comments or processing instructions)."""
    return etree.iselement(node) and isinstance(node.tag, str)


def tag_of(node: Any) -> str:
    """Lowercase tag name of an element."""
    if not is_element(node):
        return ""
    return node.tag.lower()


def element_children(node: Any) -> List[Any]:
    """Element children of ``node``, skipping comments."""
    return [child for child in node if isinstance(child.tag, str)]


def iter_elements(node: Any) -> Iterator[Any]:
    """``node`` and all its descendant elements, in document order."""
    return node.iter(etree.Element)


def iter_descendants(node: Any, tag: Optional[str] = None) -> Iterator[Any]:
    """Descendant elements of ``node`` (excluding itself), optionally by tag."""
    for element in node.iter(etree.Element):
        if element is node:
            continue
        if tag and tag != "*" and tag_of(element) != tag:
            continue
        yield element


def sibling_index(node: Any) -> int:
    """Position of ``node`` among its parent's element children."""
    parent = node.getparent()
    if parent is None:
        return 0
    for index, child in enumerate(element_children(parent)):
        if child is node:
            return index
    return 0


def class_tokens(node: Any) -> Set[str]:
    """Set of class names on ``node``."""
    return set((node.get("class") or "").split())


def raw_text(node: Any) -> str:
    """
    Concatenated text content of ``node`` and its descendants.
    
    Text inside script, style and similar elements is skipped, matching
    what a user sees rather than the raw ``textContent``.
    """
    if not is_element(node) or tag_of(node) in NON_CONTENT_TAGS:
        return ""
    parts: List[str] = []
    _collect_text(node, parts)
    return "".join(parts)


def _collect_text(node: Any, parts: List[str]) -> None:
    if node.text:
        parts.append(node.text)
    for child in node:
        if isinstance(child.tag, str) and child.tag.lower() not in NON_CONTENT_TAGS:
            _collect_text(child, parts)
        if child.tail:
            parts.append(child.tail)


def node_text(node: Any) -> str:
    """
    Normalized text of ``node``, falling back to its ``value`` attribute.
    
    Form controls such as ``<input type="submit" value="Save">`` carry
    their label in ``value`` rather than in text content.
    """
    text = normalize_text(raw_text(node))
    if text:
        return text
    return normalize_text(node.get("value") if is_element(node) else None)
