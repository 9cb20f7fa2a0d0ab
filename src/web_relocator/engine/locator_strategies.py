"""
Locator Strategies - The five query primitives and their error boundary.

Strategies (one per LocatorType):
1. ID - exact ``id`` attribute match (0 or 1 result)
2. CSS - all matches of a selector
3. ROLE - explicit or implicit ARIA role, optionally filtered by name
4. TEXT - elements whose normalized text equals or contains the value
5. XPATH - element results of an expression, in document order

The ``query_*`` functions operate on an lxml document element and raise
StrategyEvaluationError for malformed input. ``run_locator`` dispatches a
LocatorSpec to a frame and swallows those errors into an empty result.
"""

import logging
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from cssselect import SelectorError
from lxml import etree
from lxml.cssselect import CSSSelector

from web_relocator.engine.descriptor import LocatorSpec, LocatorType
from web_relocator.engine.fingerprint import (
    NON_CONTENT_TAGS,
    is_element,
    iter_elements,
    normalize_text,
    node_text,
    tag_of,
)
from web_relocator.exceptions import StrategyEvaluationError

if TYPE_CHECKING:
    from web_relocator.engine.trace import DebugTrace
    from web_relocator.interfaces.tree import IFrame

logger = logging.getLogger(__name__)


# Roles implied by the tag alone
IMPLICIT_ROLES: Dict[str, str] = {
    "article": "article",
    "aside": "complementary",
    "button": "button",
    "dd": "definition",
    "details": "group",
    "dialog": "dialog",
    "dt": "term",
    "fieldset": "group",
    "footer": "contentinfo",
    "form": "form",
    "h1": "heading",
    "h2": "heading",
    "h3": "heading",
    "h4": "heading",
    "h5": "heading",
    "h6": "heading",
    "header": "banner",
    "hr": "separator",
    "li": "listitem",
    "main": "main",
    "menu": "list",
    "meter": "meter",
    "nav": "navigation",
    "ol": "list",
    "optgroup": "group",
    "option": "option",
    "output": "status",
    "progress": "progressbar",
    "section": "region",
    "summary": "button",
    "table": "table",
    "tbody": "rowgroup",
    "td": "cell",
    "textarea": "textbox",
    "tfoot": "rowgroup",
    "th": "columnheader",
    "thead": "rowgroup",
    "tr": "row",
    "ul": "list",
}

# Roles implied by <input type=...>
INPUT_ROLES: Dict[str, str] = {
    "button": "button",
    "checkbox": "checkbox",
    "email": "textbox",
    "image": "button",
    "number": "spinbutton",
    "radio": "radio",
    "range": "slider",
    "reset": "button",
    "search": "searchbox",
    "submit": "button",
    "tel": "textbox",
    "text": "textbox",
    "url": "textbox",
}

_BUTTON_INPUT_TYPES = {"button", "submit", "reset", "image"}

# Contain every text on the page
DOCUMENT_TAGS = frozenset({"html", "body"})


# =============================================================================
# ROLES AND NAMES
# =============================================================================

def implicit_role(node: Any) -> Optional[str]:
    """Role an element has without an explicit ``role`` attribute."""
    tag = tag_of(node)
    if tag in ("a", "area"):
        return "link" if node.get("href") is not None else None
    if tag == "img":
        return "presentation" if node.get("alt") == "" else "img"
    if tag == "input":
        input_type = (node.get("type") or "text").lower()
        if node.get("list") is not None and INPUT_ROLES.get(input_type) in ("textbox", "searchbox"):
            return "combobox"
        return INPUT_ROLES.get(input_type)
    if tag == "select":
        size = node.get("size") or ""
        if node.get("multiple") is not None or (size.isdigit() and int(size) > 1):
            return "listbox"
        return "combobox"
    return IMPLICIT_ROLES.get(tag)


def role_of(node: Any) -> Optional[str]:
    """Explicit role (first token of ``role``) or the implicit one."""
    explicit = (node.get("role") or "").strip().lower()
    if explicit:
        return explicit.split()[0]
    return implicit_role(node)


def accessible_name(node: Any) -> str:
    """
    Approximate accessible name of an element.

    Precedence: aria-labelledby, aria-label, associated <label>, alt,
    button-like input value, text content, title, placeholder.
    """
    labelledby = (node.get("aria-labelledby") or "").split()
    if labelledby:
        parts = []
        for ref in labelledby:
            found = node.getroottree().xpath("//*[@id=$ref]", ref=ref)
            if found:
                parts.append(node_text(found[0]))
        name = normalize_text(" ".join(parts))
        if name:
            return name

    label = normalize_text(node.get("aria-label"))
    if label:
        return label

    tag = tag_of(node)
    if tag in ("input", "select", "textarea"):
        label_text = _label_text(node)
        if label_text:
            return label_text
    if tag in ("img", "area") or (tag == "input" and (node.get("type") or "").lower() == "image"):
        alt = normalize_text(node.get("alt"))
        if alt:
            return alt
    if tag == "input" and (node.get("type") or "").lower() in _BUTTON_INPUT_TYPES:
        value = normalize_text(node.get("value"))
        if value:
            return value
    if tag not in ("input", "select", "textarea"):
        text = node_text(node)
        if text:
            return text
    return normalize_text(node.get("title")) or normalize_text(node.get("placeholder"))


def _label_text(node: Any) -> str:
    node_id = node.get("id")
    if node_id:
        labels = node.getroottree().xpath("//label[@for=$id]", id=node_id)
        if labels:
            return node_text(labels[0])
    for ancestor in node.iterancestors("label"):
        return node_text(ancestor)
    return ""


# =============================================================================
# QUERY PRIMITIVES
# =============================================================================

def query_by_id(root: Any, value: str) -> List[Any]:
    """Element whose ``id`` equals ``value`` exactly (0 or 1 items)."""
    if not value:
        return []
    return root.getroottree().xpath("//*[@id=$value]", value=value)[:1]


def query_by_css(root: Any, selector: str) -> List[Any]:
    """All elements matching ``selector``, in document order."""
    if not selector or not selector.strip():
        return []
    try:
        matcher = CSSSelector(selector, translator="html")
        return [node for node in matcher(root) if is_element(node)]
    except (SelectorError, etree.XPathError) as e:
        raise StrategyEvaluationError(
            f"Invalid CSS selector: {e}", LocatorType.CSS.value, selector
        ) from e


def query_by_role(root: Any, role: str, name: Optional[str] = None) -> List[Any]:
    """Elements whose role equals ``role``; ``name`` is a case-insensitive substring."""
    wanted = (role or "").strip().lower()
    if not wanted:
        return []
    wanted_name = normalize_text(name).lower() if name else ""
    matches = []
    for node in iter_elements(root):
        if role_of(node) != wanted:
            continue
        if wanted_name and wanted_name not in accessible_name(node).lower():
            continue
        matches.append(node)
    return matches


def query_by_text(root: Any, text: str, tag: Optional[str] = None) -> List[Any]:
    """
    Elements whose normalized text equals or contains ``text``.

    A control and the label nested inside it both match, so
    ``<button><span>Save</span></button>`` yields the button and the span and
    the scorer picks between them. ``html`` and ``body`` contain every text on
    the page and are never returned. With ``tag`` only elements of that tag
    are kept.
    """
    target = normalize_text(text)
    if not target:
        return []
    wanted_tag = tag.lower() if tag else None

    matched = []
    for node in iter_elements(root):
        node_tag = tag_of(node)
        if node_tag in NON_CONTENT_TAGS or node_tag in DOCUMENT_TAGS:
            continue
        if wanted_tag and node_tag != wanted_tag:
            continue
        content = node_text(node)
        if content and (content == target or target in content):
            matched.append(node)
    return matched


def query_by_xpath(root: Any, expression: str) -> List[Any]:
    """Element results of ``expression`` evaluated against the document."""
    if not expression or not expression.strip():
        return []
    try:
        result = root.getroottree().xpath(expression)
    except etree.XPathError as e:
        raise StrategyEvaluationError(
            f"Invalid XPath expression: {e}", LocatorType.XPATH.value, expression
        ) from e
    if not isinstance(result, list):
        # Number, string or boolean results carry no nodes
        return []
    return [node for node in result if is_element(node)]


# =============================================================================
# STRATEGY BOUNDARY
# =============================================================================

def query(frame: "IFrame", spec: LocatorSpec) -> List[Any]:
    """Dispatch ``spec`` to the matching primitive of ``frame``."""
    if spec.type == LocatorType.ID:
        return frame.query_by_id(spec.value)
    if spec.type == LocatorType.CSS:
        return frame.query_by_css(spec.value)
    if spec.type == LocatorType.ROLE:
        return frame.query_by_role(spec.role or spec.value, spec.name)
    if spec.type == LocatorType.TEXT:
        return frame.query_by_text(spec.value, spec.tag)
    if spec.type == LocatorType.XPATH:
        return frame.query_by_xpath(spec.value)
    return []


def run_locator(
    frame: "IFrame",
    spec: LocatorSpec,
    debug: Optional["DebugTrace"] = None,
) -> List[Any]:
    """
    Evaluate one locator against one frame.

    A malformed selector or expression yields an empty list and a ``warn``
    entry; any other exception is a fault and propagates.

    Args:
        frame: Frame to query
        spec: Locator to evaluate
        debug: Optional trace receiving a warning on evaluation errors

    Returns:
        Matching nodes, possibly empty
    """
    try:
        return list(query(frame, spec))
    except StrategyEvaluationError as e:
        logger.warning(
            f"{spec.type.value} locator '{spec.value}' failed in frame {frame.index}: {e.message}",
            extra={"frame": frame.index, "strategy": spec.type.value},
        )
        if debug is not None:
            debug.warn(f"{spec.type.value} locator failed: {e.message}")
        return []
