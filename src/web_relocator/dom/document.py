"""
Document Frames - lxml-backed frames for static HTML and page snapshots.

Two ways in:
1. ``DocumentFrame.from_html`` parses markup (layout inferred from inline
   styles and the ``hidden`` attribute)
2. ``DocumentFrame.from_snapshot`` rebuilds a JSON tree captured from a
   live page, including each element's rendered box and computed style

``DocumentTreeProvider`` exposes an HTML document and its nested
``<iframe srcdoc>`` documents as frames, main document first.

Example:
    >>> provider = DocumentTreeProvider(open("page.html").read(), href="https://app.test/board")
    >>> result = await resolve_target(provider, descriptor)
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union
import logging
import re

import lxml.html
from lxml import etree

from web_relocator.engine import locator_strategies
from web_relocator.engine.fingerprint import NON_CONTENT_TAGS, iter_descendants, tag_of
from web_relocator.exceptions import FrameAccessError
from web_relocator.interfaces.tree import HIDDEN_LAYOUT, IFrame, ITreeProvider, Layout

logger = logging.getLogger(__name__)


SRCDOC_HREF = "about:srcdoc"

# Size assumed for elements of a parsed document, which has no rendering
DEFAULT_BOX = 1.0

_ZERO_LENGTH = re.compile(r"^0(\.0+)?(px|em|rem|%)?$")


def _inline_style(node: Any) -> Dict[str, str]:
    style: Dict[str, str] = {}
    for declaration in (node.get("style") or "").split(";"):
        name, sep, value = declaration.partition(":")
        if sep:
            style[name.strip().lower()] = value.strip().lower()
    return style


def static_layout(node: Any) -> Layout:
    """
    Best-effort layout of an element in a document that was never rendered.

    Hidden when the element or an ancestor has ``display: none`` or the
    ``hidden`` attribute, when it is a non-content element, or when it is
    an ``<input type="hidden">``. Inline ``visibility``, ``opacity``,
    ``width`` and ``height`` are honored on the element itself.
    """
    if tag_of(node) in NON_CONTENT_TAGS:
        return HIDDEN_LAYOUT
    if tag_of(node) == "input" and (node.get("type") or "").lower() == "hidden":
        return HIDDEN_LAYOUT

    current = node
    while current is not None:
        if current.get("hidden") is not None:
            return HIDDEN_LAYOUT
        if _inline_style(current).get("display") == "none":
            return HIDDEN_LAYOUT
        current = current.getparent()

    style = _inline_style(node)
    try:
        opacity = float(style.get("opacity", "1"))
    except ValueError:
        opacity = 1.0
    width = 0.0 if _ZERO_LENGTH.match(style.get("width", "")) else DEFAULT_BOX
    height = 0.0 if _ZERO_LENGTH.match(style.get("height", "")) else DEFAULT_BOX
    return Layout(
        width=width,
        height=height,
        display=style.get("display", "block"),
        visibility=style.get("visibility", "visible"),
        opacity=opacity,
    )


class DocumentFrame(IFrame):
    """
    A frame over an lxml document.

    Attributes:
        root: Document element (``<html>``)
        href: URL of the document
        index: Position in scan order
        handle: Live frame object, when built from a page snapshot
    """

    def __init__(
        self,
        root: Any,
        href: str = "",
        index: int = 0,
        handle: Any = None,
        layouts: Optional[Dict[Any, Layout]] = None,
    ):
        self._root = root
        self._href = href or ""
        self._index = index
        self._handle = handle
        # Keyed by element; holding the keys keeps lxml proxies alive
        self._layouts = layouts

    @property
    def root(self) -> Any:
        return self._root

    @property
    def href(self) -> str:
        return self._href

    @property
    def index(self) -> int:
        return self._index

    @property
    def handle(self) -> Any:
        return self._handle

    def query_by_id(self, value: str) -> List[Any]:
        return locator_strategies.query_by_id(self._root, value)

    def query_by_css(self, selector: str) -> List[Any]:
        return locator_strategies.query_by_css(self._root, selector)

    def query_by_role(self, role: str, name: Optional[str] = None) -> List[Any]:
        return locator_strategies.query_by_role(self._root, role, name)

    def query_by_text(self, text: str, tag: Optional[str] = None) -> List[Any]:
        return locator_strategies.query_by_text(self._root, text, tag)

    def query_by_xpath(self, expression: str) -> List[Any]:
        return locator_strategies.query_by_xpath(self._root, expression)

    def layout(self, node: Any) -> Layout:
        if self._layouts is not None:
            return self._layouts.get(node, HIDDEN_LAYOUT)
        return static_layout(node)

    def iframes(self) -> List[Any]:
        """``<iframe>`` elements of this document, in document order."""
        return list(iter_descendants(self._root, "iframe"))

    @classmethod
    def from_html(cls, html: str, href: str = "", index: int = 0) -> "DocumentFrame":
        """
        Parse an HTML document.

        Raises:
            FrameAccessError: If the markup is empty or cannot be parsed
        """
        if not html or not html.strip():
            raise FrameAccessError("Document is empty", href)
        try:
            try:
                root = lxml.html.document_fromstring(html)
            except ValueError:
                # Strings carrying an XML encoding declaration must be bytes
                root = lxml.html.document_fromstring(html.encode("utf-8"))
        except (etree.ParserError, ValueError) as e:
            raise FrameAccessError(f"Cannot parse document: {e}", href) from e
        return cls(root, href=href, index=index)

    @classmethod
    def from_snapshot(
        cls,
        data: Mapping[str, Any],
        href: str = "",
        index: int = 0,
        handle: Any = None,
    ) -> "DocumentFrame":
        """
        Rebuild a frame from a captured tree.

        Each node is ``{"t": tag, "a": {attrs}, "c": [node | text],
        "b": [width, height], "s": [display, visibility, opacity]}``.
        Elements whose tag lxml rejects are dropped with their subtree;
        rejected attributes are dropped individually.

        Raises:
            FrameAccessError: If the snapshot has no usable root element
        """
        layouts: Dict[Any, Layout] = {}
        root = _build_element(data, layouts) if isinstance(data, Mapping) else None
        if root is None:
            raise FrameAccessError("Snapshot has no document element", href)
        return cls(root, href=href, index=index, handle=handle, layouts=layouts)


def _build_element(data: Mapping[str, Any], layouts: Dict[Any, Layout]) -> Any:
    tag = str(data.get("t") or "").lower()
    try:
        element = lxml.html.Element(tag)
    except ValueError:
        logger.debug(f"Dropping snapshot element with invalid tag '{tag}'")
        return None

    for name, value in (data.get("a") or {}).items():
        try:
            element.set(name, "" if value is None else str(value))
        except ValueError:
            continue

    last = None
    for child in data.get("c") or []:
        if isinstance(child, str):
            if last is None:
                element.text = (element.text or "") + child
            else:
                last.tail = (last.tail or "") + child
        elif isinstance(child, Mapping):
            built = _build_element(child, layouts)
            if built is not None:
                element.append(built)
                last = built

    layouts[element] = _snapshot_layout(data)
    return element


def _snapshot_layout(data: Mapping[str, Any]) -> Layout:
    box = data.get("b") or [0, 0]
    style = data.get("s") or ["block", "visible", 1]
    try:
        return Layout(
            width=float(box[0]),
            height=float(box[1]),
            display=str(style[0]),
            visibility=str(style[1]),
            opacity=float(style[2]),
        )
    except (IndexError, TypeError, ValueError):
        return HIDDEN_LAYOUT


@dataclass
class _FrameSource:
    """Handle of one document frame: a parsed root, or None if unreadable."""
    href: str
    root: Any = None


class DocumentTreeProvider(ITreeProvider):
    """
    Frames of a static HTML document and its ``srcdoc`` iframes.

    The source is re-read and re-parsed on every enumeration, so a callable
    source can model a page that changes between attempts. Iframes that only
    have a ``src`` cannot be read and are reported as inaccessible.

    Usage:
        provider = DocumentTreeProvider(html, href="https://app.test/")
        provider = DocumentTreeProvider(lambda: current_html)
    """

    def __init__(self, source: Union[str, Callable[[], str]], href: str = ""):
        self._source = source
        self._href = href

    def _read(self) -> str:
        return self._source() if callable(self._source) else self._source

    async def frame_handles(self) -> Sequence[Any]:
        main = DocumentFrame.from_html(self._read(), href=self._href)
        handles = [_FrameSource(self._href, main.root)]
        self._collect_nested(main, handles)
        return handles

    def _collect_nested(self, frame: DocumentFrame, handles: List[_FrameSource]) -> None:
        for iframe in frame.iframes():
            srcdoc = iframe.get("srcdoc")
            if srcdoc is None or not srcdoc.strip():
                handles.append(_FrameSource(iframe.get("src") or ""))
                continue
            try:
                nested = DocumentFrame.from_html(srcdoc, href=SRCDOC_HREF)
            except FrameAccessError as e:
                logger.debug(f"Unreadable srcdoc iframe: {e.message}")
                handles.append(_FrameSource(SRCDOC_HREF))
                continue
            handles.append(_FrameSource(SRCDOC_HREF, nested.root))
            self._collect_nested(nested, handles)

    async def open_frame(self, handle: Any, index: int) -> IFrame:
        if not isinstance(handle, _FrameSource) or handle.root is None:
            href = getattr(handle, "href", None)
            raise FrameAccessError("Frame document is not accessible", href)
        return DocumentFrame(handle.root, href=handle.href, index=index)
