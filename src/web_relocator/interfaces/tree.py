"""
Tree Interfaces - Abstract base classes for the live node tree.

The resolution engine never talks to a browser directly. It consumes:

- an ITreeProvider, which enumerates the frames of the page;
- an IFrame per frame, which exposes a root node, the five query
  primitives and layout introspection;
- an IStabilityWaiter, which waits for the tree to stop mutating.

Nodes are ``lxml.html`` elements. Frames are rebuilt on every attempt,
so node references are only valid for the duration of one resolve call.

Example:
    >>> from web_relocator.dom import DocumentTreeProvider
    >>> provider = DocumentTreeProvider("<button>Save</button>")
    >>> handles = await provider.frame_handles()
    >>> frame = await provider.open_frame(handles[0], 0)
    >>> frame.query_by_text("Save")
    [<Element button at 0x...>]
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence


@dataclass(frozen=True)
class Layout:
    """
    Rendered box and computed visibility state of a node.
    
    Attributes:
        width: Rendered width in CSS pixels
        height: Rendered height in CSS pixels
        display: Computed ``display`` value
        visibility: Computed ``visibility`` value
        opacity: Computed ``opacity`` value
    """
    width: float = 0.0
    height: float = 0.0
    display: str = "block"
    visibility: str = "visible"
    opacity: float = 1.0

    @property
    def is_visible(self) -> bool:
        """Positive box and not hidden via display, visibility or opacity."""
        return (
            self.width > 0
            and self.height > 0
            and self.display != "none"
            and self.visibility != "hidden"
            and self.opacity != 0
        )


HIDDEN_LAYOUT = Layout(width=0.0, height=0.0, display="none")


class IFrame(ABC):
    """
    One execution context with its own node tree.
    
    Query primitives raise StrategyEvaluationError for a malformed
    selector or expression; they never mutate the tree.
    """

    @property
    @abstractmethod
    def root(self) -> Any:
        """The document element of this frame."""
        ...

    @property
    @abstractmethod
    def href(self) -> str:
        """URL of the frame's document."""
        ...

    @property
    def index(self) -> int:
        """Position of this frame in scan order (0 = main frame)."""
        return 0

    @property
    def handle(self) -> Any:
        """Live frame object backing this snapshot, if any."""
        return None

    @property
    def body(self) -> Any:
        """The ``body`` element, or the root when the document has none."""
        for child in self.root:
            if child.tag == "body":
                return child
        return self.root

    @abstractmethod
    def query_by_id(self, value: str) -> List[Any]:
        """Return the element whose id equals ``value`` (0 or 1 items)."""
        ...

    @abstractmethod
    def query_by_css(self, selector: str) -> List[Any]:
        """Return all elements matching a CSS selector, in document order."""
        ...

    @abstractmethod
    def query_by_role(self, role: str, name: Optional[str] = None) -> List[Any]:
        """Return elements with the given ARIA role, optionally filtered by name."""
        ...

    @abstractmethod
    def query_by_text(self, text: str, tag: Optional[str] = None) -> List[Any]:
        """Return the elements, html and body aside, whose text equals or contains ``text``."""
        ...

    @abstractmethod
    def query_by_xpath(self, expression: str) -> List[Any]:
        """Return the element results of an XPath expression, in order."""
        ...

    @abstractmethod
    def layout(self, node: Any) -> Layout:
        """Rendered box and visibility state of ``node``."""
        ...

    def path_of(self, node: Any) -> str:
        """Absolute XPath of ``node`` inside this frame."""
        return node.getroottree().getpath(node)


class ITreeProvider(ABC):
    """
    Enumerates the frames reachable from the top-level context.
    
    Handles are opaque to the engine; ``open_frame`` turns one into an
    IFrame or raises FrameAccessError when the frame cannot be read.
    """

    @abstractmethod
    async def frame_handles(self) -> Sequence[Any]:
        """
        Return frame handles, main frame first, then nested frames in
        encounter order.
        """
        ...

    @abstractmethod
    async def open_frame(self, handle: Any, index: int) -> IFrame:
        """
        Build a fresh IFrame for ``handle``.
        
        Raises:
            FrameAccessError: If the frame's document cannot be read
        """
        ...


class IStabilityWaiter(ABC):
    """Waits until the node tree stops mutating rapidly."""

    @abstractmethod
    async def await_stable(self, budget_ms: float) -> None:
        """
        Return once mutations have settled or ``budget_ms`` has elapsed.
        
        Must never raise.
        """
        ...
