"""
Playwright Provider - Resolve against the frames of a live page.

Every attempt snapshots each frame (structure, attributes, text, rendered
box and computed display/visibility/opacity) in a single ``evaluate`` call
and rebuilds it as a DocumentFrame. The engine never touches the live DOM
while scoring; ``locator_for`` maps a match back to a Playwright Locator
so the caller can act on it.

Usage:
    async with launch_page("https://app.test/board") as page:
        result = await resolve_target(
            PlaywrightTreeProvider(page),
            descriptor,
            waiter=PlaywrightStabilityWaiter(page),
        )
        if result.is_resolved:
            await locator_for(result).click()
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional, Sequence, TYPE_CHECKING
import logging

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Frame, Locator, Page, async_playwright

from web_relocator.config.settings import BrowserSettings
from web_relocator.dom.document import DocumentFrame
from web_relocator.engine.fingerprint import tag_of
from web_relocator.exceptions import BrowserLaunchError, FrameAccessError, NavigationError
from web_relocator.interfaces.tree import IFrame, IStabilityWaiter, ITreeProvider

if TYPE_CHECKING:
    from web_relocator.engine.target_resolver import ResolutionResult

logger = logging.getLogger(__name__)


SNAPSHOT_JS = """
() => {
    const walk = (el) => {
        const rect = el.getBoundingClientRect();
        const style = window.getComputedStyle(el);
        const attrs = {};
        for (const attr of el.attributes) attrs[attr.name] = attr.value;
        if ((el.tagName === 'INPUT' || el.tagName === 'TEXTAREA') && typeof el.value === 'string') {
            attrs.value = el.value;
        }
        const children = [];
        for (const child of el.childNodes) {
            if (child.nodeType === Node.ELEMENT_NODE) children.push(walk(child));
            else if (child.nodeType === Node.TEXT_NODE) children.push(child.nodeValue);
        }
        return {
            t: el.tagName.toLowerCase(),
            a: attrs,
            c: children,
            b: [rect.width, rect.height],
            s: [style.display, style.visibility, parseFloat(style.opacity)],
        };
    };
    return document.documentElement ? walk(document.documentElement) : null;
}
"""

WAIT_DOM_IDLE_JS = """
([timeoutMs, threshold]) => new Promise(resolve => {
    let last = Date.now();
    const ob = new MutationObserver(() => (last = Date.now()));
    ob.observe(document, {subtree: true, childList: true, attributes: true, characterData: true});
    const start = Date.now();
    (function check() {
        if (Date.now() - last > threshold) {
            ob.disconnect();
            resolve(true);
            return;
        }
        if (Date.now() - start > timeoutMs) {
            ob.disconnect();
            resolve(false);
            return;
        }
        setTimeout(check, 50);
    })();
})
"""


class PlaywrightTreeProvider(ITreeProvider):
    """
    Frames of a Playwright page, main frame first (``page.frames`` order).

    Detached frames and frames whose snapshot fails are reported as
    inaccessible and skipped by the scanner.
    """

    def __init__(self, page: Page):
        self._page = page

    async def frame_handles(self) -> Sequence[Any]:
        return list(self._page.frames)

    async def open_frame(self, handle: Frame, index: int) -> IFrame:
        if handle.is_detached():
            raise FrameAccessError("Frame is detached", handle.url)
        try:
            data = await handle.evaluate(SNAPSHOT_JS)
        except PlaywrightError as e:
            raise FrameAccessError(f"Frame snapshot failed: {e}", handle.url) from e
        if not data:
            raise FrameAccessError("Frame has no document element", handle.url)
        return DocumentFrame.from_snapshot(data, href=handle.url, index=index, handle=handle)


class PlaywrightStabilityWaiter(IStabilityWaiter):
    """
    Waits for DOM mutations in the main frame to go quiet.

    Uses a MutationObserver inside the page; any evaluation error (for
    example a navigation destroying the context) ends the wait early.
    """

    def __init__(self, page: Page, quiet_window_ms: int = 300):
        self._page = page
        self._quiet_window_ms = quiet_window_ms

    async def await_stable(self, budget_ms: float) -> None:
        if budget_ms <= 0:
            return
        try:
            settled = await self._page.evaluate(
                WAIT_DOM_IDLE_JS, [int(budget_ms), self._quiet_window_ms]
            )
            if not settled:
                logger.debug(f"Page still mutating after {budget_ms:.0f}ms")
        except PlaywrightError as e:
            logger.debug(f"Stability wait aborted: {e}")


# Elements under these live in their own namespace in an HTML page
FOREIGN_ROOTS = frozenset({"svg", "math"})

_LOCAL_NAME = "translate(local-name(),'ABCDEFGHIJKLMNOPQRSTUVWXYZ','abcdefghijklmnopqrstuvwxyz')"


def live_xpath(frame: IFrame, node: Any) -> str:
    """
    Absolute XPath of ``node`` that also matches in the live DOM.

    Plain name steps never match SVG or MathML elements in an HTML page, so
    from the first ``svg`` or ``math`` element down every step matches on the
    case-folded local name and the position among same-named siblings.
    """
    lineage = [node, *node.iterancestors()]
    lineage.reverse()
    for depth, element in enumerate(lineage):
        if tag_of(element) in FOREIGN_ROOTS:
            break
    else:
        return frame.path_of(node)

    path = frame.path_of(lineage[depth - 1]) if depth else ""
    for element in lineage[depth:]:
        tag = tag_of(element)
        position = 1 + sum(1 for sibling in element.itersiblings(preceding=True) if tag_of(sibling) == tag)
        path += f"/*[{_LOCAL_NAME}='{tag}'][{position}]"
    return path


def locator_for(result: "ResolutionResult") -> Optional[Locator]:
    """
    Playwright Locator for the node of a SUCCESS result.

    The locator addresses the node by its absolute XPath within the frame
    (see ``live_xpath``), so it is only meaningful while the page keeps the
    snapshot's structure.

    Returns:
        A Locator, or None if the result is unresolved or not page-backed
    """
    if not result.is_resolved or result.frame is None or result.frame.handle is None:
        return None
    return result.frame.handle.locator("xpath=" + live_xpath(result.frame, result.node))


@asynccontextmanager
async def launch_page(
    url: str,
    settings: Optional[BrowserSettings] = None,
) -> AsyncIterator[Page]:
    """
    Launch a browser, open ``url`` and yield the page.

    Raises:
        BrowserLaunchError: If the browser cannot be started
        NavigationError: If the page cannot be loaded
    """
    settings = settings or BrowserSettings()
    async with async_playwright() as playwright:
        launchers = {
            "chromium": playwright.chromium,
            "firefox": playwright.firefox,
            "webkit": playwright.webkit,
        }
        try:
            browser = await launchers[settings.browser_type].launch(headless=settings.headless)
        except PlaywrightError as e:
            raise BrowserLaunchError(f"Failed to launch browser: {e}") from e
        logger.info(f"Launched {settings.browser_type} browser (headless={settings.headless})")

        try:
            page = await browser.new_page()
            try:
                await page.goto(url, timeout=settings.navigation_timeout_ms)
            except PlaywrightError as e:
                raise NavigationError(f"Failed to navigate to {url}: {e}", url=url) from e
            yield page
        finally:
            await browser.close()
            logger.info("Browser closed")
