"""
Example: Basic Resolution

This example shows how to re-locate a recorded element on a live page
and click it.
"""

import asyncio

from web_relocator.config import load_config
from web_relocator.dom import PlaywrightStabilityWaiter, PlaywrightTreeProvider, launch_page, locator_for
from web_relocator.engine import TargetResolver
from web_relocator.utils.logging import setup_logging


# What a recorder captured when the user clicked "More information..."
DESCRIPTOR = {
    "fingerprint": {"tag": "a", "text": "More information..."},
    "preferredLocators": [
        {"type": "css", "value": "div > p > a", "confidence": 0.6},
        {"type": "role", "value": "link", "name": "More information", "confidence": 0.7},
    ],
    "context": {
        "ancestorTrail": [{"tag": "div", "index": 0}, {"tag": "p", "index": 2}],
        "frame": {"href": "https://www.iana.org/domains/example"},
    },
}


async def main():
    """Run a basic resolution example."""

    # Load configuration (from env vars, config files, or defaults)
    settings = load_config()
    setup_logging(settings.logging)

    async with launch_page("https://example.com", settings.browser) as page:
        resolver = TargetResolver(
            PlaywrightTreeProvider(page),
            waiter=PlaywrightStabilityWaiter(page, settings.resolver.quiet_window_ms),
            settings=settings.resolver,
        )
        result = await resolver.resolve(DESCRIPTOR)

        if not result.is_resolved:
            print(f"Not found: {result.error}")
            for entry in result.debug:
                print(f"  {entry.type}: {entry.message}")
            return

        print(f"Found <a> with score {result.score:.1f} via {', '.join(result.why)}")
        await locator_for(result).click()
        print(f"Current URL: {page.url}")


if __name__ == "__main__":
    asyncio.run(main())
