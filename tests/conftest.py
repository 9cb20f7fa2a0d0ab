"""
Pytest configuration and fixtures.
"""

import pytest

from web_relocator.config.settings import ResolverSettings
from web_relocator.utils.clock import ManualClock

SAVE_PAGE = """
<html>
  <head><title>Board</title></head>
  <body>
    <header><nav><a href="/home">Home</a></nav></header>
    <main>
      <section class="toolbar">
        <button class="btn primary" type="button">Save</button>
        <button class="btn" type="button">Cancel</button>
      </section>
    </main>
  </body>
</html>
"""


@pytest.fixture
def clock():
    """Provide a virtual clock starting at zero."""
    return ManualClock()


@pytest.fixture
def resolver_settings():
    """Provide default resolver settings."""
    return ResolverSettings()


@pytest.fixture
def save_page():
    """Provide a small page with a single visible Save button."""
    return SAVE_PAGE


@pytest.fixture
def save_frame(save_page):
    """Provide the Save page as a parsed frame."""
    from web_relocator.dom.document import DocumentFrame

    return DocumentFrame.from_html(save_page, href="https://app.test/board")


@pytest.fixture
def save_descriptor():
    """Provide a descriptor recorded from the Save button."""
    return {
        "fingerprint": {"tag": "button", "text": "Save", "classTokens": ["btn", "primary"]},
        "preferredLocators": [
            {"type": "css", "value": "button.primary", "confidence": 0.8},
            {"type": "text", "value": "Save", "confidence": 0.7},
        ],
        "context": {
            "ancestorTrail": [{"tag": "main", "index": 1}, {"tag": "section", "index": 0}],
            "frame": {"href": "https://app.test/board"},
        },
    }
