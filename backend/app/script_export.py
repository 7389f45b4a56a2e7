"""
Renders a recorded session as a standalone Playwright script.

The script is plain text; nothing here executes it.
"""

from typing import List, Optional

from event_actions import action_for, needs_navigation, render_navigation
from models import Session

SCRIPT_HEADER = '''"""Generated Playwright script for session: {name}"""

from playwright.sync_api import sync_playwright


def run(playwright):
    browser = playwright.chromium.launch(headless=False)
    page = browser.new_page()
'''

SCRIPT_FOOTER = '''    browser.close()


if __name__ == "__main__":
    with sync_playwright() as playwright:
        run(playwright)
'''


def render_steps(session: Session) -> List[str]:
    """One literal Playwright call per replayed step."""
    lines = []
    current_url: Optional[str] = None
    for event in session.events:
        if needs_navigation(event, current_url):
            lines.append(render_navigation(event.page_url))
            current_url = event.page_url
        line = action_for(event).render(event)
        if line:
            lines.append(line)
    return lines


def generate_script(session: Session) -> str:
    # Session names are user-chosen; keep them out of the docstring quotes
    safe_name = session.name.replace("\\", "\\\\").replace('"', '\\"')
    body = "".join(f"    {line}\n" for line in render_steps(session))
    return SCRIPT_HEADER.format(name=safe_name) + body + SCRIPT_FOOTER


def script_filename(session_name: str) -> str:
    stem = "".join(c if c.isalnum() or c in "-_" else "_" for c in session_name) or "session"
    return f"{stem}_replay.py"
