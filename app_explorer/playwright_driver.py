from __future__ import annotations

"""Playwright-backed ``UIDriver`` for exploring web apps.

The DOM is walked in the page by a single ``page.evaluate`` call that returns
the whole tree (kind, identifier, label, value, enabled, frame, children), so
one capture is one round-trip regardless of page size.
"""

import asyncio
import logging
from typing import Any, Optional

from playwright.async_api import Browser, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from .decisions import ActionKind, Decision
from .elements import RawTree
from .errors import DriverError

logger = logging.getLogger(__name__)

# Maps DOM nodes onto the driver vocabulary understood by ElementCategorizer.
_SNAPSHOT_JS = """
() => {
  const kindOf = (el) => {
    const tag = el.tagName.toLowerCase();
    const role = (el.getAttribute('role') || '').toLowerCase();
    const type = (el.getAttribute('type') || '').toLowerCase();
    if (role) {
      if (role === 'button') return 'button';
      if (role === 'link') return 'link';
      if (role === 'switch') return 'switch';
      if (role === 'checkbox') return 'checkbox';
      if (role === 'tab') return 'tab';
      if (role === 'menuitem') return 'menuItem';
      if (role === 'slider') return 'slider';
      if (role === 'listitem' || role === 'row' || role === 'option') return 'cell';
      if (role === 'textbox' || role === 'searchbox') return 'textField';
    }
    if (tag === 'button') return 'button';
    if (tag === 'a' && el.hasAttribute('href')) return 'link';
    if (tag === 'input') {
      if (type === 'password') return 'secureTextField';
      if (type === 'search') return 'searchField';
      if (type === 'checkbox' || type === 'radio') return 'checkbox';
      if (type === 'range') return 'slider';
      if (type === 'submit' || type === 'button' || type === 'reset') return 'button';
      if (type === 'hidden') return 'other';
      return 'textField';
    }
    if (tag === 'textarea') return 'textView';
    if (tag === 'select') return 'picker';
    if (tag === 'li' || tag === 'tr') return 'cell';
    if (tag === 'img' || tag === 'svg') return 'image';
    if (/^h[1-6]$/.test(tag) || tag === 'p' || tag === 'label' || tag === 'span') {
      return el.children.length === 0 && el.textContent.trim() ? 'staticText' : 'other';
    }
    return 'other';
  };
  const labelOf = (el) => {
    const aria = el.getAttribute('aria-label');
    if (aria) return aria.trim();
    if (el.tagName.toLowerCase() === 'input' || el.tagName.toLowerCase() === 'textarea') {
      return (el.getAttribute('placeholder') || '').trim();
    }
    if (el.tagName.toLowerCase() === 'img') return (el.getAttribute('alt') || '').trim();
    if (el.children.length === 0 || el.tagName.toLowerCase() === 'button' || el.tagName.toLowerCase() === 'a') {
      return (el.innerText || el.textContent || '').trim().slice(0, 80);
    }
    return '';
  };
  const valueOf = (el) => {
    const tag = el.tagName.toLowerCase();
    if (tag === 'input' && (el.type === 'checkbox' || el.type === 'radio')) return el.checked;
    if (tag === 'input' || tag === 'textarea' || tag === 'select') return el.value;
    return null;
  };
  const walk = (el) => {
    const style = window.getComputedStyle(el);
    if (style.display === 'none' || style.visibility === 'hidden') return null;
    const r = el.getBoundingClientRect();
    const children = [];
    for (const c of el.children) {
      const n = walk(c);
      if (n) children.push(n);
    }
    return {
      kind: kindOf(el),
      identifier: el.id || el.getAttribute('data-testid') || el.getAttribute('name') || '',
      label: labelOf(el),
      value: valueOf(el),
      enabled: !el.disabled,
      frame: {x: r.x, y: r.y, width: r.width, height: r.height},
      children: children,
    };
  };
  return {root: walk(document.body) || {kind: 'other'}, keyboard_present: false};
}
"""


class PlaywrightDriver:
    """Drives a single Chromium page.

    Use as an async context manager::

        async with PlaywrightDriver("https://example.com") as driver:
            ...
    """

    def __init__(
        self,
        start_url: str,
        headless: bool = True,
        settle_delay: float = 1.0,
        action_timeout: float = 5000,
    ) -> None:
        self.start_url = start_url
        self._headless = headless
        self._settle_delay = settle_delay
        self._timeout = action_timeout
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._page: Optional[Page] = None
        self._crashed = False

    async def __aenter__(self) -> "PlaywrightDriver":
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(headless=self._headless)
        self._page = await self._browser.new_page()
        self._page.on("crash", self._on_crash)
        await self._page.goto(self.start_url)
        await self._page.wait_for_load_state("load")
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        if self._browser is not None:
            await self._browser.close()
        if self._playwright is not None:
            await self._playwright.stop()

    def _on_crash(self, _page: Page) -> None:
        logger.warning("Page crashed")
        self._crashed = True

    @property
    def page(self) -> Page:
        if self._page is None:
            raise DriverError("driver not started; use 'async with PlaywrightDriver(...)'")
        return self._page

    # ------------------------------------------------------------------
    async def capture_raw_tree(self) -> RawTree:
        try:
            data = await self.page.evaluate(_SNAPSHOT_JS)
        except PlaywrightError as exc:
            raise DriverError(f"DOM snapshot failed: {exc}") from exc
        return RawTree.from_dict(data)

    async def is_app_alive(self) -> bool:
        return self._page is not None and not self._page.is_closed() and not self._crashed

    async def take_screenshot(self) -> bytes:
        try:
            return await self.page.screenshot(type="png")
        except PlaywrightError as exc:
            logger.debug("Screenshot failed: %s", exc)
            return b""

    async def execute(self, decision: Decision) -> bool:
        page = self.page
        try:
            if decision.action == ActionKind.SWIPE:
                await page.mouse.wheel(0, 600)
            elif decision.action in (ActionKind.TAP, ActionKind.TYPE):
                locator = await self._locate(decision.target_element)
                if locator is None:
                    logger.info("Target %r not found on page", decision.target_element)
                    return False
                if decision.action == ActionKind.TAP:
                    await locator.click(timeout=self._timeout)
                else:
                    await locator.fill(decision.text_to_type or "", timeout=self._timeout)
            else:
                return False
        except PlaywrightError as exc:
            raise DriverError(f"{decision.action_label} failed: {exc}") from exc

        await asyncio.sleep(self._settle_delay)
        return True

    async def _locate(self, target: Optional[str]):
        """Find the element the compressor reported as ``target``."""
        if not target:
            return None
        page = self.page
        quoted = target.replace('"', '\\"')
        candidates = [
            page.locator(f'[id="{quoted}"]'),
            page.locator(f'[data-testid="{quoted}"]'),
            page.locator(f'[name="{quoted}"]'),
            page.locator(f'[aria-label="{quoted}"]'),
            page.get_by_placeholder(target, exact=True),
            page.get_by_text(target, exact=True),
        ]
        for locator in candidates:
            if await locator.count() > 0:
                return locator.first
        return None
