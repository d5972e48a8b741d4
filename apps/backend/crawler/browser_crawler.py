"""
Headless-browser fetch for client-rendered listing pages.

A BrowserSession owns one Chromium process for the duration of an
`async with` block; every page it opens is closed after use and the
browser is closed when the block exits, including on errors.
"""
import os
import logging
from typing import Optional

from playwright.async_api import async_playwright, Browser, Playwright

from core.errors import NetworkError

logger = logging.getLogger(__name__)

DEFAULT_NAV_TIMEOUT_MS = int(os.getenv("CRAWL_RENDER_TIMEOUT_MS", "20000"))
SCROLL_STEP_PX = 100
SCROLL_INTERVAL_MS = 200
POST_SCROLL_WAIT_MS = 1000

BROWSER_UA = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"


class BrowserSession:
    """Scoped Playwright browser"""

    def __init__(self, nav_timeout_ms: Optional[int] = None):
        self.nav_timeout_ms = nav_timeout_ms or DEFAULT_NAV_TIMEOUT_MS
        self._playwright_cm = None
        self._playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None

    async def __aenter__(self) -> "BrowserSession":
        self._playwright_cm = async_playwright()
        self._playwright = await self._playwright_cm.__aenter__()
        try:
            self.browser = await self._playwright.chromium.launch(
                headless=True,
                args=["--no-sandbox", "--disable-dev-shm-usage"],
            )
        except Exception as e:
            await self._playwright_cm.__aexit__(type(e), e, e.__traceback__)
            raise NetworkError(f"Browser launch failed: {e}") from e
        return self

    async def __aexit__(self, exc_type, exc, tb):
        try:
            if self.browser:
                await self.browser.close()
        except Exception as e:
            logger.warning(f"[browser] Error closing browser: {e}")
        finally:
            self.browser = None
            await self._playwright_cm.__aexit__(exc_type, exc, tb)

    async def fetch_rendered(self, url: str, settle_ms: int = 0, scroll_steps: int = 0) -> str:
        """
        Navigate, wait for the page to settle, optionally scroll to trigger
        lazy loading, then return the serialized DOM.

        Raises:
            NetworkError: navigation failed or timed out
        """
        if self.browser is None:
            raise RuntimeError("BrowserSession used outside 'async with'")

        page = await self.browser.new_page(viewport={"width": 1200, "height": 800})
        try:
            await page.set_extra_http_headers({
                "User-Agent": BROWSER_UA,
                "Accept-Language": "ko-KR,ko;q=0.9,en;q=0.8",
            })
            try:
                await page.goto(url, wait_until="domcontentloaded", timeout=self.nav_timeout_ms)
            except Exception as e:
                logger.warning(f"[browser] Navigation failed for {url}: {e}")
                raise NetworkError(f"Rendered fetch failed: {e}", url=url) from e

            if settle_ms:
                await page.wait_for_timeout(settle_ms)

            if scroll_steps:
                for _ in range(scroll_steps):
                    at_bottom = await page.evaluate(
                        "(step) => { window.scrollBy(0, step);"
                        " return window.innerHeight + window.scrollY >= document.body.scrollHeight; }",
                        SCROLL_STEP_PX,
                    )
                    await page.wait_for_timeout(SCROLL_INTERVAL_MS)
                    if at_bottom:
                        break
                await page.wait_for_timeout(POST_SCROLL_WAIT_MS)

            html = await page.content()
            logger.info(f"[browser] Rendered {url} ({len(html)} chars)")
            return html
        finally:
            await page.close()
