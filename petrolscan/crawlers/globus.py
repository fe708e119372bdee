"""Globus hypermarket petrol station crawler (Playwright).

The Globus site shows one outlet at a time: accept cookie consent, open the
outlet selector, pick each outlet in turn and read its fuel table.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import replace

from playwright.async_api import Page, async_playwright
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from petrolscan.config import get_config
from petrolscan.crawlers.base import StationCrawler
from petrolscan.crawlers.geocoding import Geocoder
from petrolscan.crawlers.parsing import parse_price
from petrolscan.crawlers.registry import register_crawler
from petrolscan.models import Observation

GLOBUS_URL = "https://www.globus.cz/"

COOKIE_CONSENT = "button#CybotCookiebotDialogBodyLevelButtonLevelOptinAllowAll"
SELECT_OUTLET = "div#__nuxt header#header button.btn-lg"
OUTLET_OPTIONS = "#input_9 > ul > li"
OUTLET_NAME = "#teleport-target span.text-sm.lg\\:text-base"
FUEL_ROWS = "#teleport-target table.w-full > tbody > tr"
CHANGE_OUTLET = "#teleport-target div.flex.items-center.gap-x-4 > button"

_READ_OUTLETS_JS = """
(elements) => elements.map((el) => {
    const main = el.querySelector('span.text-base');
    const sub = el.querySelector('span.text-xs');
    let name = main ? main.textContent.trim() : '';
    if (sub && sub.textContent.trim()) {
        name += ` (${sub.textContent.trim()})`;
    }
    return {
        value: el.querySelector('input') ? el.getAttribute('data-option-value') : null,
        name: name || 'Unknown location',
    };
}).filter((outlet) => outlet.value)
"""

_READ_FUELS_JS = """
(rows) => rows.map((row) => {
    const name = row.querySelector('th.text-left');
    const price = row.querySelector('td.text-right');
    return {
        name: name ? name.textContent.trim() : '',
        price: price ? price.textContent.trim() : '',
    };
})
"""


@register_crawler("globus")
class GlobusCrawler(StationCrawler):
    """Scrape fuel prices of every Globus outlet.

    Optional config:
        url: start page (defaults to https://www.globus.cz/)
        geocode: resolve outlet labels to coordinates (default true)
    """

    async def fetch_observations(self) -> AsyncIterator[Observation]:
        app_config = get_config()
        url = self._get_config_value("url", GLOBUS_URL)
        timeout_ms = app_config.crawler.navigation_timeout_ms

        geocoding = app_config.geocoding
        if not self._get_config_value("geocode", True):
            geocoding = replace(geocoding, enabled=False)

        async with Geocoder(geocoding) as geocoder, async_playwright() as p:
            if app_config.crawler.browser_cdp_url:
                browser = await p.chromium.connect_over_cdp(app_config.crawler.browser_cdp_url)
            else:
                browser = await p.chromium.launch(headless=app_config.crawler.headless)

            context = await browser.new_context(user_agent=app_config.crawler.user_agent)
            page = await context.new_page()
            page.set_default_timeout(timeout_ms)

            try:
                await page.goto(url, wait_until="networkidle")
                await self._accept_cookies(page)
                await self._open_outlet_selector(page)

                outlets = await page.locator(OUTLET_OPTIONS).evaluate_all(_READ_OUTLETS_JS)
                self.logger.info(f"Found {len(outlets)} Globus outlets")

                for outlet in outlets:
                    async for observation in self._scrape_outlet(page, outlet, geocoder):
                        yield observation
                    await self._back_to_selector(page, url)
            finally:
                await context.close()
                await browser.close()

    async def _scrape_outlet(
        self, page: Page, outlet: dict, geocoder: Geocoder
    ) -> AsyncIterator[Observation]:
        option = page.locator(f'{OUTLET_OPTIONS}[data-option-value="{outlet["value"]}"] > label')
        await option.click()
        await page.wait_for_load_state("networkidle")

        outlet_name = (await page.locator(OUTLET_NAME).text_content() or "").strip()
        fuels = await page.locator(FUEL_ROWS).evaluate_all(_READ_FUELS_JS)

        station_name = f"Globus {outlet_name}".strip()
        location = await geocoder.locate(outlet["name"])
        self.logger.info(f"{station_name}: {len(fuels)} fuels")

        for fuel in fuels:
            price = parse_price(fuel["price"])
            if not fuel["name"] or price is None:
                self.logger.warning(f"{station_name}: unreadable fuel row {fuel!r}")
                continue
            yield Observation(
                station=self.station,
                station_name=station_name,
                location=location,
                fuel_name=fuel["name"],
                price=price,
            )

    async def _accept_cookies(self, page: Page) -> None:
        try:
            await page.locator(COOKIE_CONSENT).click(timeout=15000)
            await page.wait_for_load_state("networkidle")
        except PlaywrightTimeoutError:
            self.logger.debug("No cookie consent dialog shown")

    async def _open_outlet_selector(self, page: Page) -> None:
        await page.locator(SELECT_OUTLET).click()
        await page.wait_for_load_state("networkidle")

    async def _back_to_selector(self, page: Page, url: str) -> None:
        """Return to the outlet list, reloading the start page if needed."""
        try:
            await page.locator(CHANGE_OUTLET).click(timeout=15000)
            await page.wait_for_load_state("networkidle")
        except PlaywrightTimeoutError:
            self.logger.warning("Globus 'Změnit' button not found, reloading start page")
            await page.goto(url, wait_until="networkidle")
            await self._accept_cookies(page)
            await self._open_outlet_selector(page)
