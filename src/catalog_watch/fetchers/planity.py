import logging
import os

from bs4 import BeautifulSoup
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from ..errors import AcquisitionFailure

log = logging.getLogger(__name__)

# Planity ships CSS-module class names with a hash suffix; match on the stable part.
CATEGORY_TITLE = '[class*="service_set-module_title"]'
SHOW_MORE = '[class*="service_set-module_showMore"]'
SERVICE_CARD = '[class*="service-module_businessService"]'
NAME = '[class*="service-module_name"]'
DETAILS = '[class*="service-module_details"]'
DURATION = '[class*="service-module_duration"]'
PRICE = '[class*="service-module_price"]'

NO_CATEGORY = "No category"
ERROR_PAGE = "error-page.html"
EXPANDED_PAGE = "debug-page-expanded.html"


def _text(card, selector):
    el = card.select_one(selector)
    return el.get_text().strip() if el else ""


def parse_services(html):
    """
    Extract raw service records from rendered markup.

    Returns a list of {"family", "label", "items": [{description, duration, price}]},
    one record per (family, label), items in page order. Cards without a name
    are skipped.
    """
    soup = BeautifulSoup(html, "lxml")
    grouped = {}

    for title in soup.select(CATEGORY_TITLE):
        family = title.get_text().strip() or NO_CATEGORY
        container = title.parent
        if container is None:
            continue
        for card in container.select(SERVICE_CARD):
            label = _text(card, NAME)
            if not label:
                continue
            rec = grouped.setdefault((family, label), {"family": family, "label": label, "items": []})
            rec["items"].append({
                "description": _text(card, DETAILS),
                "duration": _text(card, DURATION),
                "price": _text(card, PRICE),
            })

    return list(grouped.values())


def _dump(debug_dir, name, html):
    try:
        os.makedirs(debug_dir, exist_ok=True)
        path = os.path.join(debug_dir, name)
        with open(path, "w", encoding="utf-8") as f:
            f.write(html)
        return path
    except OSError as e:
        log.warning("could not write debug page %s: %s", name, e)
        return None


def _expand_all(page):
    # one pass over a static NodeList; clicked buttons may vanish or re-render
    n = page.eval_on_selector_all(SHOW_MORE, "els => { els.forEach(e => e.click()); return els.length; }")
    log.info("expanded %d 'show more' blocks", n, extra={"step": "fetch"})
    if n:
        page.wait_for_timeout(1000)


def render_page(settings):
    """Load the page in headless Chromium, expand every category, return the HTML."""
    with sync_playwright() as p:
        browser = p.chromium.launch(headless=True, args=["--no-sandbox", "--disable-setuid-sandbox"])
        try:
            page = browser.new_page(user_agent=settings.user_agent)
            try:
                log.info("navigating to %s", settings.url, extra={"step": "fetch"})
                page.goto(settings.url, wait_until="networkidle", timeout=settings.navigation_timeout_sec * 1000)
                page.wait_for_selector("body", timeout=settings.content_timeout_sec * 1000)
                page.wait_for_selector(NAME, timeout=settings.content_timeout_sec * 1000)
            except PlaywrightError as e:
                try:
                    html = page.content()
                except PlaywrightError:
                    html = ""
                saved = _dump(settings.debug_dir, ERROR_PAGE, html)
                raise AcquisitionFailure(f"service list did not load ({e}); page saved to {saved}") from e

            _expand_all(page)
            html = page.content()
            _dump(settings.debug_dir, EXPANDED_PAGE, html)
            return html
        finally:
            browser.close()


def fetch_services(settings):
    try:
        html = render_page(settings)
    except PlaywrightError as e:
        # browser failed to start or crashed outside the guarded navigation
        raise AcquisitionFailure(f"browser error: {e}") from e
    records = parse_services(html)
    if not records:
        _dump(settings.debug_dir, ERROR_PAGE, html)
        raise AcquisitionFailure("page loaded but no services could be extracted")
    return records
