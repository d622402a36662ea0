"""Sitemap generation for the public storefront."""

from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any
from xml.etree import ElementTree as ET

from techspec.domain.entities import parse_datetime

SITEMAP_NAMESPACE = "http://www.sitemaps.org/schemas/sitemap/0.9"
STATIC_PAGES = ("", "/about", "/contact")


def _isoformat(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


def _add_url(
    urlset: ET.Element,
    loc: str,
    lastmod: datetime,
    changefreq: str,
    priority: str,
) -> None:
    url = ET.SubElement(urlset, "url")
    ET.SubElement(url, "loc").text = loc
    ET.SubElement(url, "lastmod").text = _isoformat(lastmod)
    ET.SubElement(url, "changefreq").text = changefreq
    ET.SubElement(url, "priority").text = priority


def build_sitemap(
    base_url: str,
    products: Iterable[dict[str, Any]],
    static_pages: Iterable[str] = STATIC_PAGES,
    now: datetime | None = None,
) -> str:
    """Render the sitemap XML.

    Static pages change daily (the home page gets priority 1.0); each
    product page changes weekly and carries its own last update.

    Args:
        base_url: Public site URL.
        products: Rows with ``slug`` and ``updated_at``.
        static_pages: Paths of the static pages.
        now: Last modification time for static pages.

    Returns:
        The sitemap document.
    """
    base_url = base_url.rstrip("/")
    now = now or datetime.now(timezone.utc)

    urlset = ET.Element("urlset", xmlns=SITEMAP_NAMESPACE)
    for page in static_pages:
        _add_url(urlset, f"{base_url}{page}", now, "daily", "1.0" if page == "" else "0.8")

    for product in products:
        slug = product.get("slug")
        if not slug:
            continue
        updated_at = parse_datetime(product.get("updated_at")) or now
        _add_url(urlset, f"{base_url}/products/{slug}", updated_at, "weekly", "0.8")

    ET.indent(urlset, space="  ")
    body = ET.tostring(urlset, encoding="unicode")
    return f'<?xml version="1.0" encoding="UTF-8"?>\n{body}\n'
