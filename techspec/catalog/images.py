"""Product image URL helpers."""

from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from techspec.domain.entities import Product

PLACEHOLDER_IMAGE = "https://images.pexels.com/photos/788946/pexels-photo-788946.jpeg"


def optimize_image(url: str, width: int = 800) -> str:
    """Add resizing parameters for CDNs that support them.

    Only ``pexels.com`` images are rewritten; any other URL, or one that
    cannot be parsed, is returned unchanged.
    """
    if not url:
        return url
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    if not parts.scheme or not parts.hostname or "pexels.com" not in parts.hostname:
        return url

    params = dict(parse_qsl(parts.query, keep_blank_values=True))
    params.update({"auto": "compress", "cs": "tinysrgb", "w": str(width)})
    return urlunsplit(parts._replace(query=urlencode(params)))


def main_image(product: Product, width: int = 800) -> str:
    """Optimized first image of a product, or the placeholder."""
    if product.images:
        return optimize_image(product.images[0], width)
    return optimize_image(PLACEHOLDER_IMAGE, width)


def gallery(product: Product, limit: int = 4) -> list[str]:
    """Images after the main one, at most ``limit`` of them."""
    return product.images[1 : 1 + limit]
