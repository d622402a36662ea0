#!/usr/bin/env python3
"""Generate the storefront sitemap.

Reads every product slug from the backend service and writes the
sitemap for the public site.

Usage:
    python scripts/generate_sitemap.py
    python scripts/generate_sitemap.py --base-url https://techspec.example --output dist/sitemap.xml
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from techspec.catalog.repository import ProductRepository
from techspec.catalog.sitemap import build_sitemap
from techspec.infrastructure.backend_client import BackendClient
from techspec.infrastructure.config import settings

DEFAULT_BASE_URL = "https://techspec.com"
DEFAULT_OUTPUT = "public/sitemap.xml"


async def generate(base_url: str, output: Path) -> int:
    """Write the sitemap file.

    Args:
        base_url: Public site URL used in every ``loc``.
        output: Destination file.

    Returns:
        Number of product entries written.
    """
    client = BackendClient.from_settings(settings)
    try:
        products = await ProductRepository(client).list_slugs()
    finally:
        await client.close()

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(build_sitemap(base_url, products), encoding="utf-8")
    return sum(1 for p in products if p.get("slug"))


async def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Generate sitemap.xml for the storefront",
    )
    parser.add_argument(
        "--base-url",
        default=settings.site_url or DEFAULT_BASE_URL,
        help="Public site URL (default: SITE_URL or %(default)s)",
    )
    parser.add_argument(
        "--output",
        default=DEFAULT_OUTPUT,
        help="Output file (default: %(default)s)",
    )

    args = parser.parse_args()
    output = Path(args.output)

    print(f"Generating sitemap for {args.base_url}...")
    count = await generate(args.base_url, output)
    print(f"Sitemap written to {output} ({count} products)")


if __name__ == "__main__":
    asyncio.run(main())
