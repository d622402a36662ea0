"""Bulk product import from CSV.

Expected header (case-insensitive, any column order):

    name,brand,model,price,status,category_slug

Rows are validated and inserted one at a time. Each row produces one
result, either the new product id or the reason it was rejected, so a
partial import is reported rather than hidden.
"""

import csv
import io
import math
from dataclasses import dataclass
from typing import Any

import structlog

from techspec.catalog.repository import CategoryRepository, ProductRepository
from techspec.domain.entities import slugify
from techspec.domain.exceptions import ValidationFailedError
from techspec.domain.state_machines import ProductStatus
from techspec.infrastructure.backend_client import BackendClient

logger = structlog.get_logger()

REQUIRED_COLUMNS = ("name", "brand", "model", "price")


@dataclass
class ImportRowResult:
    """Outcome of one CSV row."""

    row: int
    name: str
    id: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.id is not None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"row": self.row, "name": self.name}
        if self.ok:
            result["id"] = self.id
        else:
            result["error"] = self.error
        return result


def parse_csv(content: str) -> list[tuple[int, dict[str, str]]]:
    """Split CSV text into ``(line number, {column: value})`` pairs.

    Blank lines are skipped. Short rows leave the missing columns empty.

    Raises:
        ValidationFailedError: If the text is empty, malformed, or the
            header lacks a required column.
    """
    if not content or not content.strip():
        raise ValidationFailedError("CSV content is empty", field="content")

    try:
        lines = [
            (reader_line, row)
            for reader_line, row in _read_rows(content)
            if any(cell.strip() for cell in row)
        ]
    except csv.Error as e:
        raise ValidationFailedError(f"Malformed CSV: {e}", field="content") from e

    if not lines:
        raise ValidationFailedError("CSV content is empty", field="content")

    _, header = lines[0]
    columns = [cell.strip().lower() for cell in header]
    missing = [c for c in REQUIRED_COLUMNS if c not in columns]
    if missing:
        raise ValidationFailedError(
            "CSV header is missing columns: " + ", ".join(missing), field="content"
        )

    rows = []
    for line_number, cells in lines[1:]:
        values = {
            column: (cells[i].strip() if i < len(cells) else "")
            for i, column in enumerate(columns)
        }
        rows.append((line_number, values))
    return rows


def _read_rows(content: str):
    reader = csv.reader(io.StringIO(content.lstrip("\ufeff")))
    for row in reader:
        yield reader.line_num, row


def _parse_price(raw: str) -> float:
    price = float(raw)
    if math.isnan(price) or math.isinf(price) or price < 0:
        raise ValueError(raw)
    return price


class ProductImportService:
    """Import products from CSV text.

    Example usage:
        service = ProductImportService(admin_client)
        results = await service.import_csv(text)
    """

    def __init__(self, client: BackendClient) -> None:
        self.client = client
        self.products = ProductRepository(client)
        self.categories = CategoryRepository(client)

    async def import_csv(self, content: str) -> list[ImportRowResult]:
        """Import every data row.

        Args:
            content: CSV text with a header row.

        Returns:
            One result per data row, in file order.

        Raises:
            ValidationFailedError: If the CSV as a whole cannot be read.
        """
        rows = parse_csv(content)
        category_ids: dict[str, str | None] = {}
        results = []

        for line_number, values in rows:
            result = await self._import_row(line_number, values, category_ids)
            results.append(result)

        imported = sum(1 for r in results if r.ok)
        logger.info(
            "CSV import finished",
            rows=len(results),
            imported=imported,
            rejected=len(results) - imported,
        )
        return results

    async def _import_row(
        self,
        line_number: int,
        values: dict[str, str],
        category_ids: dict[str, str | None],
    ) -> ImportRowResult:
        name = values.get("name", "")
        result = ImportRowResult(row=line_number, name=name)

        missing = [c for c in REQUIRED_COLUMNS if not values.get(c)]
        if missing:
            result.error = "Missing required field: " + ", ".join(missing)
            return result

        try:
            price = _parse_price(values["price"])
        except ValueError:
            result.error = f"Invalid price: {values['price']}"
            return result

        raw_status = values.get("status") or ProductStatus.ACTIVE.value
        try:
            status = ProductStatus(raw_status.lower())
        except ValueError:
            result.error = f"Invalid status: {raw_status}"
            return result

        category_id = None
        slug = values.get("category_slug")
        if slug:
            if slug not in category_ids:
                category_ids[slug] = await self.categories.resolve_slug(slug)
            category_id = category_ids[slug]

        response = await self.products.insert(
            {
                "name": name,
                "slug": slugify(name),
                "brand": values["brand"],
                "model": values["model"],
                "price": price,
                "status": status.value,
                "category_id": category_id,
            }
        )
        if not response.success:
            result.error = response.error.message if response.error else "Insert failed"
            logger.warning("CSV row rejected by backend", row=line_number, error=result.error)
            return result

        row = response.first()
        result.id = str(row["id"]) if row else None
        if result.id is None:
            result.error = "Insert returned no row"
        return result
