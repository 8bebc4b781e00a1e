"""JSON-backed order and product catalogs.

These are the local data sources the fact resolver reads from. Each file is
either a bare list of records or an object with an "items" list, using the
field names of the store's export (Email, OrderNumber, Status, SKU, ...).
Files are read once, by the app at startup or on first lookup, and indexed
by normalized key.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from .models import Order, Product
from .utils import mask_email, normalize_email, normalize_key

logger = logging.getLogger("gearguide.catalog")


@dataclass
class CatalogMeta:
    """Metadata describing the catalog file version for logging."""
    file_name: str
    updated_at: str
    sha256: str
    record_count: int


def read_records(path: Path) -> Tuple[List[Dict[str, Any]], CatalogMeta]:
    """Purpose: Read raw catalog records and describe the file they came from.
    Inputs/Outputs: Input is a JSON file path; returns (records, CatalogMeta).
    Side Effects / State: Reads file contents and stat metadata.
    Dependencies: json and hashlib.
    Failure Modes: Missing files raise OSError; malformed JSON raises
        json.JSONDecodeError; a non-list payload raises ValueError.
    If Removed: Neither catalog can load its data.
    Testing Notes: Accept both a bare list and {"items": [...]}.
    """
    # Hash the raw bytes so log lines identify which export was loaded.
    raw_bytes = path.read_bytes()
    sha256 = hashlib.sha256(raw_bytes).hexdigest()
    updated_at = datetime.fromtimestamp(path.stat().st_mtime).isoformat()

    data = json.loads(raw_bytes.decode("utf-8-sig"))
    if isinstance(data, dict):
        data = data.get("items", [])
    if not isinstance(data, list):
        raise ValueError(f"{path.name}: expected a list of records")
    records = [record for record in data if isinstance(record, dict)]
    meta = CatalogMeta(file_name=path.name, updated_at=updated_at, sha256=sha256, record_count=len(records))
    return records, meta


class JsonOrderLookup:
    """Order lookup keyed by (email, order number)."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._index: Optional[Dict[Tuple[str, str], Order]] = None
        self.meta: Optional[CatalogMeta] = None

    def load(self) -> Dict[Tuple[str, str], Order]:
        """Purpose: Parse the order file into a lookup index.
        Inputs/Outputs: No inputs; returns a dict keyed by (email, order key).
        Side Effects / State: Caches the index and meta on the instance.
        Dependencies: read_records, Order model, normalize_email/normalize_key.
        Failure Modes: Records failing validation raise ValueError naming the row.
        If Removed: find() has nothing to search.
        Testing Notes: Load a temp file and verify "#ab123" finds "AB123".
        """
        records, meta = read_records(self._path)
        index: Dict[Tuple[str, str], Order] = {}
        for position, record in enumerate(records):
            try:
                order = Order.model_validate(record)
            except ValidationError as exc:
                raise ValueError(f"{meta.file_name}: invalid order record at index {position}") from exc
            index[(normalize_email(order.email), normalize_key(order.order_number))] = order
        self._index = index
        self.meta = meta
        logger.info("orders loaded file=%s records=%s sha256=%s", meta.file_name, len(index), meta.sha256[:12])
        return index

    def find(self, email: str, order_number: str) -> Optional[Order]:
        index = self._index if self._index is not None else self.load()
        order = index.get((normalize_email(email), normalize_key(order_number)))
        logger.debug("order find email=%s order=%s hit=%s", mask_email(email), order_number, order is not None)
        return order


class JsonProductLookup:
    """Product lookup keyed by SKU."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._index: Optional[Dict[str, Product]] = None
        self.meta: Optional[CatalogMeta] = None

    def load(self) -> Dict[str, Product]:
        records, meta = read_records(self._path)
        index: Dict[str, Product] = {}
        for position, record in enumerate(records):
            try:
                product = Product.model_validate(record)
            except ValidationError as exc:
                raise ValueError(f"{meta.file_name}: invalid product record at index {position}") from exc
            index[normalize_key(product.sku)] = product
        self._index = index
        self.meta = meta
        logger.info("products loaded file=%s records=%s sha256=%s", meta.file_name, len(index), meta.sha256[:12])
        return index

    def find(self, sku: str) -> Optional[Product]:
        index = self._index if self._index is not None else self.load()
        return index.get(normalize_key(sku))
