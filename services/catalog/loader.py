from __future__ import annotations
from pathlib import Path
from typing import List, Optional
import csv
import io

from services.config.env import get_catalog_config
from services.config.logging import get_logger
from services.resolver.core import Catalog, Entity, build_catalog

logger = get_logger(__name__)

ID_COL = "ID"
SYMBOL_COL = "Symbol"
NAME_COL = "Company Name"
REQUIRED_COLUMNS = (ID_COL, SYMBOL_COL, NAME_COL)


class CatalogLoadError(Exception):
    """Company database missing, unreadable, or without the expected header."""


def parse_companies(text: str) -> Catalog:
    """Parse company CSV text into a Catalog, keeping file order.

    Header names and cells are trimmed; blank lines are skipped. Rows with a
    non-integer ID or an empty symbol are skipped with a warning.
    """
    reader = csv.reader(io.StringIO(text))
    header: Optional[List[str]] = None
    out: List[Entity] = []
    for lineno, raw in enumerate(reader, start=1):
        row = [c.strip() for c in raw]
        if not any(row):
            continue
        if header is None:
            header = row
            missing = [c for c in REQUIRED_COLUMNS if c not in header]
            if missing:
                raise CatalogLoadError(f"missing columns: {', '.join(missing)}")
            idx = {c: header.index(c) for c in REQUIRED_COLUMNS}
            continue
        cells = {c: (row[i] if i < len(row) else "") for c, i in idx.items()}
        try:
            eid = int(cells[ID_COL])
        except ValueError:
            logger.warning("Skipping line %d: invalid ID %r", lineno, cells[ID_COL])
            continue
        if not cells[SYMBOL_COL]:
            logger.warning("Skipping line %d: empty symbol", lineno)
            continue
        out.append(Entity(id=eid, symbol=cells[SYMBOL_COL], name=cells[NAME_COL]))
    if header is None:
        raise CatalogLoadError("empty company file")
    return build_catalog(out)


def load_companies(path: str | Path | None = None) -> Catalog:
    p = Path(path) if path is not None else get_catalog_config().path
    try:
        text = p.read_text(encoding="utf-8-sig")
    except OSError as e:
        raise CatalogLoadError(f"cannot read {p}: {e}") from e
    catalog = parse_companies(text)
    logger.info("Loaded %d companies from %s", len(catalog), p)
    return catalog
