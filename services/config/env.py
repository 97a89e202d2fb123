from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent.parent / "catalog" / "cse_companies.csv"


@dataclass(frozen=True)
class CatalogConfig:
    path: Path


def get_catalog_config() -> CatalogConfig:
    p = os.getenv("CSE_CATALOG_PATH")
    return CatalogConfig(path=Path(p) if p else DEFAULT_CATALOG_PATH)


@dataclass(frozen=True)
class CSEConfig:
    base_url: str = "https://www.cse.lk/api"
    timeout: float = 10.0


def get_cse_config() -> CSEConfig:
    base = os.getenv("CSE_API_BASE", "https://www.cse.lk/api").rstrip("/")
    return CSEConfig(base_url=base, timeout=float(os.getenv("CSE_TIMEOUT_SEC", "10")))


@dataclass(frozen=True)
class LogConfig:
    level: str = "INFO"


def get_log_config() -> LogConfig:
    return LogConfig(level=os.getenv("CSE_LOG_LEVEL", "INFO").upper())
