from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent


@dataclass(frozen=True)
class Settings:
    """Configuration container for data files, output folders, and session limits."""
    store_name: str
    catalog_path: Path
    responses_path: Path
    images_dir: Path
    invoices_dir: Path
    session_idle_ttl_sec: int


def load_settings() -> Settings:
    """Purpose: Load configuration from environment variables and defaults.
    Inputs/Outputs: No inputs; returns a Settings instance.
    Side Effects / State: Reads environment variables and filesystem paths.
    Dependencies: Uses os.getenv and BASE_DIR for default paths.
    Failure Modes: Invalid SESSION_IDLE_TTL_SEC env values raise ValueError.
    If Removed: App cannot locate the catalog or responses and fails at startup.
    Testing Notes: Verify defaults and overrides via environment variables.
    """
    # Resolve data paths relative to the package unless overridden.
    data_dir = (BASE_DIR / "data").resolve()
    catalog_path = Path(os.getenv("CATALOG_PATH") or data_dir / "products.json")
    responses_path = Path(os.getenv("RESPONSES_PATH") or data_dir / "responses.json")
    images_dir = Path(os.getenv("IMAGES_DIR") or data_dir / "images")
    invoices_dir = Path(os.getenv("INVOICES_DIR") or (BASE_DIR / ".." / "temp").resolve())

    return Settings(
        store_name=os.getenv("STORE_NAME", "Monasterio de la Trapa"),
        catalog_path=catalog_path,
        responses_path=responses_path,
        images_dir=images_dir,
        invoices_dir=invoices_dir,
        session_idle_ttl_sec=int(os.getenv("SESSION_IDLE_TTL_SEC", "0")),
    )
