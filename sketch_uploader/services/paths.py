from __future__ import annotations

import os
import sys
from pathlib import Path


def app_root() -> Path:
    if getattr(sys, "frozen", False) and hasattr(sys, "_MEIPASS"):
        return Path(sys._MEIPASS) / "sketch_uploader"  # type: ignore[attr-defined]
    return Path(__file__).resolve().parents[1]


def catalog_dir() -> Path:
    return app_root() / "catalog"


def schemas_dir() -> Path:
    return catalog_dir() / "schemas"


def user_fields_catalog_path() -> Path:
    configured = (os.getenv("SKETCH_UPLOADER_USER_FIELDS_CATALOG") or "").strip()
    if configured:
        return Path(configured).expanduser()
    return catalog_dir() / "user_fields.json"


def user_fields_schema_path() -> Path:
    return schemas_dir() / "user_fields.schema.json"


def user_data_dir() -> Path:
    appdata = os.getenv("APPDATA")
    if appdata:
        return Path(appdata) / "SketchUploader"
    return Path.home() / ".sketch_uploader"
