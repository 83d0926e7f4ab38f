from __future__ import annotations

import json
from pathlib import Path

from jsonschema import Draft202012Validator
from pydantic import ValidationError

from sketch_uploader.domain.models import BoardUserField, UserFieldsCatalog, copy_user_fields
from sketch_uploader.services.paths import user_fields_catalog_path, user_fields_schema_path


class BoardCatalogError(Exception):
    """Raised when the board user-field catalog cannot be loaded."""


def base_fqbn(fqbn: str) -> str:
    """Strip board options, keeping vendor:arch:board."""
    return ":".join(fqbn.strip().split(":")[:3])


class BoardCatalogService:
    def __init__(
        self,
        catalog_path: Path | None = None,
        schema_path: Path | None = None,
    ) -> None:
        self.catalog_path = catalog_path or user_fields_catalog_path()
        self.schema_path = schema_path or user_fields_schema_path()
        self._validator = Draft202012Validator(self._read_json(self.schema_path))
        self._fields_by_fqbn: dict[str, list[BoardUserField]] | None = None

    @staticmethod
    def _read_json(path: Path) -> dict:
        try:
            with path.open("r", encoding="utf-8") as handle:
                return json.load(handle)
        except OSError as exc:
            raise BoardCatalogError(f"Unable to read {path.name}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise BoardCatalogError(f"{path.name} is not valid JSON: {exc}") from exc

    def load(self) -> UserFieldsCatalog:
        data = self._read_json(self.catalog_path)
        errors = sorted(self._validator.iter_errors(data), key=lambda error: list(error.path))
        if errors:
            raise BoardCatalogError(
                f"User-field catalog validation failed for {self.catalog_path.name}: "
                f"{errors[0].message}"
            )
        try:
            catalog = UserFieldsCatalog.model_validate(data)
        except ValidationError as exc:
            raise BoardCatalogError(f"User-field catalog is malformed: {exc}") from exc

        fields_by_fqbn: dict[str, list[BoardUserField]] = {}
        for entry in catalog.boards:
            key = base_fqbn(entry.fqbn)
            if key in fields_by_fqbn:
                raise BoardCatalogError(f"Board '{key}' is listed more than once.")
            fields_by_fqbn[key] = entry.user_fields
        self._fields_by_fqbn = fields_by_fqbn
        return catalog

    def _index(self) -> dict[str, list[BoardUserField]]:
        if self._fields_by_fqbn is None:
            self.load()
        return self._fields_by_fqbn or {}

    def user_fields_for(self, fqbn: str | None) -> list[BoardUserField]:
        if not fqbn:
            return []
        return copy_user_fields(self._index().get(base_fqbn(fqbn), []))

    def list_fqbns(self) -> list[str]:
        return sorted(self._index())
