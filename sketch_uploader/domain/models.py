from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class Port(BaseModel):
    address: str = ""
    protocol: str = "serial"
    label: str = ""


class Board(BaseModel):
    name: str
    fqbn: str | None = None
    port: Port | None = None


class BoardsConfig(BaseModel):
    selected_board: Board | None = None
    selected_port: Port | None = None


class BoardUserField(BaseModel):
    tool_id: str
    name: str
    label: str
    secret: bool = False
    value: str = ""


class BoardUserFieldsEntry(BaseModel):
    fqbn: str
    name: str = ""
    user_fields: list[BoardUserField] = Field(default_factory=list)


class UserFieldsCatalog(BaseModel):
    version: int = 1
    boards: list[BoardUserFieldsEntry] = Field(default_factory=list)


class CompileOptions(BaseModel):
    sketch_path: str
    board: Board
    verbose: bool = False


class UploadOptions(BaseModel):
    sketch_path: str
    board: Board
    port: str
    user_fields: list[BoardUserField] = Field(default_factory=list)
    verbose: bool = False
    verify: bool = False

    def log_summary(self) -> dict[str, Any]:
        # Field values can be credentials; only names leave this object.
        return {
            "sketch_path": self.sketch_path,
            "fqbn": self.board.fqbn or "",
            "port": self.port,
            "user_fields": [field.name for field in self.user_fields],
            "verbose": self.verbose,
            "verify": self.verify,
        }


def copy_user_fields(fields: list[BoardUserField]) -> list[BoardUserField]:
    return [field.model_copy() for field in fields]
