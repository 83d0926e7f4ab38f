from __future__ import annotations

from typing import Callable

from sketch_uploader.domain.models import BoardsConfig, BoardUserField
from sketch_uploader.services.board_catalog import BoardCatalogService
from sketch_uploader.services.board_identity import board_identity, resolve_port_address


BoardsConfigListener = Callable[[BoardsConfig], None]


class BoardsServiceProvider:
    """Holds the selected board/port and announces selection changes."""

    def __init__(self, catalog_service: BoardCatalogService | None = None) -> None:
        self.catalog_service = catalog_service or BoardCatalogService()
        self._boards_config = BoardsConfig()
        self._listeners: list[BoardsConfigListener] = []

    @property
    def boards_config(self) -> BoardsConfig:
        return self._boards_config

    def subscribe(self, listener: BoardsConfigListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: BoardsConfigListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def set_boards_config(self, config: BoardsConfig) -> None:
        self._boards_config = config.model_copy(deep=True)
        for listener in list(self._listeners):
            listener(self._boards_config)

    def selected_port_address(self) -> str:
        return resolve_port_address(self._boards_config)

    def selected_identity(self) -> str:
        return board_identity(self._boards_config)

    def selected_board_user_fields(self) -> list[BoardUserField]:
        board = self._boards_config.selected_board
        if board is None:
            return []
        return self.catalog_service.user_fields_for(board.fqbn)
