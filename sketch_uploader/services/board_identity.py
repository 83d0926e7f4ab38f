from __future__ import annotations

from sketch_uploader.domain.models import BoardsConfig

IDENTITY_SEPARATOR = "|"


def resolve_port_address(config: BoardsConfig) -> str:
    """Return the upload address, preferring the board's own port."""
    board = config.selected_board
    if board is not None and board.port is not None and board.port.address:
        return board.port.address
    if config.selected_port is not None and config.selected_port.address:
        return config.selected_port.address
    return ""


def board_identity(config: BoardsConfig) -> str:
    """Key for "this board on this port", or "" when either part is unresolved."""
    board = config.selected_board
    fqbn = board.fqbn if board is not None else None
    if not fqbn:
        return ""
    address = resolve_port_address(config)
    if not address:
        return ""
    return f"{fqbn}{IDENTITY_SEPARATOR}{address}"
