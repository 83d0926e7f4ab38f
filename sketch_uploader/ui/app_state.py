from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Callable


@dataclass(frozen=True)
class BoardState:
    fqbn: str = ""
    port_address: str = ""
    identity: str = ""
    requires_user_fields: bool = False
    last_updated_utc: str = ""


@dataclass(frozen=True)
class UploadState:
    upload_in_progress: bool = False
    last_upload_status: str = ""  # success|failed|cancelled|""
    last_updated_utc: str = ""


@dataclass(frozen=True)
class AppState:
    board: BoardState = field(default_factory=BoardState)
    upload: UploadState = field(default_factory=UploadState)


Listener = Callable[[AppState], None]


def _now_utc() -> str:
    return datetime.now(timezone.utc).isoformat()


class AppStateStore:
    """Centralized in-memory app state with coarse-grained update helpers."""

    def __init__(self) -> None:
        self._state = AppState()
        self._listeners: list[Listener] = []

    def snapshot(self) -> AppState:
        return self._state

    def subscribe(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def update_board(
        self,
        *,
        fqbn: str | None = None,
        port_address: str | None = None,
        identity: str | None = None,
        requires_user_fields: bool | None = None,
    ) -> None:
        current = self._state.board
        board = BoardState(
            fqbn=current.fqbn if fqbn is None else str(fqbn),
            port_address=current.port_address if port_address is None else str(port_address),
            identity=current.identity if identity is None else str(identity),
            requires_user_fields=(
                current.requires_user_fields
                if requires_user_fields is None
                else bool(requires_user_fields)
            ),
            last_updated_utc=_now_utc(),
        )
        self._publish(replace(self._state, board=board))

    def update_upload(
        self,
        *,
        upload_in_progress: bool | None = None,
        last_upload_status: str | None = None,
    ) -> None:
        current = self._state.upload
        upload = UploadState(
            upload_in_progress=(
                current.upload_in_progress
                if upload_in_progress is None
                else bool(upload_in_progress)
            ),
            last_upload_status=(
                current.last_upload_status
                if last_upload_status is None
                else str(last_upload_status)
            ),
            last_updated_utc=_now_utc(),
        )
        self._publish(replace(self._state, upload=upload))

    def _publish(self, next_state: AppState) -> None:
        self._state = next_state
        for listener in list(self._listeners):
            listener(self._state)
