from __future__ import annotations

from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Callable, Protocol

from sketch_uploader.domain.models import BoardsConfig, BoardUserField
from sketch_uploader.services.action_log import ActionLogService


RequirementListener = Callable[[bool], None]


class UserFieldsProvider(Protocol):
    def subscribe(self, listener: Callable[[BoardsConfig], None]) -> None: ...

    def unsubscribe(self, listener: Callable[[BoardsConfig], None]) -> None: ...

    def selected_board_user_fields(self) -> list[BoardUserField]: ...


class UserFieldRequirementTracker:
    """Tracks whether the selected board declares any upload user fields.

    Every selection change schedules a fresh lookup on a worker. Lookups are
    not ordered: one that was started for an older selection can land after
    a newer one and overwrite it. Readers of ``is_required`` accept that
    window rather than blocking on it.
    """

    def __init__(
        self,
        provider: UserFieldsProvider,
        *,
        executor: Executor | None = None,
        action_log: ActionLogService | None = None,
    ) -> None:
        self.provider = provider
        self.action_log = action_log or ActionLogService()
        self._executor = executor or ThreadPoolExecutor(
            max_workers=2,
            thread_name_prefix="sketch-uploader-user-fields",
        )
        self._required = False
        self._listeners: list[RequirementListener] = []

    def start(self) -> None:
        self.provider.subscribe(self._handle_boards_config_changed)

    def stop(self) -> None:
        self.provider.unsubscribe(self._handle_boards_config_changed)
        self._executor.shutdown(wait=False)

    def subscribe(self, listener: RequirementListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: RequirementListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def is_required(self) -> bool:
        return self._required

    def on_board_selection_changed(self) -> Future[bool]:
        return self._executor.submit(self._recompute)

    def _handle_boards_config_changed(self, _config: BoardsConfig) -> None:
        self.on_board_selection_changed()

    def _recompute(self) -> bool:
        try:
            fields = self.provider.selected_board_user_fields()
        except Exception as exc:  # noqa: BLE001
            self.action_log.log_event(
                "user_fields_requirement",
                phase="error",
                error=str(exc),
                required=self._required,
            )
            return self._required

        required = len(fields) > 0
        self._required = required
        self.action_log.log_event(
            "user_fields_requirement",
            phase="updated",
            required=required,
            fields=[field.name for field in fields],
        )
        for listener in list(self._listeners):
            listener(required)
        return required
