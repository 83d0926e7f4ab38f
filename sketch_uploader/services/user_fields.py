from __future__ import annotations

from typing import Protocol

from PySide6.QtCore import QCoreApplication

from sketch_uploader.domain.models import BoardsConfig, BoardUserField, copy_user_fields
from sketch_uploader.services.action_log import ActionLogService
from sketch_uploader.services.board_identity import board_identity
from sketch_uploader.services.core_service import CoreError, CoreErrorKind
from sketch_uploader.services.user_field_cache import UserFieldCache
from sketch_uploader.services.user_field_requirements import (
    UserFieldRequirementTracker,
    UserFieldsProvider,
)


USER_FIELDS_NOT_FOUND_KEY = "userFieldsNotFoundError"


def user_fields_not_found_message() -> str:
    return QCoreApplication.translate(
        "sketch",
        "Can't find user fields for connected board",
        USER_FIELDS_NOT_FOUND_KEY,
    )


class BoardsConfigSource(UserFieldsProvider, Protocol):
    @property
    def boards_config(self) -> BoardsConfig: ...


class UserFieldsPrompt(Protocol):
    value: list[BoardUserField]

    def prompt(self) -> list[BoardUserField] | None: ...


class MessageSink(Protocol):
    def error(self, message: str) -> None: ...


class UserFieldsService:
    """Decides whether an upload may go ahead with the current user fields.

    Owns the per-identity value cache and the validity flag. Validity is a
    single flag for the whole process; it stays safe across board switches
    because every check re-derives the identity and requires a cache entry
    for it.

    Callers must not run two gate checks for overlapping uploads; nothing
    here serializes them.
    """

    def __init__(
        self,
        provider: BoardsConfigSource,
        dialog: UserFieldsPrompt,
        messages: MessageSink,
        *,
        tracker: UserFieldRequirementTracker | None = None,
        cache: UserFieldCache | None = None,
        action_log: ActionLogService | None = None,
    ) -> None:
        self.provider = provider
        self.dialog = dialog
        self.messages = messages
        self.action_log = action_log or ActionLogService()
        self.tracker = tracker or UserFieldRequirementTracker(
            provider,
            action_log=self.action_log,
        )
        self.cache = cache or UserFieldCache()
        self._fields_valid = False

    def start(self) -> None:
        self.tracker.start()
        self.tracker.on_board_selection_changed()

    def stop(self) -> None:
        self.tracker.stop()

    @property
    def fields_valid(self) -> bool:
        return self._fields_valid

    def is_required(self) -> bool:
        return self.tracker.is_required()

    def current_identity(self) -> str:
        return board_identity(self.provider.boards_config)

    def get_fields(self) -> list[BoardUserField]:
        return self.cache.get(self.current_identity()) or []

    def check_before_upload(self, force_open: bool) -> bool:
        identity = self.current_identity()
        if not identity:
            return False

        if not force_open and (
            not self.is_required() or (self.cache.has(identity) and self._fields_valid)
        ):
            return True

        return self._prompt_for_fields(identity, forced=force_open)

    def check_fields_for_upload(self) -> bool:
        # Final sanity check right before dispatch; the dialog flow already ran.
        if not self.is_required() or len(self.get_fields()) > 0:
            self._fields_valid = True
            return True

        self.action_log.log_event(
            "user_fields_preflight",
            identity=self.current_identity(),
            outcome="missing",
        )
        self.messages.error(user_fields_not_found_message())
        self._fields_valid = False
        return False

    def notify_failed_with_error(self, error: BaseException) -> None:
        if not self.is_required():
            return
        if not isinstance(error, CoreError):
            return
        if error.kind is not CoreErrorKind.UPLOAD:
            return
        # Upload-stage failures are treated as possibly caused by the fields.
        self._fields_valid = False
        self.action_log.log_event(
            "user_fields_invalidated",
            identity=self.current_identity(),
            error_kind=error.kind.value,
        )

    def _prompt_for_fields(self, identity: str, *, forced: bool) -> bool:
        cached = self.cache.get(identity)
        source = cached if cached is not None else self.provider.selected_board_user_fields()
        self.dialog.value = copy_user_fields(source)

        result = self.dialog.prompt()
        if result is None:
            self.action_log.log_event(
                "user_fields_prompt",
                identity=identity,
                forced=forced,
                prefilled=cached is not None,
                outcome="cancelled",
            )
            return False

        self.cache.put(identity, result)
        self._fields_valid = True
        self.action_log.log_event(
            "user_fields_prompt",
            identity=identity,
            forced=forced,
            prefilled=cached is not None,
            outcome="confirmed",
            fields=[field.name for field in result],
        )
        return True
