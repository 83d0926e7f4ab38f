from __future__ import annotations

import os

from PySide6.QtCore import QSettings

from sketch_uploader.services.core_service import DEFAULT_CLI_PATH, DEFAULT_TIMEOUT_SECONDS


CLI_PATH_ENV = "SKETCH_UPLOADER_ARDUINO_CLI"
CLI_PATH_KEY = "upload/arduino_cli_path"
VERBOSE_UPLOAD_KEY = "upload/verbose"
VERIFY_AFTER_UPLOAD_KEY = "upload/verify"
COMMAND_TIMEOUT_KEY = "upload/command_timeout"


class UploadSettingsService:
    def __init__(self, settings: QSettings | None = None) -> None:
        self.settings = settings or QSettings("SketchUploader", "SketchUploader")

    @staticmethod
    def _coerce_bool(raw: object, default: bool) -> bool:
        if isinstance(raw, bool):
            return raw
        text = str(raw).strip().lower()
        if text in {"1", "true", "yes", "on"}:
            return True
        if text in {"0", "false", "no", "off"}:
            return False
        return default

    @staticmethod
    def _coerce_timeout(raw: object, default: float) -> float:
        try:
            value = float(raw)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return default
        return value if value > 0 else default

    def _store(self, key: str, value: object) -> None:
        self.settings.setValue(key, value)
        self.settings.sync()

    def load_cli_path(self) -> str:
        stored = self.settings.value(CLI_PATH_KEY, "", type=str)
        return str(stored or "").strip()

    def save_cli_path(self, path: str) -> None:
        self._store(CLI_PATH_KEY, path.strip())

    def resolve_cli_path(
        self,
        cli: str | None = None,
        env: str | None = None,
        saved: str | None = None,
    ) -> str:
        if env is None:
            env = os.getenv(CLI_PATH_ENV)
        if saved is None:
            saved = self.load_cli_path()
        for candidate in (cli, env, saved):
            text = (candidate or "").strip()
            if text:
                return text
        return DEFAULT_CLI_PATH

    def verbose_upload(self) -> bool:
        return self._coerce_bool(self.settings.value(VERBOSE_UPLOAD_KEY, False), False)

    def set_verbose_upload(self, enabled: bool) -> None:
        self._store(VERBOSE_UPLOAD_KEY, bool(enabled))

    def verify_after_upload(self) -> bool:
        return self._coerce_bool(self.settings.value(VERIFY_AFTER_UPLOAD_KEY, False), False)

    def set_verify_after_upload(self, enabled: bool) -> None:
        self._store(VERIFY_AFTER_UPLOAD_KEY, bool(enabled))

    def command_timeout(self) -> float:
        raw = self.settings.value(COMMAND_TIMEOUT_KEY, DEFAULT_TIMEOUT_SECONDS)
        return self._coerce_timeout(raw, DEFAULT_TIMEOUT_SECONDS)

    def set_command_timeout(self, seconds: float) -> None:
        self._store(COMMAND_TIMEOUT_KEY, self._coerce_timeout(seconds, DEFAULT_TIMEOUT_SECONDS))
