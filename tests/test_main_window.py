from __future__ import annotations

from PySide6.QtCore import QSettings
from PySide6.QtWidgets import QInputDialog, QMessageBox

from sketch_uploader.domain.models import BoardUserField, CompileOptions, UploadOptions
from sketch_uploader.services.action_log import ActionLogService
from sketch_uploader.services.core_service import CoreError, CoreErrorKind
from sketch_uploader.services.settings import UploadSettingsService
from sketch_uploader.ui.main_window import MainWindow


class FakeCoreService:
    def __init__(self) -> None:
        self.uploads: list[UploadOptions] = []
        self.error: Exception | None = None
        self.cli_path = "arduino-cli"
        self.timeout = 300.0

    def compile(self, _options: CompileOptions) -> str:
        return "Sketch uses 1024 bytes"

    def upload(self, options: UploadOptions) -> str:
        self.uploads.append(options)
        if self.error is not None:
            raise self.error
        return "Hash of data verified."


class FakeDialog:
    def __init__(self, answer: str | None = "hunter2") -> None:
        self.value: list[BoardUserField] = []
        self.answer = answer
        self.prompts = 0

    def prompt(self) -> list[BoardUserField] | None:
        self.prompts += 1
        if self.answer is None:
            return None
        for field in self.value:
            field.value = self.answer
        return self.value


def _window(qtbot, tmp_path, core: FakeCoreService, dialog: FakeDialog) -> MainWindow:
    settings = QSettings(str(tmp_path / "settings.ini"), QSettings.Format.IniFormat)
    settings.clear()
    window = MainWindow(
        settings_service=UploadSettingsService(settings=settings),
        core_service=core,  # type: ignore[arg-type]
        user_fields_dialog=dialog,
        action_log_service=ActionLogService(tmp_path / "actions.log"),
    )
    qtbot.addWidget(window)
    window.show()
    return window


def _select(window: MainWindow, fqbn: str, port: str) -> None:
    window.fqbn_combo.setCurrentText(fqbn)
    window.port_edit.setText(port)
    window.select_board_button.click()


def test_configuration_action_follows_board_requirement(qtbot, tmp_path) -> None:
    window = _window(qtbot, tmp_path, FakeCoreService(), FakeDialog())
    assert window.upload_with_configuration_action.isEnabled() is False
    assert window.fqbn_combo.findText("esp32:esp32:esp32") >= 0

    _select(window, "esp32:esp32:esp32", "192.168.1.50")
    qtbot.waitUntil(lambda: window.upload_with_configuration_action.isEnabled())
    assert window.app_state_store.snapshot().board.identity == "esp32:esp32:esp32|192.168.1.50"

    _select(window, "arduino:avr:uno", "/dev/ttyACM0")
    qtbot.waitUntil(lambda: not window.upload_with_configuration_action.isEnabled())


def test_upload_prompts_once_then_reuses_fields(qtbot, tmp_path) -> None:
    core = FakeCoreService()
    dialog = FakeDialog("hunter2")
    window = _window(qtbot, tmp_path, core, dialog)
    window.sketch_path_edit.setText(str(tmp_path / "Blink"))
    _select(window, "esp32:esp32:esp32", "192.168.1.50")
    qtbot.waitUntil(lambda: window.user_fields_service.is_required())

    window.upload_action.trigger()
    qtbot.waitUntil(lambda: window.app_state_store.snapshot().upload.last_upload_status == "success")
    window.upload_action.trigger()
    qtbot.waitUntil(lambda: len(core.uploads) == 2)
    qtbot.waitUntil(lambda: not window.app_state_store.snapshot().upload.upload_in_progress)

    assert dialog.prompts == 1
    assert [(f.name, f.value) for f in core.uploads[1].user_fields] == [("password", "hunter2")]
    assert "Done uploading." in window.output_view.toPlainText()


def test_upload_failure_shows_error_and_forces_reprompt(qtbot, tmp_path, monkeypatch) -> None:
    core = FakeCoreService()
    core.error = CoreError(CoreErrorKind.UPLOAD, "authentication failed")
    dialog = FakeDialog("wrong")
    errors: list[str] = []
    monkeypatch.setattr(QMessageBox, "critical", lambda _parent, _title, text: errors.append(text))
    window = _window(qtbot, tmp_path, core, dialog)
    window.sketch_path_edit.setText(str(tmp_path / "Blink"))
    _select(window, "esp32:esp32:esp32", "192.168.1.50")
    qtbot.waitUntil(lambda: window.user_fields_service.is_required())

    window.upload_action.trigger()
    qtbot.waitUntil(lambda: window.app_state_store.snapshot().upload.last_upload_status == "failed")
    assert errors == ["Upload error: authentication failed"]
    assert window.user_fields_service.fields_valid is False

    core.error = None
    window.upload_action.trigger()
    qtbot.waitUntil(lambda: window.app_state_store.snapshot().upload.last_upload_status == "success")
    assert dialog.prompts == 2


def test_cancelled_prompt_marks_upload_cancelled(qtbot, tmp_path) -> None:
    core = FakeCoreService()
    window = _window(qtbot, tmp_path, core, FakeDialog(None))
    window.sketch_path_edit.setText(str(tmp_path / "Blink"))
    _select(window, "esp32:esp32:esp32", "192.168.1.50")
    qtbot.waitUntil(lambda: window.user_fields_service.is_required())

    window.upload_action.trigger()

    assert core.uploads == []
    assert window.app_state_store.snapshot().upload.last_upload_status == "cancelled"


def test_missing_sketch_path_reports_error(qtbot, tmp_path, monkeypatch) -> None:
    errors: list[str] = []
    monkeypatch.setattr(QMessageBox, "critical", lambda _parent, _title, text: errors.append(text))
    core = FakeCoreService()
    window = _window(qtbot, tmp_path, core, FakeDialog())
    _select(window, "arduino:avr:uno", "/dev/ttyACM0")

    window.upload_action.trigger()

    assert errors == ["Sketch path is required."]
    assert core.uploads == []


def test_unexpected_worker_error_ends_upload(qtbot, tmp_path, monkeypatch) -> None:
    errors: list[str] = []
    monkeypatch.setattr(QMessageBox, "critical", lambda _parent, _title, text: errors.append(text))
    core = FakeCoreService()
    core.error = RuntimeError("boom")
    window = _window(qtbot, tmp_path, core, FakeDialog())
    window.sketch_path_edit.setText(str(tmp_path / "Blink"))
    _select(window, "arduino:avr:uno", "/dev/ttyACM0")

    window.upload_action.trigger()
    qtbot.waitUntil(lambda: window.app_state_store.snapshot().upload.last_upload_status == "failed")

    assert errors == ["Error: boom"]
    assert window.app_state_store.snapshot().upload.upload_in_progress is False
    assert window.upload_action.isEnabled()
    assert window.upload_service.upload_in_progress is False


def test_settings_toggles_persist_and_reach_upload_options(qtbot, tmp_path) -> None:
    core = FakeCoreService()
    window = _window(qtbot, tmp_path, core, FakeDialog())
    assert window.verbose_upload_action.isChecked() is False

    window.verbose_upload_action.trigger()
    window.verify_upload_action.trigger()

    assert window.settings_service.verbose_upload() is True
    assert window.settings_service.verify_after_upload() is True

    window.sketch_path_edit.setText(str(tmp_path / "Blink"))
    _select(window, "arduino:avr:uno", "/dev/ttyACM0")
    window.upload_action.trigger()
    qtbot.waitUntil(lambda: window.app_state_store.snapshot().upload.last_upload_status == "success")

    assert core.uploads[0].verbose is True
    assert core.uploads[0].verify is True


def test_cli_path_and_timeout_actions_update_core_service(qtbot, tmp_path, monkeypatch) -> None:
    monkeypatch.delenv("SKETCH_UPLOADER_ARDUINO_CLI", raising=False)
    monkeypatch.setattr(QInputDialog, "getText", lambda *_args, **_kwargs: ("/opt/arduino-cli", True))
    monkeypatch.setattr(QInputDialog, "getDouble", lambda *_args, **_kwargs: (45.0, True))
    core = FakeCoreService()
    window = _window(qtbot, tmp_path, core, FakeDialog())

    window.cli_path_action.trigger()
    window.command_timeout_action.trigger()

    assert window.settings_service.load_cli_path() == "/opt/arduino-cli"
    assert core.cli_path == "/opt/arduino-cli"
    assert window.settings_service.command_timeout() == 45.0
    assert core.timeout == 45.0


def test_cancelled_cli_path_prompt_keeps_settings(qtbot, tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(QInputDialog, "getText", lambda *_args, **_kwargs: ("/tmp/other", False))
    core = FakeCoreService()
    window = _window(qtbot, tmp_path, core, FakeDialog())

    window.cli_path_action.trigger()

    assert window.settings_service.load_cli_path() == ""
    assert core.cli_path == "arduino-cli"
