from __future__ import annotations

from queue import Empty, SimpleQueue
import threading
from typing import Any

from PySide6.QtCore import QTimer
from PySide6.QtGui import QAction, QKeySequence
from PySide6.QtWidgets import (
    QComboBox,
    QFormLayout,
    QHBoxLayout,
    QInputDialog,
    QLineEdit,
    QMainWindow,
    QPlainTextEdit,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from sketch_uploader.domain.models import Board, BoardsConfig, Port, UploadOptions
from sketch_uploader.services.action_log import ActionLogService
from sketch_uploader.services.board_catalog import BoardCatalogError, BoardCatalogService
from sketch_uploader.services.boards_provider import BoardsServiceProvider
from sketch_uploader.services.core_service import CoreError, CoreService
from sketch_uploader.services.settings import UploadSettingsService
from sketch_uploader.services.upload_sketch import UploadSketchService
from sketch_uploader.services.user_fields import UserFieldsPrompt, UserFieldsService
from sketch_uploader.ui.app_state import AppState, AppStateStore
from sketch_uploader.ui.messages import QtMessageService
from sketch_uploader.ui.user_fields_dialog import UserFieldsDialog
from sketch_uploader.version import __version__


class MainWindow(QMainWindow):
    def __init__(
        self,
        *,
        settings_service: UploadSettingsService | None = None,
        catalog_service: BoardCatalogService | None = None,
        core_service: CoreService | None = None,
        user_fields_dialog: UserFieldsPrompt | None = None,
        action_log_service: ActionLogService | None = None,
    ) -> None:
        super().__init__()
        self.setWindowTitle(f"Sketch Uploader v{__version__}")
        self.resize(720, 480)

        self.settings_service = settings_service or UploadSettingsService()
        self.action_log_service = action_log_service or ActionLogService()
        self.app_state_store = AppStateStore()
        self.message_service = QtMessageService(self)
        self.catalog_service = catalog_service or BoardCatalogService()
        self.boards_provider = BoardsServiceProvider(self.catalog_service)
        self.user_fields_dialog = user_fields_dialog or UserFieldsDialog(self)
        self.user_fields_service = UserFieldsService(
            self.boards_provider,
            self.user_fields_dialog,
            self.message_service,
            action_log=self.action_log_service,
        )
        self.core_service = core_service or CoreService(
            cli_path=self.settings_service.resolve_cli_path(),
            timeout=self.settings_service.command_timeout(),
        )
        self.upload_service = UploadSketchService(
            self.user_fields_service,
            self.core_service,
            settings=self.settings_service,
            action_log=self.action_log_service,
        )

        # Worker threads report back through this queue; the timer drains it
        # on the GUI thread.
        self.event_queue: SimpleQueue[dict[str, Any]] = SimpleQueue()
        self.event_poll_timer = QTimer(self)
        self.event_poll_timer.setInterval(80)
        self.event_poll_timer.timeout.connect(self._process_events)

        self._build_ui()
        self._build_menus()
        self.app_state_store.subscribe(self._on_app_state_changed)
        self.user_fields_service.tracker.subscribe(self._on_requirement_computed)
        self.user_fields_service.start()
        self.event_poll_timer.start()
        self._on_app_state_changed(self.app_state_store.snapshot())

    def _build_ui(self) -> None:
        central = QWidget(self)
        layout = QVBoxLayout(central)

        form = QFormLayout()
        self.fqbn_combo = QComboBox(central)
        self.fqbn_combo.setEditable(True)
        self.fqbn_combo.setObjectName("fqbn_combo")
        form.addRow("Board (FQBN):", self.fqbn_combo)

        self.port_edit = QLineEdit(central)
        self.port_edit.setPlaceholderText("/dev/ttyUSB0, COM3 or 192.168.1.50")
        form.addRow("Port:", self.port_edit)

        self.sketch_path_edit = QLineEdit(central)
        self.sketch_path_edit.setPlaceholderText("Path to the sketch folder or .ino file")
        form.addRow("Sketch:", self.sketch_path_edit)
        layout.addLayout(form)

        buttons = QHBoxLayout()
        self.select_board_button = QPushButton("Select Board", central)
        self.select_board_button.clicked.connect(self._apply_board_selection)
        self.upload_button = QPushButton("Upload", central)
        self.upload_button.clicked.connect(lambda: self._start_upload(use_configuration=False))
        buttons.addWidget(self.select_board_button)
        buttons.addStretch(1)
        buttons.addWidget(self.upload_button)
        layout.addLayout(buttons)

        self.output_view = QPlainTextEdit(central)
        self.output_view.setReadOnly(True)
        self.output_view.setPlaceholderText("Upload output")
        layout.addWidget(self.output_view, 1)

        try:
            self.fqbn_combo.addItems(self.catalog_service.list_fqbns())
        except BoardCatalogError as exc:
            self._append_log(f"Board catalog unavailable: {exc}")
        self.fqbn_combo.setCurrentText("")

        self.setCentralWidget(central)
        self.statusBar().showMessage("No board selected")

    def _build_menus(self) -> None:
        sketch_menu = self.menuBar().addMenu("&Sketch")
        self.upload_action = QAction("Upload", self)
        self.upload_action.setShortcut(QKeySequence("Ctrl+U"))
        self.upload_action.triggered.connect(lambda: self._start_upload(use_configuration=False))
        sketch_menu.addAction(self.upload_action)

        self.upload_with_configuration_action = QAction("Upload Using Configuration", self)
        self.upload_with_configuration_action.triggered.connect(
            lambda: self._start_upload(use_configuration=True)
        )
        sketch_menu.addAction(self.upload_with_configuration_action)

        settings_menu = self.menuBar().addMenu("S&ettings")
        self.verbose_upload_action = QAction("Verbose Output", self)
        self.verbose_upload_action.setCheckable(True)
        self.verbose_upload_action.setChecked(self.settings_service.verbose_upload())
        self.verbose_upload_action.toggled.connect(self.settings_service.set_verbose_upload)
        settings_menu.addAction(self.verbose_upload_action)

        self.verify_upload_action = QAction("Verify After Upload", self)
        self.verify_upload_action.setCheckable(True)
        self.verify_upload_action.setChecked(self.settings_service.verify_after_upload())
        self.verify_upload_action.toggled.connect(self.settings_service.set_verify_after_upload)
        settings_menu.addAction(self.verify_upload_action)
        settings_menu.addSeparator()

        self.cli_path_action = QAction("arduino-cli Path...", self)
        self.cli_path_action.triggered.connect(self._choose_cli_path)
        settings_menu.addAction(self.cli_path_action)

        self.command_timeout_action = QAction("Command Timeout...", self)
        self.command_timeout_action.triggered.connect(self._choose_command_timeout)
        settings_menu.addAction(self.command_timeout_action)

    def _choose_cli_path(self) -> None:
        value, ok = QInputDialog.getText(
            self,
            "arduino-cli Path",
            "Path to the arduino-cli executable (empty for the default):",
            text=self.settings_service.load_cli_path(),
        )
        if not ok:
            return
        self.settings_service.save_cli_path(value)
        self.core_service.cli_path = self.settings_service.resolve_cli_path()
        self._append_log(f"Using arduino-cli at {self.core_service.cli_path}")

    def _choose_command_timeout(self) -> None:
        value, ok = QInputDialog.getDouble(
            self,
            "Command Timeout",
            "Seconds to wait for arduino-cli:",
            self.settings_service.command_timeout(),
            1.0,
            3600.0,
            0,
        )
        if not ok:
            return
        self.settings_service.set_command_timeout(value)
        self.core_service.timeout = self.settings_service.command_timeout()

    def _append_log(self, text: str) -> None:
        if text:
            self.output_view.appendPlainText(text.rstrip())

    def _apply_board_selection(self) -> None:
        fqbn = self.fqbn_combo.currentText().strip()
        address = self.port_edit.text().strip()
        config = BoardsConfig(
            selected_board=Board(name=fqbn, fqbn=fqbn or None) if fqbn else None,
            selected_port=Port(address=address) if address else None,
        )
        self.boards_provider.set_boards_config(config)
        self.action_log_service.log_event("boards_config_changed", fqbn=fqbn, port=address)
        self.app_state_store.update_board(
            fqbn=fqbn,
            port_address=self.boards_provider.selected_port_address(),
            identity=self.boards_provider.selected_identity(),
        )

    def _on_requirement_computed(self, required: bool) -> None:
        # Called on a tracker worker thread.
        self.event_queue.put({"type": "requirement", "required": required})

    def _start_upload(self, *, use_configuration: bool) -> None:
        if self.app_state_store.snapshot().upload.upload_in_progress:
            return
        try:
            options = self.upload_service.prepare(
                self.sketch_path_edit.text(),
                use_configuration=use_configuration,
            )
        except ValueError as exc:
            self.message_service.error(str(exc))
            return
        if options is None:
            self.app_state_store.update_upload(last_upload_status="cancelled")
            return

        self.app_state_store.update_upload(upload_in_progress=True, last_upload_status="")
        self._append_log(f"Uploading {options.sketch_path} to {options.port}...")
        threading.Thread(
            target=self._run_upload,
            args=(options,),
            name="sketch-uploader-upload",
            daemon=True,
        ).start()

    def _run_upload(self, options: UploadOptions) -> None:
        try:
            output = self.upload_service.run(options)
            self.event_queue.put({"type": "upload", "ok": True, "output": output})
        except CoreError as exc:
            self.event_queue.put({"type": "upload", "ok": False, "error": exc})
        except Exception as exc:  # noqa: BLE001
            self.event_queue.put({"type": "upload", "ok": False, "error": f"Error: {exc}"})

    def _process_events(self) -> None:
        while True:
            try:
                event = self.event_queue.get_nowait()
            except Empty:
                return
            if event.get("type") == "requirement":
                self.app_state_store.update_board(requires_user_fields=bool(event["required"]))
            elif event.get("type") == "upload":
                self._finish_upload(event)

    def _finish_upload(self, event: dict[str, Any]) -> None:
        if event.get("ok"):
            self._append_log(str(event.get("output") or ""))
            self._append_log("Done uploading.")
            self.app_state_store.update_upload(
                upload_in_progress=False,
                last_upload_status="success",
            )
            return
        error = event.get("error")
        self._append_log(str(error))
        self.app_state_store.update_upload(upload_in_progress=False, last_upload_status="failed")
        self.message_service.error(str(error))

    def _on_app_state_changed(self, state: AppState) -> None:
        in_progress = state.upload.upload_in_progress
        self.upload_action.setEnabled(not in_progress)
        self.upload_button.setEnabled(not in_progress)
        self.upload_with_configuration_action.setEnabled(
            state.board.requires_user_fields and not in_progress
        )
        if in_progress:
            self.statusBar().showMessage("Uploading...")
        elif state.upload.last_upload_status:
            self.statusBar().showMessage(f"Last upload: {state.upload.last_upload_status}")
        elif state.board.identity:
            self.statusBar().showMessage(f"Board: {state.board.identity}")
        else:
            self.statusBar().showMessage("No board selected")

    def closeEvent(self, event) -> None:  # noqa: ANN001
        self.event_poll_timer.stop()
        self.user_fields_service.stop()
        super().closeEvent(event)
