from __future__ import annotations

from PySide6.QtWidgets import QMessageBox, QWidget


class QtMessageService:
    def __init__(self, parent: QWidget | None = None, title: str = "Sketch Uploader") -> None:
        self.parent = parent
        self.title = title

    def error(self, message: str) -> None:
        QMessageBox.critical(self.parent, self.title, message)
