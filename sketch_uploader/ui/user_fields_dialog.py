from __future__ import annotations

from PySide6.QtWidgets import (
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QLabel,
    QLineEdit,
    QVBoxLayout,
    QWidget,
)

from sketch_uploader.domain.models import BoardUserField


class UserFieldsDialog(QDialog):
    """Modal form for the user fields a board needs before upload.

    Edits are written straight into the ``value`` list, so callers hand in
    a copy and keep the original untouched until the user confirms.
    """

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setObjectName("user_fields_dialog")
        self.setWindowTitle(self.tr("Configure and Upload"))
        self.setModal(True)
        self.setMinimumWidth(360)
        self._fields: list[BoardUserField] = []
        self.inputs: dict[str, QLineEdit] = {}

        layout = QVBoxLayout(self)
        self.hint_label = QLabel(
            self.tr("The selected board needs the following values before uploading."),
            self,
        )
        self.hint_label.setWordWrap(True)
        layout.addWidget(self.hint_label)

        self.form = QFormLayout()
        layout.addLayout(self.form)

        self.button_box = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Ok | QDialogButtonBox.StandardButton.Cancel,
            parent=self,
        )
        self.ok_button = self.button_box.button(QDialogButtonBox.StandardButton.Ok)
        self.ok_button.setText(self.tr("Upload"))
        self.button_box.accepted.connect(self.accept)
        self.button_box.rejected.connect(self.reject)
        layout.addWidget(self.button_box)
        self._update_ok_enabled()

    @property
    def value(self) -> list[BoardUserField]:
        return self._fields

    @value.setter
    def value(self, fields: list[BoardUserField]) -> None:
        self._fields = fields
        self._rebuild_form()

    def _rebuild_form(self) -> None:
        while self.form.rowCount() > 0:
            self.form.removeRow(0)
        self.inputs.clear()
        for user_field in self._fields:
            edit = QLineEdit(self)
            edit.setObjectName(f"user_field_{user_field.name}")
            edit.setText(user_field.value)
            if user_field.secret:
                edit.setEchoMode(QLineEdit.EchoMode.Password)
            edit.textChanged.connect(
                lambda text, target=user_field: self._on_text_changed(target, text)
            )
            self.form.addRow(f"{user_field.label}:", edit)
            self.inputs[user_field.name] = edit
        self._update_ok_enabled()

    def _on_text_changed(self, user_field: BoardUserField, text: str) -> None:
        user_field.value = text
        self._update_ok_enabled()

    def is_complete(self) -> bool:
        return all(user_field.value.strip() for user_field in self._fields)

    def _update_ok_enabled(self) -> None:
        self.ok_button.setEnabled(self.is_complete())

    def prompt(self) -> list[BoardUserField] | None:
        if self._fields:
            first = self.inputs.get(self._fields[0].name)
            if first is not None:
                first.setFocus()
        self.exec()
        if self.result() != QDialog.DialogCode.Accepted.value:
            return None
        return self._fields
