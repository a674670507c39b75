from datetime import datetime

from PyQt5.QtCore import Qt
from PyQt5.QtWidgets import (
    QDialog,
    QHBoxLayout,
    QInputDialog,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QPushButton,
    QVBoxLayout,
)

from inkmark.controllers.markup_controller import MarkupController
from inkmark.core.annotations.versions import VersionSnapshot
from inkmark.core.commands import CreateVersion, RestoreVersion


def describe_version(version: VersionSnapshot) -> str:
    """Multi-line list entry for one version."""
    try:
        created = datetime.fromisoformat(version.created_at.replace("Z", "+00:00"))
        when = created.astimezone().strftime("%Y-%m-%d %H:%M")
    except ValueError:
        when = version.created_at

    lines = [f"Version {version.version_number}", f"{when} by {version.created_by}"]
    if version.description:
        lines.append(version.description)
    lines.append(f"{len(version.annotations)} annotations")
    return "\n".join(lines)


class VersionHistoryDialog(QDialog):
    """Lists saved versions, newest first, and restores the selected one."""

    def __init__(self, controller: MarkupController, parent=None):
        super().__init__(parent)
        self.controller = controller
        self.setWindowTitle("Version History")
        self.setMinimumSize(420, 480)

        layout = QVBoxLayout(self)
        layout.addWidget(QLabel("View and restore previous versions of annotations", self))

        self.version_list = QListWidget(self)
        self.version_list.setAlternatingRowColors(True)
        self.version_list.currentItemChanged.connect(self._update_buttons)
        self.version_list.itemDoubleClicked.connect(lambda _item: self.restore_selected())
        layout.addWidget(self.version_list, 1)

        self.empty_label = QLabel("No version history available", self)
        self.empty_label.setAlignment(Qt.AlignCenter)
        layout.addWidget(self.empty_label)

        buttons = QHBoxLayout()
        self.create_button = QPushButton("Save Version...", self)
        self.create_button.clicked.connect(self.create_version)
        buttons.addWidget(self.create_button)
        buttons.addStretch()
        self.restore_button = QPushButton("Restore", self)
        self.restore_button.clicked.connect(self.restore_selected)
        buttons.addWidget(self.restore_button)
        close_button = QPushButton("Close", self)
        close_button.clicked.connect(self.reject)
        buttons.addWidget(close_button)
        layout.addLayout(buttons)

        self.refresh()

    @property
    def session(self):
        return self.controller.session

    def refresh(self):
        self.version_list.clear()
        for version in self.session.versions.get_all_versions():
            item = QListWidgetItem(describe_version(version))
            item.setData(Qt.UserRole, version.version_number)
            self.version_list.addItem(item)

        has_versions = self.version_list.count() > 0
        self.version_list.setVisible(has_versions)
        self.empty_label.setVisible(not has_versions)
        if has_versions:
            self.version_list.setCurrentRow(0)
        self._update_buttons()

    def selected_version_number(self):
        item = self.version_list.currentItem()
        return item.data(Qt.UserRole) if item is not None else None

    def create_version(self):
        description, ok = QInputDialog.getText(self, "Save Version", "Description (optional):")
        if not ok:
            return
        self.controller.dispatch(CreateVersion(description.strip() or None))
        self.refresh()

    def restore_selected(self) -> bool:
        number = self.selected_version_number()
        if number is None or not self.session.permissions.may_edit:
            return False
        if self.controller.dispatch(RestoreVersion(number)):
            self.accept()
            return True
        return False

    def _update_buttons(self, *_args):
        self.restore_button.setEnabled(self.selected_version_number() is not None
                                       and self.session.permissions.may_edit)
