from PyQt5.QtCore import Qt, pyqtSignal
from PyQt5.QtWidgets import (
    QButtonGroup,
    QComboBox,
    QFrame,
    QHBoxLayout,
    QInputDialog,
    QLabel,
    QToolButton,
)

from inkmark.controllers.markup_controller import STATUS_LABELS, MarkupController
from inkmark.core.annotations.models import StampType
from inkmark.core.autosave import SaveStatus
from inkmark.core.commands import (
    CreateLayer,
    Redo,
    Save,
    SelectLayer,
    SelectRevision,
    SelectTool,
    ToggleLayerLock,
    ToggleLayerVisibility,
    Undo,
    UpdateToolSettings,
    ZoomIn,
    ZoomOut,
)
from inkmark.core.tools.models import TOOL_SPECS, ToolMode

_STATUS_STYLES = {
    "saved": "color: #4CAF50;",
    "saving": "color: #FFC107;",
    "unsaved": "color: #F44336;",
}


class MarkupToolbar(QFrame):
    """Tool palette, layer and revision pickers, history buttons and save status."""

    history_requested = pyqtSignal()
    download_requested = pyqtSignal()

    def __init__(self, controller: MarkupController, parent=None):
        super().__init__(parent)
        self.setObjectName("MarkupToolbar")
        self.controller = controller
        self.tool_buttons = {}

        self.setup_ui()
        self._connect_controller()
        self._refresh_layers()
        self._refresh_permissions()
        self._on_status_changed(controller.session.status.value)

    @property
    def session(self):
        return self.controller.session

    def setup_ui(self):
        layout = QHBoxLayout(self)
        layout.setContentsMargins(8, 4, 8, 4)
        layout.setSpacing(4)

        # Tools
        self.tool_group = QButtonGroup(self)
        self.tool_group.setExclusive(True)
        for spec in TOOL_SPECS:
            button = QToolButton(self)
            button.setText(spec.title)
            button.setCheckable(True)
            tooltip = f"{spec.title} ({spec.shortcut})" if spec.shortcut else spec.title
            button.setToolTip(tooltip)
            button.clicked.connect(lambda _checked, mode=spec.mode: self._select_tool(mode))
            self.tool_group.addButton(button)
            self.tool_buttons[spec.mode] = button
            layout.addWidget(button)
        self.tool_buttons[ToolMode.SELECT].setChecked(True)

        self.stamp_combo = QComboBox(self)
        self.stamp_combo.setToolTip("Stamp")
        for stamp in StampType:
            self.stamp_combo.addItem(stamp.value.title(), stamp)
        self.stamp_combo.currentIndexChanged.connect(self._on_stamp_changed)
        layout.addWidget(self.stamp_combo)

        layout.addSpacing(12)

        # Layers
        self.layer_combo = QComboBox(self)
        self.layer_combo.setToolTip("Layer for new annotations")
        self.layer_combo.setMinimumWidth(140)
        self.layer_combo.activated.connect(self._on_layer_selected)
        layout.addWidget(self.layer_combo)

        self.new_layer_button = self._add_button(layout, "+", "New layer", self._create_layer)
        self.visibility_button = self._add_button(layout, "Hide", "Toggle layer visibility",
                                                  self._toggle_visibility)
        self.lock_button = self._add_button(layout, "Lock", "Toggle layer lock",
                                            self._toggle_lock)

        self.revision_combo = QComboBox(self)
        self.revision_combo.setToolTip("Revision for new annotations")
        for number in self.session.layers.available_revisions:
            self.revision_combo.addItem(f"Rev {number}", number)
        current = self.revision_combo.findData(self.session.layers.current_revision_number)
        if current >= 0:
            self.revision_combo.setCurrentIndex(current)
        self.revision_combo.activated.connect(self._on_revision_selected)
        layout.addWidget(self.revision_combo)

        layout.addSpacing(12)

        # History and saving
        self.undo_button = self._add_button(layout, "Undo", "Undo (Ctrl+Z)",
                                            lambda: self.controller.dispatch(Undo()))
        self.redo_button = self._add_button(layout, "Redo", "Redo (Ctrl+Shift+Z)",
                                            lambda: self.controller.dispatch(Redo()))
        self.save_button = self._add_button(layout, "Save", "Save now (Ctrl+S)",
                                            lambda: self.controller.dispatch(Save()))
        self.history_button = self._add_button(layout, "History", "Version history",
                                               self.history_requested)
        self.download_button = self._add_button(layout, "Download", "Download annotated PDF",
                                                self.download_requested)

        layout.addSpacing(12)

        self._add_button(layout, "-", "Zoom out", lambda: self.controller.dispatch(ZoomOut()))
        self.zoom_label = QLabel(f"{self.session.zoom_percent}%", self)
        self.zoom_label.setAlignment(Qt.AlignCenter)
        self.zoom_label.setFixedWidth(48)
        layout.addWidget(self.zoom_label)
        self._add_button(layout, "+", "Zoom in", lambda: self.controller.dispatch(ZoomIn()))

        layout.addStretch()

        self.status_label = QLabel(self)
        layout.addWidget(self.status_label)

    def _add_button(self, layout, text, tooltip, slot) -> QToolButton:
        button = QToolButton(self)
        button.setText(text)
        button.setToolTip(tooltip)
        button.clicked.connect(slot)
        layout.addWidget(button)
        return button

    def _connect_controller(self):
        self.controller.tool_changed.connect(self._on_tool_changed)
        self.controller.layers_changed.connect(self._refresh_layers)
        self.controller.annotations_changed.connect(self._refresh_history_buttons)
        self.controller.status_changed.connect(self._on_status_changed)
        self.controller.view_changed.connect(
            lambda: self.zoom_label.setText(f"{self.session.zoom_percent}%"))

    def _select_tool(self, mode: ToolMode):
        self.controller.dispatch(SelectTool(mode))
        # Rejected selections leave the previous tool checked
        self._on_tool_changed(self.controller.active_tool)

    def _on_tool_changed(self, mode: ToolMode):
        button = self.tool_buttons.get(mode)
        if button is not None:
            button.setChecked(True)

    def _on_stamp_changed(self, index: int):
        stamp = self.stamp_combo.itemData(index)
        if stamp is not None:
            self.controller.dispatch(UpdateToolSettings({"stamp_type": stamp}))

    def _on_layer_selected(self, index: int):
        self.controller.dispatch(SelectLayer(self.layer_combo.itemData(index)))

    def _on_revision_selected(self, index: int):
        self.controller.dispatch(SelectRevision(self.revision_combo.itemData(index)))

    def _create_layer(self):
        name, ok = QInputDialog.getText(self, "New Layer", "Layer name:")
        if ok and name.strip():
            self.controller.dispatch(CreateLayer(name.strip(),
                                                 self.session.layers.current_revision_number))

    def _toggle_visibility(self):
        layer_id = self.layer_combo.currentData()
        if layer_id:
            self.controller.dispatch(ToggleLayerVisibility(layer_id))

    def _toggle_lock(self):
        layer_id = self.layer_combo.currentData()
        if layer_id:
            self.controller.dispatch(ToggleLayerLock(layer_id))

    def _refresh_layers(self):
        layers = self.session.layers
        self.layer_combo.blockSignals(True)
        self.layer_combo.clear()
        self.layer_combo.addItem("No layer", None)
        for layer in layers.layers:
            flags = ("" if layer.visible else " (hidden)") + (" (locked)" if layer.locked else "")
            self.layer_combo.addItem(f"{layer.name}{flags}", layer.id)
        index = self.layer_combo.findData(layers.selected_layer_id)
        self.layer_combo.setCurrentIndex(max(index, 0))
        self.layer_combo.blockSignals(False)

        selected = layers.selected_layer
        self.visibility_button.setEnabled(selected is not None)
        self.lock_button.setEnabled(selected is not None and self.session.permissions.may_edit)
        if selected is not None:
            self.visibility_button.setText("Show" if not selected.visible else "Hide")
            self.lock_button.setText("Unlock" if selected.locked else "Lock")

    def _refresh_permissions(self):
        permissions = self.session.permissions
        for spec in TOOL_SPECS:
            if spec.requires_edit:
                self.tool_buttons[spec.mode].setEnabled(permissions.may_edit)
        self.new_layer_button.setEnabled(permissions.can_create_layers
                                         and not permissions.is_view_only)
        self.revision_combo.setEnabled(permissions.can_manage_revisions
                                       and not permissions.is_view_only)
        self.save_button.setEnabled(not permissions.is_view_only
                                    and self.session.endpoint is not None)
        self.download_button.setEnabled(permissions.can_download)
        self._refresh_history_buttons()

    def _refresh_history_buttons(self):
        editable = self.session.permissions.may_edit
        self.undo_button.setEnabled(editable and self.session.can_undo())
        self.redo_button.setEnabled(editable and self.session.can_redo())

    def _on_status_changed(self, status: str):
        self.status_label.setText(STATUS_LABELS[SaveStatus(status)])
        self.status_label.setStyleSheet(_STATUS_STYLES[status])
