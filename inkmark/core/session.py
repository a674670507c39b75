"""
Markup session: composes the store, layers, history, versions, tools and
autosave behind a single command dispatcher.
"""
import asyncio
import copy
import dataclasses
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Type

from ..config import Settings, get_settings
from .annotations.layers import LayerIndex
from .annotations.models import Annotation, Layer, UserPermissions
from .annotations.store import AnnotationStore
from .annotations.undo_redo import HistoryManager
from .annotations.versions import VersionHistoryManager
from .autosave import AutosaveController, SaveStatus
from .commands import (
    CancelGesture,
    Command,
    CreateLayer,
    CreateVersion,
    DeleteAnnotation,
    DeleteSelected,
    GoToPage,
    KeyPress,
    PlaceNote,
    PlaceStamp,
    PlaceText,
    PointerDown,
    PointerMove,
    PointerUp,
    Redo,
    ResetZoom,
    RestoreVersion,
    Save,
    SelectLayer,
    SelectRevision,
    SelectTool,
    SetZoom,
    ToggleLayerLock,
    ToggleLayerVisibility,
    Undo,
    UpdateMetadata,
    UpdateToolSettings,
    ZoomIn,
    ZoomOut,
)
from .document.surface import DocumentSurface
from .errors import PermissionDeniedError
from .persistence.base import AnnotationEndpoint
from .persistence.models import PersistedSnapshot, SaveResult
from .render.renderer import RenderEngine, Renderer
from .tools.shortcuts import resolve_key
from .tools.state_machine import ToolStateMachine

logger = logging.getLogger(__name__)

Baker = Callable[[List[Annotation]], Awaitable[bytes]]
DispatchListener = Callable[[Command, Any], None]


class MarkupSession:
    """
    One open document with its annotation state.

    Hosts drive the session only through ``dispatch``; every command is
    logged and kept in ``command_log`` so a session can be replayed. Key
    presses appear in the log as the command they resolved to.
    """

    def __init__(self, endpoint: Optional[AnnotationEndpoint] = None,
                 initial_annotations: Optional[Iterable[Annotation]] = None,
                 initial_layers: Optional[Iterable[Layer]] = None,
                 current_revision_number: Optional[int] = 1,
                 available_revisions: Optional[Iterable[int]] = None,
                 permissions: Optional[UserPermissions] = None,
                 user: Optional[str] = None,
                 surface: Optional[DocumentSurface] = None,
                 page_count: Optional[int] = None,
                 baker: Optional[Baker] = None,
                 settings: Optional[Settings] = None,
                 loop: Optional[asyncio.AbstractEventLoop] = None):
        """
        Args:
            endpoint: Where snapshots are persisted; without one nothing autosaves
            initial_annotations: Annotations loaded with the document
            initial_layers: Layers loaded with the document
            current_revision_number: Revision tag for new annotations
            available_revisions: Revisions the user may switch to
            permissions: Current user's permissions
            user: Name recorded as author of new annotations and versions
            surface: Document surface for page count and coordinate clamping
            page_count: Page count when no surface is given
            baker: Async callable producing the baked document for each save
            settings: Configuration; defaults to ``get_settings()``
            loop: Event loop autosave schedules on; defaults to the running loop
        """
        self.settings = settings or get_settings()
        self.endpoint = endpoint
        self.baker = baker
        self.surface = surface
        self._page_count = page_count
        self.permissions = permissions or UserPermissions()
        self.user = user or self.settings.default_user

        self.store = AnnotationStore(initial_annotations)
        self.layers = LayerIndex(initial_layers, current_revision_number, available_revisions)
        self.history = HistoryManager(max_size=self.settings.history_capacity)
        self.versions = VersionHistoryManager(max_versions=self.settings.version_capacity)
        self.engine = RenderEngine(
            self.store, self.layers,
            hit_threshold_px=self.settings.hit_threshold_px,
            note_hit_radius=self.settings.note_hit_radius,
        )
        self.autosave = AutosaveController(
            self._persist, self.store.snapshot,
            debounce_seconds=self.settings.autosave_debounce_seconds,
            loop=loop,
        )
        self.tools = ToolStateMachine(
            self.store, self.history, self.layers, self.engine,
            permissions=self.permissions,
            user=self.user,
            page_size=surface.page_size if surface else None,
            on_committed=self._on_committed,
        )

        self.zoom_percent = 100
        self.command_log: List[Command] = []
        self._listeners: List[DispatchListener] = []
        self._handlers: Dict[Type[Command], Callable[[Any], Any]] = {
            SelectTool: lambda c: self.tools.select_tool(c.tool),
            UpdateToolSettings: self._update_tool_settings,
            PointerDown: lambda c: self.tools.pointer_down(c.x, c.y),
            PointerMove: lambda c: self.tools.pointer_move(c.x, c.y),
            PointerUp: lambda c: self.tools.pointer_up(c.x, c.y),
            CancelGesture: self._cancel,
            KeyPress: self._key_press,
            PlaceText: lambda c: self.tools.place_text(c.text, c.x, c.y),
            PlaceNote: lambda c: self.tools.place_note(c.text, c.x, c.y),
            PlaceStamp: lambda c: self.tools.place_stamp(c.x, c.y, c.stamp_type),
            DeleteAnnotation: lambda c: self.tools.delete_annotation(c.annotation_id),
            DeleteSelected: lambda c: self.tools.delete_selected(),
            UpdateMetadata: lambda c: self.tools.update_metadata(
                c.annotation_id, c.title, c.description),
            CreateLayer: self._create_layer,
            SelectLayer: lambda c: self.layers.select_layer(c.layer_id),
            ToggleLayerVisibility: lambda c: self.layers.toggle_visibility(c.layer_id),
            ToggleLayerLock: self._toggle_layer_lock,
            SelectRevision: self._select_revision,
            Undo: self._undo,
            Redo: self._redo,
            Save: self._save,
            CreateVersion: self._create_version,
            RestoreVersion: self._restore_version,
            GoToPage: lambda c: self._go_to_page(c.page),
            SetZoom: lambda c: self._set_zoom(c.percent),
            ZoomIn: lambda c: self._set_zoom(self.zoom_percent + self.settings.zoom_step),
            ZoomOut: lambda c: self._set_zoom(self.zoom_percent - self.settings.zoom_step),
            ResetZoom: lambda c: self._set_zoom(100),
        }

    # Read-only state

    @property
    def page(self) -> int:
        return self.tools.page

    @property
    def page_count(self) -> Optional[int]:
        if self.surface is not None:
            return self.surface.page_count
        return self._page_count

    @property
    def zoom(self) -> float:
        return self.zoom_percent / 100.0

    @property
    def status(self) -> SaveStatus:
        return self.autosave.status

    def can_undo(self) -> bool:
        return self.history.can_undo(self.store.annotations)

    def can_redo(self) -> bool:
        return self.history.can_redo()

    def persisted_snapshot(self) -> PersistedSnapshot:
        """Current annotations and layers in the persisted shape."""
        return PersistedSnapshot(
            annotations=self.store.snapshot(),
            layers=copy.deepcopy(self.layers.layers),
            revision_number=self.layers.current_revision_number,
        )

    def render(self, renderer: Renderer) -> int:
        """Draw the current page, the selection and the gesture preview."""
        return self.engine.render(
            renderer, self.page, self.zoom,
            preview=self.tools.preview(),
            selected_id=self.tools.selected_id,
        )

    # Dispatch

    def subscribe(self, listener: DispatchListener) -> None:
        """Register a listener called with (command, result) after each dispatch."""
        self._listeners.append(listener)

    def dispatch(self, command: Command) -> Any:
        """
        Apply one command.

        Returns:
            The handler's result: the created annotation, a success flag,
            the new page or zoom, etc.

        Raises:
            PermissionDeniedError: For layer, revision, history and save
                commands the permissions forbid
            TypeError: For unsupported command types
        """
        logger.debug("Dispatching %s", command, extra={"command": command.command_name})
        # Key presses are recorded as the command they resolve to
        if not isinstance(command, KeyPress):
            self.command_log.append(command)

        handler = self._handlers.get(type(command))
        if handler is None:
            raise TypeError(f"Unsupported command: {command.command_name}")

        result = handler(command)
        for listener in list(self._listeners):
            listener(command, result)
        return result

    def replay(self, commands: Iterable[Command]) -> None:
        """Dispatch a recorded command log in order."""
        for command in commands:
            self.dispatch(command)

    # Saving

    async def save_now(self) -> bool:
        """Save immediately; False without an endpoint or on failure."""
        if self.endpoint is None:
            return False
        return await self.autosave.save_now()

    async def _persist(self, annotations: List[Annotation]) -> SaveResult:
        snapshot = PersistedSnapshot(
            annotations=annotations,
            layers=copy.deepcopy(self.layers.layers),
            revision_number=self.layers.current_revision_number,
        )
        baked = await self.baker(annotations) if self.baker is not None else None
        result = await self.endpoint.save(snapshot, baked)

        if result.success and self.settings.version_on_save:
            self.versions.create_version(
                annotations, self.user,
                f"Saved at {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
            )
        return result

    def _on_committed(self) -> None:
        if self.endpoint is not None:
            self.autosave.trigger()

    # Teardown

    def close(self) -> None:
        """Stop autosave. A save already in flight finishes but is ignored."""
        self.autosave.destroy()
        self.tools.cancel()

    async def aclose(self) -> None:
        self.close()
        if self.endpoint is not None:
            await self.endpoint.close()

    # Handlers

    def _update_tool_settings(self, command: UpdateToolSettings):
        self.tools.settings = dataclasses.replace(self.tools.settings, **command.changes)
        return self.tools.settings

    def _cancel(self, command: CancelGesture) -> bool:
        self.tools.cancel()
        return True

    def _key_press(self, command: KeyPress) -> Any:
        resolved = resolve_key(command.key, self.permissions)
        if resolved is None:
            return None
        return self.dispatch(resolved)

    def _create_layer(self, command: CreateLayer) -> Layer:
        if not self.permissions.can_create_layers or self.permissions.is_view_only:
            raise PermissionDeniedError("User cannot create layers")
        return self.layers.create_layer(command.name, command.revision_number,
                                        command.color, created_by=self.user)

    def _toggle_layer_lock(self, command: ToggleLayerLock) -> Optional[Layer]:
        if not self.permissions.may_edit:
            raise PermissionDeniedError("User cannot lock or unlock layers")
        return self.layers.toggle_lock(command.layer_id)

    def _select_revision(self, command: SelectRevision) -> bool:
        if not self.permissions.can_manage_revisions or self.permissions.is_view_only:
            raise PermissionDeniedError("User cannot manage revisions")
        return self.layers.select_revision(command.revision_number)

    def _require_history_rights(self) -> None:
        if not self.permissions.may_edit:
            raise PermissionDeniedError("User cannot undo or redo changes")

    def _undo(self, command: Undo) -> bool:
        self._require_history_rights()
        self.tools.cancel()
        restored = self.history.undo(self.store.annotations)
        if restored is None:
            return False
        self._apply(restored)
        return True

    def _redo(self, command: Redo) -> bool:
        self._require_history_rights()
        self.tools.cancel()
        restored = self.history.redo()
        if restored is None:
            return False
        self._apply(restored)
        return True

    def _save(self, command: Save) -> Optional[asyncio.Task]:
        if self.permissions.is_view_only:
            raise PermissionDeniedError("User cannot save in view-only mode")
        if self.endpoint is None:
            logger.info("Save requested but no endpoint is configured")
            return None
        return self.autosave.schedule_save_now()

    def _create_version(self, command: CreateVersion):
        return self.versions.create_version(self.store.annotations, self.user,
                                            command.description)

    def _restore_version(self, command: RestoreVersion) -> bool:
        if not self.permissions.may_edit:
            raise PermissionDeniedError("User cannot restore versions")
        restored = self.versions.restore_version(command.version_number)
        if restored is None:
            return False
        self.tools.cancel()
        self.history.push(self.store.annotations)
        self._apply(restored)
        logger.info("Restored version %d", command.version_number,
                    extra={"version_number": command.version_number})
        return True

    def _apply(self, annotations: List[Annotation]) -> None:
        self.store.replace_all(annotations)
        if self.tools.selected_id is not None and self.tools.selected_id not in self.store:
            self.tools.selected_id = None
        self._on_committed()

    def _go_to_page(self, page: int) -> int:
        page = max(1, page)
        if self.page_count:
            page = min(page, self.page_count)
        if page != self.tools.page:
            self.tools.cancel()
            self.tools.selected_id = None
            self.tools.page = page
        return page

    def _set_zoom(self, percent: int) -> int:
        s = self.settings
        # Snap to the step grid, then clamp
        percent = int(round(percent / s.zoom_step)) * s.zoom_step
        percent = min(max(percent, s.zoom_min), s.zoom_max)
        self.zoom_percent = percent
        self.tools.zoom = percent / 100.0
        return percent
