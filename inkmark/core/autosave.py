"""
Debounced autosave for annotations.
"""
import asyncio
import logging
import time
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional

from .annotations.models import Annotation

logger = logging.getLogger(__name__)


class SaveStatus(Enum):
    SAVED = "saved"
    SAVING = "saving"
    UNSAVED = "unsaved"


SaveCallback = Callable[[List[Annotation]], Awaitable[Any]]
SnapshotProvider = Callable[[], List[Annotation]]
StatusListener = Callable[[SaveStatus], None]
FailureListener = Callable[[BaseException], None]


class SaveFailed(Exception):
    """The save callback reported failure without raising."""


class AutosaveController:
    """
    Coalesces save triggers into a single delayed save.

    Only one save runs at a time. Triggers that arrive while a save is in
    flight are folded into exactly one follow-up save.
    """

    def __init__(self, save: SaveCallback, snapshot: SnapshotProvider,
                 debounce_seconds: float = 2.0,
                 loop: Optional[asyncio.AbstractEventLoop] = None):
        """
        Args:
            save: Async callable receiving the annotation snapshot. It may
                return an object with a ``success`` attribute, a bool, or
                None; a falsy ``success`` or False counts as failure.
            snapshot: Returns a copy of the current annotations
            debounce_seconds: Quiet period before a save fires
            loop: Event loop to schedule on; defaults to the running loop
        """
        self._save = save
        self._snapshot = snapshot
        self.debounce_seconds = debounce_seconds
        self._loop = loop

        self._status = SaveStatus.SAVED
        self._timer: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None
        self._follow_up = False
        self._destroyed = False

        self._status_listeners: List[StatusListener] = []
        self._failure_listeners: List[FailureListener] = []

    @property
    def status(self) -> SaveStatus:
        return self._status

    @property
    def is_saving(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def has_pending_save(self) -> bool:
        return self._timer is not None or self._follow_up

    def on_status_change(self, listener: StatusListener) -> None:
        self._status_listeners.append(listener)

    def on_failure(self, listener: FailureListener) -> None:
        self._failure_listeners.append(listener)

    def trigger(self) -> None:
        """Restart the debounce window; the save fires once it elapses."""
        if self._destroyed:
            return

        if self.is_saving:
            self._follow_up = True
            return

        self._cancel_timer()
        self._set_status(SaveStatus.UNSAVED)
        self._timer = self._get_loop().call_later(self.debounce_seconds, self._on_timer)

    async def save_now(self) -> bool:
        """
        Save immediately, skipping the debounce window.

        If a save is already in flight, waits for it and its follow-up.

        Returns:
            True if the last save attempt succeeded
        """
        if self._destroyed:
            return False

        self._cancel_timer()
        if self.is_saving:
            self._follow_up = True
        else:
            self._start_task()
        return await self._task

    def schedule_save_now(self) -> "asyncio.Task":
        """Start ``save_now`` as a task, for callers outside a coroutine."""
        return self._get_loop().create_task(self.save_now())

    def destroy(self) -> None:
        """Cancel any pending save. Results of an in-flight save are ignored."""
        self._destroyed = True
        self._follow_up = False
        self._cancel_timer()
        self._status_listeners.clear()
        self._failure_listeners.clear()

    def _on_timer(self) -> None:
        self._timer = None
        if self._destroyed:
            return
        if self.is_saving:
            self._follow_up = True
            return
        self._start_task()

    def _start_task(self) -> None:
        self._task = self._get_loop().create_task(self._run())

    async def _run(self) -> bool:
        success = await self._save_once()
        while self._follow_up and not self._destroyed:
            self._follow_up = False
            success = await self._save_once()
        return success

    async def _save_once(self) -> bool:
        self._set_status(SaveStatus.SAVING)
        started = time.monotonic()
        try:
            result = await self._save(self._snapshot())
            if result is False or (result is not None and not getattr(result, "success", True)):
                raise SaveFailed(getattr(result, "message", "") or "Save was rejected")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if self._destroyed:
                return False
            logger.error("Autosave failed: %s", e, exc_info=True)
            self._set_status(SaveStatus.UNSAVED)
            for listener in list(self._failure_listeners):
                listener(e)
            return False

        if self._destroyed:
            return True
        duration_ms = int((time.monotonic() - started) * 1000)
        logger.debug("Autosave completed in %d ms", duration_ms,
                     extra={"duration_ms": duration_ms})
        # Edits made during this save are still pending
        if not self._follow_up:
            self._set_status(SaveStatus.SAVED)
        return True

    def _set_status(self, status: SaveStatus) -> None:
        if self._destroyed or status == self._status:
            return
        self._status = status
        for listener in list(self._status_listeners):
            listener(status)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop
