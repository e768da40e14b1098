"""Text/image display mode switching."""

from __future__ import annotations

from enum import Enum
import logging
from typing import Any, Protocol


logger = logging.getLogger(__name__)


class ViewMode(Enum):
    NONE = "none"
    TEXT = "text"
    IMAGE = "image"


class DisplaySurface(Protocol):
    def attach(self, handle: Any) -> None:
        ...

    def detach(self, handle: Any) -> None:
        ...

    def release_grab(self) -> None:
        ...


class ViewModeMachine:
    def __init__(self, surface: DisplaySurface, text_handle: Any, image_handle: Any = None) -> None:
        self.surface = surface
        self._handles = {ViewMode.TEXT: text_handle, ViewMode.IMAGE: image_handle}
        self.current = ViewMode.NONE

    def set_mode(self, target: ViewMode) -> bool:
        if target == self.current:
            return True
        if target not in self._handles or self._handles[target] is None:
            logger.warning("Rejected view mode change to %s", target)
            return False
        previous = self._handles.get(self.current)
        if previous is not None:
            self.surface.detach(previous)
        self.surface.attach(self._handles[target])
        self.current = target
        return True
