"""Drag-and-drop organisation of resources and folders."""

from stash.drag.controller import BoardState, DragController, DropOutcome
from stash.drag.session import IDLE, DragPhase, DragSession

__all__ = ["BoardState", "DragController", "DropOutcome", "DragSession", "DragPhase", "IDLE"]
