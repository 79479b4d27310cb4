"""Pick the processing backend for a requested session."""

from __future__ import annotations

from typing import FrozenSet

from models.session_models import ProcessingMode

# Guided types that stream in realtime; every other guided type runs batch.
HIGH_INTERACTIVITY_TYPES: FrozenSet[str] = frozenset(
	{"emotional_processing", "situation_processing", "stress_release"}
)

FREE_SESSION_TYPE = "free"


def get_processing_mode(requested_mode: ProcessingMode, session_type: str = FREE_SESSION_TYPE) -> ProcessingMode:
	"""Map a requested mode and session type onto the backend that will run it."""
	if requested_mode != "realtime":
		return "standard"
	if session_type == FREE_SESSION_TYPE or session_type in HIGH_INTERACTIVITY_TYPES:
		return "realtime"
	return "standard"
