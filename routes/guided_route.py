"""FastAPI routes describing the guided session catalog."""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from models.guided_models import GuidedSessionDefinition
from services.guided.catalog import current_time_of_day, get_available_sessions, get_suggested_sessions

router = APIRouter(prefix="/guided-sessions")

_TIMES_OF_DAY = ("morning", "afternoon", "evening", "night")


def _summary(definition: GuidedSessionDefinition) -> dict:
	return {
		"id": definition.id,
		"name": definition.name,
		"description": definition.description,
		"estimatedMinutes": definition.estimated_minutes,
		"totalPrompts": len(definition.prompts),
	}


@router.get("")
async def list_guided_sessions_route(
	time_of_day: Optional[str] = Query(default=None, alias="timeOfDay"),
	mood: Optional[float] = Query(default=None, ge=0.0, le=1.0),
):
	"""List every authored session plus the ones suggested for this time of day and mood."""
	if time_of_day is not None and time_of_day not in _TIMES_OF_DAY:
		raise HTTPException(status_code=422, detail=f"timeOfDay must be one of {', '.join(_TIMES_OF_DAY)}")
	resolved = time_of_day or current_time_of_day()
	try:
		return {
			"timeOfDay": resolved,
			"sessions": [_summary(definition) for definition in get_available_sessions()],
			"suggested": [definition.id for definition in get_suggested_sessions(resolved, mood)],
		}
	except Exception as e:
		logging.error("Failed to list guided sessions: %s", e)
		raise HTTPException(status_code=500, detail=str(e))
