"""Registry of authored guided session definitions."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from models.guided_models import GUIDED_SESSION_TYPES, GuidedSessionDefinition, TimeOfDay
from services.guided.definitions.emotional_processing import EMOTIONAL_PROCESSING
from services.guided.definitions.evening_reflection import EVENING_REFLECTION
from services.guided.definitions.goal_setting import GOAL_SETTING
from services.guided.definitions.gratitude_practice import GRATITUDE_PRACTICE
from services.guided.definitions.morning_checkin import MORNING_CHECKIN
from services.guided.definitions.stress_release import STRESS_RELEASE
from services.guided.definitions.weekly_review import WEEKLY_REVIEW

# Types without a script (celebration, situation_processing, custom) map to None.
SESSION_DEFINITIONS: Dict[str, Optional[GuidedSessionDefinition]] = {
	session_type: None for session_type in GUIDED_SESSION_TYPES
}
SESSION_DEFINITIONS.update(
	{
		definition.id: definition
		for definition in (
			MORNING_CHECKIN,
			EVENING_REFLECTION,
			GRATITUDE_PRACTICE,
			GOAL_SETTING,
			EMOTIONAL_PROCESSING,
			STRESS_RELEASE,
			WEEKLY_REVIEW,
		)
	}
)


def get_session_definition(session_type: str) -> Optional[GuidedSessionDefinition]:
	"""Return the definition for ``session_type``, or None if none is authored."""
	return SESSION_DEFINITIONS.get(session_type)


def get_available_sessions() -> List[GuidedSessionDefinition]:
	return [definition for definition in SESSION_DEFINITIONS.values() if definition is not None]


def current_time_of_day(now: Optional[datetime] = None) -> TimeOfDay:
	hour = (now or datetime.now()).hour
	if 5 <= hour < 12:
		return "morning"
	if 12 <= hour < 17:
		return "afternoon"
	if 17 <= hour < 21:
		return "evening"
	return "night"


def get_suggested_sessions(
	time_of_day: TimeOfDay, current_mood: Optional[float] = None
) -> List[GuidedSessionDefinition]:
	"""Filter authored sessions by their time-of-day and mood suggestion rules."""
	suggested: List[GuidedSessionDefinition] = []
	for definition in get_available_sessions():
		rules = definition.suggest_when
		if rules.time_of_day and time_of_day not in rules.time_of_day:
			continue
		if current_mood is not None:
			if rules.mood_below is not None and current_mood >= rules.mood_below:
				continue
			if rules.mood_above is not None and current_mood <= rules.mood_above:
				continue
		suggested.append(definition)
	return suggested
