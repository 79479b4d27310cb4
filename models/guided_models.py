"""Declarative guided-session definitions and their runtime state."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Literal, Optional, Tuple

TimeOfDay = Literal["morning", "afternoon", "evening", "night"]
PromptKind = Literal["open", "rating", "choice", "reflection"]

GUIDED_SESSION_TYPES: Tuple[str, ...] = (
	"morning_checkin",
	"evening_reflection",
	"gratitude_practice",
	"goal_setting",
	"emotional_processing",
	"stress_release",
	"weekly_review",
	"celebration",
	"situation_processing",
	"custom",
)


class SkipCondition(str, Enum):
	NO_YESTERDAY_HIGHLIGHT = "no_yesterday_highlight"
	NO_OPEN_GOALS = "no_open_goals"
	NO_OPEN_SITUATIONS = "no_open_situations"
	MOOD_ABOVE_7 = "mood_above_7"
	MOOD_BELOW_3 = "mood_below_3"


@dataclass(frozen=True)
class FollowUpTrigger:
	"""Keywords that, when present in a response, park one follow-up prompt."""

	keywords: Tuple[str, ...]
	follow_up_prompt: str


@dataclass(frozen=True)
class GuidedPrompt:
	id: str
	kind: PromptKind
	prompt: str
	skip_conditions: Tuple[SkipCondition, ...] = ()
	follow_up_triggers: Tuple[FollowUpTrigger, ...] = ()


@dataclass(frozen=True)
class SuggestWhen:
	time_of_day: Tuple[TimeOfDay, ...] = ()
	mood_below: Optional[float] = None
	mood_above: Optional[float] = None
	day_of_week: Tuple[int, ...] = ()


@dataclass(frozen=True)
class OutputProcessing:
	summary_prompt: str
	extract_signals: bool = True
	therapeutic_framework: Optional[Literal["cbt", "act", "general"]] = None


@dataclass(frozen=True)
class GuidedSessionDefinition:
	"""Immutable script for one guided session type."""

	id: str
	name: str
	description: str
	estimated_minutes: int
	prompts: Tuple[GuidedPrompt, ...]
	output_processing: OutputProcessing
	opening_message: Optional[str] = None
	closing_message: Optional[str] = None
	suggest_when: SuggestWhen = SuggestWhen()

	def __post_init__(self) -> None:
		if not self.prompts:
			raise ValueError(f"Guided session {self.id!r} needs at least one prompt.")
		ids = [prompt.id for prompt in self.prompts]
		if len(ids) != len(set(ids)):
			raise ValueError(f"Guided session {self.id!r} has duplicate prompt ids.")


@dataclass
class SessionContext:
	"""Context view consumed by skip conditions and prompt templates."""

	recent_entries: List[Dict[str, object]] = field(default_factory=list)
	active_goals: List[str] = field(default_factory=list)
	open_situations: List[str] = field(default_factory=list)
	yesterday_highlight: Optional[str] = None
	mood_trend: str = "stable"
	mood_average: float = 0.5


@dataclass
class GuidedSessionState:
	"""Mutable progress through a guided session definition."""

	definition: GuidedSessionDefinition
	context: SessionContext = field(default_factory=SessionContext)
	# -1 means the opening message has not been delivered yet.
	current_prompt_index: int = -1
	responses: Dict[str, str] = field(default_factory=dict)
	waiting_for_follow_up: bool = False
	current_follow_up: Optional[str] = None
	closing_delivered: bool = False
	started_at: float = field(default_factory=time.time)

	@property
	def total_prompts(self) -> int:
		return len(self.definition.prompts)
