"""Session domain models for the voice relay."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import List, Literal, Optional

from models.guided_models import GuidedSessionState
from services.relay.transcript import TranscriptLog

ProcessingMode = Literal["realtime", "standard"]
MoodTrend = Literal["improving", "stable", "declining"]


@dataclass
class EntryContext:
	"""Lightweight view of a past journal entry used for prompt context."""

	id: str
	effective_date: str
	title: str
	text: str
	mood_score: Optional[float] = None


@dataclass
class MoodTrajectory:
	trend: MoodTrend = "stable"
	description: str = "Not enough data to determine mood trend."
	recent_average: float = 0.5


@dataclass
class ConversationContext:
	"""Read-only snapshot loaded once when a session starts."""

	recent_entries: List[EntryContext] = field(default_factory=list)
	active_goals: List[str] = field(default_factory=list)
	open_situations: List[str] = field(default_factory=list)
	mood_trajectory: MoodTrajectory = field(default_factory=MoodTrajectory)


@dataclass
class Session:
	"""In-memory state for one live voice session."""

	session_id: str
	user_id: str
	mode: ProcessingMode
	session_type: str = "free"
	transcript: TranscriptLog = field(default_factory=TranscriptLog)
	start_time: float = field(default_factory=time.time)
	last_activity: float = field(default_factory=time.time)
	audio_buffer: List[bytes] = field(default_factory=list)
	context: Optional[ConversationContext] = None
	guided_state: Optional[GuidedSessionState] = None

	@property
	def sequence_id(self) -> int:
		return self.transcript.sequence_id

	def touch(self) -> None:
		self.last_activity = time.time()


@dataclass
class SessionEndResult:
	"""Totals computed when a session is torn down."""

	transcript: str
	duration_minutes: float
	cost_usd: float
