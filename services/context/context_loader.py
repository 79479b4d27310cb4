"""Load the read-only conversation context snapshot for a new session."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import asdict
from typing import Any, Dict, List, Optional, Protocol

from models.guided_models import SessionContext
from models.session_models import ConversationContext, EntryContext, MoodTrajectory

NO_MEMORY_RESULT = "No relevant entries found for this query."
MEMORY_ERROR_RESULT = "Error retrieving memory."


class EntryStore(Protocol):
	"""Read side of the journal that the relay consults."""

	async def get_recent_entries(self, user_id: str, limit: int = 5) -> List[EntryContext]: ...

	async def get_active_goals(self, user_id: str) -> List[str]: ...

	async def get_open_situations(self, user_id: str) -> List[str]: ...

	async def get_mood_trajectory(self, user_id: str) -> MoodTrajectory: ...

	async def search_entries(
		self, user_id: str, query: str, *, entity_type: Optional[str] = None, limit: int = 3
	) -> List[EntryContext]: ...


class ContextLoader:
	"""Fan out the four context reads and answer ``get_memory`` tool calls."""

	def __init__(self, entry_store: EntryStore) -> None:
		self.entry_store = entry_store

	async def load(self, user_id: str) -> Optional[ConversationContext]:
		"""Return the user's context snapshot, or None when any read fails."""
		try:
			recent_entries, active_goals, open_situations, mood_trajectory = await asyncio.gather(
				self.entry_store.get_recent_entries(user_id, 5),
				self.entry_store.get_active_goals(user_id),
				self.entry_store.get_open_situations(user_id),
				self.entry_store.get_mood_trajectory(user_id),
			)
		except Exception as exc:
			logging.error("Failed to load session context for user %s: %s", user_id, exc)
			return None
		return ConversationContext(
			recent_entries=recent_entries,
			active_goals=active_goals,
			open_situations=open_situations,
			mood_trajectory=mood_trajectory,
		)

	async def search_memory(self, user_id: str, arguments: str | Dict[str, Any]) -> str:
		"""Run a ``get_memory`` tool call and return its text result.

		``arguments`` is the raw JSON string the model produced (or an already
		decoded dict). Malformed arguments or a failing search yield the fixed
		error text rather than raising, so one bad tool call never aborts a turn.
		"""
		try:
			args = json.loads(arguments) if isinstance(arguments, str) else dict(arguments)
			query = str(args["query"]).strip()
			entity_type = args.get("entity_type")
			entries = await self.entry_store.search_entries(
				user_id,
				query,
				entity_type=entity_type if entity_type and entity_type != "any" else None,
			)
		except Exception as exc:
			logging.error("get_memory failed for user %s: %s", user_id, exc)
			return MEMORY_ERROR_RESULT

		if not entries:
			return NO_MEMORY_RESULT
		return "\n\n".join(
			f"[{entry.effective_date}] {entry.title}: {entry.text[:500]}" for entry in entries
		)


def to_session_context(context: Optional[ConversationContext]) -> SessionContext:
	"""Reshape a conversation snapshot into the guided engine's context view."""
	if context is None:
		return SessionContext()
	return SessionContext(
		recent_entries=[asdict(entry) for entry in context.recent_entries],
		active_goals=list(context.active_goals),
		open_situations=list(context.open_situations),
		yesterday_highlight=context.recent_entries[0].title if context.recent_entries else None,
		mood_trend=context.mood_trajectory.trend,
		mood_average=context.mood_trajectory.recent_average,
	)
