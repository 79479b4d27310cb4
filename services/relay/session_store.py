"""In-memory registry of live voice sessions, one per user."""

from __future__ import annotations

import logging
import time
from typing import Dict, List, Optional, Tuple
from uuid import uuid4

from models.session_models import ProcessingMode, Session, SessionEndResult
from services.relay.errors import AdmissionError
from services.relay.transcript import Speaker, TranscriptDelta
from services.relay.usage_governor import UsageGovernor


class SessionStore:
	"""Own the user -> session map and every per-session mutation.

	Handlers look sessions up by id on each message; a session that has been
	ended or evicted in the meantime simply comes back as ``None``.
	"""

	def __init__(
		self,
		governor: UsageGovernor,
		*,
		max_session_seconds: int = 15 * 60,
		inactivity_timeout_seconds: int = 5 * 60,
	) -> None:
		self.governor = governor
		self.max_session_seconds = max_session_seconds
		self.inactivity_timeout_seconds = inactivity_timeout_seconds
		self._sessions: Dict[str, Session] = {}
		self._user_sessions: Dict[str, str] = {}

	def __len__(self) -> int:
		return len(self._sessions)

	async def create_session(
		self,
		user_id: str,
		mode: ProcessingMode,
		session_type: str = "free",
	) -> Tuple[Session, bool]:
		"""Return the user's live session, or admit and allocate a new one.

		Returns:
			``(session, resumed)``; ``resumed`` is True when an existing session
			was handed back unchanged.

		Raises:
			AdmissionError: a daily cap is already reached; nothing is allocated.
		"""
		existing = self.get_by_user(user_id)
		if existing is not None:
			existing.touch()
			return existing, True

		decision = await self.governor.check_usage_limits(user_id, mode)
		if not decision.allowed:
			raise AdmissionError(decision.reason or "daily_cost", decision.suggestion or "")

		# Another start for the same user may have completed during the await.
		existing = self.get_by_user(user_id)
		if existing is not None:
			existing.touch()
			return existing, True

		session = Session(session_id=uuid4().hex, user_id=user_id, mode=mode, session_type=session_type)
		self._sessions[session.session_id] = session
		self._user_sessions[user_id] = session.session_id
		logging.info("[%s] Created %s session for user %s (%s)", session.session_id, mode, user_id, session_type)
		return session, False

	def get(self, session_id: str) -> Optional[Session]:
		return self._sessions.get(session_id)

	def get_by_user(self, user_id: str) -> Optional[Session]:
		session_id = self._user_sessions.get(user_id)
		return self._sessions.get(session_id) if session_id else None

	def append_transcript(self, session_id: str, text: str, speaker: Speaker) -> Optional[TranscriptDelta]:
		session = self.get(session_id)
		if session is None:
			return None
		session.touch()
		return session.transcript.append(text, speaker)

	def restore_transcript(self, session_id: str, content: str, sequence_id: int) -> bool:
		"""Adopt a client-side transcript copy when it is newer than ours."""
		session = self.get(session_id)
		if session is None:
			return False
		session.touch()
		restored = session.transcript.restore(content, sequence_id)
		if restored:
			logging.info("[%s] Restored transcript at sequence %d", session_id, sequence_id)
		return restored

	def add_audio_chunk(self, session_id: str, chunk: bytes) -> bool:
		session = self.get(session_id)
		if session is None:
			return False
		session.audio_buffer.append(chunk)
		session.touch()
		return True

	def flush_audio_buffer(self, session_id: str) -> Optional[bytes]:
		"""Take and clear the buffered audio; None when there is nothing buffered."""
		session = self.get(session_id)
		if session is None or not session.audio_buffer:
			return None
		chunks, session.audio_buffer = session.audio_buffer, []
		return b"".join(chunks)

	def check_session_duration(self, session_id: str, now: Optional[float] = None) -> bool:
		"""True while the session is still inside the per-session duration cap."""
		session = self.get(session_id)
		if session is None:
			return False
		now = now if now is not None else time.time()
		return now - session.start_time < self.max_session_seconds

	async def end_session(self, session_id: str, now: Optional[float] = None) -> Optional[SessionEndResult]:
		"""Remove the session and charge its duration to the usage ledger."""
		session = self._remove(session_id)
		if session is None:
			return None
		duration_minutes, cost = await self.governor.record_session_end(session, now)
		return SessionEndResult(
			transcript=session.transcript.text,
			duration_minutes=duration_minutes,
			cost_usd=cost,
		)

	async def sweep_idle(self, now: Optional[float] = None) -> List[Session]:
		"""End every session idle for longer than the inactivity timeout."""
		now = now if now is not None else time.time()
		stale = [
			session
			for session in self._sessions.values()
			if now - session.last_activity > self.inactivity_timeout_seconds
		]
		evicted: List[Session] = []
		for session in stale:
			logging.info("[%s] Evicting idle session for user %s", session.session_id, session.user_id)
			try:
				await self.end_session(session.session_id, now)
			except Exception as exc:
				logging.error("[%s] Failed to charge evicted session: %s", session.session_id, exc)
			evicted.append(session)
		return evicted

	def _remove(self, session_id: str) -> Optional[Session]:
		session = self._sessions.pop(session_id, None)
		if session is None:
			return None
		if self._user_sessions.get(session.user_id) == session_id:
			del self._user_sessions[session.user_id]
		return session
