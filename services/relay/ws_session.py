"""Dispatch client WebSocket messages for one authenticated connection."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from dal.entry_dal import EntryDAL
from models.protocol import (
	AudioChunkMessage,
	EndSessionMessage,
	RestoreTranscriptMessage,
	SessionReady,
	SessionSaved,
	StartSessionMessage,
	TokenRefreshMessage,
	UsageLimitEvent,
)
from models.session_models import Session
from services.auth.token_verifier import TokenVerifier
from services.context.context_loader import ContextLoader, to_session_context
from services.guided.runner import create_guided_session_state
from services.openai.chat_service import ChatService
from services.openai.speech_service import SpeechService
from services.openai.transcriber import Transcriber
from services.relay.channel import ClientChannel
from services.relay.errors import AuthError, FatalSessionError, ProcessingError, RelayError
from services.relay.guided_pipeline import GuidedPipeline, GuidedSessionData
from services.relay.mode_router import get_processing_mode
from services.relay.protocol import ParseFailure, parse_client_message
from services.relay.realtime_bridge import RealtimeBridgeRegistry
from services.relay.session_store import SessionStore
from services.relay.standard_pipeline import StandardPipeline, TurnPipeline
from utils.audio import InvalidAudioError, decode_audio_chunk

SESSION_DURATION_SUGGESTION = "Session time limit reached. Please save your entry."


def _no_session(message: str) -> RelayError:
	return RelayError(message, code="NO_SESSION")


@dataclass
class RelayServices:
	"""Process-wide collaborators shared by every connection."""

	store: SessionStore
	bridges: RealtimeBridgeRegistry
	context_loader: ContextLoader
	entry_store: EntryDAL
	verifier: TokenVerifier
	transcriber: Transcriber
	chat: ChatService
	speech: SpeechService
	pipelines: Dict[str, TurnPipeline] = field(default_factory=dict)

	async def teardown(self, session_id: str) -> None:
		"""Close the realtime bridge and drop pipeline state for a session."""
		await self.bridges.close(session_id)
		self.pipelines.pop(session_id, None)

	async def sweep_idle(self) -> List[Session]:
		evicted = await self.store.sweep_idle()
		for session in evicted:
			await self.teardown(session.session_id)
		return evicted


class VoiceSessionHandler:
	"""Handle every message of one client connection, one at a time."""

	def __init__(self, user_id: str, channel: ClientChannel, services: RelayServices) -> None:
		self.user_id = user_id
		self.channel = channel
		self.services = services
		self.store = services.store
		self.session_id: Optional[str] = None

	async def handle(self, raw: str | bytes) -> None:
		"""Process a single inbound frame.

		Every failure inside a turn is reported to the client; only
		``AuthError`` propagates, so the route can close the socket.
		"""
		result = parse_client_message(raw)
		if isinstance(result, ParseFailure):
			await self.channel.send(result.error.to_payload())
			return

		message = result.message
		try:
			if message.type == "start_session":
				await self._start_session(message)
			elif message.type == "audio_chunk":
				await self._audio_chunk(message)
			elif message.type == "end_turn":
				await self._end_turn()
			elif message.type == "end_session":
				await self._end_session(message)
			elif message.type == "token_refresh":
				await self._token_refresh(message)
			elif message.type == "restore_transcript":
				await self._restore_transcript(message)
		except AuthError:
			raise
		except RelayError as exc:
			await self.channel.send(exc.to_payload())
		except Exception as exc:
			logging.exception("Unhandled error processing %s for user %s", message.type, self.user_id)
			await self.channel.send(ProcessingError(f"Failed to process {message.type}: {exc}").to_payload())

	async def on_disconnect(self) -> None:
		"""Release this connection's session when the socket goes away; usage is still charged.

		A session that another connection has since resumed is left alone.
		"""
		if self.session_id is None:
			return
		session = self.store.get(self.session_id)
		if session is None:
			return
		owner = self._owner_channel(session.session_id)
		if owner is not None and owner is not self.channel:
			logging.info("[%s] Disconnected socket no longer owns the session; keeping it", session.session_id)
			return
		await self.services.teardown(session.session_id)
		result = await self.store.end_session(session.session_id)
		if result is not None:
			logging.info(
				"[%s] Ended on disconnect. Duration: %.1fmin, Cost: $%.2f",
				session.session_id,
				result.duration_minutes,
				result.cost_usd,
			)

	async def _start_session(self, message: StartSessionMessage) -> None:
		session_type = message.session_type or "free"
		mode = get_processing_mode(message.mode, session_type)
		session, resumed = await self.store.create_session(self.user_id, mode, session_type)
		self.session_id = session.session_id

		if resumed and not self._needs_reconnect(session):
			self._rebind(session.session_id)
			await self.channel.send(SessionReady(session_id=session.session_id, mode=session.mode))
			return

		try:
			if resumed:
				logging.info("[%s] Realtime bridge is gone; reconnecting upstream", session.session_id)
				await self.services.bridges.open(session, self.channel, self.store, session.context)
			else:
				await self._start_pipeline(session)
		except RelayError:
			await self._abandon(session)
			raise
		except Exception as exc:
			logging.error("[%s] Failed to start session: %s", session.session_id, exc)
			await self._abandon(session)
			raise FatalSessionError(str(exc) or "Failed to start session") from exc
		if resumed:
			return
		logging.info(
			"Session %s started for user %s in %s mode (%s)", session.session_id, self.user_id, session.mode, session_type
		)

	def _needs_reconnect(self, session: Session) -> bool:
		return session.mode == "realtime" and self.services.bridges.get(session.session_id) is None

	async def _abandon(self, session: Session) -> None:
		"""Drop a session whose pipeline could not start so the next start_session begins fresh."""
		await self.services.teardown(session.session_id)
		await self.store.end_session(session.session_id)
		self.session_id = None

	async def _start_pipeline(self, session: Session) -> None:
		services = self.services
		context = await services.context_loader.load(self.user_id)
		session.context = context

		if session.mode == "realtime":
			await services.bridges.open(session, self.channel, self.store, context)
			return

		guided_state = None
		if session.session_type != "free":
			guided_state = create_guided_session_state(session.session_type, to_session_context(context))

		if guided_state is not None:
			pipeline = GuidedPipeline(
				session,
				self.channel,
				self.store,
				services.transcriber,
				services.speech,
				guided_state=guided_state,
			)
			services.pipelines[session.session_id] = pipeline
			await pipeline.initialize()
		else:
			pipeline = StandardPipeline(
				session,
				self.channel,
				self.store,
				services.context_loader,
				services.transcriber,
				services.chat,
				services.speech,
			)
			services.pipelines[session.session_id] = pipeline
			await pipeline.initialize(context)

	async def _audio_chunk(self, message: AudioChunkMessage) -> None:
		session = self.store.get_by_user(self.user_id)
		if session is None:
			raise _no_session("No active session. Please start a session first.")

		if not self.store.check_session_duration(session.session_id):
			await self.channel.send(
				UsageLimitEvent(limit_type="session_duration", suggestion=SESSION_DURATION_SUGGESTION)
			)
			return

		try:
			pcm = decode_audio_chunk(message.data)
		except InvalidAudioError as exc:
			raise RelayError(str(exc), code="INVALID_AUDIO") from exc

		if session.mode == "realtime":
			session.touch()
			bridge = self.services.bridges.get(session.session_id)
			if bridge is not None:
				await bridge.send_audio(message.data)
		else:
			self.store.add_audio_chunk(session.session_id, pcm)

	async def _end_turn(self) -> None:
		session = self.store.get_by_user(self.user_id)
		if session is None:
			return
		session.touch()

		if session.mode == "realtime":
			bridge = self.services.bridges.get(session.session_id)
			if bridge is not None:
				await bridge.commit()
			return

		pipeline = self.services.pipelines.get(session.session_id)
		if pipeline is not None:
			await pipeline.process_turn()

	async def _end_session(self, message: EndSessionMessage) -> None:
		session = self.store.get_by_user(self.user_id)
		if session is None:
			raise _no_session("No active session to end.")

		pipeline = self.services.pipelines.get(session.session_id)
		guided_data = pipeline.session_data() if isinstance(pipeline, GuidedPipeline) else None

		await self.services.teardown(session.session_id)
		result = await self.store.end_session(session.session_id)
		self.session_id = None
		if result is None:
			return
		if guided_data is not None and not guided_data.completed:
			logging.info("[%s] Guided session ended before the script finished", session.session_id)
		logging.info(
			"Session %s ended. Duration: %.1fmin, Cost: $%.2f",
			session.session_id,
			result.duration_minutes,
			result.cost_usd,
		)

		save_options = message.save_options
		if save_options is None or not save_options.save:
			return
		if guided_data is not None:
			await self.channel.send(guided_data.to_event())
		await self._save_entry(session, result.transcript, guided_data)

	async def _save_entry(self, session: Session, transcript: str, guided_data: Optional[GuidedSessionData]) -> None:
		tags = ["@voice"]
		title = None
		if guided_data is not None:
			tags.append(f"@guided:{guided_data.session_type}")
			title = guided_data.session_type.replace("_", " ").title()
		try:
			entry_id = await self.services.entry_store.create_entry(
				self.user_id,
				transcript,
				title=title,
				tags=tags,
				source="voice",
			)
		except Exception as exc:
			logging.error("[%s] Failed to save voice entry: %s", session.session_id, exc)
			await self.channel.send(SessionSaved(entry_id="", success=False))
			return
		await self.channel.send(SessionSaved(entry_id=entry_id, success=True))

	async def _token_refresh(self, message: TokenRefreshMessage) -> None:
		try:
			result = await self.services.verifier.verify(message.token)
		except Exception as exc:
			logging.error("Token refresh verification failed for user %s: %s", self.user_id, exc)
			raise AuthError("Token refresh failed", close_code=4002) from exc
		if not result.success or result.user_id != self.user_id:
			logging.info("Token refresh failed for user %s", self.user_id)
			raise AuthError("Token refresh failed", close_code=4002)
		logging.info("Token refreshed for user %s", self.user_id)

	async def _restore_transcript(self, message: RestoreTranscriptMessage) -> None:
		session = self.store.get_by_user(self.user_id)
		if session is None:
			raise _no_session("No active session to restore into.")
		self.store.restore_transcript(session.session_id, message.content, message.sequence_id)

	def _owner_channel(self, session_id: str) -> Optional[ClientChannel]:
		"""Return the connection currently receiving the session's events, if any."""
		pipeline = self.services.pipelines.get(session_id)
		if pipeline is not None:
			return pipeline.channel
		bridge = self.services.bridges.get(session_id)
		if bridge is not None:
			return bridge.channel
		return None

	def _rebind(self, session_id: str) -> None:
		"""Point a resumed session's outbound traffic at this connection."""
		pipeline = self.services.pipelines.get(session_id)
		if pipeline is not None:
			pipeline.channel = self.channel
		bridge = self.services.bridges.get(session_id)
		if bridge is not None:
			bridge.channel = self.channel
