"""Bidirectional proxy between a client session and the OpenAI Realtime API."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol

import websockets

from models.protocol import AudioResponse, ErrorEvent, SessionReady
from models.session_models import ConversationContext, Session
from services.context.context_loader import ContextLoader
from services.context.prompt_builder import (
	MEMORY_TOOL_NAME,
	build_guided_instructions,
	build_system_prompt,
	realtime_memory_tool_definition,
)
from services.guided.catalog import get_session_definition
from services.relay.channel import ClientChannel
from services.relay.errors import UpstreamError
from services.relay.session_store import SessionStore
from services.relay.transcript import transcript_event
from utils.settings import RelaySettings

MAX_UPSTREAM_FRAME_BYTES = 10 * 1024 * 1024


class UpstreamSocket(Protocol):
	async def send(self, message: str) -> None: ...

	async def close(self) -> None: ...

	def __aiter__(self) -> Any: ...


RealtimeConnector = Callable[[str, Dict[str, str]], Awaitable[UpstreamSocket]]


async def connect_realtime(url: str, headers: Dict[str, str]) -> UpstreamSocket:
	"""Open the upstream socket with the `websockets` client."""
	return await websockets.connect(url, additional_headers=headers, max_size=MAX_UPSTREAM_FRAME_BYTES)


def build_session_config(
	session: Session,
	context: Optional[ConversationContext],
	settings: RelaySettings,
) -> Dict[str, Any]:
	"""Return the single ``session.update`` event sent when the upstream opens."""
	instructions = build_system_prompt(context, session.session_type)
	definition = get_session_definition(session.session_type)
	if definition is not None:
		instructions = f"{instructions}\n\n{build_guided_instructions(definition)}"
	return {
		"type": "session.update",
		"session": {
			"modalities": ["text", "audio"],
			"instructions": instructions,
			"voice": settings.realtime_voice,
			"input_audio_format": "pcm16",
			"output_audio_format": "pcm16",
			"input_audio_transcription": {"model": settings.transcription_model},
			"turn_detection": {
				"type": "server_vad",
				"threshold": 0.5,
				"prefix_padding_ms": 300,
				"silence_duration_ms": 500,
			},
			"tools": [realtime_memory_tool_definition()],
			"tool_choice": "auto",
		},
	}


class RealtimeBridge:
	"""One upstream Realtime connection bound to one relay session."""

	def __init__(
		self,
		session: Session,
		channel: ClientChannel,
		store: SessionStore,
		context_loader: ContextLoader,
		settings: RelaySettings,
		connector: RealtimeConnector = connect_realtime,
		on_closed: Optional[Callable[[str], None]] = None,
	) -> None:
		self.session = session
		self.channel = channel
		self.store = store
		self.context_loader = context_loader
		self.settings = settings
		self.connector = connector
		self.on_closed = on_closed
		self._upstream: Optional[UpstreamSocket] = None
		self._reader: Optional[asyncio.Task] = None
		self._closed = False

	@property
	def session_id(self) -> str:
		return self.session.session_id

	@property
	def is_open(self) -> bool:
		return self._upstream is not None and not self._closed

	async def open(self, context: Optional[ConversationContext]) -> None:
		"""Connect upstream, configure the session and start relaying events.

		Raises:
			UpstreamError: the upstream connection could not be established.
		"""
		url = f"{self.settings.realtime_url}?model={self.settings.realtime_model}"
		headers = {
			"Authorization": f"Bearer {self.settings.openai_api_key}",
			"OpenAI-Beta": "realtime=v1",
		}
		try:
			self._upstream = await self.connector(url, headers)
			await self._upstream.send(json.dumps(build_session_config(self.session, context, self.settings)))
		except Exception as exc:
			logging.error("[%s] Failed to open OpenAI Realtime connection: %s", self.session_id, exc)
			await self.close()
			raise UpstreamError("Voice connection error. Please try again.") from exc

		logging.info("[%s] OpenAI Realtime connection established", self.session_id)
		self._reader = asyncio.create_task(self._read_loop(), name=f"realtime-reader-{self.session_id}")

	async def send_audio(self, audio_b64: str) -> None:
		await self._send({"type": "input_audio_buffer.append", "audio": audio_b64})

	async def commit(self) -> None:
		"""Close the current input turn and ask the model to respond."""
		await self._send({"type": "input_audio_buffer.commit"})
		await self._send({"type": "response.create"})

	async def close(self) -> None:
		if self._closed:
			return
		self._closed = True
		upstream, self._upstream = self._upstream, None
		if upstream is not None:
			try:
				await upstream.close()
			except Exception as exc:
				logging.debug("[%s] Error closing upstream socket: %s", self.session_id, exc)
		reader = self._reader
		if reader is not None and reader is not asyncio.current_task() and not reader.done():
			reader.cancel()
		if self.on_closed is not None:
			self.on_closed(self.session_id)

	async def _send(self, event: Dict[str, Any]) -> None:
		if not self.is_open:
			return
		try:
			await self._upstream.send(json.dumps(event))
		except websockets.ConnectionClosed as exc:
			logging.warning("[%s] Upstream closed while sending %s: %s", self.session_id, event["type"], exc)
			await self.close()

	async def _read_loop(self) -> None:
		upstream = self._upstream
		try:
			async for raw in upstream:
				try:
					event = json.loads(raw)
				except (TypeError, ValueError) as exc:
					logging.error("[%s] Error parsing OpenAI message: %s", self.session_id, exc)
					continue
				await self.handle_event(event)
		except asyncio.CancelledError:
			raise
		except websockets.ConnectionClosed as exc:
			logging.info("[%s] OpenAI connection closed: %s", self.session_id, exc)
		except Exception as exc:
			logging.error("[%s] OpenAI Realtime stream failed: %s", self.session_id, exc)
			await self.channel.send(
				ErrorEvent(code="OPENAI_ERROR", message="Voice connection error. Please try again.", recoverable=True)
			)
		await self.close()

	async def handle_event(self, event: Dict[str, Any]) -> None:
		"""Translate one upstream event into client messages or upstream replies."""
		event_type = event.get("type")

		if event_type == "session.created":
			logging.info("[%s] Realtime session created", self.session_id)
			await self.channel.send(SessionReady(session_id=self.session_id, mode="realtime"))

		elif event_type == "conversation.item.input_audio_transcription.completed":
			await self._emit_transcript(event.get("transcript"), "user")

		elif event_type == "response.audio.delta":
			if event.get("delta"):
				await self.channel.send(AudioResponse(data=event["delta"]))

		elif event_type == "response.audio_transcript.done":
			await self._emit_transcript(event.get("transcript"), "assistant")

		elif event_type == "response.function_call_arguments.done":
			await self._handle_tool_call(event)

		elif event_type == "error":
			error = event.get("error") or {}
			logging.error("[%s] OpenAI error: %s", self.session_id, error)
			await self.channel.send(
				ErrorEvent(
					code=error.get("code") or "OPENAI_ERROR",
					message=error.get("message") or "An error occurred",
					recoverable=True,
				)
			)

		elif self.settings.is_development:
			logging.debug("[%s] Unhandled realtime event: %s", self.session_id, event_type)

	async def _emit_transcript(self, text: Optional[str], speaker: str) -> None:
		if not text:
			return
		delta = self.store.append_transcript(self.session_id, text, speaker)
		if delta is not None:
			await self.channel.send(transcript_event(delta))

	async def _handle_tool_call(self, event: Dict[str, Any]) -> None:
		if event.get("name") != MEMORY_TOOL_NAME:
			logging.warning("[%s] Ignoring call to unknown tool %r", self.session_id, event.get("name"))
			return
		output = await self.context_loader.search_memory(self.session.user_id, event.get("arguments") or "{}")
		await self._send(
			{
				"type": "conversation.item.create",
				"item": {
					"type": "function_call_output",
					"call_id": event.get("call_id"),
					"output": output,
				},
			}
		)
		await self._send({"type": "response.create"})


class RealtimeBridgeRegistry:
	"""Live bridges keyed by session id."""

	def __init__(
		self,
		settings: RelaySettings,
		context_loader: ContextLoader,
		connector: RealtimeConnector = connect_realtime,
	) -> None:
		self.settings = settings
		self.context_loader = context_loader
		self.connector = connector
		self._bridges: Dict[str, RealtimeBridge] = {}

	def __contains__(self, session_id: str) -> bool:
		return session_id in self._bridges

	def get(self, session_id: str) -> Optional[RealtimeBridge]:
		return self._bridges.get(session_id)

	async def open(
		self,
		session: Session,
		channel: ClientChannel,
		store: SessionStore,
		context: Optional[ConversationContext],
	) -> RealtimeBridge:
		bridge = RealtimeBridge(
			session,
			channel,
			store,
			self.context_loader,
			self.settings,
			connector=self.connector,
			on_closed=self._forget,
		)
		self._bridges[session.session_id] = bridge
		await bridge.open(context)
		return bridge

	async def close(self, session_id: str) -> None:
		bridge = self._bridges.pop(session_id, None)
		if bridge is not None:
			await bridge.close()

	async def close_all(self) -> None:
		for session_id in list(self._bridges):
			await self.close(session_id)

	def _forget(self, session_id: str) -> None:
		self._bridges.pop(session_id, None)
