"""Turn-based voice pipeline: transcribe, complete, synthesize."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from models.protocol import AudioResponse, SessionReady
from models.session_models import ConversationContext, Session
from services.context.context_loader import ContextLoader
from services.context.prompt_builder import (
	MEMORY_TOOL_NAME,
	build_opening_message,
	build_system_prompt,
	memory_tool_definition,
)
from services.openai.chat_service import ChatService
from services.openai.speech_service import SpeechService
from services.openai.transcriber import Transcriber
from services.relay.channel import ClientChannel
from services.relay.errors import ProcessingError
from services.relay.session_store import SessionStore
from services.relay.transcript import Speaker, transcript_event
from utils.audio import encode_audio


class TurnPipeline:
	"""Pieces shared by the free-form and guided batch pipelines."""

	def __init__(
		self,
		session: Session,
		channel: ClientChannel,
		store: SessionStore,
		transcriber: Transcriber,
		speech: SpeechService,
	) -> None:
		self.session = session
		self.channel = channel
		self.store = store
		self.transcriber = transcriber
		self.speech = speech

	@property
	def session_id(self) -> str:
		return self.session.session_id

	async def transcribe_turn(self) -> Optional[str]:
		"""Flush the buffered audio and transcribe it.

		Returns None when there was nothing to transcribe or transcription
		failed; both cases are logged and never reported to the client.
		"""
		pcm = self.store.flush_audio_buffer(self.session_id)
		if not pcm:
			logging.info("[%s] No audio to process", self.session_id)
			return None
		try:
			transcript = await self.transcriber.transcribe_pcm(pcm)
		except Exception as exc:
			logging.error("[%s] Transcription failed: %s", self.session_id, exc)
			return None
		if not transcript:
			logging.info("[%s] Empty transcription", self.session_id)
			return None
		logging.info("[%s] Transcribed: %s", self.session_id, transcript)
		return transcript

	async def emit_transcript(self, text: str, speaker: Speaker) -> None:
		delta = self.store.append_transcript(self.session_id, text, speaker)
		if delta is not None:
			await self.channel.send(transcript_event(delta))

	async def speak(self, text: str) -> None:
		"""Send synthesized audio for ``text``; on failure send the text with empty audio."""
		try:
			data = encode_audio(await self.speech.synthesize(text))
		except Exception as exc:
			logging.error("[%s] TTS error: %s", self.session_id, exc)
			data = ""
		await self.channel.send(AudioResponse(data=data, transcript=text))


class StandardPipeline(TurnPipeline):
	"""Free-form conversation over chat completions with the ``get_memory`` tool."""

	def __init__(
		self,
		session: Session,
		channel: ClientChannel,
		store: SessionStore,
		context_loader: ContextLoader,
		transcriber: Transcriber,
		chat: ChatService,
		speech: SpeechService,
	) -> None:
		super().__init__(session, channel, store, transcriber, speech)
		self.context_loader = context_loader
		self.chat = chat
		self.history: List[Dict[str, Any]] = []

	async def initialize(self, context: Optional[ConversationContext]) -> None:
		self.history = [{"role": "system", "content": build_system_prompt(context, self.session.session_type)}]
		await self.channel.send(SessionReady(session_id=self.session_id, mode="standard"))

		opening = build_opening_message(self.session.session_type, context)
		self.history.append({"role": "assistant", "content": opening})
		await self.speak(opening)
		await self.emit_transcript(opening, "assistant")

	async def process_turn(self) -> None:
		"""Run one user turn end to end.

		Raises:
			ProcessingError: the chat completion failed; the session stays usable.
		"""
		transcript = await self.transcribe_turn()
		if transcript is None:
			return

		await self.emit_transcript(transcript, "user")
		self.history.append({"role": "user", "content": transcript})

		try:
			reply = await self._generate_reply()
		except Exception as exc:
			logging.error("[%s] Standard turn processing error: %s", self.session_id, exc)
			raise ProcessingError("Failed to process your message. Please try again.") from exc
		if not reply:
			logging.warning("[%s] Chat completion returned no text", self.session_id)
			return

		self.history.append({"role": "assistant", "content": reply})
		await self.emit_transcript(reply, "assistant")
		await self.speak(reply)

	async def _generate_reply(self) -> Optional[str]:
		message = await self.chat.complete(self.history, tools=[memory_tool_definition()])
		tool_calls = getattr(message, "tool_calls", None)
		if tool_calls:
			return await self._reply_with_tool_results(tool_calls)
		return message.content

	async def _reply_with_tool_results(self, tool_calls: List[Any]) -> Optional[str]:
		"""Answer every requested tool call, then complete once more without tools."""
		results: List[Dict[str, Any]] = []
		for call in tool_calls:
			if call.function.name == MEMORY_TOOL_NAME:
				content = await self.context_loader.search_memory(self.session.user_id, call.function.arguments)
			else:
				logging.warning("[%s] Model requested unknown tool %r", self.session_id, call.function.name)
				content = f"Unknown tool: {call.function.name}"
			results.append({"role": "tool", "tool_call_id": call.id, "content": content})

		messages = self.history + [
			{
				"role": "assistant",
				"content": None,
				"tool_calls": [
					{
						"id": call.id,
						"type": "function",
						"function": {"name": call.function.name, "arguments": call.function.arguments},
					}
					for call in tool_calls
				],
			},
			*results,
		]
		final = await self.chat.complete(messages)
		return final.content
