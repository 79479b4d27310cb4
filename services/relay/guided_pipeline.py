"""Guided-session overlay on the batch pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict

from models.guided_models import GuidedSessionState
from models.protocol import GuidedPromptEvent, GuidedSessionComplete, SessionReady
from services.guided.runner import (
	NextPrompt,
	generate_session_summary,
	get_next_prompt,
	get_responses_as_entry_text,
	is_complete,
	process_response,
)
from services.relay.standard_pipeline import TurnPipeline


@dataclass(frozen=True)
class GuidedSessionData:
	"""What a guided session produced, captured before teardown."""

	session_type: str
	responses: Dict[str, str]
	entry_text: str
	summary: str
	completed: bool = False

	def to_event(self) -> GuidedSessionComplete:
		return GuidedSessionComplete(
			session_type=self.session_type,
			responses=self.responses,
			summary=self.entry_text,
		)


class GuidedPipeline(TurnPipeline):
	"""Speak each scripted prompt and feed each transcribed answer to the runner."""

	def __init__(self, *args, guided_state: GuidedSessionState, **kwargs) -> None:
		super().__init__(*args, **kwargs)
		self.state = guided_state
		self.completed = False

	async def initialize(self) -> None:
		"""Announce the session, then deliver the opening and the first prompt."""
		self.session.guided_state = self.state
		await self.channel.send(SessionReady(session_id=self.session_id, mode="standard"))
		opening = await self._send_next_prompt()
		if opening is not None and opening.is_opening:
			await self._send_next_prompt()

	async def process_turn(self) -> None:
		transcript = await self.transcribe_turn()
		if transcript is None:
			return

		await self.emit_transcript(transcript, "user")
		outcome = process_response(self.state, transcript)
		if outcome.has_follow_up and outcome.follow_up_prompt:
			await self._deliver(NextPrompt(prompt=outcome.follow_up_prompt))
		else:
			await self._send_next_prompt()

	def session_data(self) -> GuidedSessionData:
		return GuidedSessionData(
			session_type=self.state.definition.id,
			responses=dict(self.state.responses),
			entry_text=get_responses_as_entry_text(self.state),
			summary=generate_session_summary(self.state),
			completed=is_complete(self.state),
		)

	async def _send_next_prompt(self) -> NextPrompt | None:
		next_prompt = get_next_prompt(self.state)
		if next_prompt is None:
			await self._complete()
			return None
		await self._deliver(next_prompt)
		if next_prompt.is_closing:
			await self._complete()
		return next_prompt

	async def _deliver(self, next_prompt: NextPrompt) -> None:
		await self.channel.send(
			GuidedPromptEvent(
				prompt_id=next_prompt.prompt_id,
				prompt=next_prompt.prompt,
				is_opening=next_prompt.is_opening,
				is_closing=next_prompt.is_closing,
				prompt_index=self.state.current_prompt_index,
				total_prompts=self.state.total_prompts,
			)
		)
		await self.speak(next_prompt.prompt)
		await self.emit_transcript(next_prompt.prompt, "assistant")

	async def _complete(self) -> None:
		if self.completed:
			return
		self.completed = True
		data = self.session_data()
		await self.channel.send(data.to_event())
		logging.info("[%s] Guided session completed: %s", self.session_id, self.state.definition.name)
		logging.debug("[%s] %s", self.session_id, data.summary)
