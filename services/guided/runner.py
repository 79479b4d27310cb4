"""Deterministic state machine that walks a guided session script.

The runner is pure: every function takes a ``GuidedSessionState`` and mutates
only that object. Transport, transcription and speech live in the relay
pipelines that call into it.

Progression::

	NotStarted(-1) -> Opening -> Prompt_0 [-> FollowUp_0] -> ... -> Closing -> Complete
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

from models.guided_models import (
	GuidedPrompt,
	GuidedSessionState,
	SessionContext,
	SkipCondition,
)
from services.guided.catalog import get_session_definition

MOOD_HIGH_THRESHOLD = 0.7
MOOD_LOW_THRESHOLD = 0.3

_PLACEHOLDER_FALLBACKS = {
	"{yesterdayHighlight}": "something",
	"{activeGoal}": "your goal",
	"{openSituation}": "that situation",
	"{moodTrend}": "steady",
}


@dataclass(frozen=True)
class NextPrompt:
	prompt: str
	is_opening: bool = False
	is_closing: bool = False
	prompt_id: Optional[str] = None


@dataclass(frozen=True)
class ResponseOutcome:
	has_follow_up: bool
	session_complete: bool
	follow_up_prompt: Optional[str] = None


def create_guided_session_state(
	session_type: str, context: Optional[SessionContext] = None
) -> Optional[GuidedSessionState]:
	"""Return fresh state for ``session_type`` or None when it has no script."""
	definition = get_session_definition(session_type)
	if definition is None:
		logging.info("No guided session definition for %r", session_type)
		return None
	return GuidedSessionState(definition=definition, context=context or SessionContext())


def get_next_prompt(state: GuidedSessionState) -> Optional[NextPrompt]:
	"""Return the next thing the assistant should say, or None when done."""
	if state.waiting_for_follow_up and state.current_follow_up:
		return NextPrompt(prompt=state.current_follow_up)

	definition = state.definition
	if state.current_prompt_index == -1:
		state.current_prompt_index = 0
		if definition.opening_message:
			return NextPrompt(prompt=definition.opening_message, is_opening=True)

	prompts = definition.prompts
	while state.current_prompt_index < len(prompts):
		prompt = prompts[state.current_prompt_index]
		if _should_skip(prompt, state.context):
			state.current_prompt_index += 1
			continue
		return NextPrompt(prompt=_render(prompt.prompt, state.context), prompt_id=prompt.id)

	if definition.closing_message and not state.closing_delivered:
		state.closing_delivered = True
		return NextPrompt(prompt=definition.closing_message, is_closing=True)
	return None


def process_response(state: GuidedSessionState, response: str) -> ResponseOutcome:
	"""Record ``response`` against the current prompt and advance the script."""
	if state.waiting_for_follow_up:
		# The answer to a follow-up is not stored and never re-checked for triggers.
		state.waiting_for_follow_up = False
		state.current_follow_up = None
		return _advance(state)

	prompts = state.definition.prompts
	if 0 <= state.current_prompt_index < len(prompts):
		current = prompts[state.current_prompt_index]
		state.responses[current.id] = response
		follow_up = _match_follow_up(current, response)
		if follow_up is not None:
			state.waiting_for_follow_up = True
			state.current_follow_up = follow_up
			return ResponseOutcome(has_follow_up=True, session_complete=False, follow_up_prompt=follow_up)

	return _advance(state)


def is_complete(state: GuidedSessionState) -> bool:
	return state.current_prompt_index >= state.total_prompts and not state.waiting_for_follow_up


def generate_session_summary(state: GuidedSessionState, now: Optional[float] = None) -> str:
	"""Bundle responses, elapsed time and downstream summarization instructions."""
	elapsed = ((now if now is not None else time.time()) - state.started_at) / 60
	responses = "\n".join(f"{prompt_id}: {text}" for prompt_id, text in state.responses.items())
	return (
		f"Session: {state.definition.name}\n"
		f"Duration: {round(elapsed)} minutes\n\n"
		f"Responses:\n{responses}\n\n"
		f"Summary Prompt for AI:\n{state.definition.output_processing.summary_prompt}"
	)


def get_responses_as_entry_text(state: GuidedSessionState) -> str:
	"""Join every non-empty response as plain text for storage."""
	return "\n\n".join(text for text in state.responses.values() if text.strip())


def _advance(state: GuidedSessionState) -> ResponseOutcome:
	state.current_prompt_index += 1
	return ResponseOutcome(
		has_follow_up=False,
		session_complete=state.current_prompt_index >= state.total_prompts,
	)


def _should_skip(prompt: GuidedPrompt, context: SessionContext) -> bool:
	for condition in prompt.skip_conditions:
		if condition is SkipCondition.NO_YESTERDAY_HIGHLIGHT and not context.yesterday_highlight:
			return True
		if condition is SkipCondition.NO_OPEN_GOALS and not context.active_goals:
			return True
		if condition is SkipCondition.NO_OPEN_SITUATIONS and not context.open_situations:
			return True
		if condition is SkipCondition.MOOD_ABOVE_7 and context.mood_average > MOOD_HIGH_THRESHOLD:
			return True
		if condition is SkipCondition.MOOD_BELOW_3 and context.mood_average < MOOD_LOW_THRESHOLD:
			return True
	return False


def _render(template: str, context: SessionContext) -> str:
	values = {
		"{yesterdayHighlight}": context.yesterday_highlight,
		"{activeGoal}": context.active_goals[0] if context.active_goals else None,
		"{openSituation}": context.open_situations[0] if context.open_situations else None,
		"{moodTrend}": context.mood_trend if context.recent_entries else None,
	}
	text = template
	for placeholder, value in values.items():
		text = text.replace(placeholder, value or _PLACEHOLDER_FALLBACKS[placeholder])
	return text


def _match_follow_up(prompt: GuidedPrompt, response: str) -> Optional[str]:
	lowered = response.lower()
	for trigger in prompt.follow_up_triggers:
		for keyword in trigger.keywords:
			if keyword.lower() in lowered:
				return trigger.follow_up_prompt
	return None
