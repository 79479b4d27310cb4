"""Prompt text and tool definitions shared by both processing modes."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from models.guided_models import GuidedSessionDefinition
from models.session_models import ConversationContext

MEMORY_TOOL_NAME = "get_memory"
MEMORY_TOOL_DESCRIPTION = (
	"Retrieve relevant past journal entries when the user references something from their history. "
	'Use this when they mention past events, people, goals, or say things like "remember when" or "like last time".'
)
MEMORY_TOOL_PARAMETERS: Dict[str, Any] = {
	"type": "object",
	"properties": {
		"query": {
			"type": "string",
			"description": "What to search for in past entries",
		},
		"entity_type": {
			"type": "string",
			"enum": ["person", "goal", "situation", "event", "place", "any"],
			"description": "Type of entity to search for",
		},
	},
	"required": ["query"],
}

_VOICE_GUIDELINES = """## Guidelines
- Reference past entries naturally: "You mentioned last week that..."
- Follow up on open situations: "How did that meeting go?"
- Acknowledge patterns: "I notice you often feel this way on Mondays"
- Be warm but not sycophantic
- {session_instruction}

## CRITICAL: Voice-Specific Instructions
- Keep responses SHORT: 2-3 sentences maximum unless asked for more
- Do NOT use markdown formatting (no bullets, no headers, no **bold**)
- Do NOT use lists - speak in flowing sentences
- Speak conversationally, as if talking to a friend
- Use contractions (don't, I'm, you're) - avoid formal language
- Ask ONE question at a time, then wait for response
- Avoid jargon and clinical terms unless the user uses them first

## Tools Available
You have access to a get_memory tool to look up past journal entries when the user references something from their history. Use it when they mention past events, people, goals, or say things like "remember when" or "like last time".
"""


def memory_tool_definition() -> Dict[str, Any]:
	"""Return ``get_memory`` in chat-completions tool format."""
	return {
		"type": "function",
		"function": {
			"name": MEMORY_TOOL_NAME,
			"description": MEMORY_TOOL_DESCRIPTION,
			"parameters": MEMORY_TOOL_PARAMETERS,
		},
	}


def realtime_memory_tool_definition() -> Dict[str, Any]:
	"""Return ``get_memory`` in the flat format the Realtime API expects."""
	return {
		"type": "function",
		"name": MEMORY_TOOL_NAME,
		"description": MEMORY_TOOL_DESCRIPTION,
		"parameters": MEMORY_TOOL_PARAMETERS,
	}


def _context_section(context: ConversationContext) -> str:
	mood = context.mood_trajectory
	lines = ["## User Context", "", "### Recent Mood", mood.description]
	if mood.trend == "declining":
		lines.append("Note: User's mood has been declining. Be especially supportive.")

	lines += ["", "### Active Goals"]
	lines += [f"- {goal}" for goal in context.active_goals] or ["No active goals mentioned recently."]

	lines += ["", "### Open Situations"]
	lines += [f"- {situation}" for situation in context.open_situations] or ["No ongoing situations."]

	lines += ["", "### Recent Entries Summary"]
	for entry in context.recent_entries[:3]:
		mood_text = f"{entry.mood_score:.1f}" if entry.mood_score is not None else "unknown"
		lines.append(f"- {entry.effective_date}: {entry.title} (mood: {mood_text})")
	return "\n".join(lines)


def build_system_prompt(context: Optional[ConversationContext], session_type: str = "free") -> str:
	if session_type and session_type != "free":
		session_instruction = (
			f"This is a {session_type.replace('_', ' ')} session. Follow the structured flow for this session type."
		)
	else:
		session_instruction = "This is a free conversation. Let the user guide the direction."

	parts = [
		"You are a supportive journaling companion helping the user reflect on their thoughts "
		"and experiences through voice conversation."
	]
	if context is not None:
		parts.append(_context_section(context))
	parts.append(_VOICE_GUIDELINES.format(session_instruction=session_instruction))
	return "\n\n".join(parts)


def build_guided_instructions(definition: GuidedSessionDefinition) -> str:
	"""Describe a guided script so a realtime model can walk through it itself."""
	lines: List[str] = [f"## Structured Flow: {definition.name}", definition.description, ""]
	if definition.opening_message:
		lines.append(f'Open with: "{definition.opening_message}"')
	lines.append("Then ask these questions one at a time, waiting for each answer:")
	for number, prompt in enumerate(definition.prompts, start=1):
		lines.append(f"{number}. {prompt.prompt}")
	if definition.closing_message:
		lines.append(f'Close with: "{definition.closing_message}"')
	return "\n".join(lines)


def _time_of_day_greeting(now: Optional[datetime] = None) -> str:
	hour = (now or datetime.now()).hour
	if hour < 12:
		return "morning"
	if hour < 17:
		return "afternoon"
	return "evening"


def build_opening_message(
	session_type: str,
	context: Optional[ConversationContext],
	now: Optional[datetime] = None,
) -> str:
	"""Return the assistant's first line for a session of ``session_type``."""
	goals = context.active_goals if context else []
	situations = context.open_situations if context else []

	if session_type == "morning_checkin":
		return f"Good {_time_of_day_greeting(now)}! How did you sleep last night, and how are you feeling as you start the day?"
	if session_type == "evening_reflection":
		return "Hey there. How was your day today? Anything stand out that you'd like to talk about?"
	if session_type == "gratitude_practice":
		return "Let's take a moment to reflect on what's going well. What's something, big or small, that you're grateful for today?"
	if session_type == "goal_setting":
		if goals:
			return f"I see you've been working on {goals[0]}. Would you like to check in on that, or set a new goal?"
		return "What's something you'd like to work towards? It could be anything, big or small."
	if session_type == "emotional_processing":
		return "I'm here to listen. What's been on your mind lately?"
	if session_type == "stress_release":
		return "It sounds like you might need to process some stress. Take a breath, and tell me what's weighing on you."
	if session_type == "weekly_review":
		return "Let's look back at your week. What moments stood out to you, good or challenging?"
	if session_type == "celebration":
		return "I'd love to hear about your wins! What's something you're proud of recently?"
	if session_type == "situation_processing":
		if situations:
			return f"I noticed you've been dealing with {situations[0]}. Would you like to talk about how that's going?"
		return "Is there a specific situation you'd like to work through today?"

	if context is not None and context.mood_trajectory.trend == "declining":
		return "Hey, how are you doing? I've noticed things have been a bit tough lately. I'm here to listen."
	if situations:
		return f"Hi there! Last time we talked about {situations[0]}. How's that going, or is there something else on your mind?"
	return "Hey! What's on your mind today?"
