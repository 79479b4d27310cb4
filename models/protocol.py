"""Pydantic models for the client <-> relay WebSocket protocol.

Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

from typing import Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class WireModel(BaseModel):
	model_config = ConfigDict(frozen=True, populate_by_name=True)

	def to_wire(self) -> Dict[str, object]:
		return self.model_dump(by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Client -> relay
# ---------------------------------------------------------------------------


class SaveOptions(WireModel):
	save: bool
	as_guided_session: Optional[bool] = Field(default=None, alias="asGuidedSession")
	session_type: Optional[str] = Field(default=None, alias="sessionType")


class StartSessionMessage(WireModel):
	type: Literal["start_session"]
	mode: Literal["realtime", "standard"]
	session_type: Optional[str] = Field(default=None, alias="sessionType")


class AudioChunkMessage(WireModel):
	type: Literal["audio_chunk"]
	data: str


class EndTurnMessage(WireModel):
	type: Literal["end_turn"]


class EndSessionMessage(WireModel):
	type: Literal["end_session"]
	save_options: Optional[SaveOptions] = Field(default=None, alias="saveOptions")


class TokenRefreshMessage(WireModel):
	type: Literal["token_refresh"]
	token: str


class RestoreTranscriptMessage(WireModel):
	type: Literal["restore_transcript"]
	content: str
	sequence_id: int = Field(alias="sequenceId")


ClientMessage = Union[
	StartSessionMessage,
	AudioChunkMessage,
	EndTurnMessage,
	EndSessionMessage,
	TokenRefreshMessage,
	RestoreTranscriptMessage,
]


# ---------------------------------------------------------------------------
# Relay -> client
# ---------------------------------------------------------------------------


class SessionReady(WireModel):
	type: Literal["session_ready"] = "session_ready"
	session_id: str = Field(alias="sessionId")
	mode: Literal["realtime", "standard"]


class TranscriptDeltaEvent(WireModel):
	type: Literal["transcript_delta"] = "transcript_delta"
	delta: str
	speaker: Literal["user", "assistant"]
	timestamp: int
	sequence_id: int = Field(alias="sequenceId")


class AudioResponse(WireModel):
	type: Literal["audio_response"] = "audio_response"
	data: str
	transcript: Optional[str] = None


class GuidedPromptEvent(WireModel):
	type: Literal["guided_prompt"] = "guided_prompt"
	prompt_id: Optional[str] = Field(default=None, alias="promptId")
	prompt: str
	is_opening: bool = Field(alias="isOpening")
	is_closing: bool = Field(alias="isClosing")
	prompt_index: int = Field(alias="promptIndex")
	total_prompts: int = Field(alias="totalPrompts")


class GuidedSessionComplete(WireModel):
	type: Literal["guided_session_complete"] = "guided_session_complete"
	session_type: str = Field(alias="sessionType")
	responses: Dict[str, str]
	summary: str


class UsageLimitEvent(WireModel):
	type: Literal["usage_limit"] = "usage_limit"
	limit_type: Literal["daily_cost", "realtime_minutes", "standard_minutes", "session_duration"] = Field(
		alias="limitType"
	)
	suggestion: str


class ErrorEvent(WireModel):
	type: Literal["error"] = "error"
	code: str
	message: str
	recoverable: bool


class SessionSaved(WireModel):
	type: Literal["session_saved"] = "session_saved"
	entry_id: str = Field(alias="entryId")
	success: bool
