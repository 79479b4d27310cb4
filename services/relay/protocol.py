"""Parse inbound WebSocket frames into typed client messages.

``parse_client_message`` never raises: it returns either a ``ParsedMessage``
wrapping one of the ``ClientMessage`` variants or a ``ParseFailure`` holding
the recoverable error to send back.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Type, Union

import pydantic

from models.protocol import (
	AudioChunkMessage,
	ClientMessage,
	EndSessionMessage,
	EndTurnMessage,
	RestoreTranscriptMessage,
	StartSessionMessage,
	TokenRefreshMessage,
)
from services.relay.errors import ProtocolError

_MESSAGE_TYPES: Dict[str, Type[pydantic.BaseModel]] = {
	"start_session": StartSessionMessage,
	"audio_chunk": AudioChunkMessage,
	"end_turn": EndTurnMessage,
	"end_session": EndSessionMessage,
	"token_refresh": TokenRefreshMessage,
	"restore_transcript": RestoreTranscriptMessage,
}


@dataclass(frozen=True)
class ParsedMessage:
	message: ClientMessage


@dataclass(frozen=True)
class ParseFailure:
	error: ProtocolError
	detail: str


ParseResult = Union[ParsedMessage, ParseFailure]


def _failure(detail: str) -> ParseFailure:
	return ParseFailure(
		error=ProtocolError("Invalid message format"),
		detail=detail,
	)


def parse_client_message(raw: Union[str, bytes, Dict[str, Any]]) -> ParseResult:
	"""Validate one inbound frame against the tagged union of client messages."""
	if isinstance(raw, (str, bytes)):
		try:
			data = json.loads(raw)
		except (json.JSONDecodeError, UnicodeDecodeError) as exc:
			logging.warning("Malformed JSON frame: %s", exc)
			return _failure(f"Invalid JSON: {exc}")
	else:
		data = raw

	if not isinstance(data, dict):
		return _failure(f"Expected a JSON object, got {type(data).__name__}")

	message_type = data.get("type")
	model = _MESSAGE_TYPES.get(message_type) if isinstance(message_type, str) else None
	if model is None:
		logging.warning("Unknown client message type: %r", message_type)
		return _failure(f"Unknown message type: {message_type!r}")

	try:
		message = model.model_validate(data)
	except pydantic.ValidationError as exc:
		logging.warning("Invalid %s message: %s", message_type, exc)
		return _failure(f"Validation error for {message_type!r}: {exc}")
	return ParsedMessage(message=message)
