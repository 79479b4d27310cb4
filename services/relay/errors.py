"""Typed errors raised inside the relay and converted to client messages.

Hierarchy:
	RelayError (base, carries code / message / recoverable)
	+-- AuthError          missing or invalid bearer token
	+-- ProtocolError      malformed or out-of-place client message
	+-- AdmissionError     quota, cost or duration cap reached
	+-- UpstreamError      an OpenAI operation failed
	+-- ProcessingError    unexpected failure in the middle of a turn
	+-- FatalSessionError  the session could not be created at all
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class RelayError(Exception):
	"""Base for every error that is surfaced to the client."""

	code = "RELAY_ERROR"
	recoverable = True

	def __init__(self, message: str, *, code: Optional[str] = None, recoverable: Optional[bool] = None) -> None:
		super().__init__(message)
		self.message = message
		if code is not None:
			self.code = code
		if recoverable is not None:
			self.recoverable = recoverable

	def to_payload(self) -> Dict[str, Any]:
		return {"type": "error", "code": self.code, "message": self.message, "recoverable": self.recoverable}


class AuthError(RelayError):
	code = "AUTH_FAILED"
	recoverable = False

	def __init__(self, message: str, *, close_code: int) -> None:
		super().__init__(message)
		self.close_code = close_code


class ProtocolError(RelayError):
	code = "INVALID_MESSAGE"


class AdmissionError(RelayError):
	"""A usage cap blocks the request; reported as ``usage_limit`` not ``error``."""

	code = "USAGE_LIMIT"

	def __init__(self, limit_type: str, suggestion: str) -> None:
		super().__init__(suggestion)
		self.limit_type = limit_type
		self.suggestion = suggestion

	def to_payload(self) -> Dict[str, Any]:
		return {"type": "usage_limit", "limitType": self.limit_type, "suggestion": self.suggestion}


class UpstreamError(RelayError):
	code = "OPENAI_ERROR"


class ProcessingError(RelayError):
	code = "PROCESSING_ERROR"


class FatalSessionError(RelayError):
	code = "SESSION_ERROR"
	recoverable = False
