"""Ordered, resumable transcript log for a single voice session."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Literal, Optional

from models.protocol import TranscriptDeltaEvent

Speaker = Literal["user", "assistant"]

_PREFIXES = {"user": "User: ", "assistant": "Assistant: "}


@dataclass(frozen=True)
class TranscriptDelta:
	"""The text appended by one call plus the sequence id it was assigned."""

	delta: str
	sequence_id: int
	speaker: Speaker


class TranscriptLog:
	"""Accumulate speaker-prefixed lines under a monotonic sequence counter."""

	def __init__(self, content: str = "", sequence_id: int = 0) -> None:
		self._content = content
		self._sequence_id = sequence_id

	@property
	def text(self) -> str:
		return self._content

	@property
	def sequence_id(self) -> int:
		return self._sequence_id

	def append(self, text: str, speaker: Speaker) -> TranscriptDelta:
		"""Append one utterance and return the delta sent to the client."""
		if speaker not in _PREFIXES:
			raise ValueError(f"Unknown speaker: {speaker!r}")
		delta = f"{_PREFIXES[speaker]}{text}\n"
		self._content += delta
		self._sequence_id += 1
		return TranscriptDelta(delta=delta, sequence_id=self._sequence_id, speaker=speaker)

	def restore(self, content: str, sequence_id: int) -> bool:
		"""Replace the log with a client copy when the client is ahead.

		Returns True when the client copy was adopted. An older or equal
		sequence id leaves the log untouched so the counter never goes back.
		"""
		if sequence_id <= self._sequence_id:
			return False
		self._content = content
		self._sequence_id = sequence_id
		return True


def transcript_event(delta: TranscriptDelta, timestamp_ms: Optional[int] = None) -> TranscriptDeltaEvent:
	"""Wrap a delta in the ``transcript_delta`` wire message."""
	return TranscriptDeltaEvent(
		delta=delta.delta,
		speaker=delta.speaker,
		timestamp=timestamp_ms if timestamp_ms is not None else int(time.time() * 1000),
		sequence_id=delta.sequence_id,
	)
