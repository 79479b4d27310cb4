"""Outbound half of a client WebSocket."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Union

from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect, WebSocketState

from models.protocol import WireModel

Outbound = Union[WireModel, Dict[str, Any]]


class ClientChannel:
	"""Send relay messages to one client, dropping them once it has gone away.

	Pipelines keep running after a disconnect until their current turn
	finishes; their sends become no-ops instead of errors.
	"""

	def __init__(self, websocket: WebSocket) -> None:
		self.websocket = websocket
		self._closed = False

	@property
	def is_open(self) -> bool:
		return (
			not self._closed
			and self.websocket.client_state == WebSocketState.CONNECTED
			and self.websocket.application_state == WebSocketState.CONNECTED
		)

	async def send(self, message: Outbound) -> bool:
		"""Serialize and send ``message``; returns False if it was dropped."""
		payload = message.to_wire() if isinstance(message, WireModel) else message
		if not self.is_open:
			logging.debug("Dropping %s for closed client socket", payload.get("type"))
			return False
		try:
			await self.websocket.send_text(json.dumps(payload))
		except (WebSocketDisconnect, RuntimeError) as exc:
			self._closed = True
			logging.info("Client socket went away while sending %s: %s", payload.get("type"), exc)
			return False
		return True

	async def close(self, code: int = 1000, reason: str = "") -> None:
		if not self.is_open:
			self._closed = True
			return
		self._closed = True
		try:
			await self.websocket.close(code=code, reason=reason)
		except RuntimeError as exc:
			logging.debug("Client socket already closed: %s", exc)
