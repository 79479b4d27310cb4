"""WebSocket endpoint for voice journaling sessions."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Query, WebSocket
from starlette.websockets import WebSocketDisconnect

from services.relay.channel import ClientChannel
from services.relay.errors import AuthError
from services.relay.ws_session import RelayServices, VoiceSessionHandler

router = APIRouter()

CLOSE_AUTH_REQUIRED = 4001
CLOSE_AUTH_INVALID = 4002


async def _authenticate(services: RelayServices, token: Optional[str]) -> str:
	if not token:
		raise AuthError("Authentication required", close_code=CLOSE_AUTH_REQUIRED)
	try:
		result = await services.verifier.verify(token)
	except Exception as exc:
		logging.error("Token verification failed: %s", exc)
		raise AuthError("Invalid authentication", close_code=CLOSE_AUTH_INVALID) from exc
	if not result.success or not result.user_id:
		raise AuthError("Invalid authentication", close_code=CLOSE_AUTH_INVALID)
	return result.user_id


@router.websocket("/voice")
async def voice_socket(websocket: WebSocket, token: Optional[str] = Query(default=None)):
	"""Authenticate, then process client messages strictly one at a time."""
	await websocket.accept()
	channel = ClientChannel(websocket)
	services: RelayServices = websocket.app.state.relay

	try:
		user_id = await _authenticate(services, token)
	except AuthError as exc:
		logging.info("Connection rejected: %s", exc.message)
		await channel.close(exc.close_code, exc.message)
		return

	logging.info("User %s connected", user_id)
	handler = VoiceSessionHandler(user_id, channel, services)
	try:
		while True:
			try:
				frame = await websocket.receive()
			except (WebSocketDisconnect, RuntimeError) as exc:
				logging.info("User %s connection lost: %s", user_id, exc)
				break
			if frame["type"] == "websocket.disconnect":
				logging.info("User %s disconnected: %s", user_id, frame.get("code"))
				break
			raw = frame.get("text")
			if raw is None:
				raw = frame.get("bytes") or b""
			try:
				await handler.handle(raw)
			except AuthError as exc:
				await channel.close(exc.close_code, exc.message)
				break
	finally:
		await handler.on_disconnect()
