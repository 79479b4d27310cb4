"""Bearer-token verification for WebSocket upgrades."""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Protocol


@dataclass(frozen=True)
class VerificationResult:
	success: bool
	user_id: Optional[str] = None
	error: Optional[str] = None


class TokenVerifier(Protocol):
	"""Maps a bearer token to a user id."""

	async def verify(self, token: str) -> VerificationResult: ...


class StaticTokenVerifier:
	"""Verify tokens against a fixed ``token -> user_id`` table.

	Deployments that sit behind an identity provider inject their own
	``TokenVerifier`` into ``create_app`` instead.
	"""

	def __init__(self, tokens: Dict[str, str]) -> None:
		self._tokens = dict(tokens)

	async def verify(self, token: str) -> VerificationResult:
		if not token:
			return VerificationResult(success=False, error="Token is empty")
		for known, user_id in self._tokens.items():
			if hmac.compare_digest(known.encode(), token.encode()):
				return VerificationResult(success=True, user_id=user_id)
		logging.info("Rejected unknown bearer token")
		return VerificationResult(success=False, error="Unknown token")
