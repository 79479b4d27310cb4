"""Environment-driven configuration for the voice relay.

Values come from the process environment; ``main.py`` calls ``load_dotenv()``
first so a local ``.env`` file is honoured.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from exc


def _parse_static_tokens(raw: str) -> Dict[str, str]:
    """Parse ``token:user_id`` pairs separated by commas."""
    tokens: Dict[str, str] = {}
    for pair in raw.split(","):
        pair = pair.strip()
        if not pair:
            continue
        token, sep, user_id = pair.partition(":")
        if not sep or not token or not user_id:
            raise RuntimeError(f"RELAY_STATIC_TOKENS entry {pair!r} must look like token:user_id")
        tokens[token] = user_id
    return tokens


@dataclass(frozen=True)
class RelaySettings:
    """Runtime settings for the relay and its OpenAI calls."""

    openai_api_key: str = ""
    port: int = 8080
    environment: str = "development"

    realtime_url: str = "wss://api.openai.com/v1/realtime"
    realtime_model: str = "gpt-4o-realtime-preview-2024-12-17"
    realtime_voice: str = "alloy"

    transcription_model: str = "whisper-1"
    chat_model: str = "gpt-4o"
    tts_model: str = "tts-1"
    tts_voice: str = "nova"

    max_session_seconds: int = 15 * 60
    inactivity_timeout_seconds: int = 5 * 60
    sweep_interval_seconds: int = 60

    static_tokens: Dict[str, str] = field(default_factory=dict)

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @classmethod
    def from_env(cls) -> "RelaySettings":
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            port=_env_int("PORT", 8080),
            environment=os.getenv("RELAY_ENV", "development"),
            realtime_model=os.getenv("REALTIME_MODEL", cls.realtime_model),
            realtime_voice=os.getenv("REALTIME_VOICE", cls.realtime_voice),
            chat_model=os.getenv("CHAT_MODEL", cls.chat_model),
            tts_voice=os.getenv("TTS_VOICE", cls.tts_voice),
            max_session_seconds=_env_int("MAX_SESSION_SECONDS", cls.max_session_seconds),
            inactivity_timeout_seconds=_env_int("SESSION_TIMEOUT_SECONDS", cls.inactivity_timeout_seconds),
            sweep_interval_seconds=_env_int("SESSION_SWEEP_INTERVAL_SECONDS", cls.sweep_interval_seconds),
            static_tokens=_parse_static_tokens(os.getenv("RELAY_STATIC_TOKENS", "")),
        )

    def validate(self) -> None:
        """Raise RuntimeError when required settings are missing."""
        if not self.openai_api_key:
            raise RuntimeError("OPENAI_API_KEY environment variable is not set")
