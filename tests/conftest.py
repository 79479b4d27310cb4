"""Shared fixtures and fakes for relay tests."""

from __future__ import annotations

import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

# Ensure repo root is on sys.path so tests can import the top-level packages
# when running pytest from the repository root without an editable install.
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

import pytest  # noqa: E402

from dal.entry_dal import EntryDAL  # noqa: E402
from dal.usage_dal import UsageDAL  # noqa: E402
from models.protocol import WireModel  # noqa: E402
from models.session_models import EntryContext, MoodTrajectory  # noqa: E402
from services.relay.session_store import SessionStore  # noqa: E402
from services.relay.usage_governor import UsageGovernor  # noqa: E402
from utils.database_init import AsyncDatabaseInitializer  # noqa: E402


class FakeChannel:
    """Records outbound relay messages as wire dicts."""

    def __init__(self) -> None:
        self.messages: List[Dict[str, Any]] = []
        self.closed_with: Optional[tuple] = None

    @property
    def is_open(self) -> bool:
        return self.closed_with is None

    async def send(self, message: Any) -> bool:
        payload = message.to_wire() if isinstance(message, WireModel) else message
        self.messages.append(payload)
        return True

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed_with = (code, reason)

    def of_type(self, message_type: str) -> List[Dict[str, Any]]:
        return [m for m in self.messages if m["type"] == message_type]

    @property
    def types(self) -> List[str]:
        return [m["type"] for m in self.messages]


class FakeEntryStore:
    """In-memory stand-in for EntryDAL."""

    def __init__(
        self,
        entries: Optional[List[EntryContext]] = None,
        goals: Optional[List[str]] = None,
        situations: Optional[List[str]] = None,
        mood: Optional[MoodTrajectory] = None,
    ) -> None:
        self.entries = entries or []
        self.goals = goals or []
        self.situations = situations or []
        self.mood = mood or MoodTrajectory()
        self.created: List[Dict[str, Any]] = []
        self.searches: List[Dict[str, Any]] = []

    async def get_recent_entries(self, user_id: str, limit: int = 5) -> List[EntryContext]:
        return self.entries[:limit]

    async def get_active_goals(self, user_id: str) -> List[str]:
        return list(self.goals)

    async def get_open_situations(self, user_id: str) -> List[str]:
        return list(self.situations)

    async def get_mood_trajectory(self, user_id: str) -> MoodTrajectory:
        return self.mood

    async def search_entries(self, user_id, query, *, entity_type=None, limit=3):
        self.searches.append({"user_id": user_id, "query": query, "entity_type": entity_type})
        return [e for e in self.entries if query.lower() in (e.title + " " + e.text).lower()][:limit]

    async def create_entry(self, user_id: str, text: str, **kwargs: Any) -> str:
        entry_id = f"entry-{len(self.created) + 1}"
        self.created.append({"id": entry_id, "user_id": user_id, "text": text, **kwargs})
        return entry_id


class FakeTranscriber:
    def __init__(self, text: str = "", error: Optional[Exception] = None) -> None:
        self.text = text
        self.error = error
        self.calls: List[bytes] = []

    async def transcribe_pcm(self, pcm: bytes) -> str:
        self.calls.append(pcm)
        if self.error is not None:
            raise self.error
        return self.text


class FakeSpeech:
    def __init__(self, audio: bytes = b"mp3-bytes", error: Optional[Exception] = None) -> None:
        self.audio = audio
        self.error = error
        self.calls: List[str] = []

    async def synthesize(self, text: str) -> bytes:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return self.audio


def chat_message(content: Optional[str] = None, tool_calls: Optional[list] = None) -> SimpleNamespace:
    """Shape-compatible stand-in for a ChatCompletionMessage."""
    return SimpleNamespace(content=content, tool_calls=tool_calls)


def tool_call(call_id: str, name: str, arguments: str) -> SimpleNamespace:
    return SimpleNamespace(id=call_id, function=SimpleNamespace(name=name, arguments=arguments))


class FakeChat:
    """Returns queued messages in order and records every request."""

    def __init__(self, *replies: Any) -> None:
        self.replies = list(replies)
        self.calls: List[Dict[str, Any]] = []

    async def complete(self, messages, tools=None):
        self.calls.append({"messages": list(messages), "tools": tools})
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def db_initializer(tmp_path: Path) -> AsyncDatabaseInitializer:
    return AsyncDatabaseInitializer(tmp_path / "db")


@pytest.fixture
def usage_dal(db_initializer: AsyncDatabaseInitializer) -> UsageDAL:
    return UsageDAL(db_initializer)


@pytest.fixture
def entry_dal(db_initializer: AsyncDatabaseInitializer) -> EntryDAL:
    return EntryDAL(db_initializer)


@pytest.fixture
def governor(usage_dal: UsageDAL) -> UsageGovernor:
    return UsageGovernor(usage_dal)


@pytest.fixture
def store(governor: UsageGovernor) -> SessionStore:
    return SessionStore(governor)


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()
