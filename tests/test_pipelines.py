"""Tests for the batch (standard) and guided turn pipelines."""

from __future__ import annotations

import base64

import pytest

from conftest import (
    FakeChannel,
    FakeChat,
    FakeEntryStore,
    FakeSpeech,
    FakeTranscriber,
    chat_message,
    tool_call,
)
from models.session_models import EntryContext
from services.context.context_loader import ContextLoader
from services.guided.runner import create_guided_session_state
from services.relay.errors import ProcessingError
from services.relay.guided_pipeline import GuidedPipeline
from services.relay.session_store import SessionStore
from services.relay.standard_pipeline import StandardPipeline


async def _standard(
    store: SessionStore,
    channel: FakeChannel,
    *,
    transcriber: FakeTranscriber,
    chat: FakeChat,
    speech: FakeSpeech | None = None,
    entry_store: FakeEntryStore | None = None,
) -> StandardPipeline:
    session, _ = await store.create_session("u1", "standard")
    return StandardPipeline(
        session,
        channel,
        store,
        ContextLoader(entry_store or FakeEntryStore()),
        transcriber,
        chat,
        speech or FakeSpeech(),
    )


class TestStandardPipeline:
    async def test_initialize_speaks_opening(self, store: SessionStore, channel: FakeChannel) -> None:
        speech = FakeSpeech()
        pipeline = await _standard(store, channel, transcriber=FakeTranscriber(), chat=FakeChat(), speech=speech)

        await pipeline.initialize(None)

        assert channel.types == ["session_ready", "audio_response", "transcript_delta"]
        assert channel.messages[0]["mode"] == "standard"
        assert speech.calls == ["Hey! What's on your mind today?"]
        assert channel.messages[1]["data"] == base64.b64encode(b"mp3-bytes").decode()
        assert channel.messages[2]["delta"] == "Assistant: Hey! What's on your mind today?\n"
        assert pipeline.history[0]["role"] == "system"

    async def test_empty_buffer_is_silent(self, store: SessionStore, channel: FakeChannel) -> None:
        transcriber = FakeTranscriber("hello")
        chat = FakeChat()
        pipeline = await _standard(store, channel, transcriber=transcriber, chat=chat)

        await pipeline.process_turn()

        assert transcriber.calls == []
        assert chat.calls == []
        assert channel.messages == []

    async def test_failed_transcription_is_silent(self, store: SessionStore, channel: FakeChannel) -> None:
        chat = FakeChat()
        pipeline = await _standard(
            store, channel, transcriber=FakeTranscriber(error=RuntimeError("whisper down")), chat=chat
        )
        store.add_audio_chunk(pipeline.session_id, b"\x00\x01")

        await pipeline.process_turn()

        assert chat.calls == []
        assert channel.messages == []

    async def test_turn_orders_user_then_assistant(self, store: SessionStore, channel: FakeChannel) -> None:
        transcriber = FakeTranscriber("I went running")
        pipeline = await _standard(
            store, channel, transcriber=transcriber, chat=FakeChat(chat_message("That sounds energizing!"))
        )
        store.add_audio_chunk(pipeline.session_id, b"\x00\x01")
        store.add_audio_chunk(pipeline.session_id, b"\x02\x03")

        await pipeline.process_turn()

        assert transcriber.calls == [b"\x00\x01\x02\x03"]
        assert channel.types == ["transcript_delta", "transcript_delta", "audio_response"]
        user, assistant, audio = channel.messages
        assert user["delta"] == "User: I went running\n"
        assert assistant["delta"] == "Assistant: That sounds energizing!\n"
        assert user["sequenceId"] < assistant["sequenceId"]
        assert audio["transcript"] == "That sounds energizing!"
        assert pipeline.history[-2:] == [
            {"role": "user", "content": "I went running"},
            {"role": "assistant", "content": "That sounds energizing!"},
        ]

    async def test_tts_failure_sends_empty_audio(self, store: SessionStore, channel: FakeChannel) -> None:
        pipeline = await _standard(
            store,
            channel,
            transcriber=FakeTranscriber("hi"),
            chat=FakeChat(chat_message("Hello!")),
            speech=FakeSpeech(error=RuntimeError("tts down")),
        )
        store.add_audio_chunk(pipeline.session_id, b"\x00")

        await pipeline.process_turn()

        audio = channel.of_type("audio_response")[0]
        assert audio == {"type": "audio_response", "data": "", "transcript": "Hello!"}

    async def test_single_tool_round_trip(self, store: SessionStore, channel: FakeChannel) -> None:
        entry_store = FakeEntryStore(entries=[EntryContext("e1", "2024-05-01", "Dinner with Sam", "We talked")])
        chat = FakeChat(
            chat_message(tool_calls=[tool_call("call_1", "get_memory", '{"query": "sam"}')]),
            chat_message("Last time you had dinner with Sam."),
        )
        pipeline = await _standard(
            store, channel, transcriber=FakeTranscriber("remember Sam?"), chat=chat, entry_store=entry_store
        )
        store.add_audio_chunk(pipeline.session_id, b"\x00")

        await pipeline.process_turn()

        first, second = chat.calls
        assert first["tools"][0]["function"]["name"] == "get_memory"
        assert second["tools"] is None
        assistant_call, tool_result = second["messages"][-2:]
        assert assistant_call["tool_calls"][0]["id"] == "call_1"
        assert tool_result["role"] == "tool"
        assert tool_result["tool_call_id"] == "call_1"
        assert "Dinner with Sam" in tool_result["content"]
        assert channel.of_type("audio_response")[0]["transcript"] == "Last time you had dinner with Sam."

    async def test_unknown_tool_gets_placeholder(self, store: SessionStore, channel: FakeChannel) -> None:
        chat = FakeChat(
            chat_message(tool_calls=[tool_call("call_9", "get_weather", "{}")]),
            chat_message("I can't check that."),
        )
        pipeline = await _standard(store, channel, transcriber=FakeTranscriber("weather?"), chat=chat)
        store.add_audio_chunk(pipeline.session_id, b"\x00")

        await pipeline.process_turn()

        assert chat.calls[1]["messages"][-1]["content"] == "Unknown tool: get_weather"

    async def test_chat_failure_raises_processing_error(self, store: SessionStore, channel: FakeChannel) -> None:
        pipeline = await _standard(
            store, channel, transcriber=FakeTranscriber("hello"), chat=FakeChat(RuntimeError("rate limited"))
        )
        store.add_audio_chunk(pipeline.session_id, b"\x00")

        with pytest.raises(ProcessingError) as excinfo:
            await pipeline.process_turn()

        assert excinfo.value.to_payload()["message"] == "Failed to process your message. Please try again."
        assert channel.types == ["transcript_delta"]


async def _guided(store: SessionStore, channel: FakeChannel, transcriber: FakeTranscriber) -> GuidedPipeline:
    session, _ = await store.create_session("u1", "standard", "gratitude_practice")
    return GuidedPipeline(
        session,
        channel,
        store,
        transcriber,
        FakeSpeech(),
        guided_state=create_guided_session_state("gratitude_practice"),
    )


async def _answer(pipeline: GuidedPipeline, transcriber: FakeTranscriber, text: str) -> None:
    transcriber.text = text
    pipeline.store.add_audio_chunk(pipeline.session_id, b"\x00")
    await pipeline.process_turn()


class TestGuidedPipeline:
    async def test_initialize_delivers_opening_then_first_prompt(
        self, store: SessionStore, channel: FakeChannel
    ) -> None:
        pipeline = await _guided(store, channel, FakeTranscriber())

        await pipeline.initialize()

        assert channel.types == [
            "session_ready",
            "guided_prompt",
            "audio_response",
            "transcript_delta",
            "guided_prompt",
            "audio_response",
            "transcript_delta",
        ]
        opening, first = channel.of_type("guided_prompt")
        assert opening["isOpening"] is True
        assert "promptId" not in opening
        assert first["promptId"] == "warmup"
        assert first["totalPrompts"] == 6
        assert pipeline.session.guided_state is pipeline.state

    async def test_follow_up_then_next_prompt(self, store: SessionStore, channel: FakeChannel) -> None:
        transcriber = FakeTranscriber()
        pipeline = await _guided(store, channel, transcriber)
        await pipeline.initialize()

        await _answer(pipeline, transcriber, "A cup of tea this morning")
        await _answer(pipeline, transcriber, "My mom, always")
        follow_up = channel.of_type("guided_prompt")[-1]
        await _answer(pipeline, transcriber, "She listens without judging")
        after = channel.of_type("guided_prompt")[-1]

        assert follow_up["prompt"].startswith("Family can mean so much.")
        assert "promptId" not in follow_up
        assert after["promptId"] == "experience"
        assert pipeline.state.responses == {
            "warmup": "A cup of tea this morning",
            "person": "My mom, always",
        }

    async def test_closing_then_single_completion(self, store: SessionStore, channel: FakeChannel) -> None:
        transcriber = FakeTranscriber()
        pipeline = await _guided(store, channel, transcriber)
        await pipeline.initialize()

        for answer in ["Tea", "My neighbor", "A walk", "I am patient", "Hot water", "Calmer"]:
            await _answer(pipeline, transcriber, answer)
        await _answer(pipeline, transcriber, "Thanks")

        closing = channel.of_type("guided_prompt")[-1]
        assert closing["isClosing"] is True
        completions = channel.of_type("guided_session_complete")
        assert len(completions) == 1
        assert completions[0]["sessionType"] == "gratitude_practice"
        assert completions[0]["summary"] == "Tea\n\nMy neighbor\n\nA walk\n\nI am patient\n\nHot water\n\nCalmer"
        assert pipeline.session_data().responses["closing"] == "Calmer"

    async def test_session_data_reports_completion(self, store: SessionStore, channel: FakeChannel) -> None:
        transcriber = FakeTranscriber()
        pipeline = await _guided(store, channel, transcriber)
        await pipeline.initialize()
        await _answer(pipeline, transcriber, "Tea")

        assert pipeline.session_data().completed is False

        for answer in ["My neighbor", "A walk", "I am patient", "Hot water", "Calmer"]:
            await _answer(pipeline, transcriber, answer)

        assert pipeline.session_data().completed is True
