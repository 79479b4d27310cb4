"""Text-to-speech for assistant replies in standard mode."""

import logging

from openai import AsyncOpenAI

SPEECH_MODEL = "tts-1"
SPEECH_VOICE = "nova"


class SpeechService:
    """Synthesize assistant text into MP3 bytes."""

    def __init__(self, client: AsyncOpenAI, *, model: str = SPEECH_MODEL, voice: str = SPEECH_VOICE) -> None:
        if client is None:
            raise ValueError("OpenAI client is required for speech synthesis.")
        self.client = client
        self.model = model
        self.voice = voice

    async def synthesize(self, text: str) -> bytes:
        if not text.strip():
            raise ValueError("text must not be empty for speech synthesis.")
        try:
            response = await self.client.audio.speech.create(
                model=self.model,
                voice=self.voice,
                input=text,
                response_format="mp3",
            )
        except Exception as exc:
            logging.error("OpenAI speech request failed: %s", exc)
            raise
        return response.content
