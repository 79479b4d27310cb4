"""Speech-to-text for standard-mode turns."""

import io
import logging

from openai import AsyncOpenAI

from utils.audio import pcm_to_wav

TRANSCRIBE_MODEL = "whisper-1"


class Transcriber:
    """Turn a buffered PCM turn into text with OpenAI transcription."""

    def __init__(self, client: AsyncOpenAI, *, model: str = TRANSCRIBE_MODEL, language: str = "en") -> None:
        if client is None:
            raise ValueError("OpenAI client is required for transcription.")
        self.client = client
        self.model = model
        self.language = language

    async def transcribe_pcm(self, pcm: bytes) -> str:
        """Transcribe raw 24 kHz mono PCM16 audio; returns "" for silence."""
        if not pcm:
            raise ValueError("pcm must contain audio for transcription.")

        audio_file = io.BytesIO(pcm_to_wav(pcm))
        audio_file.name = "audio.wav"

        try:
            response = await self.client.audio.transcriptions.create(
                model=self.model,
                file=audio_file,
                language=self.language,
            )
        except Exception as exc:
            logging.error("OpenAI transcription request failed: %s", exc)
            raise

        return (getattr(response, "text", None) or "").strip()
