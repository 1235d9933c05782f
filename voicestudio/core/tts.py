from __future__ import annotations

import asyncio
import logging
from typing import Literal

from aiohttp import ClientError, ClientSession, ClientTimeout

from voicestudio.core.config import Settings

log = logging.getLogger("voicestudio.tts")

Voice = Literal["alloy", "ash", "ballad", "coral", "echo", "sage", "shimmer", "verse"]
VOICES: tuple[str, ...] = ("alloy", "ash", "ballad", "coral", "echo", "sage", "shimmer", "verse")
DEFAULT_VOICE = "alloy"

CONTENT_TYPES = {"wav": "audio/wav", "mp3": "audio/mpeg"}


class SpeechProviderError(RuntimeError):
    def __init__(self, status: int, detail: str) -> None:
        super().__init__(f"Speech provider error {status}: {detail}")
        self.status = status
        self.detail = detail


def response_format_for(user_agent: str | None) -> str:
    """Blink browsers get WAV, everything else MP3."""
    ua = user_agent or ""
    if ("Chrome/" in ua or "Chromium/" in ua) and "Edge/" not in ua:
        return "wav"
    return "mp3"


class SpeechClient:
    """Thin client for an OpenAI-compatible ``/audio/speech`` endpoint."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def _payload(self, text: str, voice: str, instructions: str, response_format: str) -> dict:
        payload = {
            "model": self.settings.TTS_MODEL,
            "input": text,
            "voice": voice,
            "response_format": response_format,
        }
        if instructions:
            payload["instructions"] = instructions
        return payload

    async def synthesize(
        self,
        text: str,
        voice: str = DEFAULT_VOICE,
        instructions: str = "",
        response_format: str = "mp3",
    ) -> bytes:
        key = (self.settings.OPENAI_API_KEY or "").strip()
        if not key:
            raise SpeechProviderError(503, "OpenAI API key missing")

        headers = {"Authorization": f"Bearer {key}", "Content-Type": "application/json"}
        payload = self._payload(text, voice, instructions, response_format)
        timeout = ClientTimeout(total=max(5, int(self.settings.TTS_TIMEOUT)))
        try:
            async with ClientSession(timeout=timeout) as sess:
                async with sess.post(self.settings.TTS_API_URL, json=payload, headers=headers) as resp:
                    if resp.status != 200:
                        detail = await resp.text()
                        log.error(f"[tts] provider returned {resp.status}: {detail}")
                        raise SpeechProviderError(resp.status, detail)
                    return await resp.read()
        except (ClientError, asyncio.TimeoutError) as e:
            log.error(f"[tts] provider unreachable: {e}")
            raise SpeechProviderError(502, str(e)) from e
