"""
Remote chat API. Chat completions and text-to-speech.
"""

from typing import Optional, Sequence

from pydantic import ValidationError

from watchgpt.errors import ChatAPIError
from watchgpt.models.completion import ChatCompletionRequest, ChatCompletionResponse, ChatMessage, TTSRequest
from watchgpt.transport.http import HttpClient


class ChatAPI:
    def __init__(
        self,
        http: HttpClient,
        tts_model: str = "tts-1",
        tts_voice: str = "alloy",
        tts_format: str = "aac",
    ):
        self._http = http
        self._tts_model = tts_model
        self._tts_voice = tts_voice
        self._tts_format = tts_format

    async def complete(
        self,
        messages: Sequence[dict[str, str]],
        model: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """Send the ordered role/content list and return the first choice's text."""
        request = ChatCompletionRequest(
            model=model,
            messages=[ChatMessage(**m) for m in messages],
            temperature=temperature,
            max_tokens=max_tokens,
        )
        raw = await self._http.post_json("/chat/completions", request.model_dump(exclude_none=True))
        try:
            response = ChatCompletionResponse.model_validate(raw)
        except ValidationError as e:
            raise ChatAPIError(f"Failed to decode response: {e.error_count()} validation errors", code="decoding_error")
        if not response.choices:
            raise ChatAPIError("Empty response from API.", code="empty_response")
        return response.choices[0].message.content

    async def text_to_speech(
        self,
        text: str,
        voice: Optional[str] = None,
        response_format: Optional[str] = None,
    ) -> bytes:
        """Synthesize ``text``; returns raw audio bytes."""
        request = TTSRequest(
            model=self._tts_model,
            input=text,
            voice=voice or self._tts_voice,
            response_format=response_format or self._tts_format,
        )
        return await self._http.post_bytes("/audio/speech", request.model_dump())

    async def close(self) -> None:
        await self._http.close()
