"""
Chat-completions and text-to-speech wire models.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class AIModel(str, Enum):
    GPT5_2 = "gpt-5.2"
    GPT5_MINI = "gpt-5-mini"

    @property
    def display_name(self) -> str:
        return {AIModel.GPT5_2: "GPT-5.2", AIModel.GPT5_MINI: "GPT-5 mini"}[self]

    @property
    def cost_indicator(self) -> str:
        return {AIModel.GPT5_2: "$$$", AIModel.GPT5_MINI: "$"}[self]

    @property
    def description(self) -> str:
        return {AIModel.GPT5_2: "Best reasoning", AIModel.GPT5_MINI: "Cost-effective"}[self]


class ChatMessage(BaseModel):
    role: str  # "user" | "assistant" | "system"
    content: str


class ChatCompletionRequest(BaseModel):
    model: str
    messages: list[ChatMessage]
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None


class Choice(BaseModel):
    index: int = 0
    message: ChatMessage
    finish_reason: Optional[str] = None


class Usage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatCompletionResponse(BaseModel):
    id: str = ""
    object: str = ""
    created: int = 0
    model: str = ""
    choices: list[Choice] = []
    usage: Optional[Usage] = None


class TTSRequest(BaseModel):
    model: str
    input: str
    voice: str
    response_format: str


class APIErrorDetail(BaseModel):
    message: str
    type: Optional[str] = None
    param: Optional[str] = None
    code: Optional[str] = None


class APIErrorResponse(BaseModel):
    error: APIErrorDetail
