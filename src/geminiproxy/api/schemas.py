"""Pydantic request schemas for the OpenAI-compatible endpoint."""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class ChatMessage(BaseModel):
    role: Any = None
    # A string, a list of typed items, or anything else (which yields no parts).
    content: Any = None

    class Config:
        extra = "allow"


class ChatCompletionsRequest(BaseModel):
    model: Optional[str] = None
    messages: Optional[List[ChatMessage]] = None
    contents: Optional[List[Any]] = None
    gemini_generation_config: Optional[Dict[str, Any]] = None

    class Config:
        # Allow forward-compat fields from clients; we ignore unsupported ones.
        extra = "allow"

    @property
    def is_gemini_native(self) -> bool:
        """True when the body already carries Gemini ``contents`` and no messages."""
        return self.messages is None and self.contents is not None
