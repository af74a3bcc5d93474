"""OpenAI chat messages to Gemini ``contents`` conversion."""
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, Dict, List, Optional

from ..core.errors import ImageFetchError
from ..utils.logging import log_event
from .images import load_image

IMAGE_MARKER = "#image"
SPLIT_DELIMITER = "#split#"
IMAGE_URL_TEXT_PREFIX = "Image URL: "
IMAGE_RESPONSE_MODALITIES = ["TEXT", "IMAGE"]

ROLE_MAP = {
    "assistant": "model",
    "system": "user",
    "user": "user",
}

ImageLoader = Callable[[str], Dict[str, str]]


@dataclass
class ConvertedMessage:
    role: str
    parts: List[Dict[str, Any]]
    image_processed: bool = False


@dataclass
class TranslationResult:
    contents: List[Dict[str, Any]] = field(default_factory=list)
    image_processed: bool = False


def map_role(role: Any) -> str:
    """Map an OpenAI role onto Gemini's user/model roles; anything unknown is user."""
    if not isinstance(role, str):
        return "user"
    return ROLE_MAP.get(role, "user")


def split_image_instruction(content: str):
    """Return (source, text) for ``#image#split#{source}#split#{text}``, else None."""
    segments = content.split(SPLIT_DELIMITER)
    if len(segments) != 3 or segments[0] != IMAGE_MARKER:
        return None
    return segments[1], segments[2]


def _parts_from_items(items: List[Any]) -> List[Dict[str, Any]]:
    parts = []
    for item in items:
        if not isinstance(item, dict):
            continue
        item_type = item.get("type")
        if item_type == "text":
            parts.append({"text": item.get("text", "")})
        elif item_type == "image_url":
            image_url = item.get("image_url")
            url = image_url.get("url", "") if isinstance(image_url, dict) else image_url
            # Standard image_url items are passed on as text; only the
            # #image#split# convention embeds bytes.
            parts.append({"text": f"{IMAGE_URL_TEXT_PREFIX}{url or ''}"})
    return parts


def convert_message(message: Dict[str, Any], image_loader: ImageLoader = load_image) -> Optional[ConvertedMessage]:
    """Convert one OpenAI message; return None when it yields no parts.

    ``ImageFetchError`` from the loader propagates to the caller; malformed
    inline data raises ``ProxyError``.
    """
    role = map_role(message.get("role"))
    content = message.get("content")
    parts: List[Dict[str, Any]] = []
    image_processed = False

    if isinstance(content, str):
        instruction = split_image_instruction(content)
        if instruction is not None:
            source, text = instruction
            inline_data = image_loader(source)
            parts = [{"text": text}, {"inlineData": inline_data}]
            image_processed = True
        elif content:
            parts = [{"text": content}]
    elif isinstance(content, list):
        parts = _parts_from_items(content)

    if not parts:
        return None
    return ConvertedMessage(role=role, parts=parts, image_processed=image_processed)


def _convert_isolated(message: Dict[str, Any], index: int, image_loader: ImageLoader) -> Optional[ConvertedMessage]:
    try:
        return convert_message(message, image_loader)
    except ImageFetchError as e:
        log_event(30, "message_dropped", index=index, reason=str(e), status=e.status)
        return None


def translate_messages(
    messages: List[Dict[str, Any]],
    image_loader: Optional[ImageLoader] = None,
    *,
    image_fetch_timeout: float | None = None,
    max_workers: int = 8,
) -> TranslationResult:
    """Convert a message list, fetching images concurrently.

    Output order follows input order. A failed image fetch drops only the
    message that referenced it.
    """
    if image_loader is None:
        image_loader = partial(load_image, timeout=image_fetch_timeout)
    result = TranslationResult()
    if not messages:
        return result

    convert = partial(_convert_isolated, image_loader=image_loader)
    indices = range(len(messages))
    if len(messages) == 1 or max_workers <= 1:
        converted = list(map(convert, messages, indices))
    else:
        with ThreadPoolExecutor(max_workers=min(max_workers, len(messages))) as pool:
            converted = list(pool.map(convert, messages, indices))

    for item in converted:
        if item is None:
            continue
        result.contents.append({"role": item.role, "parts": item.parts})
        result.image_processed = result.image_processed or item.image_processed
    return result


def build_generation_config(image_processed: bool, caller_config: Optional[Dict[str, Any]] = None):
    """Return the generationConfig to send, or None to omit it."""
    if caller_config is not None:
        return caller_config
    if image_processed:
        return {"responseModalities": list(IMAGE_RESPONSE_MODALITIES)}
    return None


def build_gemini_body(result: TranslationResult, caller_config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Assemble the generateContent request body."""
    body: Dict[str, Any] = {"contents": result.contents}
    generation_config = build_generation_config(result.image_processed, caller_config)
    if generation_config is not None:
        body["generationConfig"] = generation_config
    return body
