"""Copy generation through the LLM chat endpoint."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

import httpx

from ..config import ConvoflowConfig, ToolConfig
from ..errors import ToolError
from ..oracle.http import HttpOracle
from ..params import is_empty
from ..synthesis.parsing import extract_structured
from .http import HttpTool

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 20
MIN_DESCRIPTION_LENGTH = 10
FALLBACK_TITLE = "Content worth sharing"

HASHTAG_RE = re.compile(r"#\w+")
TITLE_LABEL_RE = re.compile(r"^\W*(?:title|标题)\W*?[:：]\s*(.+)$", re.IGNORECASE)
DESCRIPTION_LABEL_RE = re.compile(
    r"^\W*(?:description|描述)\W*?[:：]\s*(.+)$", re.IGNORECASE
)
LIST_SPLIT_RE = re.compile(r"[,，\s]+")

CONTENT_TYPE_HINTS = {
    "video": "The copy accompanies a short video and should read well when spoken.",
    "audio_image_mix": "The copy accompanies a photo slideshow with music and should suit an image post.",
}

DEFAULT_STYLE = "travel"
STYLE_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "travel": {
        "description": "{title}: a trip worth sharing, full of new places, "
        "local culture and views you will not want to leave.",
        "tags": ["travel", "scenery", "experience"],
        "hashtags": ["#traveldiary", "#scenery", "#travelexperience"],
    },
    "casual": {
        "description": "{title}: something fun to share, hopefully it brings "
        "you a smile and a little inspiration.",
        "tags": ["life", "sharing", "daily"],
        "hashtags": ["#dailylife", "#sharing", "#goodtimes"],
    },
    "professional": {
        "description": "{title}: practical knowledge with useful insights "
        "you can put to work.",
        "tags": ["professional", "knowledge", "learning"],
        "hashtags": ["#knowledge", "#expertise", "#growth"],
    },
    "creative": {
        "description": "{title}: creativity without limits, let's explore "
        "what else is possible together.",
        "tags": ["creative", "inspiration", "art"],
        "hashtags": ["#creative", "#inspiration", "#art"],
    },
}


def _keywords(value: Any) -> List[str]:
    if isinstance(value, str):
        return [k for k in LIST_SPLIT_RE.split(value) if k]
    if isinstance(value, (list, tuple)):
        return [str(k).strip() for k in value if str(k).strip()]
    return []


def build_prompt(params: Mapping[str, Any]) -> str:
    """Copywriting prompt asking the model for a JSON object."""
    topic = params.get("topic")
    style = params.get("style") or DEFAULT_STYLE
    keywords = _keywords(params.get("keywords"))
    lines = [
        "Write high quality social media copy for the following brief.",
        "",
        f"Topic: {topic}",
        f"Style: {style}",
        f"Length: {params.get('length') or 'medium'}",
        f"Keywords: {', '.join(keywords) if keywords else 'none'}",
    ]
    if params.get("source_file"):
        lines.append(f"Source file: {params['source_file']}")
    hint = CONTENT_TYPE_HINTS.get(params.get("content_type") or "")
    if hint:
        lines.extend(["", hint])
    lines.extend(
        [
            "",
            "Reply with JSON only, in this shape:",
            "{",
            '  "title": "catchy title (8-20 characters)",',
            '  "description": "vivid description (100-500 characters)",',
            '  "tags": ["tag1", "tag2", "tag3"],',
            '  "hashtags": ["#topic1", "#topic2", "#topic3"]',
            "}",
            "",
            "Requirements:",
            f"1. The title is engaging and matches the {style} style.",
            "2. The description is lively and includes concrete details.",
            "3. Tags reflect the topic accurately.",
            "4. Hashtags are popular and relevant.",
            "5. The content is original and useful.",
            "",
            f"Tie the copy about {topic} to current trends and what readers care about.",
        ]
    )
    return "\n".join(lines)


def parse_labeled_copy(text: str) -> Dict[str, Any]:
    """Best-effort scan of free-form copy for a title, description and hashtags."""
    title = ""
    description = ""
    hashtags: List[str] = []
    for raw in text.splitlines():
        line = raw.strip()
        if not line:
            continue
        match = TITLE_LABEL_RE.match(line)
        if match and not title:
            title = match.group(1).strip().strip("\"'“”")
            continue
        if "#" in line:
            hashtags.extend(HASHTAG_RE.findall(line))
            continue
        match = DESCRIPTION_LABEL_RE.match(line)
        if match and not description:
            description = match.group(1).strip()
        elif len(line) > 20 and not description:
            description = line
    if not description:
        description = text.strip()[:200]
    return {"title": title, "description": description, "hashtags": hashtags}


def finalize_copy(content: Mapping[str, Any], params: Mapping[str, Any]) -> Dict[str, Any]:
    """Apply length limits and fill any empty field with the style's defaults."""
    style = params.get("style") or DEFAULT_STYLE
    defaults = STYLE_DEFAULTS.get(style, STYLE_DEFAULTS["casual"])

    title = str(content.get("title") or "").strip() or FALLBACK_TITLE
    if len(title) > MAX_TITLE_LENGTH:
        title = title[:MAX_TITLE_LENGTH] + "..."
    description = str(content.get("description") or "").strip()
    if len(description) < MIN_DESCRIPTION_LENGTH:
        description = defaults["description"].format(title=title)
    tags = _keywords(content.get("tags")) or list(defaults["tags"])
    hashtags = [
        tag if tag.startswith("#") else f"#{tag}"
        for tag in _keywords(content.get("hashtags"))
    ] or list(defaults["hashtags"])

    return {
        "title": title,
        "description": description,
        "tags": tags,
        "hashtags": hashtags,
        "style": style,
        "topic": params.get("topic"),
        "word_count": len(description),
        "generated_at": datetime.now(timezone.utc).isoformat(),
    }


class ContentGeneratorTool(HttpTool):
    """Writes copy by prompting the chat endpoint at ``{endpoint}/{api_key}/chat/{provider}``.

    Every call opens a new chat. The reply is expected to hold a JSON object
    with ``title``, ``description``, ``tags`` and ``hashtags``; free-form
    replies are scanned for labeled lines instead.
    """

    def __init__(
        self,
        key: str,
        endpoint: str,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
        api_key: str = "test1",
        provider: str = "claude",
    ) -> None:
        super().__init__(key, endpoint, timeout=timeout, client=client)
        self.url = f"{endpoint.rstrip('/')}/{api_key}/chat/{provider}"

    @classmethod
    def from_config(
        cls, key: str, tool_conf: ToolConfig, config: ConvoflowConfig
    ) -> "ContentGeneratorTool":
        return cls(
            key,
            tool_conf.endpoint,
            timeout=tool_conf.timeout,
            api_key=tool_conf.api_key or config.oracle.api_key,
            provider=tool_conf.provider or config.oracle.provider,
        )

    def build_payload(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return {"prompt": build_prompt(params), "newChat": True, "stream": False}

    def parse_output(self, data: Dict[str, Any], params: Dict[str, Any]) -> Dict[str, Any]:
        if not data.get("success"):
            raise ToolError(data.get("error") or f"{self.key} reported a failure")
        text = HttpOracle.extract_text(data.get("response"))
        if not text.strip():
            raise ToolError(f"{self.key} returned no copy")

        content = extract_structured(text)
        if content is None or (
            is_empty(content.get("title")) and is_empty(content.get("description"))
        ):
            logger.warning(f"{self.key} reply had no JSON copy, scanning labeled lines")
            content = parse_labeled_copy(text)
        return finalize_copy(content, params)
