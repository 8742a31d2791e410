"""Deterministic keyword/pattern scan used when the oracle returns no structure."""

from __future__ import annotations

import re
from typing import Dict

from ..constants import GENERIC_CLARIFICATION
from ..contracts import Action, IntentRecord
from .mapping import match_workflow_keywords

DOUYIN_URL_RE = re.compile(r"https?://(?:[\w-]+\.)*douyin\.com/[^\s\"'<>，。]+")
VIDEO_PATH_RE = re.compile(
    r"(?:[A-Za-z]:\\|~?[./])[\w/.\\-]*\.(?:mp4|mov|avi|mkv|webm)\b", re.IGNORECASE
)
GREETING_RE = re.compile(r"\b(hello|hi|hey|what can you do)\b|你好|能做什么", re.IGNORECASE)

# parameter -> (labels, value pattern)
LABELED_FIELDS = {
    "title": (("title", "标题"), r"[^\n,，。;；]+"),
    "description": (("description", "desc", "描述"), r"[^\n]+"),
    "topic": (("topic", "主题"), r"[^\n,，。;；]+"),
    "account": (("account", "账号"), r"[^\s,，。;；]+"),
    "platform": (("platform", "平台"), r"[^\s,，。;；]+"),
}

GREETING_REPLY = (
    "Hello! I can download Douyin content and write copy for it, generate copy "
    "on a topic, or publish a video. What would you like to do?"
)


def _labeled_value(text: str, labels, value_pattern: str) -> str | None:
    alternatives = "|".join(re.escape(label) for label in labels)
    pattern = re.compile(
        rf"(?<![A-Za-z])(?:{alternatives})\s*(?:[:：]|\bis\b|是)\s*[\"'“]?(?P<value>{value_pattern})",
        re.IGNORECASE,
    )
    match = pattern.search(text)
    if not match:
        return None
    value = match.group("value").strip().strip("\"'”")
    return value or None


def extract_high_precision_parameters(text: str) -> Dict[str, str]:
    """Parameters recognizable by unambiguous shape alone (links, file paths)."""
    params: Dict[str, str] = {}
    if match := DOUYIN_URL_RE.search(text):
        params["douyin_url"] = match.group(0).rstrip(".,)")
    if match := VIDEO_PATH_RE.search(text):
        params["video_file"] = match.group(0)
    return params


def extract_parameters(text: str) -> Dict[str, str]:
    params = extract_high_precision_parameters(text)
    for name, (labels, value_pattern) in LABELED_FIELDS.items():
        value = _labeled_value(text, labels, value_pattern)
        if value:
            params[name] = value
    return params


def fallback_intent(text: str) -> IntentRecord:
    """Best-effort intent record from unstructured text.

    Pure and deterministic: the same text always yields an equal record. The
    result never asks for execution; at most it reports what was found and
    asks for the rest.
    """
    text = str(text or "")
    params = extract_parameters(text)
    workflow_type = match_workflow_keywords(text)

    if GREETING_RE.search(text) and not params:
        return IntentRecord(action=Action.CHAT, user_facing_message=GREETING_REPLY)

    if params or workflow_type:
        if params:
            message = f"Noted {', '.join(sorted(params))}. Please provide the remaining details."
        else:
            message = "Please provide the details needed for this task."
        return IntentRecord(
            action=Action.NEED_MORE_INFO,
            workflow_type=workflow_type,
            extracted_parameters=params,
            user_facing_message=message,
        )

    return IntentRecord(action=Action.CLARIFY, user_facing_message=GENERIC_CLARIFICATION)
