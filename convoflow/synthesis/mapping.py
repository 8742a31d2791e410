"""Vocabulary tables between the oracle's output and canonical intent fields."""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..contracts import Action
from ..params import is_empty

# Canonical IntentRecord field -> field name documented in the oracle prompt.
ORACLE_FIELD_NAMES: Dict[str, str] = {
    "workflow_type": "task_type",
    "action": "next_action",
    "extracted_parameters": "extracted_info",
    "missing_parameters": "missing_info",
    "user_facing_message": "reply",
}

# Oracle field name (or a known variant) -> canonical field. Many-to-one.
FIELD_ALIASES: Dict[str, str] = {
    **{oracle: canonical for canonical, oracle in ORACLE_FIELD_NAMES.items()},
    **{canonical: canonical for canonical in ORACLE_FIELD_NAMES},
    "需求类型": "workflow_type",
    "下一步操作": "action",
    "提取的信息": "extracted_parameters",
    "还需要的信息": "missing_parameters",
    "回复用户": "user_facing_message",
    "workflow": "workflow_type",
    "next_step": "action",
    "all_params": "extracted_parameters",
    "params": "extracted_parameters",
    "parameters": "extracted_parameters",
    "missing_params": "missing_parameters",
    "question": "user_facing_message",
    "response": "user_facing_message",
    "message": "user_facing_message",
}

PARAMETER_ALIASES: Dict[str, str] = {
    "账号": "account",
    "平台": "platform",
    "文件": "video_file",
    "file": "video_file",
    "file_path": "video_file",
    "video": "video_file",
    "标题": "title",
    "描述": "description",
    "链接": "douyin_url",
    "url": "douyin_url",
    "link": "douyin_url",
    "douyin_link": "douyin_url",
    "主题": "topic",
    "风格": "style",
}

ACTION_KEYWORDS: Tuple[Tuple[Action, Tuple[str, ...]], ...] = (
    (Action.START, ("start", "begin", "new task", "开始", "新任务")),
    (Action.CONTINUE, ("continue", "proceed", "继续")),
    (Action.EXECUTE, ("execute", "run", "sufficient", "complete", "ready", "执行", "齐全")),
    (Action.NEED_MORE_INFO, ("ask", "more", "missing", "询问", "更多")),
    (Action.CHAT, ("chat", "conversation", "small talk", "对话", "聊天")),
)

LEGACY_ACTIONS: Dict[str, Action] = {
    "start_workflow": Action.START,
    "continue_workflow": Action.CONTINUE,
    "execute_step": Action.EXECUTE,
    "need_clarification": Action.CLARIFY,
}

_NEGATION = re.compile(r"\b(not|no|never)\b|不|未|缺")

WORKFLOW_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("video_publish", ("publish", "upload", "发布", "上传")),
    ("douyin_content_creation", ("douyin", "download", "抖音", "下载")),
    ("content_generation", ("copywriting", "copy", "caption", "文案")),
)


def contains_keyword(text: str, keyword: str) -> bool:
    """Word-boundary match for ASCII keywords, substring match otherwise."""
    if keyword.isascii():
        return re.search(rf"\b{re.escape(keyword)}\b", text) is not None
    return keyword in text


def _first_match(text: str, groups: Iterable[Tuple[Any, Tuple[str, ...]]]) -> Any:
    for value, keywords in groups:
        if any(contains_keyword(text, kw) for kw in keywords):
            return value
    return None


def normalize_action(value: Any) -> Action:
    """Map free-form action text onto a canonical :class:`Action`.

    Unrecognized values become ``need_more_info`` so nothing executes without
    an explicit signal.
    """
    if isinstance(value, Action):
        return value
    if not value or not isinstance(value, str):
        return Action.NEED_MORE_INFO

    text = value.strip().lower()
    try:
        return Action(text)
    except ValueError:
        pass
    if text in LEGACY_ACTIONS:
        return LEGACY_ACTIONS[text]

    for action, keywords in ACTION_KEYWORDS:
        if action is Action.EXECUTE and _NEGATION.search(text):
            continue
        if any(contains_keyword(text, kw) for kw in keywords):
            return action
    return Action.NEED_MORE_INFO


def match_workflow_keywords(text: Optional[str]) -> Optional[str]:
    """Canonical workflow key suggested by keywords in ``text``, if any."""
    if not text or not isinstance(text, str):
        return None
    return _first_match(text.lower(), WORKFLOW_KEYWORDS)


def classify_workflow_type(value: Any) -> Optional[str]:
    """Keyword-classify a task type; unknown text passes through unchanged."""
    if not value or not isinstance(value, str):
        return None
    return match_workflow_keywords(value) or value.strip()


def canonical_parameter_name(name: str) -> str:
    key = str(name).strip()
    return PARAMETER_ALIASES.get(key, PARAMETER_ALIASES.get(key.lower(), key))


def normalize_parameters(value: Any) -> Dict[str, Any]:
    """Translate parameter names and drop empty values."""
    if not isinstance(value, dict):
        return {}
    params: Dict[str, Any] = {}
    for name, raw in value.items():
        if is_empty(raw):
            continue
        canonical = canonical_parameter_name(name)
        if canonical in params:
            continue
        params[canonical] = raw.strip() if isinstance(raw, str) else raw
    return params


def normalize_missing(value: Any) -> List[str]:
    """Ordered, de-duplicated list of canonical missing parameter names."""
    if isinstance(value, str):
        items = re.split(r"[,，、;；]", value)
    elif isinstance(value, (list, tuple)):
        items = [str(item) for item in value]
    else:
        return []
    missing: List[str] = []
    for item in items:
        if not item.strip():
            continue
        name = canonical_parameter_name(item)
        if name not in missing:
            missing.append(name)
    return missing
