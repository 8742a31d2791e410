"""ParameterSynthesizer tests against a scripted oracle."""

import pytest

from convoflow.catalog.workflows import DOUYIN_CONTENT_CREATION
from convoflow.constants import GENERIC_CLARIFICATION
from convoflow.contracts import Action
from convoflow.synthesis import ParameterSynthesizer, build_prompt, parse_oracle_text


@pytest.mark.asyncio
async def test_structured_reply_with_prompt_field_names(oracle):
    oracle.queue(
        {
            "task_type": "video_publish",
            "next_action": "ask for more information",
            "extracted_info": {"account": "alice", "platform": ""},
            "missing_info": ["platform", "file"],
            "reply": "Which platform?",
            "reasoning": "account given only",
        }
    )
    record = await ParameterSynthesizer(oracle).synthesize("post my video as alice")

    assert record.action is Action.NEED_MORE_INFO
    assert record.workflow_type == "video_publish"
    assert record.extracted_parameters == {"account": "alice"}
    assert record.missing_parameters == ["platform", "video_file"]
    assert record.user_facing_message == "Which platform?"
    assert record.extra == {"reasoning": "account given only"}


@pytest.mark.asyncio
async def test_chinese_field_names(oracle):
    oracle.queue(
        {
            "需求类型": "抖音内容下载",
            "下一步操作": "开始新任务",
            "提取的信息": {"链接": "https://v.douyin.com/abc/", "主题": "旅行"},
            "还需要的信息": [],
            "回复用户": "好的，开始下载",
        }
    )
    record = await ParameterSynthesizer(oracle).synthesize("下载这个抖音视频并写旅行文案")

    assert record.action is Action.START
    assert record.workflow_type == "douyin_content_creation"
    assert record.extracted_parameters == {
        "douyin_url": "https://v.douyin.com/abc/",
        "topic": "旅行",
    }


@pytest.mark.asyncio
async def test_object_embedded_in_prose(oracle):
    oracle.queue('Sure! ```json\n{"next_action": "chat", "reply": "Hi there"}\n``` hope it helps')
    record = await ParameterSynthesizer(oracle).synthesize("hey")
    assert record.action is Action.CHAT
    assert record.user_facing_message == "Hi there"


@pytest.mark.asyncio
async def test_unstructured_reply_uses_fallback(oracle):
    oracle.queue("The user wants to publish; title: Summer trip")
    record = await ParameterSynthesizer(oracle).synthesize("publish it")
    assert record.action is Action.NEED_MORE_INFO
    assert record.workflow_type == "video_publish"
    assert record.extracted_parameters == {"title": "Summer trip"}


@pytest.mark.asyncio
async def test_oracle_failure_becomes_clarification(oracle):
    oracle.queue(RuntimeError("connection refused"))
    record = await ParameterSynthesizer(oracle).synthesize("anything")
    assert record.action is Action.CLARIFY
    assert record.user_facing_message == GENERIC_CLARIFICATION


@pytest.mark.asyncio
async def test_user_text_links_supplement_oracle_output(oracle):
    oracle.queue({"next_action": "continue", "extracted_info": {}})
    record = await ParameterSynthesizer(oracle).synthesize(
        "here you go https://v.douyin.com/iRNBho6/"
    )
    assert record.extracted_parameters == {"douyin_url": "https://v.douyin.com/iRNBho6/"}


@pytest.mark.asyncio
async def test_oracle_value_is_not_overridden_by_user_text(oracle):
    oracle.queue({"next_action": "continue", "extracted_info": {"video_file": "/a/b.mp4"}})
    record = await ParameterSynthesizer(oracle).synthesize("use ./other.mp4")
    assert record.extracted_parameters == {"video_file": "/a/b.mp4"}


@pytest.mark.asyncio
async def test_prompt_carries_context(oracle):
    oracle.queue({"next_action": "chat"})
    await ParameterSynthesizer(oracle, task_types=["video_publish"]).synthesize(
        "go on",
        workflow=DOUYIN_CONTENT_CREATION,
        step_index=1,
        collected={"douyin_url": "https://v.douyin.com/x/"},
    )
    prompt = oracle.prompts[0]
    assert 'User said: "go on"' in prompt
    assert DOUYIN_CONTENT_CREATION.name in prompt
    assert "Step 2/2" in prompt
    assert "topic" in prompt
    assert "https://v.douyin.com/x/" in prompt
    assert "video_publish" in prompt


def test_prompt_without_workflow_documents_fields():
    prompt = build_prompt("hello")
    assert "no task is in progress" in prompt
    for field in ("task_type", "next_action", "extracted_info", "missing_info", "reply"):
        assert field in prompt


def test_parsing_is_idempotent():
    text = 'ok {"next_action": "execute", "extracted_info": {"topic": "food"}, "x": 1}'
    assert parse_oracle_text(text) == parse_oracle_text(text)
    assert parse_oracle_text("gibberish") == parse_oracle_text("gibberish")
