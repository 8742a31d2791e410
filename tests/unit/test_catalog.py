import pytest

from convoflow.catalog import WorkflowCatalog, normalize_key
from convoflow.contracts import StepDefinition, WorkflowDefinition


def test_lookup_by_key_id_name_and_synonym(catalog):
    expected = catalog.lookup("douyin_content_creation")
    assert expected is not None
    for alias in (
        "douyin-content-creation",
        "Douyin content download and copywriting",
        "douyin",
        "  DOUYIN_DOWNLOAD ",
        "抖音内容下载与文案生成",
    ):
        assert catalog.lookup(alias) is expected, alias


def test_unknown_workflow_is_none(catalog):
    assert catalog.lookup("weather_report") is None
    assert catalog.lookup("") is None
    assert catalog.lookup(None) is None
    assert "weather_report" not in catalog
    assert "video-publish" in catalog


def test_builtin_workflow_shapes(catalog):
    douyin = catalog.lookup("douyin_content_creation")
    assert [s.id for s in douyin.steps] == ["download_content", "generate_content"]
    assert douyin.steps[0].required_params == ("douyin_url",)
    assert douyin.data_flow["download_content.file_name"] == "source_file"

    publish = catalog.lookup("video_publish")
    assert publish.steps[0].required_params == (
        "account",
        "platform",
        "video_file",
        "title",
        "description",
    )
    assert publish.steps[0].accepted_params == publish.steps[0].required_params
    assert len(catalog) == 3


def test_tool_keys(catalog):
    assert catalog.tool_keys() == {"douyin-downloader", "content-generator", "video-publisher"}


def test_normalize_key():
    assert normalize_key(" Video-Publish ") == "video_publish"
    assert normalize_key("upload  video") == "upload_video"


def _workflow(key, synonyms=()):
    step = StepDefinition(id="s", name="S", tool="t")
    return WorkflowDefinition(key=key, id=key, name=key, steps=(step,), synonyms=synonyms)


def test_conflicting_aliases_rejected():
    with pytest.raises(ValueError):
        WorkflowCatalog([_workflow("one", synonyms=("shared",)), _workflow("two", synonyms=("shared",))])


def test_duplicate_keys_rejected():
    with pytest.raises(ValueError):
        WorkflowCatalog([_workflow("one"), _workflow("one")])
