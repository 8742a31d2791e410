"""Built-in workflow definitions."""

from __future__ import annotations

from ..contracts import StepDefinition, ValidationRule, WorkflowDefinition

DOUYIN_URL_PATTERN = r"^https?://[^/\s]*douyin\.com/\S+"

DOWNLOAD_CONTENT = StepDefinition(
    id="download_content",
    name="Download Douyin content",
    description="Download the video or audio behind a Douyin link",
    tool="douyin-downloader",
    required_params=("douyin_url",),
    optional_params=("output_format",),
    validation={
        "douyin_url": ValidationRule(
            kind="url",
            pattern=DOUYIN_URL_PATTERN,
            message="please provide a valid Douyin link",
        )
    },
    expected_outputs=("type",),
)

GENERATE_CONTENT = StepDefinition(
    id="generate_content",
    name="Generate copy",
    description="Write copy about a topic, optionally based on downloaded content",
    tool="content-generator",
    required_params=("topic",),
    optional_params=("style", "length", "keywords", "source_file", "content_type"),
    validation={
        "topic": ValidationRule(
            kind="string",
            min_length=2,
            max_length=50,
            message="please provide a topic of 2-50 characters",
        )
    },
    expected_outputs=("title", "description"),
)

PUBLISH_VIDEO = StepDefinition(
    id="publish_video",
    name="Publish video",
    description="Upload a local video file to a social platform account",
    tool="video-publisher",
    required_params=("account", "platform", "video_file", "title", "description"),
    validation={
        "video_file": ValidationRule(
            kind="path",
            pattern=r"\.(mp4|mov|avi|mkv|webm)$",
            message="please provide the path of a video file",
        )
    },
)

DOUYIN_CONTENT_CREATION = WorkflowDefinition(
    key="douyin_content_creation",
    id="douyin-content-creation",
    name="Douyin content download and copywriting",
    description="Download Douyin video/audio content and generate related copy",
    category="content",
    steps=(DOWNLOAD_CONTENT, GENERATE_CONTENT),
    synonyms=(
        "douyin",
        "douyin_download",
        "douyin_content",
        "content_creation",
        "抖音内容下载与文案生成",
    ),
    data_flow={
        "download_content.file_name": "source_file",
        "download_content.type": "content_type",
    },
)

VIDEO_PUBLISH = WorkflowDefinition(
    key="video_publish",
    id="video-publish",
    name="Video publishing",
    description="Publish an existing video to a social platform",
    category="publish",
    steps=(PUBLISH_VIDEO,),
    synonyms=("publish", "publish_video", "upload_video", "视频发布"),
)

CONTENT_GENERATION = WorkflowDefinition(
    key="content_generation",
    id="content-generation",
    name="Copy generation",
    description="Generate copy about a topic",
    category="content",
    steps=(GENERATE_CONTENT,),
    synonyms=("copywriting", "generate_copy", "文案生成"),
)

BUILTIN_WORKFLOWS = (DOUYIN_CONTENT_CREATION, VIDEO_PUBLISH, CONTENT_GENERATION)
