"""Default values shared across convoflow components."""

DEFAULT_MAX_SESSIONS = 100
DEFAULT_IDLE_TIMEOUT = 30 * 60  # seconds
DEFAULT_SWEEP_INTERVAL = 5 * 60  # seconds
DEFAULT_HISTORY_LIMIT = 50

DEFAULT_ORACLE_URL = "http://127.0.0.1:3212/api/llm"
DEFAULT_ORACLE_TIMEOUT = 30.0
DEFAULT_ORACLE_RETRIES = 2

# Upper bound on one tool invocation when the tool sets no timeout of its own.
DEFAULT_TOOL_TIMEOUT = 60.0

# Progress reported by the executor around a tool call.
PROGRESS_STARTED = 10
PROGRESS_DONE = 100

GENERIC_CLARIFICATION = (
    "Please tell me what you would like to do. I can download Douyin content, "
    "generate copy, or publish a video."
)
