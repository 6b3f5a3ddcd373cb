"""Fixed defaults shared across the planner, compiler and tracker."""

# Sanitizer limits
MAX_STEPS = 20
MAX_MISSING_INPUTS = 10
MAX_NOTES = 12
WORKFLOW_NAME_MAX_CHARS = 200
DESCRIPTION_MAX_CHARS = 500
PURPOSE_MAX_CHARS = 240
HINT_KEY_MAX_CHARS = 100
HINT_VALUE_MAX_CHARS = 200
FIELD_MAX_CHARS = 120
QUESTION_MAX_CHARS = 240
NOTE_MESSAGE_MAX_CHARS = 280
RAW_EXCERPT_MAX_CHARS = 220

DEFAULT_WORKFLOW_NAME = "Untitled Workflow"
DEFAULT_WORKFLOW_DESCRIPTION = "Generated workflow plan"
DEFAULT_STEP_PURPOSE = "Execute this workflow step."

# Compiler defaults
DEFAULT_CATEGORY = "automation"
DEFAULT_INTERVAL_SECONDS = 300
DEFAULT_DURATION_SECONDS = 86_400
DEFAULT_CRON_EXPRESSION = "*/5 * * * *"
DEFAULT_STALE_AFTER_SECONDS = 3600
NODE_BASE_X = 280
NODE_SPACING_X = 260

# Tracker defaults
SINGLE_EXECUTION_POLL_SECONDS = 5.0
SCHEDULED_POLL_SECONDS = 30.0
ACTION_DURATION_HEURISTIC_SECONDS = 10.0
DEFAULT_SIGNING_BASE_URL = "https://flowforge.app"

# Outbound calls
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_ATTEMPTS = 2
DEFAULT_RETRY_BASE_DELAY = 1.0
PLANNER_RETRY_BASE_DELAY = 1.2

USER_MESSAGE_MAX_CHARS = 300
