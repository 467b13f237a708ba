"""Constants and configuration values for the StudyBuddy Telegram relay."""

# Firestore Collection Names
COLLECTION_PROFILES = "profiles"
COLLECTION_QUIZ_HISTORY = "quiz_history"
COLLECTION_LINK_CODES = "parent_link_codes"

# Profile fields
FIELD_ROLE = "role"
FIELD_FULL_NAME = "full_name"
FIELD_PARENT_CHAT_ID = "parent_telegram_chat_id"
ROLE_STUDENT = "student"

# Link code fields
FIELD_LINK_USER_ID = "user_id"
FIELD_LINK_EXPIRES_AT = "expires_at"

# Quiz history projection used for the insights digest
QUIZ_INSIGHT_FIELDS = ["subject", "score", "total_questions", "topics", "created_at"]

# App Configuration
APP_NAME = "studybuddy_relay"
DEFAULT_DATABASE = "(default)"

# Commands
COMMAND_MY_ID = "/myid"
COMMAND_STATS = "/stats"
COMMAND_INSIGHTS = "/insights"
COMMAND_START = "/start"

# Limits
INSIGHTS_HISTORY_LIMIT = 20
LINK_CODE_LENGTH = 6
MAX_LINK_CODE_LENGTH = 32
LINK_CODE_TTL_MINUTES = 15
MAX_SUMMARY_LENGTH = 3000

# Timeouts (seconds)
DEFAULT_DATA_STORE_TIMEOUT = 10
DEFAULT_INSIGHTS_TIMEOUT = 30
DEFAULT_SEND_TIMEOUT = 10

# Telegram
TELEGRAM_MAX_MESSAGE_LENGTH = 4096
PARSE_MODE_HTML = "HTML"

# Rate Limiting
RATE_LIMIT_NOTIFY = "30/minute"
RATE_LIMIT_LINK_CODES = "10/minute"

# Model Configuration
DEFAULT_MODEL = "gemini-2.5-flash"

# Parent notification event types
EVENT_QUIZ_COMPLETE = "quiz_complete"
EVENT_PRACTICE_COMPLETE = "practice_complete"

EVENT_EMOJI = {
    EVENT_QUIZ_COMPLETE: "📝",
    EVENT_PRACTICE_COMPLETE: "💡",
}
DEFAULT_EVENT_EMOJI = "📚"

# Preflight headers for the browser-facing notification endpoint
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}
