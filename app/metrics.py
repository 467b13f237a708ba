from prometheus_client import Counter, Histogram

# Webhook deliveries by how they ended (ignored, no chat id, handled...).
UPDATE_TOTAL = Counter(
    "relay_updates_total",
    "Total number of Telegram updates received by the relay",
    ["outcome"],
)

# Command usage by intent and handler outcome.
COMMAND_TOTAL = Counter(
    "relay_commands_total",
    "Total number of relay commands processed",
    ["command", "outcome"],
)

# Outbound sendMessage results.
REPLY_TOTAL = Counter(
    "relay_replies_total",
    "Total number of outbound Telegram messages by delivery status",
    ["status"],
)

# Parent notification requests by outcome.
NOTIFICATION_TOTAL = Counter(
    "parent_notifications_total",
    "Total number of activity alerts requested",
    ["outcome"],
)

# Gemini call latency for /insights.
INSIGHTS_LATENCY = Histogram(
    "insights_latency_seconds",
    "Time spent waiting for the insights completion",
)
