"""Reply texts sent by the relay. All use Telegram's HTML parse mode."""
import html

WHO_AM_I = (
    "🆔 Your Telegram Chat ID is: <b>{chat_id}</b>\n\n"
    "Add this to your deployment secrets as ADMIN_TELEGRAM_CHAT_ID."
)

DATA_STORE_NOT_CONFIGURED = (
    "⚠️ Bot is being updated. Please set GOOGLE_CLOUD_PROJECT "
    "(and Firestore credentials) in the deployment secrets."
)

STATS = (
    "📊 <b>StudyBuddy Global Stats</b>\n\n"
    "👨‍🎓 Total Students: <b>{students}</b>\n"
    "📝 Quizzes Completed: <b>{quizzes}</b>\n\n"
    "Monitoring is <b>ACTIVE</b>."
)

TRY_AGAIN_LATER = "❌ <b>Connection Error</b>\nPlease try again later."

INSIGHTS_WORKING = "🤖 Analyzing recent student data with Gemini AI..."
INSIGHTS_NO_DATA = "❌ No quiz history found to analyze."
INSIGHTS_NO_CREDENTIAL = "⚠️ GEMINI_API_KEY is not set in the deployment secrets."
INSIGHTS_PROVIDER_ERROR = "⚠️ <b>AI Service Error</b>\n\nStatus: {status}\nMessage: {message}"
INSIGHTS_EMPTY = "🤖 Gemini returned empty results."
INSIGHTS_BANNER = "🚀 <b>STUDYBUDDY AI INSIGHTS</b>\n\n"

LINK_INSTRUCTIONS = (
    "👋 <b>Welcome to StudyBuddy!</b>\n\n"
    "To link your student's account:\n"
    "1. Open the app\n"
    "2. Go to <b>Profile</b> → <b>Parent Notifications</b>\n"
    "3. Send the 6-digit code here as: /start CODE"
)
LINK_INVALID = "❌ <b>Invalid or Expired Code</b>\nPlease generate a new code in the app."
LINK_FAILED = TRY_AGAIN_LATER
LINK_SUCCESS = (
    "✅ <b>Success!</b>\n"
    "You are now linked. You will receive real-time updates on your student's progress."
)

ACTIVITY_ALERT = "{emoji} <b>ACTIVITY ALERT</b>\n\n{summary}"
GLOBAL_MONITOR = "🚨 <b>GLOBAL MONITOR</b> 🚨\nStudent: <b>{student}</b>\n\n{alert}"

INSIGHTS_SYSTEM_INSTRUCTION = """You are an expert Educational Data Analyst and AI Assistant.
Analyze this student performance data: {data}

STRICT FORMATTING RULES:
1. Use <b>BOLD HEADERS</b> for each section.
2. Use bullet points (•) for all observations.
3. Use <b>BOLD</b> text for key metrics, subjects, or critical warnings.
4. Keep it professional, structured, and concise.
5. NO conversational filler.
6. IMPORTANT: Use HTML tags for formatting: <b>bold</b>, <i>italic</i>.
   DO NOT use markdown symbols like * or _.

SECTIONS TO INCLUDE:
* <b>PERFORMANCE TRENDS</b>: Summarize overall status.
* <b>TOP PRIORITY TOPICS</b>: Key areas for focus.
* <b>STRATEGIC RECOMMENDATION</b>: One high-impact strategy."""


def provider_error(status, message) -> str:
    """Format the AI error digest; the provider message is escaped for HTML."""
    return INSIGHTS_PROVIDER_ERROR.format(
        status=status,
        message=html.escape(str(message or "Unknown error")),
    )
