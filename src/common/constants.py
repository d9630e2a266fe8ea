"""Shared constants for the memento application.

For environment-based configuration (database path, API settings, etc.), use the env module:
    from common.env import env
    db_path = env.database_path()
"""

from pathlib import Path

# Data directories
DATA_DIR = Path("./data")
DATABASE_PATH = DATA_DIR / "memento.db"

# Life-log calendar dates and the default status window are computed in this zone.
# Life-log dates ignore the viewing user's own timezone preference.
REFERENCE_TIMEZONE = "America/Los_Angeles"

# Summary label the source attaches to its generated daily documents
DAILY_INSIGHTS_LABEL = "Daily insights"

# Hour (local) when the source has finished generating the previous day's document
SYNC_WINDOW_HOUR = 7

# Extracted bullet items this short or shorter are treated as parsing artifacts
MIN_ITEM_LENGTH = 10

# Theme descriptions taken from free paragraphs are clipped to this length
MAX_THEME_DESCRIPTION = 500

# Incremental sync safety buffers
INSIGHTS_SYNC_BUFFER_HOURS = 1
LIFELOGS_SYNC_BUFFER_HOURS = 2

# Lookbacks used when a user has never synced successfully
INSIGHTS_FIRST_SYNC_DAYS = 2
LIFELOGS_FIRST_SYNC_DAYS = 3

# Life-log categories, in keyword-matching priority order
SEGMENT_KEYWORDS: dict[str, tuple[str, ...]] = {
    "meeting": ("meeting", "call", "zoom", "conference"),
    "conversation": ("conversation", "chat", "talk", "discussion"),
    "work": ("work", "coding", "development", "project"),
    "break": ("break", "lunch", "meal", "coffee"),
}
DEFAULT_SEGMENT_TYPE = "general"

# Section headers the extraction engine already understands.
# Anything else showing up as a "## Header" is a discovery candidate.
KNOWN_SECTIONS: tuple[str, ...] = (
    "Daily Narrative & Highlights",
    "Key Follow-Ups",
    "Commitment Tracker",
    "Red Flags & Recurring Loops",
    "Memorable Exchanges",
    "Knowledge Nuggets",
    "Idea Sandbox",
    "Ideas to Explore",
    "Decision Log",
    "Strategic Decisions Made",
    "Open Questions to Resolve",
    "Unresolved Questions",
    "Top Highlights",
    "Recurring Theme",
)
