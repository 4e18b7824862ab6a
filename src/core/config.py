"""
Configuration constants and environment setup.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from models.events import Category

load_dotenv()

# =============================================================================
# PATHS
# =============================================================================

PROJECT_ROOT = Path(__file__).parent.parent.parent
DB_PATH = PROJECT_ROOT / "data" / "db" / "diary-requests.db"
OUTPUT_DIR = PROJECT_ROOT / "output"

# =============================================================================
# CALENDAR CONFIGURATION
# =============================================================================

CALENDAR_MAP = {
    Category.PROD: "Actual Diary - Prod",
    Category.NONPROD: "Actual Diary - Nonprod",
    Category.ADMIN: "Actual Diary - Admin/Rest/Routine",
}

HIGHLIGHTS_CALENDAR = "Highlights"

HIGHLIGHT_EMOJI = {
    "highlight": "⭐",
    "milestone": "🎯",
    "achievement": "🏆",
    "memory": "💭",
}

CATEGORY_LABELS = {
    Category.PROD: "Productive",
    Category.NONPROD: "Non-productive",
    Category.ADMIN: "Admin/Rest",
}

# =============================================================================
# CATEGORY KEYWORDS
# =============================================================================

# Scored by keyword length, so multi-word phrases outweigh generic words
DEFAULT_CATEGORY_KEYWORDS = {
    Category.PROD: (
        # Work
        "work", "working", "coding", "code review", "programming", "meeting",
        "team", "call with", "project", "task", "email", "presentation",
        "review", "planning", "design", "develop", "debugging", "testing",
        "deploy", "standup", "stand-up", "sync", "interview", "client",
        "deadline", "sprint", "documentation", "deep work",
        # Learning
        "study", "studying", "learning", "course", "tutorial", "reading",
        "research", "class", "lecture", "workshop", "training", "practice",
        "lesson", "homework", "assignment",
        # Exercise
        "gym", "workout", "exercise", "running", "jogging", "yoga",
        "meditation", "swimming", "cycling", "hiking", "fitness", "sports",
        # Creative
        "writing", "blog", "article", "building",
    ),
    Category.NONPROD: (
        "netflix", "youtube", "movie", "tv", "show", "watching", "streaming",
        "gaming", "game", "playing", "video game",
        "friends", "hanging out", "party", "drinks", "bar", "social",
        "chatting", "texting", "scrolling", "browsing", "social media",
        "instagram", "twitter", "tiktok", "facebook", "reddit",
        "chill", "leisure", "fun", "entertainment", "hobby", "vacation",
        "shopping", "mall", "procrastinat",
    ),
    Category.ADMIN: (
        # Routine
        "sleep", "woke up", "wake up", "bed", "nap", "rest",
        "breakfast", "lunch", "dinner", "eating", "meal", "food", "cooking",
        "shower", "bath", "getting ready", "morning routine", "routine",
        # Commute
        "commute", "driving", "transit", "bus", "train", "subway", "uber",
        "taxi", "heading to",
        # Chores
        "cleaning", "laundry", "dishes", "groceries", "errand", "chores",
        "housework", "tidying",
        # Admin
        "appointment", "doctor", "dentist", "bank", "bills", "paperwork",
        "admin", "waiting", "queue",
        # Breaks
        "break", "coffee break", "lunch break", "pause",
    ),
}


@dataclass(frozen=True)
class DiaryConfig:
    """Tables the core algorithms read, passed in rather than imported."""

    calendar_map: dict = field(default_factory=lambda: dict(CALENDAR_MAP))
    keywords: dict = field(default_factory=lambda: dict(DEFAULT_CATEGORY_KEYWORDS))
    highlights_calendar: str = HIGHLIGHTS_CALENDAR


# =============================================================================
# TIME CONFIGURATION
# =============================================================================

DEFAULT_TIME_ZONE = os.environ.get("DIARY_TIME_ZONE", "America/Denver")
LOOKBACK_DAYS = int(os.environ.get("DIARY_LOOKBACK_DAYS", "7"))
MAX_RANGE_DAYS = 365
FETCH_CONCURRENCY = int(os.environ.get("DIARY_FETCH_CONCURRENCY", "3"))
MAX_EVENTS_PER_QUERY = 500

# =============================================================================
# MS GRAPH CREDENTIALS (from environment)
# =============================================================================

GRAPH_TENANT_ID = os.environ.get("MICROSOFT_GRAPH_TENANT_ID", "")
GRAPH_APP_ID = os.environ.get("MICROSOFT_GRAPH_APP_ID", "")
GRAPH_CLIENT_SECRET = os.environ.get("MICROSOFT_GRAPH_CLIENT_SECRET", "")
DIARY_USER_ID = os.environ.get("DIARY_USER_ID", "")

# =============================================================================
# API CONFIGURATION
# =============================================================================

API_HOST = os.environ.get("API_HOST", "0.0.0.0")
API_PORT = int(os.environ.get("API_PORT", "8000"))
API_DEBUG = os.environ.get("API_DEBUG", "false").lower() == "true"
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
API_VERSION = "1.2.0"
SERVER_NAME = "diary-analyzer"
PROTOCOL_VERSION = "2024-11-05"
