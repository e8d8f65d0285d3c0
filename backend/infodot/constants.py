"""
InfoDot Global Constants

Centralized location for system-wide constants used across the application.
"""

from datetime import datetime, timezone


def get_current_timestamp() -> datetime:
    """Get current timestamp with UTC timezone."""
    return datetime.now(timezone.utc)


# Application Constants
APP_NAME = "InfoDot"
APP_VERSION = "1.0.0"

# Cache tags shared by the named reads and the invalidation hooks
TAG_QUESTIONS = "questions"
TAG_SOLUTIONS = "solutions"
TAG_USERS = "users"
TAG_POPULAR = "popular"
TAG_RECENT = "recent"
TAG_TAGS = "tags"
TAG_TRENDING = "trending"

ALL_QUERY_TAGS = (
    TAG_QUESTIONS,
    TAG_SOLUTIONS,
    TAG_USERS,
    TAG_POPULAR,
    TAG_RECENT,
    TAG_TRENDING,
    TAG_TAGS,
)

# Broadcast channels (prefix is added by the broadcaster)
QUESTIONS_CHANNEL = "questions"
QUESTION_CHANNEL_TEMPLATE = "question.{question_id}"

# Polymorphic target types for likes and comments
TARGET_QUESTION = "question"
TARGET_ANSWER = "answer"
TARGET_SOLUTION = "solution"
TARGET_TYPES = (TARGET_QUESTION, TARGET_ANSWER, TARGET_SOLUTION)

DURATION_TYPES = ("hours", "days", "weeks", "months", "years", "infinite")
