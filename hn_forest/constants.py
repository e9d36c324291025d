"""
Constants and configuration defaults for HN forest resolution.
"""

# Endpoints
HN_API_BASE = "https://hacker-news.firebaseio.com/v0"
HN_ITEM_URL = "https://news.ycombinator.com/item?id={id}"

# Feeds exposed by the Firebase API
STORY_FEEDS = (
    "topstories",
    "newstories",
    "beststories",
    "askstories",
    "showstories",
    "jobstories",
)
DEFAULT_FEED = "topstories"
FRONT_PAGE_SIZE = 100

# Concurrency
EXTERNAL_REQUEST_SEMAPHORE = 10  # Max in-flight item requests per resolver

# HTTP
HTTP_TIMEOUT = 15.0
HTTP_CONNECT_TIMEOUT = 10.0
USER_AGENT = "hn-forest/0.1"

# Age formatting thresholds (hour/day components)
AGE_DAY_HOURS_MIN = 24
AGE_DAY_HOURS_MAX = 48
AGE_DAYS_PLURAL_MIN = 48  # Strictly greater than this uses "days ago"

# Display
DELETED_PLACEHOLDER = "[deleted]"
INDENT_WIDTH = 2
