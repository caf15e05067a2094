import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

REPO_ROOT = Path(__file__).resolve().parents[1]
REPORTS_DIR = Path(os.environ.get("REPORTS_DIR", REPO_ROOT / "reports"))
LOG_PATH = REPORTS_DIR / "track-log.txt"
LOG_RETENTION_DAYS = 14

LML_API_URL = os.environ.get("LML_API_URL", "https://api.lml.live/gigs/query")
LML_TIMEOUT = float(os.environ["LML_TIMEOUT"]) if os.environ.get("LML_TIMEOUT") else None

LOCATIONS = ["melbourne", "goldfields"]
DEFAULT_LOCATION = os.environ.get("DEFAULT_LOCATION", "melbourne")

WEEKS_PAST = int(os.environ.get("WEEKS_PAST", "10"))
WEEKS_FUTURE = int(os.environ.get("WEEKS_FUTURE", "6"))

# Weeks run Monday 04:00 to Monday 04:00 so late Sunday shows stay in their week
WEEK_START_WEEKDAY = int(os.environ.get("WEEK_START_WEEKDAY", "0"))
WEEK_START_HOUR = int(os.environ.get("WEEK_START_HOUR", "4"))
TIMEZONE = os.environ.get("TIMEZONE", "Australia/Melbourne")
CURRENT_WEEK_LABEL = "This week"

# "skip": a failed week contributes nothing and fetching continues
# "abort": stop at the first failed week and keep what was fetched
ON_WEEK_ERROR = os.environ.get("ON_WEEK_ERROR", "skip").lower()
ON_WEEK_ERROR_CHOICES = ("skip", "abort")

REQUIRED_FIELDS = ["id", "date", "venue"]

OWNERS_CSV_URL = os.environ.get("OWNERS_CSV_URL")
OWNERS_ID_COLUMN = os.environ.get("OWNERS_ID_COLUMN", "id")
OWNERS_OWNER_COLUMN = os.environ.get("OWNERS_OWNER_COLUMN", "owner")
UNKNOWN_OWNER = "Unknown"

SIMILARITY_THRESHOLD = int(os.environ.get("SIMILARITY_THRESHOLD", "85"))
