import os

# Persisted file next to the package unless overridden
DB_PATH = os.environ.get(
    "PIEPARTY_DB_PATH",
    os.path.join(os.path.dirname(__file__), "pieparty.sqlite"),
)

# Unset means admin routes are disabled
ADMIN_PASSPHRASE = os.environ.get("PIEPARTY_ADMIN_PASSPHRASE", "")

EVENT_NAME = os.environ.get("PIEPARTY_EVENT_NAME", "Pie Party")

LOG_LEVEL = os.environ.get("PIEPARTY_LOG_LEVEL", "INFO").upper()
LOG_DIR = os.environ.get("PIEPARTY_LOG_DIR", "")

# RSVP pie type caps
PIE_TYPE_CAPS = {
    "sweet": 12,
    "savory": 12,
}

MAX_GUESTS = 10
