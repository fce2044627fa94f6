"""
Constants for Local History.

Configuration keys, their defaults and the on-disk naming of the history store.
"""

CONFIG_SECTION = "local-history"

HISTORY_DIRNAME = ".history"

# Enabled modes: Never=0, Always=1, WorkspaceOnly=2
DEFAULT_ENABLED = 1
DEFAULT_PATH = ""
DEFAULT_ABSOLUTE = False
DEFAULT_DAYS_LIMIT = 30
DEFAULT_SAVE_DELAY = 0
DEFAULT_MAX_DISPLAY = 10

DEFAULT_EXCLUDE = [
    "**/.history/**",
    "**/.vscode/**",
    "**/node_modules/**",
    "**/typings/**",
    "**/out/**",
    "**/Code/User/**",
]

DEFAULTS = {
    "enabled": DEFAULT_ENABLED,
    "exclude": DEFAULT_EXCLUDE,
    "path": DEFAULT_PATH,
    "absolute": DEFAULT_ABSOLUTE,
    "daysLimit": DEFAULT_DAYS_LIMIT,
    "saveDelay": DEFAULT_SAVE_DELAY,
    "maxDisplay": DEFAULT_MAX_DISPLAY,
    "dateLocale": "",
}

TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"

# Purge runs at most once per store within this window (seconds)
PURGE_INTERVAL = 60 * 60
