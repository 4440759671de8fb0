import os
from pathlib import Path

from appdirs import AppDirs

import abirpc

# Environment variables
ABIRPC_ENVVAR_USER_LOG_DIR = "ABIRPC_USER_LOG_DIR"
ABIRPC_EVENTS_THROTTLE_MAX_BLOCKS = "ABIRPC_EVENTS_THROTTLE_MAX_BLOCKS"

# User Application Filepaths
APP_DIR = AppDirs(abirpc.__title__, abirpc.__author__)
USER_LOG_DIR = Path(os.getenv(ABIRPC_ENVVAR_USER_LOG_DIR, default=APP_DIR.user_log_dir))
DEFAULT_LOG_FILENAME = "abirpc.log"
DEFAULT_JSON_LOG_FILENAME = "abirpc.json"
