import os
from pathlib import Path

from .constants import DATA_DIR, DB_FILE_NAME, LOG_DIR

BASE_DIR = Path(__file__).resolve().parent
DATA_PATH = BASE_DIR / DATA_DIR
DB_PATH = Path(os.getenv("SHOP_LEDGER_DB", str(DATA_PATH / DB_FILE_NAME)))
LOG_PATH = Path(os.getenv("SHOP_LEDGER_LOG_DIR", str(DATA_PATH / LOG_DIR)))

# ensure data dir exists early
DB_PATH.parent.mkdir(parents=True, exist_ok=True)
