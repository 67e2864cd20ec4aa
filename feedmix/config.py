import os
from dotenv import load_dotenv
from pathlib import Path

# Go up one level from feedmix/ to root/
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DB_FILE = os.getenv("DB_FILE", "feedmix.db")
PREFS_CACHE_FILE = os.getenv("PREFS_CACHE_FILE", "feedmix_prefs_cache.json")

# Admin CRUD gate; empty means the admin routes fail closed
ADMIN_API_KEY = os.getenv("ADMIN_API_KEY", "")

DEFAULT_FEED_LIMIT = int(os.getenv("DEFAULT_FEED_LIMIT", "50"))
MAX_FEED_LIMIT = int(os.getenv("MAX_FEED_LIMIT", "200"))
