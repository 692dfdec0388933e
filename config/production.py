import os

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "voting_db"),
}

VOTE_SALT = os.getenv("VOTE_SALT", "please-set-VOTE_SALT")

APPEAL_WINDOW_DAYS = int(os.getenv("APPEAL_WINDOW_DAYS", "7"))
APPEAL_RATE_LIMIT = int(os.getenv("APPEAL_RATE_LIMIT", "2"))
APPEAL_RATE_WINDOW_DAYS = int(os.getenv("APPEAL_RATE_WINDOW_DAYS", "30"))
MAX_VOTE_MODIFICATIONS = int(os.getenv("MAX_VOTE_MODIFICATIONS", "3"))

DEBUG = False

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
