import os

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "voting_test_db"),
}

VOTE_SALT = "test-salt"

APPEAL_WINDOW_DAYS = 7
APPEAL_RATE_LIMIT = 2
APPEAL_RATE_WINDOW_DAYS = 30
MAX_VOTE_MODIFICATIONS = 3

DEBUG = False
TESTING = True

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
