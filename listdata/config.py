import os

def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default

DEFAULT_PAGE_SIZE = _env_int("LISTDATA_DEFAULT_PAGE_SIZE", 20)
MAX_PAGE_SIZE = _env_int("LISTDATA_MAX_PAGE_SIZE", 100)

# rapidfuzz similarity (0-100) a token must reach to count as a fuzzy hit
FUZZY_SCORE_THRESHOLD = _env_int("LISTDATA_FUZZY_SCORE_THRESHOLD", 80)

# derived sort field exposing the relevance score of an active search
SCORE_FIELD = "_score"
