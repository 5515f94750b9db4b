import os
import re
from dataclasses import dataclass

from dotenv import find_dotenv, load_dotenv


# Load environment variables with .env, .env.dev/.env.prod support
def _load_env_files() -> None:
    """
    Load .env files with this precedence:
    1) Base .env (if present)
    2) Explicit file via ENV_FILE (e.g., .env.dev or ./config/.env.prod)
    3) Environment-specific file inferred from ENVIRONMENT/ENV/PYTHON_ENV
        - Supports aliases like dev/development, prod/production, stage/staging
    Note: Existing OS environment variables are never overridden.
    """
    base_path = find_dotenv(".env", usecwd=True)
    if base_path:
        load_dotenv(base_path, override=False)

    explicit = os.environ.get("ENV_FILE")
    if explicit:
        explicit_path = explicit if os.path.isabs(explicit) else find_dotenv(explicit, usecwd=True)
        if explicit_path:
            load_dotenv(explicit_path, override=False)
            return

    env_name = (
        os.environ.get("ENVIRONMENT") or os.environ.get("ENV") or os.environ.get("PYTHON_ENV")
    )
    if env_name:
        slug = str(env_name).strip().lower()
        alias = {
            "dev": "development",
            "prod": "production",
            "stg": "staging",
            "test": "test",
        }
        resolved = alias.get(slug, slug)
        for candidate in (f".env.{resolved}", f".env.{slug}"):
            path = find_dotenv(candidate, usecwd=True)
            if path:
                load_dotenv(path, override=False)
                break


_load_env_files()


def _get_int_env(var_name: str, default_value: int) -> int:
    """
    Parse an integer environment variable robustly.
    - Trims whitespace and trailing semicolons.
    - Falls back to the first integer found in the string.
    - Returns the provided default if parsing fails.
    """
    raw = os.environ.get(var_name, str(default_value))
    text = str(raw).strip().rstrip(";")
    try:
        return int(text)
    except ValueError:
        match = re.search(r"[-+]?\d+", text or "")
        if match:
            return int(match.group(0))
    return int(default_value)


def _get_float_env(var_name: str, default_value: float) -> float:
    """Same contract as _get_int_env, for decimal values."""
    raw = os.environ.get(var_name, str(default_value))
    text = str(raw).strip().rstrip(";")
    try:
        return float(text)
    except ValueError:
        match = re.search(r"[-+]?\d+(?:\.\d+)?", text or "")
        if match:
            return float(match.group(0))
    return float(default_value)


# === Environment Configuration ===
ENVIRONMENT = os.environ.get("ENVIRONMENT", "development")  # development, staging, production

# === Server Configuration ===
SERVER_HOST = os.environ.get("SERVER_HOST", "0.0.0.0")
SERVER_PORT = _get_int_env("SERVER_PORT", 8060)
DEBUG = os.environ.get("DEBUG", "true").lower() == "true"
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()


# === CORS Configuration ===
def _get_cors_origins() -> list[str]:
    """
    Return CORS origins from env or a safe default.
    Example env format:
      CORS_ORIGINS="http://localhost:3060,http://127.0.0.1:3060,https://yourdomain.com"
    """
    raw = os.environ.get("CORS_ORIGINS", "").strip()
    if not raw:
        return ["*"]
    return [o.strip() for o in raw.split(",") if o.strip()]


CORS_ORIGINS = _get_cors_origins()

# === Database Configuration ===
# Without MONGODB_URI the API runs against the in-memory store.
MONGODB_URI = os.environ.get("MONGODB_URI")
DATABASE_NAME = os.environ.get("DATABASE_NAME", "hangout_planner")

# Store write/read policy
STORE_TIMEOUT_SECONDS = _get_float_env("STORE_TIMEOUT_SECONDS", 5.0)
STORE_RETRY_ATTEMPTS = _get_int_env("STORE_RETRY_ATTEMPTS", 3)
STORE_RETRY_BASE_DELAY = _get_float_env("STORE_RETRY_BASE_DELAY", 0.2)

# === Google Maps / Places ===
GOOGLE_MAPS_API_KEY = os.environ.get("GOOGLE_MAPS_API_KEY")
PLACES_TIMEOUT_SECONDS = _get_float_env("PLACES_TIMEOUT_SECONDS", 8.0)
PLACES_PHOTO_MAX_WIDTH = _get_int_env("PLACES_PHOTO_MAX_WIDTH", 400)
MAX_NEARBY_TYPES = _get_int_env("MAX_NEARBY_TYPES", 4)

# === Geocoding (OpenStreetMap Nominatim) ===
NOMINATIM_URL = os.environ.get("NOMINATIM_URL", "https://nominatim.openstreetmap.org")
NOMINATIM_USER_AGENT = os.environ.get("NOMINATIM_USER_AGENT", "HangoutPlanner/1.0")
GEOCODING_TIMEOUT_SECONDS = _get_float_env("GEOCODING_TIMEOUT_SECONDS", 5.0)

# === AI/LLM ===
OPEN_AI_API_KEY = os.environ.get("OPEN_AI_API_KEY") or os.environ.get("OPENAI_API_KEY")
OPEN_AI_MODEL = os.environ.get("OPEN_AI_MODEL", "gpt-4o-mini")
LLM_TIMEOUT_SECONDS = _get_float_env("LLM_TIMEOUT_SECONDS", 30.0)

# === Recommendation engine ===
BUDGET_TIER_STEP = _get_float_env("BUDGET_TIER_STEP", 500.0)  # currency units per tier
MAX_TRAVEL_TIME_MINUTES = _get_int_env("MAX_TRAVEL_TIME_MINUTES", 45)
ITINERARY_TARGET_ITEMS = _get_int_env("ITINERARY_TARGET_ITEMS", 3)
MAX_ITINERARIES = _get_int_env("MAX_ITINERARIES", 5)
MAX_HUBS = _get_int_env("MAX_HUBS", 4)
MIN_CANDIDATE_SCORE = _get_float_env("MIN_CANDIDATE_SCORE", 0.3)
SPREAD_THRESHOLD_KM = _get_float_env("SPREAD_THRESHOLD_KM", 5.5)
CLUSTER_RADIUS_KM = _get_float_env("CLUSTER_RADIUS_KM", 4.0)
DISTANCE_HORIZON_KM = _get_float_env("DISTANCE_HORIZON_KM", 10.0)
AVERAGE_SPEED_KMH = _get_float_env("AVERAGE_SPEED_KMH", 20.0)
DEFAULT_LEG_MINUTES = _get_int_env("DEFAULT_LEG_MINUTES", 10)
CACHE_MAX_ENTRIES = _get_int_env("CACHE_MAX_ENTRIES", 1024)  # per lookup cache


@dataclass(frozen=True)
class ScoringWeights:
    """Relative weight of each scoring dimension. Normalized before use."""

    distance: float = 0.3
    tag_match: float = 0.4
    rating: float = 0.2
    budget: float = 0.1

    def normalized(self) -> "ScoringWeights":
        total = self.distance + self.tag_match + self.rating + self.budget
        if total <= 0:
            return ScoringWeights()
        return ScoringWeights(
            distance=self.distance / total,
            tag_match=self.tag_match / total,
            rating=self.rating / total,
            budget=self.budget / total,
        )


SCORING_WEIGHTS = ScoringWeights(
    distance=_get_float_env("SCORE_WEIGHT_DISTANCE", 0.3),
    tag_match=_get_float_env("SCORE_WEIGHT_TAG_MATCH", 0.4),
    rating=_get_float_env("SCORE_WEIGHT_RATING", 0.2),
    budget=_get_float_env("SCORE_WEIGHT_BUDGET", 0.1),
)

# === Application Settings ===
APP_NAME = "Hangout Planner API"
APP_VERSION = "1.0.0"
