"""
Configuration management for the Transcript Insights backend.
Loads configuration from environment variables and .env file.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
# Look for .env file in the backend directory or project root
BACKEND_DIR = Path(__file__).parent.parent
PROJECT_ROOT = BACKEND_DIR.parent
ENV_FILE = PROJECT_ROOT / ".env"

# Load .env file if it exists
if ENV_FILE.exists():
    load_dotenv(ENV_FILE)
else:
    # Also try loading from backend directory
    backend_env = BACKEND_DIR / ".env"
    if backend_env.exists():
        load_dotenv(backend_env)

# Base paths
BASE_DIR = PROJECT_ROOT
DATA_DIR = Path(os.getenv("DATA_DIR", str(BASE_DIR / "data")))
DB_PATH = Path(os.getenv("DB_PATH", str(DATA_DIR / "insights.db")))
PROMPTS_DIR = BACKEND_DIR / "prompts"

# Ensure directories exist
DATA_DIR.mkdir(parents=True, exist_ok=True)

# AI provider configuration
DEFAULT_MODEL = os.getenv("DEFAULT_MODEL", "google/gemini-1.5-flash")
OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", None)
DEEPSEEK_BASE_URL = os.getenv("DEEPSEEK_BASE_URL", "https://api.deepseek.com/v1")
DEEPSEEK_API_KEY = os.getenv("DEEPSEEK_API_KEY", None)
GEMINI_BASE_URL = os.getenv("GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta")
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", None)
AI_REQUEST_TIMEOUT = float(os.getenv("AI_REQUEST_TIMEOUT", "300"))  # seconds

# LLM settings (can be overridden via env vars)
LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.3"))
LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "1000"))

# Processing optimization
MAX_CONCURRENT_REQUESTS = int(os.getenv("MAX_CONCURRENT_REQUESTS", "10"))

# Cost settings
DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "USD")
COST_APPROVAL_THRESHOLD = float(os.getenv("COST_APPROVAL_THRESHOLD", "0.05"))  # USD

# Chunking configuration
CHARS_PER_TOKEN = 4  # rough average for English text
CHUNK_MAX_TOKENS = int(os.getenv("CHUNK_MAX_TOKENS", "8000"))
CHUNK_OVERLAP_TOKENS = int(os.getenv("CHUNK_OVERLAP_TOKENS", "200"))
CHAPTER_MARKER_PATTERN = os.getenv("CHAPTER_MARKER_PATTERN", r"^# \[\d{2}:\d{2}:\d{2}\].*$")

# YouTube Data API quota configuration
YOUTUBE_API_KEY = os.getenv("YOUTUBE_API_KEY", None)
YOUTUBE_API_BASE_URL = os.getenv("YOUTUBE_API_BASE_URL", "https://www.googleapis.com/youtube/v3")
YOUTUBE_QUOTA_LIMIT = int(os.getenv("YOUTUBE_QUOTA_LIMIT", "10000"))  # units per day
QUOTA_WARNING_THRESHOLD = float(os.getenv("QUOTA_WARNING_THRESHOLD", "0.8"))

# Cache TTLs in seconds
CACHE_TTL_DEFAULT = int(os.getenv("CACHE_TTL_DEFAULT", "3600"))  # 1 hour
CACHE_TTL_SEARCH = int(os.getenv("CACHE_TTL_SEARCH", str(24 * 3600)))
CACHE_TTL_CHANNEL_INFO = int(os.getenv("CACHE_TTL_CHANNEL_INFO", str(24 * 3600)))
CACHE_TTL_VIDEOS = int(os.getenv("CACHE_TTL_VIDEOS", str(6 * 3600)))
CACHE_TTL_VIDEO_DETAILS = int(os.getenv("CACHE_TTL_VIDEO_DETAILS", str(24 * 3600)))
ACTION_RESULT_TTL = int(os.getenv("ACTION_RESULT_TTL", str(24 * 3600)))
CACHE_MAX_SIZE = int(os.getenv("CACHE_MAX_SIZE", "100"))

# Quota cost per request type (YouTube Data API v3 units)
QUOTA_COST_SEARCH = 100
QUOTA_COST_CHANNEL_INFO = 1
QUOTA_COST_VIDEO_INFO = 1

# Responses faster than this are flagged as possibly cached (advisory only)
POSSIBLY_CACHED_MS = int(os.getenv("POSSIBLY_CACHED_MS", "500"))

# API configuration
API_V1_PREFIX = "/api/v1"
# CORS origins can be comma-separated list in env var
CORS_ORIGINS_STR = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:3001")
CORS_ORIGINS = [origin.strip() for origin in CORS_ORIGINS_STR.split(",")]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
