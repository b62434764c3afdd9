"""Application configuration."""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Base directories
BASE_DIR = Path(__file__).resolve().parent
OUTPUT_DIR = Path(os.getenv("OUTPUT_DIR", str(BASE_DIR / "output")))
ASSETS_DIR = BASE_DIR / "assets"
BGM_PATH = os.getenv("PATH_BGM", str(ASSETS_DIR / "music" / "default_bgm.mp3"))

# Ensure directories exist
OUTPUT_DIR.mkdir(parents=True, exist_ok=True)

# Server settings
HOST = "0.0.0.0"
PORT = int(os.getenv("PORT", "8000"))
CORS_ORIGINS = ["http://localhost:5173", "http://127.0.0.1:5173", "http://localhost:3000"]

# LLM settings
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
OPENAI_TEMPERATURE = 0.7
OPENAI_MAX_TOKENS = 2000

# Script settings
SCRIPT_LANG = os.getenv("SCRIPT_LANG", "ja")
DEFAULT_STYLE = "ghibli"
MAX_HTML_CHARS = 2_000_000  # characters of HTML handed to the parser
MAX_EXTRACTED_CHARS = 3000  # characters kept from the page text
MAX_PROMPT_CHARS = 2000  # characters of page text embedded in the prompt

# External tool
MULMO_COMMAND = os.getenv("MULMO_COMMAND", "mulmo")

# Job settings (fixed, not configurable)
SWEEP_INTERVAL = 60 * 60  # seconds between registry sweeps
JOB_RETENTION = 24 * 60 * 60  # seconds a job record is kept
PROGRESS_INTERVAL = 1.0  # seconds between progress stream pushes
SHUTDOWN_TIMEOUT = 5.0  # seconds to wait for running jobs on shutdown
