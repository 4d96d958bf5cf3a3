import os
import logging
from pathlib import Path
from dotenv import load_dotenv

log = logging.getLogger("config")

BASE_DIR = Path(__file__).resolve().parent
ENV_PATH = BASE_DIR / ".env"

load_dotenv(dotenv_path=ENV_PATH, override=True)
DB_PATH = os.getenv("DB_PATH", "./data/mockprep.sqlite3")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "http://localhost:11434/v1")
DEFAULT_MODEL = os.getenv("DEFAULT_MODEL", "qwen2.5:7b-instruct")
OPENAI_API_URL = os.getenv("OPENAI_API_URL", "https://api.openai.com/v1")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4.1")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")

QUIZ_QUESTION_COUNT = int(os.getenv("QUIZ_QUESTION_COUNT", "10"))

LOG_DIR = os.getenv("LOG_DIR", "logs")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

WEB_SESSION_SECRET = os.getenv("WEB_SESSION_SECRET", "")
ENV = os.getenv("ENV", "").lower()
IS_PROD = ENV == "prod"
HOST = os.getenv("HOST", "127.0.0.1")
PORT = int(os.getenv("PORT", "8000"))

log.debug("BASE_DIR=%s", BASE_DIR)
log.debug("ENV_PATH=%s exists=%s", ENV_PATH, ENV_PATH.exists())
log.debug("DB_PATH=%s", DB_PATH)
log.debug("OPENAI_BASE_URL=%s", OPENAI_BASE_URL)
log.debug("DEFAULT_MODEL=%s", DEFAULT_MODEL)
log.debug("OPENAI_KEY_LEN=%s", len(OPENAI_API_KEY or ""))
log.debug("QUIZ_QUESTION_COUNT=%s", QUIZ_QUESTION_COUNT)


LLM_PROVIDER = os.getenv("LLM_PROVIDER", "local")

GROQ_API_KEY = os.getenv("GROQ_API_KEY", "")
GROQ_BASE_URL = os.getenv("GROQ_BASE_URL", "https://api.groq.com/openai/v1")
GROQ_MODEL = os.getenv("GROQ_MODEL", "llama-3.1-8b-instant")
