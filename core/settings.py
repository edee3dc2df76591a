import os

from dotenv import load_dotenv

primary_env_path = os.path.join(os.path.dirname(__file__), "..", "configs", ".env")
fallback_env_path = os.path.join(os.path.dirname(__file__), "..", ".env")

if os.path.exists(primary_env_path):
    load_dotenv(primary_env_path)
else:
    load_dotenv(fallback_env_path)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        print(f"⚠️ [Settings] Ignoring invalid value for {name}: {raw!r}")
        return default


def _env_int(name: str, default: int) -> int:
    return int(_env_float(name, default))


DATA_DIR = os.getenv("SCOREBOARD_DATA_DIR", "data_cache")
PLUGINS_DIR = os.getenv("SCOREBOARD_PLUGINS_DIR", "plugins")
HOST = os.getenv("SCOREBOARD_HOST", "0.0.0.0")
PORT = _env_int("SCOREBOARD_PORT", 5000)

# Ledger
HISTORY_LIMIT = _env_int("SCOREBOARD_HISTORY_LIMIT", 100)

# Lock chờ tối đa bao lâu trước khi trả lỗi "busy" cho client
LOCK_TIMEOUT_SECONDS = _env_float("SCOREBOARD_LOCK_TIMEOUT", 5.0)
LOCK_RETRY_BASE_DELAY = _env_float("SCOREBOARD_LOCK_RETRY_DELAY", 0.01)
