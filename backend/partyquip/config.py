import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")

    # CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Reverse proxy / IP headers
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    # Socket.IO ("" picks eventlet or threading by platform)
    SOCKETIO_ASYNC_MODE = os.environ.get("SOCKETIO_ASYNC_MODE", "").strip()

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Question bank (JSON array of strings); built-in prompts are used when unset
    QUESTIONS_PATH = os.environ.get("QUESTIONS_PATH", "")

    # Game
    TOTAL_ROUNDS = int(os.environ.get("TOTAL_ROUNDS", "3"))
    ROUND_DURATION_SEC = int(os.environ.get("ROUND_DURATION_SEC", "60"))
    VOTE_STEP_TIMEOUT_SEC = int(os.environ.get("VOTE_STEP_TIMEOUT_SEC", "30"))
    NEXT_ROUND_DELAY_SEC = int(os.environ.get("NEXT_ROUND_DELAY_SEC", "5"))

    # Room runner
    RUN_ROOM_TASKS = os.environ.get("RUN_ROOM_TASKS", "1") == "1"
    ROOM_TICK_SEC = float(os.environ.get("ROOM_TICK_SEC", "0.25"))
    # Empty rooms are dropped after this long without activity (0 keeps them)
    ROOM_IDLE_TTL_SEC = int(os.environ.get("ROOM_IDLE_TTL_SEC", "300"))
