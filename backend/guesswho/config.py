import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")

    # CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Reverse proxy / IP headers
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    # Game
    ROUND_DURATION_SEC = int(os.environ.get("ROUND_DURATION_SEC", "60"))
    NEXT_CHOOSER_DELAY_SEC = float(os.environ.get("NEXT_CHOOSER_DELAY_SEC", "3"))
    CHARACTERS_PER_SET = int(os.environ.get("CHARACTERS_PER_SET", "20"))
    ROOM_CODE_LENGTH = int(os.environ.get("ROOM_CODE_LENGTH", "6"))
    MIN_PLAYERS = int(os.environ.get("MIN_PLAYERS", "2"))

    # Timers and delayed transitions are skipped under TESTING unless enabled.
    ENABLE_SCHEDULER_IN_TESTS = os.environ.get("ENABLE_SCHEDULER_IN_TESTS", "0") == "1"
