# chatrelay/core/config.py
import os
from typing import List
from dotenv import load_dotenv

DEFAULT_ROOMS = "general,melodic-techno,ambient,house,drum-and-bass"


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings:
    """
    Setup environment variables.
        - HOST / PORT the address uvicorn binds to
        - CHAT_ROOMS comma-separated, closed set of room names
        - HISTORY_LIMIT how many chat messages each room keeps for replay
        - SEND_TIMEOUT_SECONDS upper bound for a single recipient send
        - SEND_QUEUE_SIZE how many outbound messages may wait per connection
        - PUBLIC_DIR directory with the client application's static assets
        - CORS_ORIGINS comma-separated allowed origins ("*" for any)
    """

    # Load environment variables from the .env file
    load_dotenv()

    def __init__(self) -> None:
        self.HOST: str = os.getenv("HOST", "0.0.0.0")
        self.PORT: int = int(os.getenv("PORT", "3000"))
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

        self.CHAT_ROOMS: List[str] = _split_csv(os.getenv("CHAT_ROOMS", DEFAULT_ROOMS))
        self.HISTORY_LIMIT: int = int(os.getenv("HISTORY_LIMIT", "100"))
        self.SEND_TIMEOUT_SECONDS: float = float(os.getenv("SEND_TIMEOUT_SECONDS", "5"))
        self.SEND_QUEUE_SIZE: int = int(os.getenv("SEND_QUEUE_SIZE", "1000"))

        self.PUBLIC_DIR: str = os.getenv("PUBLIC_DIR", "public")
        self.CORS_ORIGINS: List[str] = _split_csv(os.getenv("CORS_ORIGINS", "*"))


settings = Settings()
