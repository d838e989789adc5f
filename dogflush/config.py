from pydantic import BaseModel
from dotenv import load_dotenv
import os
import socket

load_dotenv()  # loads .env if present

DEFAULT_ENDPOINT = "https://api.datadoghq.com/api/v1"


class Settings(BaseModel):
    api_key: str | None = os.getenv("DD_API_KEY")
    app_key: str | None = os.getenv("DD_APP_KEY")
    hostname: str | None = os.getenv("DD_HOSTNAME")
    endpoint: str = os.getenv("DD_API_ENDPOINT", DEFAULT_ENDPOINT)
    flush_interval_s: float = float(os.getenv("DOGFLUSH_FLUSH_INTERVAL", "15"))
    hosttag_interval_s: float = float(os.getenv("DOGFLUSH_HOSTTAG_INTERVAL", "30"))
    upload_timeout_s: float = float(os.getenv("DOGFLUSH_UPLOAD_TIMEOUT", "5"))
    upload_attempts: int = int(os.getenv("DOGFLUSH_UPLOAD_ATTEMPTS", "1"))

    def resolved_hostname(self) -> str:
        return self.hostname or socket.gethostname()

settings = Settings()
