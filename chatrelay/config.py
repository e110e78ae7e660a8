import os
from typing import Any, ClassVar, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv(".env")


class Settings(BaseModel):
    _instance: ClassVar[Optional["Settings"]] = None

    # Server settings
    host: str = Field(default_factory=lambda: os.getenv("CHATRELAY_HOST", "0.0.0.0"))
    port: int = Field(default_factory=lambda: int(os.getenv("CHATRELAY_PORT", "3000")))

    # Storage settings
    db_path: str = Field(
        default_factory=lambda: os.getenv("CHATRELAY_DB_PATH", "chat.db"),
        description="SQLite file holding the message log"
    )
    upload_dir: str = Field(
        default_factory=lambda: os.getenv("CHATRELAY_UPLOAD_DIR", "uploads"),
        description="Directory where uploaded images are stored"
    )
    static_dir: str = Field(
        default_factory=lambda: os.getenv("CHATRELAY_STATIC_DIR", "public"),
        description="Directory served at / when it exists"
    )
    image_url_prefix: str = Field(default="/uploads", description="URL path uploads are served under")

    # Routing settings
    history_limit: int = Field(default=100, description="Maximum records returned per history request")
    outbound_queue_size: int = Field(
        default_factory=lambda: int(os.getenv("CHATRELAY_OUTBOUND_QUEUE", "1000")),
        description="Pending payloads allowed per connection before drops"
    )

    # Logging settings
    log_level: str = Field(default_factory=lambda: os.getenv("CHATRELAY_LOG_LEVEL", "INFO"))
    log_dir: Optional[str] = Field(default_factory=lambda: os.getenv("CHATRELAY_LOG_DIR") or None)

    def __new__(cls, *args: Any, **kwargs: Any) -> Any:
        if not hasattr(cls, "_instance") or cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        if hasattr(self, "_initialized"):
            return
        super().__init__(*args, **kwargs)
        self._initialized = True

    class Config:
        arbitrary_types_allowed = True


# Create singleton instance
settings = Settings()
