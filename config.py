from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from models import DEFAULT_EASINESS, MIN_EASINESS


class Settings(BaseSettings):
    db_path: Path = Path.home() / ".sm2deck" / "sm2deck.db"
    soft_lapse: bool = True     # grade 3 after two or more passes resets the card
    initial_ease: float = Field(default=DEFAULT_EASINESS, ge=MIN_EASINESS)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"
    due_limit: int = Field(default=20, ge=1)

    model_config = {"env_prefix": "SM2DECK_"}

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, value):
        return value.upper() if isinstance(value, str) else value


settings = Settings()
