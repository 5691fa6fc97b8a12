import logging
from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DEFAULT_FORM_TITLE: str = "Untitled Form"
    PHONE_PATTERN: str = r"^\+[0-9]{1,3} [0-9]{4,14}$"
    MAX_UPLOAD_SIZE: int = 1073741824  # Default: 1GB in bytes
    # "flag" reports dangling or cyclic conditions, "reject" refuses the edit
    CONDITIONAL_REFERENCE_POLICY: Literal["flag", "reject"] = "flag"
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_prefix = "FORMS_"
        extra = "ignore"


settings = Settings()


def setup_logging(level=None) -> logging.Logger:
    """Attach a console handler to the package logger."""
    logger = logging.getLogger("formengine")
    logger.setLevel(level or settings.LOG_LEVEL)

    if not logger.handlers:
        console_handler = logging.StreamHandler()
        formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger
