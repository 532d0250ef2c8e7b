import logging

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="INVOICELY_", extra="ignore")

    db_url: str = "sqlite:///invoicely.db"

    default_currency: str = "USD"

    # Line items per page; preview and export target different page sizes.
    preview_page_capacity: int = Field(default=8, ge=1)
    export_page_capacity: int = Field(default=10, ge=1)

    suggestion_limit: int = Field(default=10, ge=1)

    # TrueType files for PDF export; empty keeps the Latin-1 core fonts.
    pdf_font_path: str = ""
    pdf_bold_font_path: str = ""

    log_level: str = "INFO"
    log_json: bool = False


settings = Settings()
