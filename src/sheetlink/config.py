"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (SHEETLINK__SHEET__ID=1WPO2...)
  2. sheetlink.yaml         (searched in cwd, then platform config dir)
  3. Hardcoded defaults

The config file is optional. All fields except the sheet identity have
sensible defaults, and the sheet can be given as ``sheet.id`` or a full
``sheet.csv_url``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_DEFAULT_DATA_DIR = platformdirs.user_data_dir("sheetlink")
_DEFAULT_DB_PATH = str(Path(_DEFAULT_DATA_DIR) / "records.db")


def _find_config_file() -> str | None:
    """Return the path of the first sheetlink.yaml found, or None."""
    candidates = [
        Path("sheetlink.yaml"),
        Path(platformdirs.user_config_dir("sheetlink")) / "sheetlink.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class SheetSettings(BaseModel):
    id: str = ""
    gid: str | None = None  # Tab within the spreadsheet; first tab when unset
    csv_url: str | None = None  # Explicit export URL; overrides id/gid


class CacheSettings(BaseModel):
    fresh_seconds: float = 5 * 60
    stale_seconds: float = 15 * 60
    persist: bool = False
    db_path: str = _DEFAULT_DB_PATH
    serve_expired_on_error: bool = False

    @model_validator(mode="after")
    def _check_thresholds(self) -> CacheSettings:
        if self.fresh_seconds < 0:
            raise ValueError("cache.fresh_seconds must not be negative")
        if self.stale_seconds < self.fresh_seconds:
            raise ValueError("cache.stale_seconds must be >= cache.fresh_seconds")
        return self


class FetcherSettings(BaseModel):
    timeout_seconds: float = 10.0
    user_agent: str = "sheetlink/1.0"


class RefreshSettings(BaseModel):
    enabled: bool = True
    interval_seconds: float = 4 * 60  # Inside the fresh window so readers rarely see stale
    initial_backoff_seconds: int = 30
    max_backoff_seconds: int = 15 * 60
    max_transient_attempts: int = 6


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8080
    base_url: str = ""  # Used for the "home" links on rendered pages


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class MessageSettings(BaseModel):
    """User-facing strings. Defaults are Korean, matching the public site."""

    lang: str = "ko"
    auth: str = "접근 권한이 없습니다. 관리자에게 문의해 주세요."
    network: str = "인터넷 연결을 확인하고 다시 시도해 주세요."
    data: str = "데이터를 불러오는 중 문제가 발생했습니다. 잠시 후 다시 시도해 주세요."
    service: str = "서비스에 일시적인 문제가 발생했습니다. 잠시 후 다시 시도해 주세요."
    generic: str = "링크를 불러오는 중 문제가 발생했습니다. 다시 시도해 주세요."
    invalid_destination: str = "링크 대상 주소가 올바르지 않습니다. 링크 소유자에게 문의해 주세요."
    not_found_title: str = "페이지를 찾을 수 없습니다"
    not_found_body: str = (
        "찾으시는 단축 URL이 존재하지 않거나 삭제되었을 수 있습니다. URL을 다시 확인해 주세요."
    )
    error_title: str = "문제가 발생했습니다"
    home_label: str = "메인으로 이동"
    retry_label: str = "다시 시도"
    site_name: str = "QR URL Shortener"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: SHEETLINK__CACHE__FRESH_SECONDS=60
        env_prefix="SHEETLINK__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    sheet: SheetSettings = SheetSettings()
    cache: CacheSettings = CacheSettings()
    fetcher: FetcherSettings = FetcherSettings()
    refresh: RefreshSettings = RefreshSettings()
    server: ServerSettings = ServerSettings()
    logging: LoggingSettings = LoggingSettings()
    messages: MessageSettings = MessageSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
