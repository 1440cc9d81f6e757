"""SQLModel table and pydantic schemas for per-domain configuration."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field as PydanticField
from pydantic.alias_generators import to_camel
from sqlmodel import Field, SQLModel

from .config import (
    ImgbedSourceConfig,
    clamp_page_size,
    normalize_data_mode,
    normalize_display_mode,
    normalize_dir_path,
    normalize_random_orientation,
)


class DomainConfigRecord(SQLModel, table=True):
    __tablename__ = "domain_configs"

    domain: str = Field(primary_key=True)
    config_json: str
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ImgbedSettings(BaseModel):
    """Per-domain ImgBed overrides. Empty / None fields inherit config.ini."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    base_url: str = ""
    list_endpoint: str = ""
    random_endpoint: str = ""
    random_orientation: str = ""
    file_route_prefix: str = ""
    api_token: str = ""
    list_dir: str = ""
    preview_dir: str = ""
    default_category: str = ""
    recursive: Optional[bool] = None
    page_size: Optional[int] = None

    @classmethod
    def from_source(cls, source: ImgbedSourceConfig) -> "ImgbedSettings":
        """Fully-defaulted view of an effective source config."""
        return cls(
            base_url=source.base_url,
            list_endpoint=source.list_endpoint,
            random_endpoint=source.random_endpoint,
            random_orientation=source.random_orientation,
            file_route_prefix=source.file_route_prefix,
            api_token=source.api_token,
            list_dir=source.list_dir,
            preview_dir=source.preview_dir,
            default_category=source.default_category,
            recursive=source.recursive,
            page_size=source.page_size,
        )

    def sanitized(self) -> "ImgbedSettings":
        return ImgbedSettings(
            base_url=self.base_url.strip(),
            list_endpoint=self.list_endpoint.strip(),
            random_endpoint=self.random_endpoint.strip(),
            random_orientation=normalize_random_orientation(self.random_orientation),
            file_route_prefix=self.file_route_prefix.strip(),
            api_token=self.api_token.strip(),
            list_dir=normalize_dir_path(self.list_dir),
            preview_dir=normalize_dir_path(self.preview_dir),
            default_category=self.default_category.strip(),
            recursive=self.recursive,
            page_size=None if self.page_size is None else clamp_page_size(self.page_size),
        )

    def overrides(self) -> dict:
        """snake_case mapping for resolve_source_config."""
        return self.model_dump(exclude_none=True)


class DomainSettings(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    display_mode: Optional[str] = None
    shuffle_enabled: Optional[bool] = None
    gallery_data_mode: Optional[str] = None
    gallery_index_url: str = ""
    imgbed: ImgbedSettings = PydanticField(default_factory=ImgbedSettings)

    def sanitized(self) -> "DomainSettings":
        return DomainSettings(
            display_mode=None if self.display_mode is None else normalize_display_mode(self.display_mode),
            shuffle_enabled=self.shuffle_enabled,
            gallery_data_mode=(
                None if self.gallery_data_mode is None else normalize_data_mode(self.gallery_data_mode)
            ),
            gallery_index_url=self.gallery_index_url.strip(),
            imgbed=self.imgbed.sanitized(),
        )

    def public(self) -> dict:
        """camelCase view without the API token."""
        return self.model_dump(by_alias=True, exclude={"imgbed": {"api_token"}})
