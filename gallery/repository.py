"""Data access layer for per-domain configuration.

Stored documents only hold what an admin explicitly set; everything else is
inherited from config.ini when the effective configuration is resolved.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from pydantic import ValidationError
from sqlmodel import Session

from .config import AppConfig, ImgbedSourceConfig, resolve_source_config
from .logging_config import get_logger
from .models import DomainConfigRecord, DomainSettings, ImgbedSettings

logger = get_logger(__name__)

STORAGE_BACKEND = "sqlite"


@dataclass
class ResolvedDomainConfig:
    domain: str
    settings: DomainSettings
    existed: bool

    @property
    def data_mode(self) -> str:
        return self.settings.gallery_data_mode or "static"


class ConfigRepository:
    """Reads and writes DomainConfigRecord rows. Callers control commits."""

    def __init__(self, session: Session):
        self.session = session

    def commit(self) -> None:
        self.session.commit()

    def get(self, domain: str) -> Optional[DomainSettings]:
        record = self.session.get(DomainConfigRecord, domain)
        if record is None:
            return None
        try:
            return DomainSettings.model_validate_json(record.config_json)
        except ValidationError as exc:
            logger.warning(f"Ignoring unreadable stored config for {domain}: {exc}")
            return None

    def save(self, domain: str, settings: DomainSettings) -> DomainSettings:
        clean = settings.sanitized()
        payload = clean.model_dump_json(by_alias=True)
        record = self.session.get(DomainConfigRecord, domain)
        if record is None:
            record = DomainConfigRecord(domain=domain, config_json=payload)
        else:
            record.config_json = payload
            record.updated_at = datetime.now(timezone.utc)
        self.session.add(record)
        self.session.flush()
        return clean


def resolve_domain_config(repo: ConfigRepository, domain: str, config: AppConfig) -> ResolvedDomainConfig:
    """Stored settings merged over the config.ini defaults, every field filled."""
    found = repo.get(domain)
    stored = found or DomainSettings()
    defaults = config.gallery
    source = resolve_source_config(domain, config.imgbed, [stored.imgbed.overrides()])

    merged = DomainSettings(
        display_mode=stored.display_mode or defaults.display_mode,
        shuffle_enabled=(
            defaults.shuffle_enabled if stored.shuffle_enabled is None else stored.shuffle_enabled
        ),
        gallery_data_mode=stored.gallery_data_mode or defaults.data_mode,
        gallery_index_url=stored.gallery_index_url or defaults.index_url,
        imgbed=ImgbedSettings.from_source(source),
    )
    return ResolvedDomainConfig(domain=domain, settings=merged, existed=found is not None)


def source_config_for(
    resolved: ResolvedDomainConfig,
    config: AppConfig,
    override: Optional[ImgbedSettings] = None,
) -> ImgbedSourceConfig:
    # resolved imgbed settings are already fully defaulted
    layers = [resolved.settings.imgbed.overrides()]
    if override is not None:
        layers.append(override.sanitized().overrides())
    return resolve_source_config(resolved.domain, config.imgbed, layers)
