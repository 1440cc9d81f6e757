"""Config management for the gallery indexer.

Reads `config.ini` from DATA_DIR (beside main.py unless overridden).
The `[imgbed]` section supplies the defaults that every per-domain
configuration is merged over; `resolve_source_config` turns those layers into
the effective, normalized configuration a pipeline run consumes.
"""

from __future__ import annotations

import configparser
import dataclasses
import os
import pathlib
import sys
from typing import Any, Iterable, Mapping, Optional

from .errors import ConfigError
from .logging_config import get_logger

logger = get_logger(__name__)


def _get_project_root() -> pathlib.Path:
    if getattr(sys, "frozen", False):
        return pathlib.Path(sys.executable).resolve().parent
    return pathlib.Path(__file__).resolve().parents[1]


PROJECT_ROOT = _get_project_root()

# DATA_DIR holds all persistent state (config.ini, gallery.db, gallery.log).
DATA_DIR = pathlib.Path(os.environ.get("DATA_DIR", str(PROJECT_ROOT)))
DEFAULT_CONFIG_PATH = DATA_DIR / "config.ini"

DEFAULT_LIST_ENDPOINT = "/api/manage/list"
DEFAULT_RANDOM_ENDPOINT = "/random"
DEFAULT_FILE_ROUTE_PREFIX = "/file"
DEFAULT_PREVIEW_DIR = "0_preview"
DEFAULT_CATEGORY = "uncategorized"
DEFAULT_PAGE_SIZE = 200
MAX_PAGE_SIZE = 500
VALID_RANDOM_ORIENTATIONS = {"", "auto", "landscape", "portrait", "square"}
GALLERY_DATA_MODES = ("static", "imgbed-api")
DISPLAY_MODES = ("fullscreen", "waterfall")


@dataclasses.dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8080


@dataclasses.dataclass
class ImgbedConfig:
    """Site-wide ImgBed defaults, used when a domain leaves a field empty."""

    base_url: str = ""
    list_endpoint: str = DEFAULT_LIST_ENDPOINT
    random_endpoint: str = DEFAULT_RANDOM_ENDPOINT
    random_orientation: str = ""
    file_route_prefix: str = DEFAULT_FILE_ROUTE_PREFIX
    api_token: str = ""
    list_dir: str = ""
    preview_dir: str = DEFAULT_PREVIEW_DIR
    default_category: str = DEFAULT_CATEGORY
    recursive: bool = True
    page_size: int = DEFAULT_PAGE_SIZE
    timeout_seconds: float = 30.0


@dataclasses.dataclass
class GallerySettings:
    data_mode: str = "static"
    index_url: str = ""
    display_mode: str = "fullscreen"
    shuffle_enabled: bool = True
    cache_ttl_seconds: float = 60.0
    output_file: str = "gallery-index.json"


@dataclasses.dataclass
class AdminConfig:
    """Secret used to verify admin session tokens. Empty disables admin routes."""

    session_secret: str = ""

    @property
    def enabled(self) -> bool:
        return bool(self.session_secret.strip())


@dataclasses.dataclass
class AppConfig:
    server: ServerConfig
    imgbed: ImgbedConfig
    gallery: GallerySettings
    admin: AdminConfig

    @property
    def database_path(self) -> pathlib.Path:
        return DATA_DIR / "gallery.db"

    @property
    def server_host(self) -> str:
        return self.server.host

    @property
    def server_port(self) -> int:
        return self.server.port


@dataclasses.dataclass(frozen=True)
class ImgbedSourceConfig:
    """Effective configuration of one pipeline run.

    Every field that can change the produced index lives here, which is what
    makes it usable as a cache signature.
    """

    domain: str
    base_url: str
    list_endpoint: str = DEFAULT_LIST_ENDPOINT
    random_endpoint: str = DEFAULT_RANDOM_ENDPOINT
    random_orientation: str = ""
    file_route_prefix: str = DEFAULT_FILE_ROUTE_PREFIX
    api_token: str = ""
    list_dir: str = ""
    preview_dir: str = DEFAULT_PREVIEW_DIR
    default_category: str = DEFAULT_CATEGORY
    recursive: bool = True
    page_size: int = DEFAULT_PAGE_SIZE

    def require(self, *, token: bool = True) -> None:
        """Raise ConfigError when the config cannot drive a listing run."""
        if not self.base_url:
            raise ConfigError(
                "ImgBed base URL is not configured (imgbed.baseUrl).",
                code="missing-imgbed-base-url",
            )
        if token and not self.api_token:
            raise ConfigError(
                "ImgBed API token is not configured (imgbed.apiToken).",
                code="missing-imgbed-token",
            )


def parse_bool(value: Any, default: bool) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


def clamp_page_size(value: Any, default: int = DEFAULT_PAGE_SIZE) -> int:
    """Clamp to [1, MAX_PAGE_SIZE]; non-numeric input falls back to default."""
    try:
        number = int(float(value))
    except (TypeError, ValueError):
        return default
    return min(max(number, 1), MAX_PAGE_SIZE)


def normalize_dir_path(value: Any) -> str:
    return str(value or "").strip().strip("/")


def normalize_random_orientation(value: Any) -> str:
    normalized = str(value or "").strip().lower()
    return normalized if normalized in VALID_RANDOM_ORIENTATIONS else ""


def normalize_data_mode(value: Any) -> str:
    return "imgbed-api" if str(value or "").strip().lower() == "imgbed-api" else "static"


def normalize_display_mode(value: Any) -> str:
    return "waterfall" if str(value or "").strip().lower() == "waterfall" else "fullscreen"


def resolve_source_config(
    domain: str,
    defaults: ImgbedConfig,
    overrides: Iterable[Optional[Mapping[str, Any]]] = (),
) -> ImgbedSourceConfig:
    """Merge override layers (later wins) over defaults and normalize.

    Empty strings and None in an override never replace an earlier value.
    Keys are the snake_case field names of ImgbedConfig.
    """
    merged: dict[str, Any] = dataclasses.asdict(defaults)
    for layer in overrides:
        if not layer:
            continue
        for key, value in layer.items():
            if key not in merged or value is None:
                continue
            if isinstance(value, str) and not value.strip():
                continue
            merged[key] = value

    return ImgbedSourceConfig(
        domain=domain,
        base_url=str(merged["base_url"] or "").strip(),
        list_endpoint=str(merged["list_endpoint"] or "").strip() or DEFAULT_LIST_ENDPOINT,
        random_endpoint=str(merged["random_endpoint"] or "").strip() or DEFAULT_RANDOM_ENDPOINT,
        random_orientation=normalize_random_orientation(merged["random_orientation"]),
        file_route_prefix=str(merged["file_route_prefix"] or "").strip() or DEFAULT_FILE_ROUTE_PREFIX,
        api_token=str(merged["api_token"] or "").strip(),
        list_dir=normalize_dir_path(merged["list_dir"]),
        preview_dir=normalize_dir_path(merged["preview_dir"]) or DEFAULT_PREVIEW_DIR,
        default_category=str(merged["default_category"] or "").strip() or DEFAULT_CATEGORY,
        recursive=parse_bool(merged["recursive"], True),
        page_size=clamp_page_size(merged["page_size"]),
    )


def load_config(config_path: Optional[pathlib.Path] = None) -> AppConfig:
    """Load configuration from config.ini.

    Defaults to `config.ini` in DATA_DIR.
    """
    path = config_path or DEFAULT_CONFIG_PATH
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    parser = configparser.ConfigParser(interpolation=None)
    parser.read(path, encoding="utf-8")

    server = ServerConfig(
        host=parser.get("server", "host", fallback="0.0.0.0"),
        port=parser.getint("server", "port", fallback=8080),
    )

    imgbed = ImgbedConfig(
        base_url=parser.get("imgbed", "base_url", fallback="").strip(),
        list_endpoint=parser.get("imgbed", "list_endpoint", fallback=DEFAULT_LIST_ENDPOINT).strip(),
        random_endpoint=parser.get("imgbed", "random_endpoint", fallback=DEFAULT_RANDOM_ENDPOINT).strip(),
        random_orientation=normalize_random_orientation(
            parser.get("imgbed", "random_orientation", fallback="")
        ),
        file_route_prefix=parser.get(
            "imgbed", "file_route_prefix", fallback=DEFAULT_FILE_ROUTE_PREFIX
        ).strip(),
        api_token=parser.get("imgbed", "api_token", fallback="").strip(),
        list_dir=normalize_dir_path(parser.get("imgbed", "list_dir", fallback="")),
        preview_dir=normalize_dir_path(
            parser.get("imgbed", "preview_dir", fallback=DEFAULT_PREVIEW_DIR)
        ) or DEFAULT_PREVIEW_DIR,
        default_category=parser.get("imgbed", "default_category", fallback=DEFAULT_CATEGORY).strip()
        or DEFAULT_CATEGORY,
        recursive=parse_bool(parser.get("imgbed", "recursive", fallback="true"), True),
        page_size=clamp_page_size(parser.get("imgbed", "page_size", fallback=str(DEFAULT_PAGE_SIZE))),
        timeout_seconds=parser.getfloat("imgbed", "timeout_seconds", fallback=30.0),
    )

    gallery = GallerySettings(
        data_mode=normalize_data_mode(parser.get("gallery", "data_mode", fallback="static")),
        index_url=parser.get("gallery", "index_url", fallback="").strip(),
        display_mode=normalize_display_mode(parser.get("gallery", "display_mode", fallback="fullscreen")),
        shuffle_enabled=parse_bool(parser.get("gallery", "shuffle_enabled", fallback="true"), True),
        cache_ttl_seconds=parser.getfloat("gallery", "cache_ttl_seconds", fallback=60.0),
        output_file=parser.get("gallery", "output_file", fallback="gallery-index.json").strip()
        or "gallery-index.json",
    )

    admin = AdminConfig(
        session_secret=parser.get("admin", "session_secret", fallback="").strip(),
    )

    return AppConfig(server=server, imgbed=imgbed, gallery=gallery, admin=admin)


_cached_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Return the cached config singleton. Loads from disk on first call."""
    global _cached_config
    if _cached_config is None:
        _cached_config = load_config()
    return _cached_config


def write_default_config(config_path: pathlib.Path, base_url: str = "", api_token: str = "") -> None:
    """Write a config.ini populated with defaults."""
    parser = configparser.ConfigParser(interpolation=None)
    parser["server"] = {"host": "0.0.0.0", "port": "8080"}
    parser["imgbed"] = {
        "base_url": base_url,
        "api_token": api_token,
        "list_endpoint": DEFAULT_LIST_ENDPOINT,
        "random_endpoint": DEFAULT_RANDOM_ENDPOINT,
        "random_orientation": "",
        "file_route_prefix": DEFAULT_FILE_ROUTE_PREFIX,
        "list_dir": "",
        "preview_dir": DEFAULT_PREVIEW_DIR,
        "default_category": DEFAULT_CATEGORY,
        "recursive": "true",
        "page_size": str(DEFAULT_PAGE_SIZE),
        "timeout_seconds": "30",
    }
    parser["gallery"] = {
        "data_mode": "imgbed-api",
        "index_url": "",
        "display_mode": "fullscreen",
        "shuffle_enabled": "true",
        "cache_ttl_seconds": "60",
        "output_file": "gallery-index.json",
    }
    parser["admin"] = {"session_secret": ""}

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with config_path.open("w", encoding="utf-8") as handle:
        parser.write(handle)
    logger.debug(f"Wrote default config to {config_path}")
