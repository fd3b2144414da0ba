from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

def _resolve_project_root() -> Path:
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parents[1]


PROJECT_ROOT = _resolve_project_root()


def load_env() -> None:
    env_name = os.getenv("APP_ENV", "development")
    candidates = [Path.cwd(), PROJECT_ROOT]
    for base in candidates:
        env_path = base / ".env"
        if env_path.exists():
            load_dotenv(env_path)
            break

    for base in candidates:
        env_specific = base / f".env.{env_name}"
        if env_specific.exists():
            load_dotenv(env_specific, override=True)
            break


@dataclass(frozen=True)
class NumberSeriesConfig:
    prefix: str
    start: int


# Env key -> default prefix for every numbered HRMS entity.
NUMBER_SERIES_DEFAULTS = {
    "client_group": ("CG", "CG-"),
    "company": ("CC", "CC-"),
    "location": ("CL", "CL-"),
    "sub_location": ("CS", "CS-"),
    "project": ("P", "P-"),
    "team": ("U", "U-"),
    "group": ("G", "G-"),
    "ip_address": ("I", "I-"),
    "task": ("T", "T-"),
}
DEFAULT_NUMBER_START = 11001


@dataclass(frozen=True)
class Settings:
    database_url: str
    log_level: str = "INFO"
    log_dir: str = "logs"
    number_series: dict[str, NumberSeriesConfig] = field(default_factory=dict)
    number_max_attempts: int = 100
    task_create_retries: int = 25
    bulk_batch_size: int = 1000
    page_size: int = 25
    privileged_roles: frozenset[str] = frozenset({"ADMIN", "SUPER_ADMIN"})

    def series(self, entity: str) -> NumberSeriesConfig:
        try:
            return self.number_series[entity]
        except KeyError:
            raise KeyError(f"No number series configured for {entity!r}") from None


def _load_number_series() -> dict[str, NumberSeriesConfig]:
    series = {}
    for entity, (env_key, default_prefix) in NUMBER_SERIES_DEFAULTS.items():
        series[entity] = NumberSeriesConfig(
            prefix=os.getenv(f"{env_key}_NUMBER_PREFIX", default_prefix),
            start=int(os.getenv(f"{env_key}_NUMBER_START", str(DEFAULT_NUMBER_START))),
        )
    return series


def _split_roles(raw: str) -> frozenset[str]:
    return frozenset(role.strip().upper() for role in raw.split(",") if role.strip())


load_env()

DATABASE_URL = os.getenv("DATABASE_URL", "").strip()
if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL is not set. Create a .env file with your connection string.")

SETTINGS = Settings(
    database_url=DATABASE_URL,
    log_level=os.getenv("LOG_LEVEL", "INFO"),
    log_dir=os.getenv("LOG_DIR", "logs"),
    number_series=_load_number_series(),
    number_max_attempts=int(os.getenv("NUMBER_MAX_ATTEMPTS", "100")),
    task_create_retries=int(os.getenv("TASK_CREATE_RETRIES", "25")),
    bulk_batch_size=int(os.getenv("BULK_BATCH_SIZE", "1000")),
    page_size=int(os.getenv("PAGE_SIZE", "25")),
    privileged_roles=_split_roles(os.getenv("PRIVILEGED_ROLES", "ADMIN,SUPER_ADMIN")),
)
