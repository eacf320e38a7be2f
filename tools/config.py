from __future__ import annotations

import os
import threading
import uuid
from dataclasses import dataclass
from typing import Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from schemas.results import ColumnSummary
from schemas.table import Table

load_dotenv()


class AppSettings(BaseModel):
    max_file_size: int = Field(10 * 1024 * 1024, description="Upload byte ceiling.")
    max_rows: int = Field(50_000, description="Row count above which the dataset is sampled.")
    sample_size: int = Field(1_000, description="Rows kept after sampling.")


class OpenAISettings(BaseModel):
    api_key: Optional[str] = None
    model: str = "gpt-4o-mini"
    detail_model: str = "gpt-4o"
    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0
    timeout: float = 30.0


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    openai: OpenAISettings = Field(default_factory=OpenAISettings)


def _env(name: str, default, cast=str):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return cast(raw)


def get_settings() -> Settings:
    return Settings(
        app=AppSettings(
            max_file_size=_env("APP_MAX_FILE_SIZE", 10 * 1024 * 1024, int),
            max_rows=_env("APP_MAX_ROWS", 50_000, int),
            sample_size=_env("APP_SAMPLE_SIZE", 1_000, int),
        ),
        openai=OpenAISettings(
            api_key=_env("OPENAI_API_KEY", None),
            model=_env("OPENAI_MODEL", "gpt-4o-mini"),
            detail_model=_env("OPENAI_DETAIL_MODEL", "gpt-4o"),
            max_retries=_env("OPENAI_MAX_RETRIES", 3, int),
            base_delay=_env("OPENAI_BASE_DELAY", 1.0, float),
            max_delay=_env("OPENAI_MAX_DELAY", 10.0, float),
            timeout=_env("OPENAI_TIMEOUT", 30.0, float),
        ),
    )


def validate_api_key(api_key: Optional[str]) -> bool:
    return bool(api_key) and api_key.startswith("sk-") and len(api_key) > 20


# -------------------------
# Dataset store (upload -> analysis)
# -------------------------
@dataclass(frozen=True)
class Dataset:
    id: str
    file_name: str
    table: Table
    summary: ColumnSummary


_STORE: Dict[str, Dataset] = {}
_LOCK = threading.Lock()


def put_dataset(file_name: str, table: Table, summary: ColumnSummary) -> Dataset:
    ds = Dataset(id=str(uuid.uuid4()), file_name=file_name, table=table, summary=summary)
    with _LOCK:
        _STORE[ds.id] = ds
    return ds


def get_dataset(dataset_id: str) -> Optional[Dataset]:
    with _LOCK:
        return _STORE.get(dataset_id)
