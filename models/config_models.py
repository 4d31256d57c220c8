"""Configuration data models for the batch translator.

Each dataclass mirrors one section of the INI file. Field names are the INI keys; default values
also define the type the loader coerces each value to.
"""

from __future__ import annotations

from dataclasses import dataclass, field

__all__: list[str] = [
    "Api",
    "Batch",
    "Budget",
    "Cache",
    "Config",
    "General",
    "Retry",
]


@dataclass
class General:
    DEBUG: bool = False
    LOG_FILE: str = ""
    LOG_LEVEL: str = "INFO"
    SCRIPT_NAME: str = ""


@dataclass
class Api:
    ENGINE: str = "openrouter"
    ENDPOINT: str = "https://openrouter.ai/api/v1/chat/completions"
    MODEL: str = "google/gemini-2.0-flash-exp:free"
    PROVIDER: str = ""
    TIMEOUT: float = 30.0
    REFERER: str = "https://github.com/doganaylab/geminitranslate"
    MAX_TOKENS: int = 4000


@dataclass
class Batch:
    BATCH_SIZE: int = 10
    MAX_BATCH_LENGTH: int = 5000
    PRIORITY_BATCHES: int = 1
    INDIVIDUAL_FALLBACK_THRESHOLD: int = 6


@dataclass
class Retry:
    MAX_RETRIES: int = 3
    INITIAL_DELAY: float = 1.0
    MAX_DELAY: float = 10.0
    BACKOFF: str = "exponential"


@dataclass
class Cache:
    MEMORY_SIZE: int = 1000
    MEMORY_TTL: float = 3600.0
    SESSION_QUOTA: int = 0
    DB_PATH: str = "translation_cache.db"


@dataclass
class Budget:
    MIN_API_CALLS: int = 60
    MAX_API_CALLS: int = 500
    MIN_FALLBACK_ALLOWANCE: int = 20
    MAX_FALLBACK_ALLOWANCE: int = 200


@dataclass
class Config:
    GENERAL: General = field(default_factory=General)
    API: Api = field(default_factory=Api)
    BATCH: Batch = field(default_factory=Batch)
    RETRY: Retry = field(default_factory=Retry)
    CACHE: Cache = field(default_factory=Cache)
    BUDGET: Budget = field(default_factory=Budget)
