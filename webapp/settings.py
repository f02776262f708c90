from __future__ import annotations

import os
from functools import lru_cache
from typing import List, Literal, Mapping, Optional

from pydantic import BaseModel, Field

ENV_PREFIX = "LUA_CHECKER_"

# Level names understood by both `logging` and uvicorn.
LogLevel = Literal["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"]


class Settings(BaseModel):
	"""
	Web service configuration.

	Read from environment variables:
	  LUA_CHECKER_MAX_SOURCE_CHARS  largest source accepted by the check endpoints
	  LUA_CHECKER_CORS_ORIGINS      comma-separated list of allowed origins ("*" allows all)
	  LUA_CHECKER_LOG_LEVEL         one of CRITICAL, ERROR, WARNING, INFO, DEBUG
	  LUA_CHECKER_HOST, LUA_CHECKER_PORT  bind address used by `lua-check-server`
	"""

	max_source_chars: int = Field(default=500_000, gt=0)
	cors_origins: List[str] = Field(default_factory=lambda: ["*"])
	log_level: LogLevel = "INFO"
	host: str = "127.0.0.1"
	port: int = Field(default=8000, gt=0, lt=65536)

	@classmethod
	def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
		env = os.environ if environ is None else environ
		data = {}
		if ENV_PREFIX + "MAX_SOURCE_CHARS" in env:
			data["max_source_chars"] = env[ENV_PREFIX + "MAX_SOURCE_CHARS"]
		if ENV_PREFIX + "CORS_ORIGINS" in env:
			data["cors_origins"] = [o.strip() for o in env[ENV_PREFIX + "CORS_ORIGINS"].split(",") if o.strip()]
		if ENV_PREFIX + "LOG_LEVEL" in env:
			data["log_level"] = env[ENV_PREFIX + "LOG_LEVEL"].upper()
		if ENV_PREFIX + "HOST" in env:
			data["host"] = env[ENV_PREFIX + "HOST"]
		if ENV_PREFIX + "PORT" in env:
			data["port"] = env[ENV_PREFIX + "PORT"]
		return cls(**data)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
	return Settings.from_env()
