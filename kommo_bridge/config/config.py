import os
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from dotenv import find_dotenv, load_dotenv

DEFAULT_PORT = 3000
DEFAULT_BODY_LIMIT = 100 * 1024
DEFAULT_GOOGLE_SCOPES = ("https://www.googleapis.com/auth/cloud-platform",)


class ConfigError(RuntimeError):
	pass


def load_environment(dotenv_path: str | Path | None = None) -> Mapping[str, str]:
	"""Apply the .env file to os.environ and return a read-only snapshot.

	Variables already present in the process environment are not overridden.
	A missing .env file is not an error.
	"""
	path = str(dotenv_path) if dotenv_path else find_dotenv(usecwd=True)
	if path:
		load_dotenv(path, override=False)
	return MappingProxyType(dict(os.environ))


def read_env(env: Mapping[str, str], name: str, default: str | None = None, required: bool = False) -> str | None:
	value = env.get(name)
	if value is None or value == "":
		value = default
	if required and (value is None or value == ""):
		raise ConfigError(f"Missing required environment variable: {name}")
	return value


def _read_int(env: Mapping[str, str], name: str, default: int) -> int:
	raw = read_env(env, name)
	if raw is None:
		return default
	try:
		return int(raw.strip())
	except ValueError:
		raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def _read_float(env: Mapping[str, str], name: str, default: float) -> float:
	raw = read_env(env, name)
	if raw is None:
		return default
	try:
		return float(raw.strip())
	except ValueError:
		raise ConfigError(f"{name} must be a number, got {raw!r}") from None


def _read_list(env: Mapping[str, str], name: str, default: tuple[str, ...]) -> tuple[str, ...]:
	raw = read_env(env, name, "")
	if not raw:
		return default
	return tuple(p.strip() for p in raw.split(",") if p.strip())


@dataclass(frozen=True)
class AppConfig:
	host: str = "0.0.0.0"
	port: int = DEFAULT_PORT
	log_level: str = "INFO"
	body_limit: int = DEFAULT_BODY_LIMIT
	http_timeout: float = 30.0
	llm_provider: str = "openai"
	llm_timeout: float = 60.0
	openai_api_key: str | None = field(default=None, repr=False)
	openai_model: str = "gpt-4"
	openai_max_tokens: int = 150
	google_api_key: str | None = field(default=None, repr=False)
	gemini_model: str = "gemini-2.5-flash"
	google_credentials_file: str | None = None
	google_scopes: tuple[str, ...] = DEFAULT_GOOGLE_SCOPES
	kommo_api_token: str | None = field(default=None, repr=False)
	kommo_subdomain: str | None = None
	kommo_base_url: str | None = None

	@classmethod
	def from_mapping(cls, env: Mapping[str, str]) -> "AppConfig":
		return cls(
			host=read_env(env, "HOST", "0.0.0.0") or "0.0.0.0",
			port=_read_int(env, "PORT", DEFAULT_PORT),
			log_level=(read_env(env, "LOG_LEVEL", "INFO") or "INFO").upper(),
			body_limit=_read_int(env, "BODY_LIMIT", DEFAULT_BODY_LIMIT),
			http_timeout=_read_float(env, "HTTP_TIMEOUT", 30.0),
			llm_provider=(read_env(env, "LLM_PROVIDER", "openai") or "openai").strip().lower(),
			llm_timeout=_read_float(env, "LLM_TIMEOUT", 60.0),
			openai_api_key=read_env(env, "OPENAI_API_KEY"),
			openai_model=read_env(env, "OPENAI_MODEL", "gpt-4") or "gpt-4",
			openai_max_tokens=_read_int(env, "OPENAI_MAX_TOKENS", 150),
			google_api_key=read_env(env, "GOOGLE_API_KEY") or read_env(env, "GEMINI_API_KEY"),
			gemini_model=read_env(env, "GEMINI_MODEL", "gemini-2.5-flash") or "gemini-2.5-flash",
			google_credentials_file=read_env(env, "GOOGLE_APPLICATION_CREDENTIALS"),
			google_scopes=_read_list(env, "GOOGLE_SCOPES", DEFAULT_GOOGLE_SCOPES),
			kommo_api_token=read_env(env, "KOMMO_API_TOKEN"),
			kommo_subdomain=read_env(env, "KOMMO_SUBDOMAIN"),
			kommo_base_url=read_env(env, "KOMMO_BASE_URL"),
		)

	@property
	def kommo_url(self) -> str | None:
		if self.kommo_base_url:
			return self.kommo_base_url.rstrip("/")
		if self.kommo_subdomain:
			return f"https://{self.kommo_subdomain}.kommo.com"
		return None

	def masked(self) -> dict[str, str]:
		def _mask(secret: str | None) -> str:
			if not secret:
				return "<unset>"
			if len(secret) <= 8:
				return "****"
			return f"{secret[:4]}...{secret[-4:]}"

		return {
			"HOST": self.host,
			"PORT": str(self.port),
			"LOG_LEVEL": self.log_level,
			"BODY_LIMIT": str(self.body_limit),
			"LLM_PROVIDER": self.llm_provider,
			"OPENAI_MODEL": self.openai_model,
			"OPENAI_API_KEY": _mask(self.openai_api_key),
			"GOOGLE_API_KEY": _mask(self.google_api_key),
			"GOOGLE_APPLICATION_CREDENTIALS": self.google_credentials_file or "<unset>",
			"KOMMO_URL": self.kommo_url or "<unset>",
			"KOMMO_API_TOKEN": _mask(self.kommo_api_token),
		}
