from typing import Optional

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_openai import ChatOpenAI

from ..config.config import AppConfig


class LLMFactory:
	def __init__(
		self,
		provider: str,
		openai_model: str,
		openai_api_key: Optional[str],
		google_model: str,
		google_api_key: Optional[str],
		max_tokens: int,
		timeout: float,
	) -> None:
		self.provider = (provider or "").strip().lower() or "openai"
		self.openai_model = openai_model
		self.openai_api_key = openai_api_key
		self.google_model = google_model
		self.google_api_key = google_api_key
		self.max_tokens = max_tokens
		self.timeout = timeout

	@classmethod
	def from_config(cls, cfg: AppConfig) -> "LLMFactory":
		return cls(
			provider=cfg.llm_provider,
			openai_model=cfg.openai_model,
			openai_api_key=cfg.openai_api_key,
			google_model=cfg.gemini_model,
			google_api_key=cfg.google_api_key,
			max_tokens=cfg.openai_max_tokens,
			timeout=cfg.llm_timeout,
		)

	def build(self) -> BaseChatModel:
		if self.provider == "openai":
			if not self.openai_api_key:
				raise RuntimeError("OPENAI_API_KEY is required for the OpenAI provider")
			return ChatOpenAI(
				model=self.openai_model,
				api_key=self.openai_api_key,
				max_tokens=self.max_tokens,
				timeout=self.timeout,
			)
		if self.provider in {"google", "gemini"}:
			if not self.google_api_key:
				raise RuntimeError("GOOGLE_API_KEY is required for the Google provider")
			return ChatGoogleGenerativeAI(
				model=self.google_model,
				google_api_key=self.google_api_key,
				max_output_tokens=self.max_tokens,
				timeout=self.timeout,
			)
		raise RuntimeError(f"Unsupported LLM provider: {self.provider}")
