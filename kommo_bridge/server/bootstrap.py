from dataclasses import dataclass

import httpx
from langchain_core.language_models.chat_models import BaseChatModel

from ..clients.google_api import GoogleApiClients
from ..clients.lazy import LazyClient
from ..clients.llm import LLMFactory
from ..config.config import AppConfig
from ..integrations.kommo_service import KommoService


@dataclass
class Services:
	config: AppConfig
	http: LazyClient[httpx.Client]
	llm: LazyClient[BaseChatModel]
	google: GoogleApiClients
	kommo: LazyClient[KommoService]

	def close(self) -> None:
		self.kommo.close()
		self.http.close()
		self.google.close()


def build_services(cfg: AppConfig) -> Services:
	http = LazyClient("http", lambda: httpx.Client(timeout=cfg.http_timeout))
	llm = LazyClient("llm", LLMFactory.from_config(cfg).build)
	google = GoogleApiClients(credentials_file=cfg.google_credentials_file, scopes=cfg.google_scopes)

	def _kommo() -> KommoService:
		return KommoService(base_url=cfg.kommo_url or "", api_token=cfg.kommo_api_token or "", http=http.get())

	return Services(
		config=cfg,
		http=http,
		llm=llm,
		google=google,
		kommo=LazyClient("kommo", _kommo),
	)
