import threading
from typing import Any, Optional, Sequence

import google.auth
from google.auth.credentials import Credentials
from google.oauth2 import service_account
from googleapiclient import discovery

from ..config.logging_config import configure_logging
from .lazy import LazyClient

_LOGGER = configure_logging()


class GoogleApiClients:
	"""Credentials and discovery-based Google API clients, built on demand.

	Service account credentials are read from ``credentials_file`` when set;
	otherwise application default credentials are used. A credentials failure
	is remembered and raised as ClientUnavailableError on every later call.
	"""

	def __init__(self, credentials_file: Optional[str], scopes: Sequence[str]) -> None:
		self.credentials_file = credentials_file
		self.scopes = list(scopes)
		self._auth: LazyClient[tuple[Credentials, Optional[str]]] = LazyClient("google", self._load_credentials)
		self._services: dict[tuple[str, str], Any] = {}
		self._lock = threading.Lock()

	@property
	def available(self) -> bool:
		return self._auth.available

	@property
	def project_id(self) -> Optional[str]:
		return self._auth.get()[1]

	def credentials(self) -> Credentials:
		return self._auth.get()[0]

	def _load_credentials(self) -> tuple[Credentials, Optional[str]]:
		if self.credentials_file:
			creds = service_account.Credentials.from_service_account_file(self.credentials_file, scopes=self.scopes)
			_LOGGER.info("Loaded Google service account credentials", extra={"file": self.credentials_file})
			return creds, creds.project_id
		creds, project_id = google.auth.default(scopes=self.scopes)
		_LOGGER.info("Loaded Google application default credentials")
		return creds, project_id

	def service(self, name: str, version: str) -> Any:
		key = (name, version)
		cached = self._services.get(key)
		if cached is not None:
			return cached
		creds = self.credentials()
		with self._lock:
			if key not in self._services:
				self._services[key] = discovery.build(name, version, credentials=creds, cache_discovery=False)
			return self._services[key]

	def close(self) -> None:
		with self._lock:
			for svc in self._services.values():
				closer = getattr(svc, "close", None)
				if callable(closer):
					closer()
			self._services.clear()
