from typing import Any

import httpx

from ..config.logging_config import configure_logging

_LOGGER = configure_logging()


class KommoError(RuntimeError):
	def __init__(self, message: str, status_code: int | None = None) -> None:
		super().__init__(message)
		self.status_code = status_code

	@classmethod
	def from_response(cls, resp: httpx.Response) -> "KommoError":
		return cls(f"HTTP {resp.status_code} {resp.reason_phrase}: {resp.text}", status_code=resp.status_code)


class KommoService:
	def __init__(self, base_url: str, api_token: str, http: httpx.Client) -> None:
		if not base_url:
			raise RuntimeError("KOMMO_SUBDOMAIN or KOMMO_BASE_URL is required for Kommo integration")
		if not api_token:
			raise RuntimeError("KOMMO_API_TOKEN is required for Kommo integration")
		self.base_url = base_url.rstrip("/")
		self.api_token = api_token
		self.http = http

	def _headers(self) -> dict[str, str]:
		return {
			"Authorization": f"Bearer {self.api_token}",
			"Content-Type": "application/json",
			"Accept": "application/json",
		}

	def _post_json(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
		url = f"{self.base_url}{path}"
		try:
			resp = self.http.post(url, json=body, headers=self._headers())
		except httpx.HTTPError as exc:
			raise KommoError(f"{type(exc).__name__}: {exc}") from exc
		if resp.status_code >= 400:
			raise KommoError.from_response(resp)
		if not resp.content:
			return {}
		try:
			return resp.json()
		except ValueError as exc:
			raise KommoError(f"Invalid JSON in Kommo response: {resp.text[:200]}", status_code=resp.status_code) from exc

	def send_message(self, message: str, contact_id: str) -> dict[str, Any]:
		_LOGGER.info("Sending Kommo message", extra={"contact": contact_id})
		try:
			data = self._post_json("/api/v4/messages", {"message": message, "contact": contact_id})
		except KommoError:
			_LOGGER.exception("Kommo rejected message", extra={"contact": contact_id})
			raise
		_LOGGER.debug("Kommo accepted message", extra={"contact": contact_id})
		return data
