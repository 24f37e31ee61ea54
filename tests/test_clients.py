import threading
from typing import Any, Dict, List

import pytest
from google.auth.exceptions import DefaultCredentialsError

from kommo_bridge.clients import google_api, llm
from kommo_bridge.clients.lazy import ClientUnavailableError, LazyClient
from kommo_bridge.config.config import AppConfig


def test_lazy_client_builds_once():
	calls: List[int] = []

	def factory():
		calls.append(1)
		return object()

	client = LazyClient("demo", factory)
	assert client.built is False
	assert calls == []
	first = client.get()
	assert client.get() is first
	assert len(calls) == 1


def test_lazy_client_builds_once_across_threads():
	calls: List[int] = []
	barrier = threading.Barrier(8)

	def factory():
		calls.append(1)
		return object()

	client = LazyClient("demo", factory)
	results: List[Any] = []

	def worker():
		barrier.wait()
		results.append(client.get())

	threads = [threading.Thread(target=worker) for _ in range(8)]
	for t in threads:
		t.start()
	for t in threads:
		t.join()
	assert len(calls) == 1
	assert all(r is results[0] for r in results)


def test_lazy_client_remembers_failure():
	calls: List[int] = []

	def factory():
		calls.append(1)
		raise RuntimeError("KEY is required")

	client = LazyClient("demo", factory)
	assert client.available is False
	with pytest.raises(ClientUnavailableError) as exc:
		client.get()
	assert "KEY is required" in str(exc.value)
	assert client.unavailable_reason == "KEY is required"
	assert len(calls) == 1


def test_lazy_client_close_calls_close():
	class Closable:
		closed = False

		def close(self):
			self.closed = True

	client = LazyClient("demo", Closable)
	inst = client.get()
	client.close()
	assert inst.closed is True
	assert client.built is False


class FakeChat:
	def __init__(self, **kwargs):
		self.kwargs = kwargs


def test_llm_factory_builds_openai(monkeypatch):
	monkeypatch.setattr(llm, "ChatOpenAI", FakeChat)
	cfg = AppConfig.from_mapping({"OPENAI_API_KEY": "sk-x"})
	model = llm.LLMFactory.from_config(cfg).build()
	assert isinstance(model, FakeChat)
	assert model.kwargs["model"] == "gpt-4"
	assert model.kwargs["api_key"] == "sk-x"
	assert model.kwargs["max_tokens"] == 150


def test_llm_factory_builds_gemini(monkeypatch):
	monkeypatch.setattr(llm, "ChatGoogleGenerativeAI", FakeChat)
	cfg = AppConfig.from_mapping({"LLM_PROVIDER": "Gemini", "GOOGLE_API_KEY": "g-key"})
	model = llm.LLMFactory.from_config(cfg).build()
	assert model.kwargs["model"] == "gemini-2.5-flash"
	assert model.kwargs["google_api_key"] == "g-key"


def test_llm_factory_requires_key():
	with pytest.raises(RuntimeError, match="OPENAI_API_KEY"):
		llm.LLMFactory.from_config(AppConfig.from_mapping({})).build()


def test_llm_factory_rejects_unknown_provider():
	cfg = AppConfig.from_mapping({"LLM_PROVIDER": "other", "OPENAI_API_KEY": "k"})
	with pytest.raises(RuntimeError, match="Unsupported"):
		llm.LLMFactory.from_config(cfg).build()


def test_google_clients_use_default_credentials_and_cache_services(monkeypatch):
	creds = object()
	default_calls: List[Any] = []
	built: List[Dict[str, Any]] = []

	def fake_default(scopes=None):
		default_calls.append(scopes)
		return creds, "proj-1"

	def fake_build(name, version, credentials=None, cache_discovery=True):
		built.append({"name": name, "version": version, "credentials": credentials, "cache": cache_discovery})
		return object()

	monkeypatch.setattr(google_api.google.auth, "default", fake_default)
	monkeypatch.setattr(google_api.discovery, "build", fake_build)

	clients = google_api.GoogleApiClients(credentials_file=None, scopes=["scope-a"])
	assert default_calls == []
	sheets = clients.service("sheets", "v4")
	assert clients.service("sheets", "v4") is sheets
	assert clients.project_id == "proj-1"
	assert default_calls == [["scope-a"]]
	assert built == [{"name": "sheets", "version": "v4", "credentials": creds, "cache": False}]


def test_google_clients_prefer_service_account_file(monkeypatch):
	class FakeCreds:
		project_id = "sa-proj"

	seen: Dict[str, Any] = {}

	def fake_from_file(path, scopes=None):
		seen["path"] = path
		seen["scopes"] = scopes
		return FakeCreds()

	monkeypatch.setattr(google_api.service_account.Credentials, "from_service_account_file", staticmethod(fake_from_file))
	clients = google_api.GoogleApiClients(credentials_file="/secrets/sa.json", scopes=("s",))
	assert isinstance(clients.credentials(), FakeCreds)
	assert clients.project_id == "sa-proj"
	assert seen == {"path": "/secrets/sa.json", "scopes": ["s"]}


def test_google_credentials_failure_is_unavailable_and_remembered(monkeypatch):
	calls: List[str] = []

	def fake_from_file(path, scopes=None):
		calls.append(path)
		raise FileNotFoundError(f"No such file or directory: '{path}'")

	monkeypatch.setattr(google_api.service_account.Credentials, "from_service_account_file", staticmethod(fake_from_file))
	clients = google_api.GoogleApiClients(credentials_file="/nonexistent.json", scopes=("s",))
	assert clients.available is False
	with pytest.raises(ClientUnavailableError, match="nonexistent.json"):
		clients.credentials()
	with pytest.raises(ClientUnavailableError):
		clients.service("drive", "v3")
	assert calls == ["/nonexistent.json"]


def test_google_default_credentials_failure_is_unavailable(monkeypatch):
	def fake_default(scopes=None):
		raise DefaultCredentialsError("no ADC")

	monkeypatch.setattr(google_api.google.auth, "default", fake_default)
	clients = google_api.GoogleApiClients(credentials_file=None, scopes=("s",))
	with pytest.raises(ClientUnavailableError, match="no ADC"):
		clients.project_id
