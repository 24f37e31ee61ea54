import sys
from pathlib import Path
from typing import Any

import pytest
from fastapi import Depends, Request
from fastapi.testclient import TestClient

# Ensure project root is on sys.path so `import kommo_bridge` works under pytest
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
	sys.path.insert(0, str(ROOT_DIR))

from kommo_bridge.config.config import AppConfig
from kommo_bridge.server.body_parsers import get_parsed_body
from kommo_bridge.server.bootstrap import build_services
from kommo_bridge.server.http import create_app


@pytest.fixture
def config() -> AppConfig:
	return AppConfig.from_mapping({"OPENAI_API_KEY": "sk-test", "KOMMO_API_TOKEN": "ktok", "KOMMO_SUBDOMAIN": "acme"})


@pytest.fixture
def services(config):
	return build_services(config)


@pytest.fixture
def app(services):
	app = create_app(services)

	@app.post("/echo")
	async def echo(request: Request, body: Any = Depends(get_parsed_body)) -> dict:
		raw = await request.body()
		return {
			"body": body,
			"parsed": getattr(request.state, "body_parsed", False),
			"raw": raw.decode("latin-1"),
		}

	return app


@pytest.fixture
def client(app):
	return TestClient(app)
