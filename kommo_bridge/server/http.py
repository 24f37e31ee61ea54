import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from starlette.middleware import Middleware

from .body_parsers import JSONBodyParser, URLEncodedBodyParser
from .bootstrap import Services
from .models import StatusResponse

logger = logging.getLogger(__name__)


def body_parser_middleware(limit: int) -> list[Middleware]:
	# Listed outermost first: JSON runs before the form parser on every request.
	return [
		Middleware(JSONBodyParser, limit=limit),
		Middleware(URLEncodedBodyParser, limit=limit, extended=True),
	]


def create_app(services: Services) -> FastAPI:
	@asynccontextmanager
	async def lifespan(_: FastAPI) -> AsyncIterator[None]:
		logger.info("Server starting", extra={"port": services.config.port})
		try:
			yield
		finally:
			services.close()
			logger.info("Server stopped")

	app = FastAPI(lifespan=lifespan, middleware=body_parser_middleware(services.config.body_limit))
	app.state.services = services

	@app.get("/health", response_model=StatusResponse, response_model_exclude_none=True)
	async def health() -> StatusResponse:
		return StatusResponse(status="ok")

	return app
