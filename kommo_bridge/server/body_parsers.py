import codecs
import json
import logging
from abc import ABC, abstractmethod
from typing import Any

from fastapi import Request
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from . import forms
from .models import ErrorResponse

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 100 * 1024

_BODY_KEY = "body"
_PARSED_FLAG = "body_parsed"


class BodyParseError(Exception):
	def __init__(self, status_code: int, error_type: str, message: str) -> None:
		super().__init__(message)
		self.status_code = status_code
		self.error_type = error_type
		self.message = message


def parse_content_type(header: str | None) -> tuple[str, dict[str, str]]:
	"""Return the lower-cased media type and its parameters."""
	if not header:
		return "", {}
	media_type, *raw_params = header.split(";")
	params: dict[str, str] = {}
	for raw in raw_params:
		name, sep, value = raw.partition("=")
		if not sep:
			continue
		params[name.strip().lower()] = value.strip().strip('"')
	return media_type.strip().lower(), params


def _header(scope: Scope, name: bytes) -> str | None:
	for key, value in scope.get("headers") or []:
		if key.lower() == name:
			return value.decode("latin-1")
	return None


def _has_body(scope: Scope) -> bool:
	if _header(scope, b"transfer-encoding") is not None:
		return True
	length = _header(scope, b"content-length")
	return length is not None and length.strip() not in ("", "0")


class BodyParserMiddleware(ABC):
	"""Buffers and parses matching request bodies before route dispatch.

	The parsed value is stored in ``request.state.body``. The raw bytes are
	replayed to the wrapped app, so downstream handlers can still read them.
	Requests with other content types are passed through without reading the
	body.
	"""

	default_charset = "utf-8"

	def __init__(self, app: ASGIApp, limit: int = DEFAULT_LIMIT) -> None:
		self.app = app
		self.limit = limit

	@abstractmethod
	def matches(self, media_type: str) -> bool:
		...

	@abstractmethod
	def accepts_charset(self, charset: str) -> bool:
		...

	@abstractmethod
	def parse(self, text: str, charset: str) -> Any:
		...

	@abstractmethod
	def empty_value(self) -> Any:
		...

	async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
		if scope["type"] != "http":
			await self.app(scope, receive, send)
			return
		state = scope.setdefault("state", {})
		media_type, params = parse_content_type(_header(scope, b"content-type"))
		if state.get(_PARSED_FLAG) or not self.matches(media_type):
			await self.app(scope, receive, send)
			return

		try:
			raw = await self._read_body(scope, receive)
			state[_BODY_KEY] = self._decode(raw, params)
		except BodyParseError as exc:
			logger.warning(
				"Rejected request body",
				extra={"path": scope.get("path"), "type": exc.error_type, "error": exc.message},
			)
			response = JSONResponse(
				ErrorResponse(detail=exc.message, type=exc.error_type).model_dump(),
				status_code=exc.status_code,
			)
			await response(scope, receive, send)
			return
		state[_PARSED_FLAG] = True

		replayed = False

		async def replay() -> Message:
			nonlocal replayed
			if not replayed:
				replayed = True
				return {"type": "http.request", "body": raw, "more_body": False}
			return await receive()

		await self.app(scope, replay, send)

	async def _read_body(self, scope: Scope, receive: Receive) -> bytes:
		if not _has_body(scope):
			return b""
		length = _header(scope, b"content-length")
		if length is not None and length.strip().isdigit() and int(length) > self.limit:
			raise BodyParseError(413, "entity.too.large", "request entity too large")
		chunks: list[bytes] = []
		received = 0
		more_body = True
		while more_body:
			message = await receive()
			if message["type"] == "http.disconnect":
				raise BodyParseError(400, "request.aborted", "request aborted")
			chunk = message.get("body", b"")
			received += len(chunk)
			if received > self.limit:
				raise BodyParseError(413, "entity.too.large", "request entity too large")
			chunks.append(chunk)
			more_body = message.get("more_body", False)
		return b"".join(chunks)

	def _decode(self, raw: bytes, params: dict[str, str]) -> Any:
		if not raw:
			return self.empty_value()
		charset = (params.get("charset") or self.default_charset).lower()
		if not self.accepts_charset(charset):
			raise BodyParseError(415, "charset.unsupported", f'unsupported charset "{charset.upper()}"')
		try:
			codecs.lookup(charset)
		except LookupError:
			raise BodyParseError(415, "charset.unsupported", f'unsupported charset "{charset.upper()}"') from None
		try:
			text = raw.decode(charset)
		except UnicodeDecodeError as exc:
			raise BodyParseError(400, "entity.parse.failed", str(exc)) from None
		if text.startswith("\ufeff"):
			text = text[1:]
		return self.parse(text, charset)


def _reject_constant(name: str) -> Any:
	raise ValueError(f"Unexpected token {name} in JSON")


class JSONBodyParser(BodyParserMiddleware):
	def __init__(self, app: ASGIApp, limit: int = DEFAULT_LIMIT, strict: bool = False) -> None:
		super().__init__(app, limit=limit)
		self.strict = strict

	def matches(self, media_type: str) -> bool:
		if media_type == "application/json":
			return True
		return media_type.startswith("application/") and media_type.endswith("+json")

	def accepts_charset(self, charset: str) -> bool:
		return charset.startswith("utf-")

	def empty_value(self) -> Any:
		return {}

	def parse(self, text: str, charset: str) -> Any:
		if self.strict:
			first = text.lstrip(" \t\r\n")[:1]
			if first not in ("{", "["):
				raise BodyParseError(400, "entity.parse.failed", f"Unexpected token {first or 'EOF'} in JSON at position 0")
		try:
			return json.loads(text, parse_constant=_reject_constant)
		except ValueError as exc:
			raise BodyParseError(400, "entity.parse.failed", str(exc)) from None
		except RecursionError:
			raise BodyParseError(400, "entity.parse.failed", "JSON document is nested too deeply") from None


class URLEncodedBodyParser(BodyParserMiddleware):
	def __init__(
		self,
		app: ASGIApp,
		limit: int = DEFAULT_LIMIT,
		extended: bool = True,
		depth: int = forms.DEFAULT_DEPTH,
		array_limit: int = forms.DEFAULT_ARRAY_LIMIT,
		parameter_limit: int = forms.DEFAULT_PARAMETER_LIMIT,
	) -> None:
		super().__init__(app, limit=limit)
		self.extended = extended
		self.depth = depth
		self.array_limit = array_limit
		self.parameter_limit = parameter_limit

	def matches(self, media_type: str) -> bool:
		return media_type == "application/x-www-form-urlencoded"

	def accepts_charset(self, charset: str) -> bool:
		return charset in ("utf-8", "iso-8859-1")

	def empty_value(self) -> Any:
		return {}

	def parse(self, text: str, charset: str) -> Any:
		try:
			if self.extended:
				return forms.parse_extended(
					text,
					charset=charset,
					depth=self.depth,
					array_limit=self.array_limit,
					parameter_limit=self.parameter_limit,
				)
			return forms.parse_simple(text, charset=charset, parameter_limit=self.parameter_limit)
		except forms.TooManyParametersError as exc:
			raise BodyParseError(413, "parameters.too.many", str(exc)) from None


def get_parsed_body(request: Request) -> Any:
	"""FastAPI dependency returning the parsed body, or None when no parser acted."""
	return getattr(request.state, _BODY_KEY, None)
