"""URL-encoded form decoding.

``parse_extended`` follows the bracket convention of the ``qs`` library that
Express uses for ``urlencoded({extended: true})``:

	a=1&a=2          -> {"a": ["1", "2"]}
	a[b]=1           -> {"a": {"b": "1"}}
	a[]=1&a[]=2      -> {"a": ["1", "2"]}
	a[1]=x&a[0]=y    -> {"a": ["y", "x"]}
	a[0]=x&a[k]=y    -> {"a": {"0": "x", "k": "y"}}

Bracket levels beyond ``depth`` are kept as one literal key, and indices above
``array_limit`` become string keys. Sparse lists are compacted.
"""
import re
from typing import Any
from urllib.parse import unquote_plus

DEFAULT_DEPTH = 32
DEFAULT_ARRAY_LIMIT = 20
DEFAULT_PARAMETER_LIMIT = 1000

_BRACKET = re.compile(r"\[[^\[\]]*\]")
_INDEX = re.compile(r"(0|[1-9][0-9]*)")


class TooManyParametersError(ValueError):
	def __init__(self, limit: int) -> None:
		super().__init__(f"too many parameters (limit {limit})")
		self.limit = limit


class _ArrayNode(dict):
	"""Index-keyed list under construction."""

	def append(self, value: Any) -> None:
		self[max(self) + 1 if self else 0] = value


def _split_pairs(body: str, parameter_limit: int | None) -> list[str]:
	parts = [p for p in body.split("&") if p]
	if parameter_limit is not None and len(parts) > parameter_limit:
		raise TooManyParametersError(parameter_limit)
	return parts


def _decode(text: str, charset: str) -> str:
	return unquote_plus(text, encoding=charset, errors="replace")


def split_key(key: str, depth: int = DEFAULT_DEPTH) -> list[str]:
	"""Split ``a[b][c]`` into ``["a", "b", "c"]``.

	Brackets past ``depth`` stay together as a single literal segment.
	"""
	first = _BRACKET.search(key)
	if first is None:
		return [key]
	segments = [key[: first.start()]] if first.start() > 0 else []
	for count, match in enumerate(_BRACKET.finditer(key, first.start())):
		if count >= depth:
			segments.append(key[match.start():])
			break
		segments.append(match.group()[1:-1])
	return segments


def _build(segments: list[str], value: str, array_limit: int) -> dict[str, Any]:
	leaf: Any = value
	for name in reversed(segments[1:]):
		node: dict[Any, Any]
		if name == "":
			node = _ArrayNode({0: leaf})
		elif _INDEX.fullmatch(name) and int(name) <= array_limit:
			node = _ArrayNode({int(name): leaf})
		else:
			node = {name: leaf}
		leaf = node
	return {segments[0]: leaf}


def _to_mapping(node: _ArrayNode) -> dict[str, Any]:
	return {str(index): node[index] for index in sorted(node)}


def _merge(target: Any, source: Any) -> Any:
	if not isinstance(source, dict):
		if isinstance(target, _ArrayNode):
			target.append(source)
			return target
		return _ArrayNode({0: target, 1: source})

	if not isinstance(target, dict):
		combined = _ArrayNode({0: target})
		if isinstance(source, _ArrayNode):
			for index in sorted(source):
				combined.append(source[index])
		else:
			combined.append(source)
		return combined

	if isinstance(target, _ArrayNode) and isinstance(source, _ArrayNode):
		for index in sorted(source):
			item = source[index]
			if index not in target:
				target[index] = item
			elif isinstance(target[index], dict) and isinstance(item, dict):
				target[index] = _merge(target[index], item)
			else:
				target.append(item)
		return target

	if isinstance(target, _ArrayNode):
		target = _to_mapping(target)
	if isinstance(source, _ArrayNode):
		source = _to_mapping(source)
	for key, item in source.items():
		target[key] = _merge(target[key], item) if key in target else item
	return target


def _finalize(value: Any) -> Any:
	if isinstance(value, _ArrayNode):
		return [_finalize(value[index]) for index in sorted(value)]
	if isinstance(value, dict):
		return {key: _finalize(item) for key, item in value.items()}
	return value


def parse_extended(
	body: str,
	charset: str = "utf-8",
	depth: int = DEFAULT_DEPTH,
	array_limit: int = DEFAULT_ARRAY_LIMIT,
	parameter_limit: int | None = DEFAULT_PARAMETER_LIMIT,
) -> dict[str, Any]:
	result: dict[str, Any] = {}
	for part in _split_pairs(body, parameter_limit):
		raw_key, _, raw_value = part.partition("=")
		segments = split_key(_decode(raw_key, charset), depth)
		if not segments or segments[0] == "":
			continue
		result = _merge(result, _build(segments, _decode(raw_value, charset), array_limit))
	return _finalize(result)


def parse_simple(
	body: str,
	charset: str = "utf-8",
	parameter_limit: int | None = DEFAULT_PARAMETER_LIMIT,
) -> dict[str, Any]:
	"""Flat decoding: keys are taken literally, repeated keys become lists."""
	result: dict[str, Any] = {}
	for part in _split_pairs(body, parameter_limit):
		raw_key, _, raw_value = part.partition("=")
		key = _decode(raw_key, charset)
		if not key:
			continue
		value = _decode(raw_value, charset)
		if key not in result:
			result[key] = value
		elif isinstance(result[key], list):
			result[key].append(value)
		else:
			result[key] = [result[key], value]
	return result
