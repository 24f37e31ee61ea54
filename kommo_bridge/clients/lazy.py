import threading
from typing import Callable, Generic, Optional, TypeVar

from ..config.logging_config import configure_logging

_LOGGER = configure_logging()

T = TypeVar("T")


class ClientUnavailableError(RuntimeError):
	def __init__(self, name: str, reason: str) -> None:
		super().__init__(f"{name} client is unavailable: {reason}")
		self.name = name
		self.reason = reason


class LazyClient(Generic[T]):
	"""Builds a client on first use and hands out the same instance afterwards.

	A failed build is remembered; later calls raise ClientUnavailableError with
	the original reason instead of retrying.
	"""

	def __init__(self, name: str, factory: Callable[[], T]) -> None:
		self.name = name
		self._factory = factory
		self._instance: Optional[T] = None
		self._built = False
		self._error: Optional[str] = None
		self._lock = threading.Lock()

	@property
	def built(self) -> bool:
		return self._built

	@property
	def unavailable_reason(self) -> Optional[str]:
		return self._error

	@property
	def available(self) -> bool:
		try:
			self.get()
		except ClientUnavailableError:
			return False
		return True

	def get(self) -> T:
		if self._built:
			return self._instance  # type: ignore[return-value]
		with self._lock:
			if self._built:
				return self._instance  # type: ignore[return-value]
			if self._error is not None:
				raise ClientUnavailableError(self.name, self._error)
			try:
				instance = self._factory()
			except Exception as exc:
				self._error = str(exc)
				_LOGGER.warning("%s client disabled", self.name, extra={"error": self._error})
				raise ClientUnavailableError(self.name, self._error) from exc
			self._instance = instance
			self._built = True
			_LOGGER.info("%s client constructed", self.name)
			return instance

	def close(self) -> None:
		with self._lock:
			if not self._built:
				return
			closer = getattr(self._instance, "close", None)
			if callable(closer):
				closer()
			self._instance = None
			self._built = False
