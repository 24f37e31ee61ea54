from .google_api import GoogleApiClients
from .lazy import ClientUnavailableError, LazyClient
from .llm import LLMFactory

__all__ = [
	"ClientUnavailableError",
	"GoogleApiClients",
	"LazyClient",
	"LLMFactory",
]
