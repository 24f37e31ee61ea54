from .config import AppConfig, ConfigError, load_environment, read_env
from .logging_config import configure_logging

__all__ = [
	"AppConfig",
	"ConfigError",
	"configure_logging",
	"load_environment",
	"read_env",
]
