import logging
import os


def configure_logging(level: str | None = None) -> logging.Logger:
	level_name = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
	logging.basicConfig(level=level_name, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
	# basicConfig is a no-op once handlers exist; the level still has to follow the latest call.
	root = logging.getLogger()
	root.setLevel(level_name)
	return root
