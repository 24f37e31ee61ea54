from kommo_bridge.config import AppConfig, configure_logging, load_environment
from kommo_bridge.server.bootstrap import build_services
from kommo_bridge.server.http import create_app

# Construct FastAPI ASGI app for serverless Python runtimes.
_cfg = AppConfig.from_mapping(load_environment())
configure_logging(_cfg.log_level)
_services = build_services(_cfg)
app = create_app(_services)
