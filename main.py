import argparse
import sys

import uvicorn

from kommo_bridge.clients.lazy import ClientUnavailableError
from kommo_bridge.config import AppConfig, configure_logging, load_environment
from kommo_bridge.integrations.kommo_service import KommoError
from kommo_bridge.server.bootstrap import build_services
from kommo_bridge.server.http import create_app


def load_config(args: argparse.Namespace) -> AppConfig:
	env = load_environment(getattr(args, "env_file", None))
	cfg = AppConfig.from_mapping(env)
	configure_logging(cfg.log_level)
	return cfg


def cmd_serve(args: argparse.Namespace) -> None:
	cfg = load_config(args)
	services = build_services(cfg)
	app = create_app(services)
	uvicorn.run(app, host=cfg.host, port=cfg.port, log_level=cfg.log_level.lower())


def cmd_show_config(args: argparse.Namespace) -> None:
	cfg = load_config(args)
	for name, value in cfg.masked().items():
		print(f"{name}={value}")


def cmd_send_kommo(args: argparse.Namespace) -> None:
	cfg = load_config(args)
	services = build_services(cfg)
	try:
		res = services.kommo.get().send_message(args.message, args.contact_id)
	except (ClientUnavailableError, KommoError) as e:
		print(f"Failed to send Kommo message: {e}", file=sys.stderr)
		sys.exit(1)
	finally:
		services.close()
	print(f"Sent message to contact {args.contact_id}")
	if res:
		print(res)


def build_arg_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(description="Kommo + OpenAI bridge service")
	parser.add_argument("--env-file", help="Path to a .env file (default: search from the working directory)")
	sub = parser.add_subparsers(dest="command", required=True)

	p_srv = sub.add_parser("serve", help="Run the HTTP server")
	p_srv.set_defaults(func=cmd_serve)

	p_cfg = sub.add_parser("show-config", help="Print resolved settings with secrets masked")
	p_cfg.set_defaults(func=cmd_show_config)

	p_kommo = sub.add_parser("send-kommo", help="Send one message to a Kommo contact")
	p_kommo.add_argument("--message", required=True, help="Message text")
	p_kommo.add_argument("--contact-id", required=True, help="Kommo contact ID")
	p_kommo.set_defaults(func=cmd_send_kommo)
	return parser


def main() -> None:
	parser = build_arg_parser()
	args = parser.parse_args()
	args.func(args)


if __name__ == "__main__":
	main()
