import argparse
import asyncio
import sys

import uvicorn
from dotenv import load_dotenv
from loguru import logger

from support_chat.app_config import load_json_config, parse_app_config, resolve_runtime_env
from support_chat.bootstrap import bootstrap_runtime
from support_chat.errors import ChatRelayError, MissingCredential, ProviderError
from support_chat.logging_config import setup_logging
from support_chat.provider import create_provider
from support_chat.server import create_app

PROBE_PROMPT = 'Say "Hello" if you can read this.'


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="support_chat", description="Support chat relay backend")
    sub = parser.add_subparsers(dest="command")

    serve_cmd = sub.add_parser("serve", help="Run the HTTP API (default)")
    serve_cmd.add_argument("--host", default=None)
    serve_cmd.add_argument("--port", type=int, default=None)

    sub.add_parser("check-provider", help="Verify the active provider's API key with a probe request")
    return parser


def serve(host: str | None, port: int | None) -> int:
    app_config = parse_app_config(load_json_config())
    env = resolve_runtime_env(app_config.provider.provider_name)
    try:
        runtime = bootstrap_runtime(app_config, env)
    except (ChatRelayError, ValueError) as ex:
        logger.error(str(ex))
        return 1

    if runtime.log_descriptions:
        logger.info(f"Logging: {', '.join(runtime.log_descriptions)}")

    bind_host = host or app_config.host
    bind_port = port or app_config.port
    logger.info(f"Backend running on http://{bind_host}:{bind_port}")
    try:
        uvicorn.run(create_app(runtime), host=bind_host, port=bind_port, log_config=None)
    finally:
        runtime.close()
    return 0


async def check_provider() -> int:
    app_config = parse_app_config(load_json_config())
    setup_logging(level=app_config.log_level, consumers=[{"type": "console"}])
    env = resolve_runtime_env(app_config.provider.provider_name)

    try:
        provider = create_provider(app_config.provider, env)
        provider.validate_config()
    except MissingCredential as ex:
        logger.error(f"{ex}. Add it to your .env file.")
        return 1
    except ChatRelayError as ex:
        logger.error(str(ex))
        return 1

    logger.info(f"{env.provider_env_var} found (starts with {env.provider_api_key[:7]}...)")
    model = app_config.provider.model_for(provider.name).default
    try:
        reply = await provider.complete([{"role": "user", "content": PROBE_PROMPT}], 10, model)
    except ProviderError as ex:
        if ex.status_code == 401:
            logger.error(f"Invalid API key for {provider.name}. Check {env.provider_env_var}.")
        elif ex.status_code == 429:
            logger.error("Rate limit exceeded. Please try again later.")
        else:
            logger.error(f"API error: {ex}")
        return 1
    except ChatRelayError as ex:
        logger.error(f"API error: {ex}")
        return 1

    logger.info(f"API key is valid. {provider.name}/{model} replied: {reply}")
    return 0


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = _build_parser().parse_args(argv)
    if args.command == "check-provider":
        return asyncio.run(check_provider())
    return serve(getattr(args, "host", None), getattr(args, "port", None))


if __name__ == "__main__":
    sys.exit(main())
