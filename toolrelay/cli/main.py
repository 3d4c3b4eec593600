import asyncio
import json
import logging
import logging.config
import pathlib
import sys
from typing import Any

from rich.console import Console

from toolrelay import __version__
from toolrelay.cli import argument_parser
from toolrelay.relay import RelayGateway
from toolrelay.settings import load_config
from toolrelay.utils import JsonObject, get_package_directory

log = logging.getLogger(__name__)

console = Console()


def print_json(data: Any) -> None:
    console.print_json(json.dumps(data, ensure_ascii=False, default=str))


async def run_command(gateway: RelayGateway, args) -> None:
    """Run one subcommand against a started gateway and print its result."""
    match args.command:
        case "servers":
            snapshots = await gateway.list_server_status(force_refresh=args.refresh)
            print_json([snapshot.to_dict() for snapshot in snapshots])
        case "tool":
            print_json(await gateway.read_tool(args.server, args.tool))
        case "resource":
            result = await gateway.read_resource(args.server, args.uri)
            print_json(result.to_dict())
        case "resource-template":
            result = await gateway.read_resource_template(args.server, args.uri_template)
            print_json(result.to_dict())
        case "models":
            print_json(await gateway.list_models(limit=args.limit))
        case "apps":
            print_json(await gateway.list_apps(force_refetch=args.refresh, limit=args.limit))
        case "watch":
            await watch(gateway)


async def watch(gateway: RelayGateway) -> None:
    def on_notification(message: JsonObject) -> None:
        print_json(message)

    unsubscribe = gateway.subscribe(on_notification)
    try:
        await gateway.initialize()
        await gateway.wait_closed()
    finally:
        unsubscribe()


async def run_gateway(args) -> None:
    config = load_config()
    async with RelayGateway(config) as gateway:
        await run_command(gateway, args)


def app_entrypoint(args) -> None:
    # Set a delineator for a new application run in log file
    log.debug("\n%s NEW LOG RUN %s\n", "=" * 60, "=" * 60)

    argument_parser.check_parse_conflicts(args)

    if args.version:
        print(f"toolrelay version: {__version__}")
        return

    log.debug("Arguments: %s", args)

    try:
        asyncio.run(run_gateway(args))
    except KeyboardInterrupt:
        log.info("Keyboard interrupt - shutting down")


def cli_entrypoint() -> None:
    """
    Configures logging from a JSON configuration file and runs the relay CLI.

    The packaged configuration is used unless --logConfig points at another one.
    Do not use this function if you have configured your own logger. Call `app_entrypoint()` directly.
    """

    args = argument_parser.parse_args()

    if args.logConfig is not None:
        config_file = pathlib.Path(args.logConfig)
    else:
        config_file = pathlib.Path(get_package_directory()) / "config" / "log_config.json"

    try:
        with pathlib.Path.open(config_file) as f_in:
            config = json.load(f_in)
    except FileNotFoundError:
        print(f"Logging configuration not found: {config_file}", file=sys.stderr)
        sys.exit(1)

    # The file handler's filename must be one folder deep, such as "logs/toolrelay.log".
    file_handler = config.get("handlers", {}).get("file")
    if file_handler is not None:
        log_directory = pathlib.Path(file_handler["filename"].split("/")[0])
        if not log_directory.exists():
            log_directory.mkdir()

    logging.config.dictConfig(config)

    app_entrypoint(args)
