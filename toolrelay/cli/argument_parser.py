import argparse
from collections.abc import Sequence

from toolrelay.errors import ConfigError


def parse_args(args: Sequence[str] | None = None) -> argparse.Namespace:
    """
    Parse command line arguments for the relay CLI.

    Args:
        args (Optional[Sequence[str]], optional): Arguments to parse instead of sys.argv. Defaults to None.

    Returns:
        argparse.Namespace: The parsed command line arguments as a Namespace object.
    """

    parser = argparse.ArgumentParser(
        prog="toolrelay",
        description="Query a tool-calling agent worker over its stdio JSON-RPC interface.",
        add_help=True,
    )

    parser.add_argument(
        "--logConfig",
        default=None,
        help=("A custom path to a JSON logging configuration file."),
    )

    parser.add_argument(
        "--version",
        action="store_true",
        help="Display the version of toolrelay and exit.",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    servers = subparsers.add_parser("servers", help="List tool servers with their tools and resources.")
    servers.add_argument(
        "--refresh",
        action="store_true",
        help="Bypass the status cache and refetch every page.",
    )

    tool = subparsers.add_parser("tool", help="Show one tool's descriptor from the status directory.")
    tool.add_argument("server", help="Tool server name.")
    tool.add_argument("tool", help="Tool name.")

    resource = subparsers.add_parser("resource", help="Read a resource, falling back to the status cache.")
    resource.add_argument("server", help="Tool server name.")
    resource.add_argument("uri", help="Resource URI.")

    template = subparsers.add_parser(
        "resource-template", help="Read a resource template, falling back to the status cache."
    )
    template.add_argument("server", help="Tool server name.")
    template.add_argument("uri_template", metavar="uri-template", help="Resource template URI.")

    models = subparsers.add_parser("models", help="List available models.")
    models.add_argument("--limit", type=int, default=50, help="Maximum number of models. (default: 50)")

    apps = subparsers.add_parser("apps", help="List connected apps.")
    apps.add_argument("--refresh", action="store_true", help="Ask the worker to refetch the app list.")
    apps.add_argument("--limit", type=int, default=100, help="Maximum number of apps. (default: 100)")

    subparsers.add_parser("watch", help="Print every notification until interrupted.")

    return parser.parse_args(args)


def check_parse_conflicts(args: argparse.Namespace) -> None:
    """
    Check for conflicts in the parsed arguments.

    Args:
        args (argparse.Namespace): The parsed command line arguments.

    Raises:
        ConfigError: If there are conflicts in the arguments.
    """

    if not args.version and args.command is None:
        raise ConfigError("A command is required. See --help for more information.")

    limit = getattr(args, "limit", None)
    if limit is not None and limit <= 0:
        raise ConfigError("--limit must be a positive integer.")
