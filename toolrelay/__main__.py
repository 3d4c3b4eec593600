import logging
import sys

from toolrelay.cli.main import app_entrypoint, cli_entrypoint
from toolrelay.errors import RelayError

log = logging.getLogger(__name__)


def custom_excepthook(exc_type, exc_value, exc_traceback):
    if issubclass(exc_type, RelayError):
        print(f"{exc_value}", file=sys.stderr)
    else:
        sys.__excepthook__(exc_type, exc_value, exc_traceback)


def main(args) -> None:
    sys.excepthook = custom_excepthook
    app_entrypoint(args)


def run_as_standalone_app() -> None:
    sys.excepthook = custom_excepthook
    cli_entrypoint()


if __name__ == "__main__":
    run_as_standalone_app()
