__version__ = "0.1.0"

from toolrelay.errors import (
    ConfigError,
    ProtocolError,
    RelayError,
    RpcError,
    RpcTimeoutError,
    TransportClosedError,
)
from toolrelay.relay import RelayGateway
from toolrelay.settings import RelayConfig, create_ui_render_policy, load_config

__all__ = [
    "ConfigError",
    "ProtocolError",
    "RelayConfig",
    "RelayError",
    "RelayGateway",
    "RpcError",
    "RpcTimeoutError",
    "TransportClosedError",
    "create_ui_render_policy",
    "load_config",
]
