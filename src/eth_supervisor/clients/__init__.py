"""Launch descriptions for the supported Ethereum clients."""

from .jwt import ensure_jwt_secret
from .launch import LaunchSpec, binary_path, minimal_environment
from .plan import build_launch_plan
from .relay import MAINNET_RELAYS

__all__ = [
    "MAINNET_RELAYS",
    "LaunchSpec",
    "binary_path",
    "build_launch_plan",
    "ensure_jwt_secret",
    "minimal_environment",
]
