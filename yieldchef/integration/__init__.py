"""
Host integration layer: config, external calls, stateful chef
"""

from .chef_host import Chef
from .config import ChefConfig, config_from_mapping, load_config
from .operations import call_signing_bytes, parse_call, verify_call_signature

__all__ = [
    "Chef",
    "ChefConfig",
    "config_from_mapping",
    "load_config",
    "call_signing_bytes",
    "parse_call",
    "verify_call_signature",
]
