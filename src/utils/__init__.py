"""
Utility modules for the form submission relay
"""
from .relay_config_loader import RelayConfig, load_relay_config
from .transformers import format_date, to_bool, to_numeric

__all__ = [
    'RelayConfig',
    'load_relay_config',
    'format_date',
    'to_bool',
    'to_numeric',
]
