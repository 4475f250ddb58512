"""Utility functions for transition-kernel."""

from transition_kernel.utils.config import KernelConfig, get_config, load_config

__all__ = [
    "KernelConfig",
    "get_config",
    "load_config",
]
