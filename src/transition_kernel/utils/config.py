"""Configuration loader for the transition kernel."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv()

CONFIG_ENV_VAR = "TRANSITION_KERNEL_CONFIG"
CONFIG_FILENAME = "transition_kernel.yaml"

VALIDATION_MODES = ("fast", "checked")
BACKENDS = ("numpy", "jax")


@dataclass(frozen=True)
class KernelConfig:
    """Accumulator behaviour selected by the host application."""

    validation: str = "fast"  # "fast" | "checked"
    backend: str = "numpy"  # "numpy" | "jax"
    ordered: bool = True  # JAX only: table-order scan vs scatter-add
    preserve_baseline: bool = True  # False lets __call__ overwrite the baseline buffer

    def __post_init__(self):
        if self.validation not in VALIDATION_MODES:
            raise ValueError(
                f"Unknown validation mode: '{self.validation}' (expected one of {VALIDATION_MODES})"
            )
        if self.backend not in BACKENDS:
            raise ValueError(f"Unknown backend: '{self.backend}' (expected one of {BACKENDS})")


def _find_config_path() -> Path | None:
    """Locate the YAML config: env var first, then walk up from the cwd."""
    env_path = os.getenv(CONFIG_ENV_VAR)
    if env_path:
        path = Path(env_path)
        if not path.exists():
            raise FileNotFoundError(f"{CONFIG_ENV_VAR} points to a missing file: {path}")
        return path

    current = Path.cwd().resolve()
    for parent in (current, *current.parents):
        config_path = parent / CONFIG_FILENAME
        if config_path.exists():
            return config_path
    return None


def parse_config(raw: dict | None) -> KernelConfig:
    """Build a KernelConfig from parsed YAML (the `kernel:` section is optional)."""
    kernel_raw = (raw or {}).get("kernel", {})
    return KernelConfig(**kernel_raw) if kernel_raw else KernelConfig()


@lru_cache(maxsize=8)
def load_config(path: Path | None = None) -> KernelConfig:
    """Load and parse the kernel configuration.

    Returns cached config on subsequent calls with the same path. Falls back
    to defaults when no config file can be found.
    """
    config_path = Path(path) if path is not None else _find_config_path()
    if config_path is None:
        logger.debug("No %s found, using default kernel config", CONFIG_FILENAME)
        return KernelConfig()

    with config_path.open() as f:
        raw = yaml.safe_load(f)

    logger.debug("Loaded kernel config from %s", config_path)
    return parse_config(raw)


def get_config() -> KernelConfig:
    """Get the kernel configuration."""
    return load_config()
