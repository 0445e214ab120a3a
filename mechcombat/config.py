"""
Engine configuration and logging setup.

Settings come from data/config.yaml, then a .env file, then MECHCOMBAT_*
environment variables, each layer overriding the one before.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ENV_DATA = "MECHCOMBAT_DATA"
ENV_SEED = "MECHCOMBAT_SEED"
ENV_LOG_LEVEL = "MECHCOMBAT_LOG_LEVEL"

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s: %(message)s"


@dataclass
class EngineConfig:
    data_path: Path = Path("data")
    seed: Optional[int] = None
    log_level: str = "INFO"
    crash_margin: int = 3


def load_config(path: Optional[Path | str] = None, env_file: Optional[Path | str] = None) -> EngineConfig:
    """Build an EngineConfig from YAML and the environment."""
    load_dotenv(env_file)

    data_path = Path(os.environ.get(ENV_DATA, "data"))
    config_path = Path(path) if path else data_path / "config.yaml"

    values = {}
    if config_path.exists():
        with open(config_path) as f:
            values = yaml.safe_load(f) or {}
        logger.debug(f"Loaded config from {config_path}")
    else:
        logger.debug(f"No config at {config_path}, using defaults")

    config = EngineConfig(
        data_path=Path(values.get("data_path", data_path)),
        seed=values.get("seed"),
        log_level=str(values.get("log_level", "INFO")),
        crash_margin=int(values.get("crash_margin", 3)),
    )

    if ENV_DATA in os.environ:
        config.data_path = Path(os.environ[ENV_DATA])
    if os.environ.get(ENV_SEED):
        config.seed = int(os.environ[ENV_SEED])
    if os.environ.get(ENV_LOG_LEVEL):
        config.log_level = os.environ[ENV_LOG_LEVEL]
    config.log_level = config.log_level.upper()
    return config


def configure_logging(level: str | int = logging.INFO):
    """Root handler for scripts; the library itself never calls this."""
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
