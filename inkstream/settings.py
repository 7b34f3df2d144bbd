"""TOML configuration loader.

Loads assembler settings from the ``[assembler]`` table of defaults.toml
(shipped with the package) or of a user-supplied file.
"""

from __future__ import annotations

import tomllib
from pathlib import Path

from inkstream.schemas.config import AssemblerConfig

# Default config directory inside the inkstream package
_CONFIG_DIR = Path(__file__).parent / "config"

DEFAULT_CONFIG_PATH = _CONFIG_DIR / "defaults.toml"


def load_config(config_path: Path | None = None) -> AssemblerConfig:
    """Load assembler settings from a TOML file.

    Args:
        config_path: Path to a TOML file. Defaults to the packaged
            inkstream/config/defaults.toml.

    Returns:
        AssemblerConfig with values from the file. Keys missing from the
        ``[assembler]`` table keep their model defaults.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If ``[assembler]`` is present but is not a table.
        pydantic.ValidationError: If a value is out of range.
    """
    path = config_path or DEFAULT_CONFIG_PATH
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "rb") as f:
        raw = tomllib.load(f)

    section = raw.get("assembler", {})
    if not isinstance(section, dict):
        raise ValueError(f"[assembler] in {path} must be a table")

    return AssemblerConfig(**section)
