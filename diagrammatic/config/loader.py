"""YAML config loading with env var expansion."""

import logging
import os
import re
from pathlib import Path

import yaml
from pydantic import ValidationError

from .models import DiagrammaticConfig

logger = logging.getLogger(__name__)

PROJECT_CONFIG = Path("diagrammatic.yaml")

_ENV_REF = re.compile(r"\$\{(\w+)\}")


def config_candidates(cli_path: str | None = None) -> list[Path]:
    """Files consulted in priority order: CLI path, project-local, user-global."""
    if cli_path:
        explicit = Path(cli_path).expanduser()
        if not explicit.is_file():
            raise ValueError(f"Config file not found: {cli_path}")
        return [explicit]
    return [PROJECT_CONFIG, Path.home() / ".diagrammatic" / "config.yaml"]


def load_config(cli_path: str | None = None) -> DiagrammaticConfig:
    """Load the first config file that exists, else built-in defaults.

    An explicit ``cli_path`` must exist; it is never silently skipped.
    """
    for path in config_candidates(cli_path):
        if path.is_file():
            logger.debug("loading config from %s", path)
            return _read_config(path)
    return DiagrammaticConfig()


def _read_config(path: Path) -> DiagrammaticConfig:
    try:
        raw = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e
    if not raw:
        return DiagrammaticConfig()
    if not isinstance(raw, dict):
        raise ValueError(f"Invalid config in {path}: top level must be a mapping")
    try:
        return DiagrammaticConfig(**_expand_env_vars(raw))
    except ValidationError as e:
        raise ValueError(f"Invalid config in {path}: {e}") from e


def _expand_env_vars(obj: object) -> object:
    """Recursively expand ${VAR} references in strings; unset vars become empty."""
    if isinstance(obj, str):
        return _ENV_REF.sub(lambda m: os.environ.get(m.group(1), ""), obj)
    if isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_expand_env_vars(v) for v in obj]
    return obj


# Default YAML template for `diagrammatic config init`
DEFAULT_CONFIG_TEMPLATE = """\
# diagrammatic.yaml

# Graphviz / DOT
dot:
  layout: "dot"                # dot | circo | fdp | neato | osage | patchwork | twopi
  format: "svg"                # svg | png | pdf | jpg
  responsive_svg: true         # add viewBox, width=100% and max-width to SVG output

# Mermaid (rendered through mermaid-cli)
mermaid:
  theme: "default"             # default | forest | dark | neutral
  format: "png"                # svg | png | pdf
  # command: "npx --yes @mermaid-js/mermaid-cli"
  background: "white"
  width: 3200
  height: 2400
  scale: 4

# Rendering
render:
  timeout: 60                  # seconds per diagram
  max_concurrency: 4

# Output
output:
  diagram_dir: "diagrams"      # images go to <doc dir>/<diagram_dir>/<doc name>/

# Logging
log_level: "info"              # debug | info | warn | error
"""
