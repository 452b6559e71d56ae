"""
Config loader for codeguardian.
Reads config.yaml once at startup. All other modules import from here.
${ENV_VAR} references are resolved at load time; a .env file in the
working directory is honoured via python-dotenv.
"""

import logging
import os
import re
import yaml
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

_CONFIG_PATH = Path(
    os.environ.get("CODEGUARDIAN_CONFIG") or Path(__file__).parent.parent / "config.yaml"
)

_config: dict | None = None


class ConfigError(ValueError):
    """Raised when configuration is missing or unusable."""


def _resolve_env_vars(value: str) -> str:
    """Replace ${ENV_VAR} patterns with actual environment variable values."""
    def replacer(match):
        var_name = match.group(1)
        return os.environ.get(var_name, "")
    return re.sub(r"\$\{(\w+)\}", replacer, value)


def _walk_and_resolve(obj):
    """Recursively resolve env vars in all string values."""
    if isinstance(obj, dict):
        return {k: _walk_and_resolve(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_walk_and_resolve(v) for v in obj]
    elif isinstance(obj, str):
        return _resolve_env_vars(obj)
    return obj


def load_config(path: Path | None = None) -> dict:
    """Load and cache config from YAML file."""
    global _config
    if _config is not None and path is None:
        return _config

    config_path = Path(path) if path else _CONFIG_PATH
    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    _config = _walk_and_resolve(raw)
    return _config


def get_config() -> dict:
    """Return cached config, loading if necessary."""
    if _config is None:
        return load_config()
    return _config


def reset_config():
    """Drop the cached config so the next get_config() reloads from disk."""
    global _config
    _config = None


def get_api_key(cfg: dict) -> str:
    """
    Return the bearer credential for the backend.

    Fails closed: an empty key raises ConfigError unless backend.dev_mode
    is set, in which case requests go out unauthenticated (local servers).
    No fallback key is built in.
    """
    backend_cfg = cfg.get("backend", {})
    key = (backend_cfg.get("api_key") or "").strip()
    if key:
        return key
    if backend_cfg.get("dev_mode", False):
        logging.getLogger(__name__).warning(
            "No API key configured; dev_mode is on, sending unauthenticated requests"
        )
        return ""
    raise ConfigError(
        "backend.api_key is empty. Set CODEGUARDIAN_API_KEY "
        "(or enable backend.dev_mode for a local server)."
    )


def setup_logging(cfg: dict):
    """Configure root logging from the `logging` section."""
    log_cfg = cfg.get("logging", {})
    level = getattr(logging, str(log_cfg.get("level", "INFO")).upper(), logging.INFO)
    log_file = log_cfg.get("file")

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
    )
