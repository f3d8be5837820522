# src/llmstream/config_loader.py

from __future__ import annotations
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional
import yaml

from llmstream.core.errors import ConfigError
from llmstream.core.ports import ProviderConfig


def _require(d: Dict[str, Any], dotted: str, typ: type) -> Any:
    cur: Any = d
    for k in dotted.split("."):
        if not isinstance(cur, dict) or k not in cur:
            raise ConfigError(f"Missing config key: {dotted}")
        cur = cur[k]
    if typ is bool and not isinstance(cur, bool):
        raise ConfigError(f"'{dotted}' must be a boolean")
    if typ is str and not isinstance(cur, str):
        raise ConfigError(f"'{dotted}' must be a string")
    return cur


def load_config(path: Path) -> Dict[str, Any]:
    if not path or not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Config is not valid YAML: {path}: {e}") from e
    if not isinstance(raw, dict) or not raw:
        raise ConfigError(f"Config is empty or invalid YAML: {path}")

    # Validate required keys (no defaults here)
    _require(raw, "model.provider", str)
    _require(raw, "model.name", str)

    provider = raw["model"]["provider"].strip().lower()
    if not provider:
        raise ConfigError("'model.provider' must not be empty")
    raw["model"]["provider"] = provider

    providers = raw.get("providers") or {}
    if not isinstance(providers, dict):
        raise ConfigError("'providers' must be a mapping")
    section = providers.get(provider) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"'providers.{provider}' must be a mapping")
    if "reassemble_lines" in section:
        _require(raw, f"providers.{provider}.reassemble_lines", bool)
    timeout = section.get("timeout")
    if timeout is not None and (isinstance(timeout, bool) or not isinstance(timeout, (int, float))):
        raise ConfigError(f"'providers.{provider}.timeout' must be a number")

    return raw


def provider_config_from(cfg: Dict[str, Any], environ: Optional[Mapping[str, str]] = None) -> ProviderConfig:
    """
    Build the immutable ProviderConfig from a loaded config dict.
    The API key comes from the env var named by providers.<name>.api_key_env,
    else <NAME>_API_KEY.
    """
    env = os.environ if environ is None else environ
    provider = cfg["model"]["provider"]
    section = (cfg.get("providers") or {}).get(provider) or {}

    key_var = section.get("api_key_env") or f"{provider.upper()}_API_KEY"
    api_key = (env.get(key_var) or "").strip()

    timeout = section.get("timeout")
    return ProviderConfig(
        provider=provider,
        model=cfg["model"]["name"],
        api_key=api_key,
        base_url=section.get("base_url") or None,
        timeout=float(timeout) if timeout is not None else None,
        reassemble_lines=bool(section.get("reassemble_lines", False)),
    )
