from __future__ import annotations
from pathlib import Path
from dotenv import load_dotenv

from .config_loader import load_config, provider_config_from
from .core.errors import ConfigError
from .core.ports import Provider, ProviderConfig
from .logging_config import setup_logging
from .providers.registry import ProviderRegistry


def create_provider(config: ProviderConfig) -> Provider:
    """
    Map the configuration tag to its provider class and build it.
    The only provider-specific code path; everything after this sees Provider.
    """
    ProviderRegistry.ensure_imports()  # make sure built-ins register
    try:
        Adapter = ProviderRegistry.get(config.provider)
    except KeyError:
        raise ConfigError(
            f"Unknown provider '{config.provider}' (expected one of {ProviderRegistry.names()})."
        ) from None
    return Adapter.create(config)


def build_provider(config_path: Path) -> Provider:
    """
    Composition root: load .env and YAML, configure logging if asked to, build the provider.
    """
    load_dotenv()
    cfg = load_config(config_path)

    log_cfg = cfg.get("logging") or {}
    if log_cfg.get("level"):
        try:
            setup_logging(log_cfg["level"])
        except ValueError as e:
            raise ConfigError(str(e)) from e

    return create_provider(provider_config_from(cfg))
