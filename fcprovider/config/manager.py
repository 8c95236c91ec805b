#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Configuration management module for the Firecracker provider.
This module loads the provider configuration and builds the control API transport.
"""
import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict

from ..transport import HttpTransport, RetryingTransport, Transport

logger = logging.getLogger("fc-provider")

DEFAULT_CONFIG_PATH = "/etc/fcprovider/provider.json"

DEFAULTS: Dict[str, Any] = {
    "base_url": None,
    "bind_host": "127.0.0.1",
    "bind_port": 8080,
    "state_dir": "/var/lib/fcprovider",
    "transport": {
        "timeout": 30,
        "retry_max": 3,
        "retry_wait_min": 1,
        "retry_wait_max": 5,
        "pool_maxsize": 20,
    },
    "logging": {"level": "INFO"},
}

# env var -> (config key, converter)
ENV_OVERRIDES = {
    "FC_PROVIDER_BASE_URL": ("base_url", str),
    "FC_PROVIDER_STATE_DIR": ("state_dir", str),
    "FC_PROVIDER_BIND_HOST": ("bind_host", str),
    "FC_PROVIDER_BIND_PORT": ("bind_port", int),
    "FC_PROVIDER_LOG_LEVEL": ("logging.level", str),
    "FC_PROVIDER_TIMEOUT": ("transport.timeout", float),
}


def _set_path(cfg: Dict[str, Any], dotted: str, value: Any) -> None:
    keys = dotted.split(".")
    node = cfg
    for key in keys[:-1]:
        node = node.setdefault(key, {})
    node[keys[-1]] = value


class ConfigManager:
    """Manager for configuration operations."""

    def load_provider_config(self) -> Dict[str, Any]:
        """Load provider config.
        Precedence: env > JSON file (FC_PROVIDER_CONFIG) > built-in defaults.
        A config file that exists but is not valid JSON is fatal; the provider
        will NOT start with it.
        """
        cfg = copy.deepcopy(DEFAULTS)
        cfg_path = os.environ.get("FC_PROVIDER_CONFIG", DEFAULT_CONFIG_PATH)
        p = Path(cfg_path)
        if p.exists():
            with p.open("r", encoding="utf-8") as f:
                try:
                    file_cfg = json.load(f)
                except ValueError as e:
                    raise RuntimeError(f"Invalid JSON in FC_PROVIDER_CONFIG='{cfg_path}': {e}") from e
            if not isinstance(file_cfg, dict):
                raise RuntimeError(f"FC_PROVIDER_CONFIG='{cfg_path}' must contain a JSON object")
            for key, value in file_cfg.items():
                if isinstance(value, dict) and isinstance(cfg.get(key), dict):
                    cfg[key].update(value)
                else:
                    cfg[key] = value
            logger.debug("Loaded provider config from %s", cfg_path)
        for env_name, (dotted, convert) in ENV_OVERRIDES.items():
            raw = os.environ.get(env_name)
            if raw is None or raw.strip() == "":
                continue
            try:
                _set_path(cfg, dotted, convert(raw.strip()))
            except ValueError as e:
                raise RuntimeError(f"Invalid value for {env_name}: {raw!r}") from e
        return cfg

    @staticmethod
    def build_transport(cfg: Dict[str, Any]) -> Transport:
        """Compose the retry policy around a plain HTTP transport."""
        base_url = cfg.get("base_url")
        if not base_url:
            raise RuntimeError("base_url is not configured (set it in the config file or FC_PROVIDER_BASE_URL)")
        tcfg = cfg.get("transport") or {}
        inner = HttpTransport(
            base_url,
            timeout=float(tcfg.get("timeout", 30)),
            pool_maxsize=int(tcfg.get("pool_maxsize", 20)),
        )
        logger.info("Using Firecracker API at %s", base_url)
        return RetryingTransport(
            inner,
            max_attempts=int(tcfg.get("retry_max", 3)),
            wait_min=float(tcfg.get("retry_wait_min", 1)),
            wait_max=float(tcfg.get("retry_wait_max", 5)),
        )
