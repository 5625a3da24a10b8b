"""Resolve provider API keys from the environment."""

import os
from typing import Dict, Optional

PROVIDER_KEY_VARIABLES = {"OpenAI": "OPENAI_API_KEY"}


def get_provider_api_keys() -> Dict[str, str]:
    """Return the non-blank API keys currently configured, by provider name."""
    keys: Dict[str, str] = {}
    for provider, variable in PROVIDER_KEY_VARIABLES.items():
        value = os.getenv(variable)
        if value and value.strip():
            keys[provider] = value.strip()
    return keys


def get_provider_settings() -> Dict[str, Dict[str, bool]]:
    """Return ``{provider: {"enabled": bool}}`` based on credential presence."""
    keys = get_provider_api_keys()
    return {provider: {"enabled": provider in keys} for provider in PROVIDER_KEY_VARIABLES}


def resolve_api_key(provider_name: str) -> Optional[str]:
    """Return the API key for ``provider_name`` (case-insensitive), or None."""
    wanted = provider_name.lower()
    for provider, key in get_provider_api_keys().items():
        if provider.lower() == wanted:
            return key
    return None
