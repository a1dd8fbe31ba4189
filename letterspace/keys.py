"""
API key management for Letterspace.

Provides storage and retrieval of AI service keys using:
1. Environment variables (preferred for CI/production)
2. OS keychain via keyring (secure local storage)
3. Local config file (fallback)

Usage:
    from letterspace.keys import KeyManager

    km = KeyManager()
    km.set_key("gemini", "AIza...")
    key = km.get_key("gemini")
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import keyring
from keyring.errors import KeyringError

logger = logging.getLogger("letterspace-keys")

# Supported services and their env var names
SERVICES = {
    "gemini": "GEMINI_API_KEY",
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}


@dataclass
class KeyInfo:
    """Information about an API key."""
    service: str
    is_set: bool
    source: str  # 'env', 'keyring', 'config', 'none'
    masked_value: str


def env_var_for(service: str) -> str:
    return SERVICES.get(service, f"{service.upper()}_API_KEY")


class KeyManager:
    """Manage API keys.

    Priority order for key retrieval:
    1. Environment variable
    2. OS keychain (via keyring)
    3. Local config file (~/.letterspace/keys.json)
    """

    SERVICE_NAME = "Letterspace-Canvas"

    def __init__(self, config_dir: Optional[Path] = None, use_keyring: bool = True):
        self.config_dir = Path(config_dir) if config_dir else Path.home() / ".letterspace"
        self.config_file = self.config_dir / "keys.json"
        self._keyring_available = use_keyring and self._check_keyring()

    def _check_keyring(self) -> bool:
        """Check if a usable keyring backend is configured."""
        try:
            backend = keyring.get_keyring()
        except KeyringError:
            return False
        return backend.priority > 0

    def _read_config(self) -> dict:
        if not self.config_file.exists():
            return {}
        try:
            return json.loads(self.config_file.read_text())
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable key file {self.config_file}: {e}")
            return {}

    def _lookup(self, service: str) -> tuple[Optional[str], str]:
        if env_val := os.getenv(env_var_for(service)):
            return env_val, "env"
        if self._keyring_available:
            try:
                if key := keyring.get_password(self.SERVICE_NAME, service):
                    return key, "keyring"
            except KeyringError as e:
                logger.debug(f"Keyring lookup failed for {service}: {e}")
        if key := self._read_config().get(service):
            return key, "config"
        return None, "none"

    def get_key(self, service: str) -> Optional[str]:
        """Get API key for a service, or None if not found."""
        return self._lookup(service.lower())[0]

    def set_key(self, service: str, key: str, use_keyring: bool = True) -> str:
        """Store API key for a service.

        Returns:
            Storage location used ('keyring' or 'config')
        """
        service = service.lower()
        if use_keyring and self._keyring_available:
            try:
                keyring.set_password(self.SERVICE_NAME, service, key)
                return "keyring"
            except KeyringError as e:
                logger.warning(f"Keyring unavailable, falling back to config file: {e}")

        self.config_dir.mkdir(parents=True, exist_ok=True)
        config = self._read_config()
        config[service] = key
        self.config_file.write_text(json.dumps(config, indent=2))
        self.config_file.chmod(0o600)
        return "config"

    def delete_key(self, service: str) -> bool:
        """Delete stored API key for a service."""
        service = service.lower()
        deleted = False
        if self._keyring_available:
            try:
                keyring.delete_password(self.SERVICE_NAME, service)
                deleted = True
            except KeyringError:
                pass  # nothing stored there
        config = self._read_config()
        if service in config:
            del config[service]
            self.config_file.write_text(json.dumps(config, indent=2))
            deleted = True
        return deleted

    def get_key_info(self, service: str) -> KeyInfo:
        service = service.lower()
        key, source = self._lookup(service)
        return KeyInfo(
            service=service,
            is_set=key is not None,
            source=source,
            masked_value=self._mask_key(key) if key else "",
        )

    def list_keys(self) -> list[KeyInfo]:
        return [self.get_key_info(service) for service in SERVICES]

    def _mask_key(self, key: str) -> str:
        """Mask a key for display (show first 4 and last 4 chars)."""
        if len(key) <= 12:
            return "*" * len(key)
        return f"{key[:4]}...{key[-4:]}"


def get_key(service: str) -> Optional[str]:
    """Convenience function to get an API key."""
    return KeyManager().get_key(service)


def require_key(service: str) -> str:
    """Get API key or raise error if not found."""
    key = get_key(service)
    if not key:
        raise ValueError(
            f"API key for '{service}' not found. "
            f"Set {env_var_for(service)} environment variable "
            f"or run: letterspace keys set {service}"
        )
    return key
