"""Configuration management for the Shopify store CLI.

This module provides configuration profile management, including creating,
deleting, and switching between different Shopify stores, plus environment
variable overrides for credentials.
"""

import os
import tomllib
import json
from pathlib import Path
from typing import Dict, List, Optional, Any
import re

from pydantic import BaseModel, Field, field_validator, model_validator

from .exceptions import ConfigError

DEFAULT_API_VERSION = "2020-10"

ENV_HOST = "SHOPIFY_HOST"
ENV_KEY = "SHOPIFY_KEY"
ENV_PASSWORD = "SHOPIFY_PASSWORD"
ENV_ACCESS_TOKEN = "SHOPIFY_ACCESS_TOKEN"
ENV_STOREFRONT_TOKEN = "SHOPIFY_STOREFRONT_ACCESS_TOKEN"
ENV_PROFILE = "SHOPIFY_PROFILE"


class Profile(BaseModel):
    """Configuration profile for a Shopify store."""

    name: str = Field(..., description="Profile name")
    host: str = Field(..., description="Store domain, e.g. example.myshopify.com")
    key: Optional[str] = Field(None, description="Private app API key")
    password: Optional[str] = Field(None, description="Private app password")
    access_token: Optional[str] = Field(None, description="Custom app Admin API access token")
    storefront_token: Optional[str] = Field(None, description="Storefront API access token")
    api_version: str = Field(default=DEFAULT_API_VERSION, description="Admin API version")
    timeout: int = Field(default=30, description="Request timeout in seconds")
    max_retries: int = Field(default=10, description="Maximum retries for transient failures")
    cache_ttl: float = Field(default=1.0, description="Seconds a cached GET response stays fresh")
    active: bool = Field(default=False, description="Whether this is the active profile")

    @field_validator("host")
    @classmethod
    def validate_host(cls, v: str) -> str:
        """Reduce the host to a bare domain."""
        host = re.sub(r"^https?://", "", v.strip()).split("/", 1)[0]
        if not host or not re.match(r"^[A-Za-z0-9.-]+(:\d+)?$", host):
            raise ValueError(f"Invalid store host: {v!r}")
        return host.lower()

    @field_validator("api_version")
    @classmethod
    def validate_api_version(cls, v: str) -> str:
        if not re.match(r"^\d{4}-\d{2}$|^unstable$", v):
            raise ValueError("API version must look like YYYY-MM")
        return v

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        """Validate timeout value."""
        if v <= 0:
            raise ValueError("Timeout must be greater than 0")
        if v > 300:
            raise ValueError("Timeout cannot exceed 300 seconds")
        return v

    @field_validator("max_retries")
    @classmethod
    def validate_max_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Retry attempts cannot be negative")
        if v > 100:
            raise ValueError("Retry attempts cannot exceed 100")
        return v

    @model_validator(mode="after")
    def validate_credentials(self) -> "Profile":
        if not self.access_token and not (self.key and self.password):
            raise ValueError("Either access_token or both key and password are required")
        return self

    @classmethod
    def from_environment(cls, name: str = "environment") -> "Profile":
        """Build a profile purely from environment variables.

        Raises:
            ConfigError: If the environment does not hold enough configuration
        """
        host = os.getenv(ENV_HOST)
        if not host:
            raise ConfigError(f"{ENV_HOST} environment variable is required")
        try:
            return cls(
                name=name,
                host=host,
                key=os.getenv(ENV_KEY),
                password=os.getenv(ENV_PASSWORD),
                access_token=os.getenv(ENV_ACCESS_TOKEN),
                storefront_token=os.getenv(ENV_STOREFRONT_TOKEN),
            )
        except ValueError as e:
            raise ConfigError(f"Invalid environment configuration: {e}")

    def with_environment(self) -> "Profile":
        """Return a copy with any credential environment variables applied."""
        overrides = {
            "host": os.getenv(ENV_HOST),
            "key": os.getenv(ENV_KEY),
            "password": os.getenv(ENV_PASSWORD),
            "access_token": os.getenv(ENV_ACCESS_TOKEN),
            "storefront_token": os.getenv(ENV_STOREFRONT_TOKEN),
        }
        overrides = {k: v for k, v in overrides.items() if v}
        if not overrides:
            return self
        data = self.model_dump()
        data.update(overrides)
        return Profile(**data)


def has_environment_config() -> bool:
    """Check if environment variables provide sufficient configuration."""
    return bool(
        os.getenv(ENV_HOST)
        and (os.getenv(ENV_ACCESS_TOKEN) or (os.getenv(ENV_KEY) and os.getenv(ENV_PASSWORD)))
    )


class ConfigManager:
    """Manages configuration profiles for Shopify stores."""

    def __init__(self, config_dir: Optional[Path] = None) -> None:
        """Initialize configuration manager.

        Args:
            config_dir: Configuration directory path. If None, uses default.
        """
        self.config_dir = config_dir or Path.home() / ".shopctl"
        self.config_file = self.config_dir / "config.toml"
        self.profiles_dir = self.config_dir / "profiles"

        self._profiles: Dict[str, Profile] = {}
        self._active_profile: Optional[str] = None
        self._load_config()

    def _ensure_dirs(self) -> None:
        self.profiles_dir.mkdir(parents=True, exist_ok=True)

    def create_profile(
        self,
        name: str,
        host: str,
        key: Optional[str] = None,
        password: Optional[str] = None,
        access_token: Optional[str] = None,
        storefront_token: Optional[str] = None,
        api_version: str = DEFAULT_API_VERSION,
        timeout: int = 30,
        max_retries: int = 10,
        activate: bool = False,
    ) -> Profile:
        """Create a new configuration profile.

        Raises:
            ConfigError: If profile creation fails
        """
        if name in self._profiles:
            raise ConfigError(f"Profile '{name}' already exists")

        try:
            profile = Profile(
                name=name,
                host=host,
                key=key,
                password=password,
                access_token=access_token,
                storefront_token=storefront_token,
                api_version=api_version,
                timeout=timeout,
                max_retries=max_retries,
            )
        except ValueError as e:
            raise ConfigError(f"Failed to create profile: {e}")

        self._profiles[name] = profile
        self._save_profile(profile)
        if activate or self._active_profile is None:
            self.set_active_profile(name)
        else:
            self._save_config()

        return profile

    def list_profiles(self) -> List[Dict[str, Any]]:
        """List all available profiles, without secrets."""
        profiles = []
        for profile in self._profiles.values():
            profile_dict = profile.model_dump(exclude={"password", "access_token", "storefront_token"})
            profile_dict["active"] = profile.name == self._active_profile
            profiles.append(profile_dict)

        return profiles

    def set_active_profile(self, name: str) -> None:
        """Set the active profile.

        Raises:
            ConfigError: If profile doesn't exist
        """
        if name not in self._profiles:
            raise ConfigError(f"Profile '{name}' not found")

        for profile in self._profiles.values():
            profile.active = profile.name == name

        self._active_profile = name
        self._save_config()

    def get_active_profile(self) -> Optional[str]:
        return self._active_profile

    def get_default_profile(self) -> Profile:
        """Get the default (active) profile.

        Raises:
            ConfigError: If no default profile is set
        """
        if not self._active_profile:
            raise ConfigError("No default profile set")

        return self._profiles[self._active_profile]

    def get_profile(self, name: str) -> Profile:
        """Get a specific profile by name.

        Raises:
            ConfigError: If profile doesn't exist
        """
        if name not in self._profiles:
            raise ConfigError(f"Profile '{name}' not found")

        return self._profiles[name]

    def resolve_profile(self, name: Optional[str] = None) -> Profile:
        """Pick the profile for a command run.

        An explicit name (or ``SHOPIFY_PROFILE``) wins, then the active
        profile, then a profile built from the environment. Environment
        credentials always override stored ones.
        """
        name = name or os.getenv(ENV_PROFILE)
        if name:
            return self.get_profile(name).with_environment()
        if self._active_profile:
            return self.get_default_profile().with_environment()
        if has_environment_config():
            return Profile.from_environment()
        raise ConfigError(
            "No store configuration found. Either run 'shopctl config init' or set "
            f"{ENV_HOST} and {ENV_ACCESS_TOKEN} (or {ENV_KEY} and {ENV_PASSWORD})"
        )

    def delete_profile(self, name: str) -> None:
        """Delete a configuration profile.

        Raises:
            ConfigError: If profile doesn't exist
        """
        if name not in self._profiles:
            raise ConfigError(f"Profile '{name}' not found")

        if self._active_profile == name:
            self._active_profile = None

        del self._profiles[name]

        profile_file = self.profiles_dir / f"{name}.json"
        if profile_file.exists():
            profile_file.unlink()

        self._save_config()

    def _load_config(self) -> None:
        """Load configuration from disk."""
        if self.config_file.exists():
            try:
                with open(self.config_file, "rb") as f:
                    config_data = tomllib.load(f)
            except (OSError, tomllib.TOMLDecodeError) as e:
                raise ConfigError(f"Failed to load configuration: {e}")
            self._active_profile = config_data.get("active_profile") or None

        if not self.profiles_dir.exists():
            return

        for profile_file in self.profiles_dir.glob("*.json"):
            try:
                with open(profile_file, "r") as f:
                    profile_data = json.load(f)
                profile = Profile(**profile_data)
            except (OSError, ValueError) as e:
                raise ConfigError(f"Failed to load profile {profile_file}: {e}")
            self._profiles[profile.name] = profile

        if self._active_profile not in self._profiles:
            self._active_profile = None

    def _save_config(self) -> None:
        """Save configuration to file."""
        self._ensure_dirs()
        active = f'"{self._active_profile}"' if self._active_profile else '""'
        # tomllib is read-only, so the file is written by hand
        toml_content = f"""# shopctl configuration
version = "1.0"
active_profile = {active}
"""
        try:
            with open(self.config_file, "w") as f:
                f.write(toml_content)
        except OSError as e:
            raise ConfigError(f"Failed to save configuration: {e}")

    def _save_profile(self, profile: Profile) -> None:
        """Save individual profile to file."""
        self._ensure_dirs()
        profile_file = self.profiles_dir / f"{profile.name}.json"
        try:
            with open(profile_file, "w") as f:
                json.dump(profile.model_dump(), f, indent=2, default=str)
            os.chmod(profile_file, 0o600)
        except OSError as e:
            raise ConfigError(f"Failed to save profile: {e}")
