"""Unit tests for config.py module.

Tests the Profile and ConfigManager classes for configuration management
including validation, file operations, profile switching, and environment handling.
"""

import json
import os
import pytest
from unittest.mock import patch

from pydantic import ValidationError

from shopctl.config import ConfigManager, Profile, has_environment_config
from shopctl.exceptions import ConfigError

ENV_CLEAR = {
    "SHOPIFY_HOST": "",
    "SHOPIFY_KEY": "",
    "SHOPIFY_PASSWORD": "",
    "SHOPIFY_ACCESS_TOKEN": "",
    "SHOPIFY_STOREFRONT_ACCESS_TOKEN": "",
    "SHOPIFY_PROFILE": "",
}


@pytest.fixture(autouse=True)
def clean_env():
    with patch.dict(os.environ, ENV_CLEAR):
        yield


class TestProfile:
    """Test cases for the Profile model."""

    def test_profile_with_access_token(self):
        profile = Profile(name="shop", host="example.myshopify.com", access_token="shpat_x")

        assert profile.api_version == "2020-10"
        assert profile.timeout == 30
        assert profile.max_retries == 10
        assert profile.cache_ttl == 1.0
        assert profile.active is False

    def test_profile_with_private_app_credentials(self):
        profile = Profile(name="shop", host="example.myshopify.com", key="k", password="p")

        assert profile.key == "k"
        assert profile.password == "p"

    def test_host_is_reduced_to_domain(self):
        profile = Profile(name="shop", host="https://Example.MyShopify.com/admin/themes", access_token="t")

        assert profile.host == "example.myshopify.com"

    def test_invalid_host(self):
        with pytest.raises(ValidationError):
            Profile(name="shop", host="not a host!", access_token="t")

    def test_credentials_required(self):
        with pytest.raises(ValidationError):
            Profile(name="shop", host="example.myshopify.com", key="k")

    @pytest.mark.parametrize("version", ["2024-01", "unstable"])
    def test_valid_api_versions(self, version):
        assert Profile(name="s", host="example.myshopify.com", access_token="t", api_version=version).api_version == version

    @pytest.mark.parametrize("version", ["v5", "2024", "latest"])
    def test_invalid_api_versions(self, version):
        with pytest.raises(ValidationError):
            Profile(name="s", host="example.myshopify.com", access_token="t", api_version=version)

    @pytest.mark.parametrize("timeout", [0, -1, 301])
    def test_invalid_timeout(self, timeout):
        with pytest.raises(ValidationError):
            Profile(name="s", host="example.myshopify.com", access_token="t", timeout=timeout)

    @pytest.mark.parametrize("retries", [-1, 101])
    def test_invalid_max_retries(self, retries):
        with pytest.raises(ValidationError):
            Profile(name="s", host="example.myshopify.com", access_token="t", max_retries=retries)


class TestEnvironment:
    """Test cases for environment variable configuration."""

    def test_from_environment(self):
        with patch.dict(os.environ, {"SHOPIFY_HOST": "env.myshopify.com", "SHOPIFY_ACCESS_TOKEN": "shpat_env"}):
            assert has_environment_config() is True
            profile = Profile.from_environment()

        assert profile.host == "env.myshopify.com"
        assert profile.access_token == "shpat_env"

    def test_from_environment_without_host(self):
        with pytest.raises(ConfigError):
            Profile.from_environment()

    def test_from_environment_without_credentials(self):
        with patch.dict(os.environ, {"SHOPIFY_HOST": "env.myshopify.com"}):
            assert has_environment_config() is False
            with pytest.raises(ConfigError):
                Profile.from_environment()

    def test_environment_overrides_profile(self):
        profile = Profile(name="shop", host="example.myshopify.com", access_token="stored")

        with patch.dict(os.environ, {"SHOPIFY_ACCESS_TOKEN": "from-env"}):
            overridden = profile.with_environment()

        assert overridden.access_token == "from-env"
        assert overridden.host == "example.myshopify.com"
        assert profile.access_token == "stored"


class TestConfigManager:
    """Test cases for the ConfigManager class."""

    @pytest.fixture
    def manager(self, tmp_path):
        return ConfigManager(config_dir=tmp_path)

    def test_empty_config(self, manager):
        assert manager.list_profiles() == []
        assert manager.get_active_profile() is None
        with pytest.raises(ConfigError):
            manager.get_default_profile()

    def test_first_profile_becomes_active(self, manager):
        manager.create_profile("prod", host="prod.myshopify.com", access_token="t")

        assert manager.get_active_profile() == "prod"
        assert manager.get_default_profile().host == "prod.myshopify.com"

    def test_duplicate_profile(self, manager):
        manager.create_profile("prod", host="prod.myshopify.com", access_token="t")

        with pytest.raises(ConfigError):
            manager.create_profile("prod", host="other.myshopify.com", access_token="t")

    def test_invalid_profile(self, manager):
        with pytest.raises(ConfigError):
            manager.create_profile("bad", host="prod.myshopify.com")

    def test_profiles_persist(self, tmp_path, manager):
        manager.create_profile("prod", host="prod.myshopify.com", access_token="t")
        manager.create_profile("staging", host="staging.myshopify.com", key="k", password="p", activate=True)

        reloaded = ConfigManager(config_dir=tmp_path)

        assert reloaded.get_active_profile() == "staging"
        assert {p["name"] for p in reloaded.list_profiles()} == {"prod", "staging"}
        assert "active_profile = \"staging\"" in (tmp_path / "config.toml").read_text()

    def test_profile_files_are_private(self, tmp_path, manager):
        manager.create_profile("prod", host="prod.myshopify.com", access_token="t")

        profile_file = tmp_path / "profiles" / "prod.json"
        assert json.loads(profile_file.read_text())["access_token"] == "t"
        assert profile_file.stat().st_mode & 0o777 == 0o600

    def test_list_profiles_hides_secrets(self, manager):
        manager.create_profile("prod", host="prod.myshopify.com", key="k", password="p", access_token="t")

        listed = manager.list_profiles()[0]
        assert "password" not in listed
        assert "access_token" not in listed
        assert listed["active"] is True

    def test_set_active_unknown(self, manager):
        with pytest.raises(ConfigError):
            manager.set_active_profile("missing")

    def test_delete_profile(self, tmp_path, manager):
        manager.create_profile("prod", host="prod.myshopify.com", access_token="t")
        manager.delete_profile("prod")

        assert manager.get_active_profile() is None
        assert not (tmp_path / "profiles" / "prod.json").exists()
        with pytest.raises(ConfigError):
            manager.delete_profile("prod")

    def test_resolve_prefers_named_profile(self, manager):
        manager.create_profile("prod", host="prod.myshopify.com", access_token="t")
        manager.create_profile("staging", host="staging.myshopify.com", access_token="t")

        assert manager.resolve_profile("staging").name == "staging"
        assert manager.resolve_profile().name == "prod"

    def test_resolve_profile_from_environment_variable(self, manager):
        manager.create_profile("prod", host="prod.myshopify.com", access_token="t")
        manager.create_profile("staging", host="staging.myshopify.com", access_token="t")

        with patch.dict(os.environ, {"SHOPIFY_PROFILE": "staging"}):
            assert manager.resolve_profile().name == "staging"

    def test_resolve_falls_back_to_environment(self, manager):
        with patch.dict(os.environ, {"SHOPIFY_HOST": "env.myshopify.com", "SHOPIFY_ACCESS_TOKEN": "t"}):
            profile = manager.resolve_profile()

        assert profile.host == "env.myshopify.com"

    def test_resolve_without_any_configuration(self, manager):
        with pytest.raises(ConfigError):
            manager.resolve_profile()

    def test_corrupt_config(self, tmp_path):
        (tmp_path / "config.toml").write_text("active_profile = [")

        with pytest.raises(ConfigError):
            ConfigManager(config_dir=tmp_path)
