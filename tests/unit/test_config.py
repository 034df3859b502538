"""Tests for settings loading (YAML file + environment overrides)."""

from uuid import UUID

import pytest
import yaml

from gym_kernel.config import KernelSettings, load_settings, settings_from_mapping


class TestKernelSettings:
    def test_defaults(self):
        settings = KernelSettings()
        assert settings.execution_mode == "auto"
        assert settings.require_atomic is False
        assert settings.database_url.startswith("sqlite")

    def test_rejects_unknown_execution_mode(self):
        with pytest.raises(ValueError):
            KernelSettings(execution_mode="sometimes")


class TestLoadSettings:
    def test_no_file_no_env_gives_defaults(self):
        assert load_settings(environ={}) == KernelSettings()

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "gym_kernel": {
                        "database_url": "sqlite:///other.db",
                        "execution_mode": "sequential",
                        "log_level": "debug",
                    }
                }
            )
        )
        settings = load_settings(path, environ={})
        assert settings.database_url == "sqlite:///other.db"
        assert settings.execution_mode == "sequential"
        assert settings.log_level == "DEBUG"

    def test_flat_yaml_without_section(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("require_atomic: true\n")
        assert load_settings(path, environ={}).require_atomic is True

    def test_env_overrides_file(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("execution_mode: sequential\n")
        env = {
            "GYM_KERNEL_EXECUTION_MODE": "atomic",
            "GYM_KERNEL_REQUIRE_ATOMIC": "yes",
        }
        settings = load_settings(path, environ=env)
        assert settings.execution_mode == "atomic"
        assert settings.require_atomic is True

    def test_config_path_from_env(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("echo: true\n")
        settings = load_settings(environ={"GYM_KERNEL_CONFIG": str(path)})
        assert settings.echo is True

    def test_actor_id_is_parsed(self):
        actor = "7d7c2a52-5b4e-4c67-9a0c-2a4f0c7b9e11"
        settings = settings_from_mapping({"default_actor_id": actor})
        assert settings.default_actor_id == UUID(actor)

    def test_unknown_key_rejected(self):
        with pytest.raises(ValueError, match="Unknown settings"):
            settings_from_mapping({"pool_size": 5})

    def test_bad_boolean_rejected(self):
        with pytest.raises(ValueError):
            settings_from_mapping({"echo": "maybe"})
