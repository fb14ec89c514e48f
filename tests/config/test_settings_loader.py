"""
Tests for warehouse_config: YAML loading, environment overrides, validation
and the policy bridges.
"""

import logging

import pytest
import yaml

from warehouse_config import get_settings
from warehouse_config.bridges import (
    build_delivery_policy,
    build_identifier_policy,
    build_retry_policy,
)
from warehouse_config.loader import (
    DEFAULTS_PATH,
    ENV_CONFIG_PATH,
    apply_env_overrides,
    load_settings,
    load_yaml_file,
    parse_settings,
)
from warehouse_config.schema import WarehouseSettings
from warehouse_kernel.domain.policies import OverDeliveryMode


def _write(tmp_path, data, name="warehouse.yaml"):
    path = tmp_path / name
    path.write_text(yaml.safe_dump(data))
    return path


class TestDefaults:

    def test_packaged_defaults_match_schema_defaults(self):
        assert load_settings(environ={}) == WarehouseSettings()

    def test_defaults_file_is_packaged(self):
        assert DEFAULTS_PATH.exists()
        assert set(load_yaml_file(DEFAULTS_PATH)) == {
            "database", "retry", "identifiers", "delivery", "reporting", "logging",
        }

    def test_missing_sections_fall_back(self, tmp_path):
        path = _write(tmp_path, {"reporting": {"timezone": "Asia/Jakarta"}})

        settings = load_settings(path, environ={})

        assert settings.reporting.timezone == "Asia/Jakarta"
        assert settings.delivery.over_delivery == "reject"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert load_settings(path, environ={}) == WarehouseSettings()


class TestEnvironment:

    def test_config_path_from_environment(self, tmp_path):
        path = _write(tmp_path, {"delivery": {"over_delivery": "allow"}})

        settings = load_settings(environ={ENV_CONFIG_PATH: str(path)})

        assert settings.delivery.over_delivery == "allow"

    def test_database_url_and_level_override_file(self, tmp_path):
        path = _write(tmp_path, {"database": {"url": "sqlite:///file.db"}})

        settings = load_settings(
            path,
            environ={
                "WAREHOUSE_DATABASE_URL": "postgresql://wh@localhost/wh",
                "WAREHOUSE_LOG_LEVEL": "debug",
            },
        )

        assert settings.database.url == "postgresql://wh@localhost/wh"
        assert settings.logging.level == "DEBUG"

    def test_blank_values_ignored(self):
        settings = apply_env_overrides(
            WarehouseSettings(), {"WAREHOUSE_DATABASE_URL": "  ", "WAREHOUSE_LOG_LEVEL": ""}
        )

        assert settings == WarehouseSettings()


class TestValidation:

    def test_unknown_section(self):
        with pytest.raises(ValueError, match="Unknown configuration sections: scanner"):
            parse_settings({"scanner": {}})

    def test_unknown_key(self):
        with pytest.raises(ValueError, match="unknown keys poolsize"):
            parse_settings({"database": {"poolsize": 5}})

    @pytest.mark.parametrize(
        "section, values",
        [
            ("database", {"pool_size": "twenty"}),
            ("database", {"echo": "yes"}),
            ("retry", {"max_attempts": True}),
            ("identifiers", {"unique_id_prefix": "   "}),
            ("retry", ["not", "a", "mapping"]),
        ],
    )
    def test_wrong_types(self, section, values):
        with pytest.raises(ValueError):
            parse_settings({section: values})

    def test_integers_accepted_for_floats(self):
        settings = parse_settings({"retry": {"base_delay_seconds": 1}})

        assert settings.retry.base_delay_seconds == 1.0
        assert isinstance(settings.retry.base_delay_seconds, float)

    def test_range_errors_reported_together(self, tmp_path):
        path = _write(
            tmp_path,
            {
                "database": {"pool_size": 0},
                "delivery": {"over_delivery": "cap"},
                "reporting": {"timezone": "Mars/Olympus"},
                "logging": {"level": "CHATTY"},
            },
        )

        with pytest.raises(ValueError) as exc_info:
            load_settings(path, environ={})

        message = str(exc_info.value)
        assert message.startswith("Configuration validation failed:")
        for fragment in ("pool_size", "over_delivery", "Mars/Olympus", "CHATTY"):
            assert fragment in message

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ValueError, match="top level must be a mapping"):
            load_yaml_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "nope.yaml", environ={})


class TestGetSettings:

    def test_logs_loaded_settings(self, tmp_path, caplog):
        path = _write(tmp_path, {"reporting": {"timezone": "Asia/Jakarta"}})
        logger = logging.getLogger("warehouse_kernel.config")
        logger.addHandler(caplog.handler)
        try:
            with caplog.at_level(logging.INFO, logger="warehouse_kernel.config"):
                settings = get_settings(path)
        finally:
            logger.removeHandler(caplog.handler)

        assert settings.reporting.timezone == "Asia/Jakarta"
        record = next(r for r in caplog.records if r.getMessage() == "warehouse_config_loaded")
        assert record.reporting_timezone == "Asia/Jakarta"
        assert record.source == str(path)


class TestBridges:

    def test_delivery_policy(self):
        settings = parse_settings({"delivery": {"over_delivery": "ALLOW", "max_attempts": 5}})

        policy = build_delivery_policy(settings)

        assert policy.over_delivery == OverDeliveryMode.ALLOW
        assert not policy.caps_at_total
        assert policy.max_attempts == 5

    def test_identifier_policy(self):
        settings = parse_settings(
            {"identifiers": {"unique_id_prefix": "WH", "barcode_prefix": "QX", "max_attempts": 2}}
        )

        policy = build_identifier_policy(settings)

        assert (policy.unique_id_prefix, policy.barcode_prefix, policy.max_attempts) == ("WH", "QX", 2)

    def test_retry_policy(self):
        policy = build_retry_policy(WarehouseSettings())

        assert (policy.max_attempts, policy.base_delay_seconds) == (3, 0.05)
