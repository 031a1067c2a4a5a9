"""
Tests for lease_config: YAML loading, environment overrides, validation and
the config -> kernel bridges.
"""

from pathlib import Path

import pytest
import yaml

from lease_config import DEFAULT_CONFIG_FILE, get_active_config
from lease_config.bridges import (
    build_document_policy,
    build_document_store,
    build_orchestrator,
)
from lease_config.loader import apply_env_overrides, load_yaml_file, parse_config
from lease_config.schema import LeaseConfig
from lease_kernel.services.document_service import CONTRACTS_FOLDER, RECEIPTS_FOLDER
from lease_kernel.services.lease_orchestrator import LeaseOrchestrator


def _write(tmp_path: Path, data: dict) -> Path:
    path = tmp_path / "lease.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


class TestDefaults:

    def test_packaged_defaults_load(self):
        config = get_active_config(environ={})

        assert isinstance(config, LeaseConfig)
        assert config.source == str(DEFAULT_CONFIG_FILE)
        assert config.database.url == "sqlite://"
        assert config.lifecycle.expiring_soon_days == 30
        assert config.storage.max_upload_bytes == 10 * 1024 * 1024
        assert "application/pdf" in config.storage.allowed_content_types[CONTRACTS_FOLDER]
        assert config.logging.level == "INFO"

    def test_config_is_frozen(self):
        config = get_active_config(environ={})
        with pytest.raises(AttributeError):
            config.lifecycle.expiring_soon_days = 5

    def test_load_is_logged(self, captured_logs):
        get_active_config(environ={})
        loaded = [r for r in captured_logs() if r["message"] == "config_loaded"]
        assert loaded[-1]["expiring_soon_days"] == 30


class TestFileAndEnvironment:

    def test_explicit_file(self, tmp_path):
        path = _write(tmp_path, {"lifecycle": {"expiring_soon_days": 45}})
        config = get_active_config(path, environ={})

        assert config.lifecycle.expiring_soon_days == 45
        assert config.database.url == "sqlite://"
        assert config.source == str(path)

    def test_file_from_environment(self, tmp_path):
        path = _write(tmp_path, {"logging": {"level": "debug"}})
        config = get_active_config(environ={"LEASE_CONFIG_FILE": str(path)})
        assert config.logging.level == "DEBUG"

    def test_environment_overrides_file(self, tmp_path):
        path = _write(tmp_path, {"lifecycle": {"expiring_soon_days": 45}})
        config = get_active_config(
            path,
            environ={
                "LEASE_EXPIRING_SOON_DAYS": "10",
                "LEASE_DATABASE_URL": "postgresql://lease@localhost/lease",
                "LEASE_STORAGE_ROOT": "/srv/uploads",
                "LEASE_LOG_LEVEL": "warning",
            },
        )
        assert config.lifecycle.expiring_soon_days == 10
        assert config.database.url == "postgresql://lease@localhost/lease"
        assert config.storage.root == "/srv/uploads"
        assert config.logging.level == "WARNING"

    def test_overrides_do_not_mutate_input(self):
        data = {"lifecycle": {"expiring_soon_days": 45}}
        apply_env_overrides(data, {"LEASE_EXPIRING_SOON_DAYS": "10"})
        assert data["lifecycle"]["expiring_soon_days"] == 45

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "absent.yaml", environ={})

    def test_non_mapping_document(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError):
            load_yaml_file(path)


class TestValidation:

    @pytest.mark.parametrize("data", [
        {"lifecycle": {"expiring_soon_days": -1}},
        {"lifecycle": {"expiring_soon_days": "soon"}},
        {"database": {"pool_size": 0}},
        {"database": {"echo": "maybe"}},
        {"database": {"url": ""}},
        {"storage": {"max_upload_bytes": 0}},
        {"storage": {"allowed_content_types": {"contracts": "application/pdf"}}},
        {"logging": {"level": "LOUD"}},
        {"lifecycle": ["not", "a", "mapping"]},
    ])
    def test_invalid_values_rejected(self, data):
        with pytest.raises(ValueError):
            parse_config(data)

    def test_empty_document_uses_defaults(self):
        config = parse_config({})
        assert config == LeaseConfig()


class TestBridges:

    def test_document_policy_from_config(self):
        config = parse_config({
            "storage": {
                "max_upload_bytes": 2048,
                "allowed_content_types": {"receipts": ["image/png"]},
            }
        })
        policy = build_document_policy(config)

        assert policy.max_upload_bytes == 2048
        assert policy.allowed_content_types[RECEIPTS_FOLDER] == frozenset({"image/png"})

    def test_document_policy_without_types_keeps_kernel_defaults(self):
        policy = build_document_policy(parse_config({}))
        assert "application/pdf" in policy.allowed_content_types[CONTRACTS_FOLDER]

    def test_document_store_from_config(self, tmp_path):
        config = parse_config({
            "storage": {"root": str(tmp_path), "public_base_url": "http://cdn.test/"}
        })
        store = build_document_store(config)
        assert store.root == tmp_path
        assert store.public_base_url == "http://cdn.test"

    def test_orchestrator_uses_configured_window(self, session, identity, deterministic_clock, tmp_path):
        config = parse_config({
            "lifecycle": {"expiring_soon_days": 400},
            "storage": {"root": str(tmp_path)},
        })
        orchestrator = build_orchestrator(session, identity, config, clock=deterministic_clock)
        assert isinstance(orchestrator, LeaseOrchestrator)

        prop = orchestrator.create_property("Loft", "1 Main St", 900)
        tenant = orchestrator.create_tenant("Ana", "Lopez", "ana@example.com", "DNI-1")
        contract = orchestrator.create_contract(
            tenant.id, prop.id, deterministic_clock.today(),
            deterministic_clock.today().replace(year=2025), 900, status="active",
        )
        assert contract.status.value == "expiring_soon"
