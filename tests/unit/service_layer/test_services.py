"""Unit tests for caller-facing use cases."""

from __future__ import annotations

from unittest.mock import Mock

import pytest

from firescan.config import ObservabilityCollectorConfig, Settings
from firescan.domain import ExecutionStrategy, collection_query
from firescan.exceptions import NotFoundError, ResourceExceededError
from firescan.service_layer import (
    QueryOptions,
    build_index,
    configure_observability,
    load_index,
    record_mutation,
    run_query,
    update_index,
)
from firescan.service_layer import services as services_module


NYC_OLDER = collection_query("users").where("city", "==", "NYC").where("age", ">=", 30)


@pytest.mark.unit
class TestRunQuery:
    @pytest.mark.asyncio
    async def test_defaults_come_from_settings(self, users_store, monkeypatch):
        monkeypatch.setenv("FIRESCAN_MAX_SERVER_SIDE_RESULTS", "4")

        with pytest.raises(ResourceExceededError) as exc_info:
            await run_query(users_store, [], NYC_OLDER)

        assert exc_info.value.ceiling == 4

    @pytest.mark.asyncio
    async def test_explicit_options_win(self, users_store, monkeypatch):
        monkeypatch.setenv("FIRESCAN_MAX_SERVER_SIDE_RESULTS", "4")

        result = await run_query(users_store, [], NYC_OLDER, options=QueryOptions(max_server_side_results=5))

        assert result.strategy is ExecutionStrategy.HYBRID
        assert result.ids == ["alice", "tom"]

    @pytest.mark.asyncio
    async def test_keyword_query_through_loaded_index(self, users_store, manager, name_config):
        index = await load_index(manager, "users", name_config)

        result = await run_query(
            users_store,
            [],
            collection_query("users").where("age", "<", 30),
            keywords="nyc",
            options=QueryOptions(full_text_index=index),
        )

        assert result.ids == ["john", "mike"]


@pytest.mark.unit
class TestIndexLifecycle:
    @pytest.mark.asyncio
    async def test_load_without_config_requires_snapshot(self, manager):
        with pytest.raises(NotFoundError):
            await load_index(manager, "users")

    @pytest.mark.asyncio
    async def test_build_then_load(self, manager, name_config):
        built = await build_index(manager, "users", name_config)
        loaded = await load_index(manager, "users")

        assert len(loaded) == len(built) == 8

    @pytest.mark.asyncio
    async def test_recorded_mutations_reach_the_index(self, manager, name_config):
        await build_index(manager, "users", name_config)

        entry = await record_mutation(manager, "users", "zoe", {"name": "Zoe", "city": "Boston"})
        await record_mutation(manager, "users", "bob", None)
        index = await update_index(manager, "users")

        assert entry.record_collection == "users"
        assert manager.search(index, "boston") == ["zoe"]
        assert not index.contains("bob")
        assert await manager.pending_updates("users") == []


@pytest.mark.unit
class TestConfigureObservability:
    def test_wires_every_exporter(self, monkeypatch):
        calls = {}
        for name in (
            "configure_logging",
            "configure_metrics_exporter",
            "init_tracing",
            "configure_trace_exporter",
            "configure_log_exporter",
        ):
            calls[name] = Mock(name=name)
            monkeypatch.setattr(services_module, name, calls[name])
        collector = ObservabilityCollectorConfig(resource_attributes={"deployment.environment": "test"})
        settings = Settings(_env_file=None, log_level="debug", log_json=False, observability=collector)

        configure_observability(settings)

        calls["configure_logging"].assert_called_once_with("debug", json_output=False)
        calls["configure_metrics_exporter"].assert_called_once_with(collector, service_name="firescan")
        calls["init_tracing"].assert_called_once_with("firescan", {"deployment.environment": "test"})
        calls["configure_trace_exporter"].assert_called_once_with(collector, calls["init_tracing"].return_value)
        calls["configure_log_exporter"].assert_called_once_with(collector)

    def test_reads_process_settings_by_default(self, monkeypatch):
        configure_logging = Mock()
        monkeypatch.setattr(services_module, "configure_logging", configure_logging)
        monkeypatch.setattr(services_module, "init_tracing", Mock())
        monkeypatch.setenv("FIRESCAN_LOG_LEVEL", "warning")

        configure_observability()

        configure_logging.assert_called_once_with("warning", json_output=True)
