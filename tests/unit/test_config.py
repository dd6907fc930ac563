"""
Tests for replisync.core.config module.
"""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from replisync.core.config import (
    CollectionConfig,
    CronSchedule,
    IntervalSchedule,
    LoggingConfig,
    ReplisyncConfig,
    get_default_config,
    load_config,
)
from replisync.core.errors import ConfigurationError
from replisync.core.models import ConflictPolicy, Direction


def collection_data(**overrides) -> dict:
    data = {
        "name": "items",
        "local_table": "local_items",
        "cloud_table": "cloud_items",
        "direction": "both",
    }
    data.update(overrides)
    return data


class TestLoggingConfig:
    """Tests for LoggingConfig."""

    def test_default_values(self) -> None:
        config = LoggingConfig()
        assert config.level == "INFO"
        assert config.file_enabled is False
        assert config.console_enabled is True
        assert config.json_format is False

    def test_path_expansion(self) -> None:
        config = LoggingConfig(log_directory="~/logs")
        assert "~" not in str(config.log_directory)


class TestCollectionConfig:
    """Tests for CollectionConfig."""

    def test_defaults_to_latest_wins(self) -> None:
        config = CollectionConfig.model_validate(collection_data())
        assert config.direction is Direction.BOTH
        assert config.conflict_policy is ConflictPolicy.LATEST_WINS

    @pytest.mark.parametrize("direction", ["l2c", "c2l", "both", "overwrite_local", "overwrite_cloud"])
    def test_accepts_all_directions(self, direction: str) -> None:
        config = CollectionConfig.model_validate(collection_data(direction=direction))
        assert config.direction.value == direction

    def test_rejects_unknown_direction(self) -> None:
        with pytest.raises(ValidationError):
            CollectionConfig.model_validate(collection_data(direction="sideways"))

    def test_rejects_unknown_policy(self) -> None:
        with pytest.raises(ValidationError):
            CollectionConfig.model_validate(collection_data(conflict_policy="coin_flip"))

    def test_rejects_blank_name(self) -> None:
        with pytest.raises(ValidationError):
            CollectionConfig.model_validate(collection_data(name="   "))

    def test_rejects_unsafe_table_name(self) -> None:
        with pytest.raises(ValidationError):
            CollectionConfig.model_validate(collection_data(local_table="items; DROP TABLE x"))

    def test_rejects_same_tables(self) -> None:
        with pytest.raises(ValidationError):
            CollectionConfig.model_validate(collection_data(cloud_table="local_items"))


class TestSchedules:
    """Tests for schedule configuration."""

    def test_interval_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            IntervalSchedule(every_seconds=0)

    def test_cron_expression_validated(self) -> None:
        assert CronSchedule(expression="*/5 * * * *").expression == "*/5 * * * *"
        with pytest.raises(ValidationError):
            CronSchedule(expression="every tuesday")

    def test_discriminated_union(self) -> None:
        config = ReplisyncConfig.model_validate(
            {
                "schedule": {"type": "cron", "expression": "0 3 * * *"},
                "collections": [collection_data()],
            }
        )
        assert isinstance(config.schedule, CronSchedule)

        config = ReplisyncConfig.model_validate(
            {
                "schedule": {"type": "interval", "every_seconds": 30},
                "collections": [collection_data()],
            }
        )
        assert isinstance(config.schedule, IntervalSchedule)


class TestReplisyncConfig:
    """Tests for ReplisyncConfig."""

    def test_requires_collections(self) -> None:
        with pytest.raises(ValidationError):
            ReplisyncConfig.model_validate({"collections": []})

    def test_rejects_duplicate_names(self) -> None:
        with pytest.raises(ValidationError):
            ReplisyncConfig.model_validate(
                {
                    "collections": [
                        collection_data(),
                        collection_data(local_table="a", cloud_table="b"),
                    ]
                }
            )

    def test_get_collection(self) -> None:
        config = get_default_config()
        assert config.get_collection("items").local_table == "local_items"
        with pytest.raises(ConfigurationError):
            config.get_collection("missing")

    def test_save_and_load(self, temp_dir: Path) -> None:
        config_path = temp_dir / "config.json"
        original = ReplisyncConfig(
            database_file=temp_dir / "sync.sqlite",
            schedule=IntervalSchedule(every_seconds=15),
            collections=[
                CollectionConfig(
                    name="stock",
                    local_table="local_stock",
                    cloud_table="cloud_stock",
                    direction=Direction.LOCAL_TO_CLOUD,
                    conflict_policy=ConflictPolicy.PREFER_CLOUD,
                )
            ],
        )
        original.save(config_path)

        loaded = ReplisyncConfig.load(config_path)

        assert loaded.database_file == temp_dir / "sync.sqlite"
        assert loaded.schedule == IntervalSchedule(every_seconds=15)
        assert loaded.collections[0].direction is Direction.LOCAL_TO_CLOUD
        assert loaded.collections[0].conflict_policy is ConflictPolicy.PREFER_CLOUD

    def test_load_invalid_json(self, temp_dir: Path) -> None:
        config_path = temp_dir / "config.json"
        config_path.write_text("{not json")
        with pytest.raises(ConfigurationError):
            ReplisyncConfig.load(config_path)

    def test_load_invalid_values(self, temp_dir: Path) -> None:
        config_path = temp_dir / "config.json"
        config_path.write_text(json.dumps({"collections": [collection_data(direction="up")]}))
        with pytest.raises(ConfigurationError) as exc_info:
            ReplisyncConfig.load(config_path)
        assert "direction" in str(exc_info.value)


class TestLoadConfig:
    """Tests for load_config."""

    def test_writes_starter_on_first_run(self, temp_dir: Path) -> None:
        config_path = temp_dir / "config.json"
        config = load_config(config_path)

        assert config_path.exists()
        assert config.schedule is None
        assert config.collections[0].name == "items"
        assert config.collections[0].direction is Direction.BOTH
        saved = json.loads(config_path.read_text())
        assert saved["collections"][0]["conflict_policy"] == "latest_wins"

    def test_loads_existing(self, temp_dir: Path) -> None:
        config_path = temp_dir / "config.json"
        config_path.write_text(
            json.dumps({"database_file": "x.sqlite", "collections": [collection_data(direction="c2l")]})
        )
        config = load_config(config_path)
        assert config.database_file == Path("x.sqlite")
        assert config.collections[0].direction is Direction.CLOUD_TO_LOCAL
