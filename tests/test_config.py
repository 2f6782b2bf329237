"""Tests for application settings."""

from geo_api.config import Settings
from geo_api.engine.queries import StoreLayout


class TestDefaults:
    def test_store_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.spatial_data_table == "spatial-data"
        assert settings.store_backend == "dynamodb"
        assert settings.maximum_records == 100
        assert settings.query_batch_size == 50
        assert settings.route_proximity_meters == {"Population": 500.0, "Weather": 20000.0}
        assert settings.sampler_seed is None

    def test_store_layout(self):
        assert Settings(_env_file=None).store_layout() == StoreLayout()

    def test_custom_store_layout(self):
        settings = Settings(
            _env_file=None,
            partition_key_hash_precision=2,
            gsi_hash_precision=5,
            partition_key_shards=4,
            gsi_name="GeoIndex",
        )
        layout = settings.store_layout()
        assert layout.partition_key_precision == 2
        assert layout.secondary_index_precision == 5
        assert layout.shard_count == 4
        assert layout.index_name == "GeoIndex"


class TestCorsOrigins:
    def test_comma_separated(self):
        settings = Settings(_env_file=None, cors_origins="http://a.test, http://b.test")
        assert settings.cors_origins == ["http://a.test", "http://b.test"]

    def test_json_list(self):
        settings = Settings(_env_file=None, cors_origins='["http://a.test"]')
        assert settings.cors_origins == ["http://a.test"]

    def test_list_passthrough(self):
        settings = Settings(_env_file=None, cors_origins=["http://a.test"])
        assert settings.cors_origins == ["http://a.test"]


class TestEnvironment:
    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("SPATIAL_DATA_TABLE", "weather-points")
        monkeypatch.setenv("MAXIMUM_RECORDS", "25")
        monkeypatch.setenv("STORE_BACKEND", "memory")
        monkeypatch.setenv("SAMPLER_SEED", "11")

        settings = Settings(_env_file=None)
        assert settings.spatial_data_table == "weather-points"
        assert settings.maximum_records == 25
        assert settings.store_backend == "memory"
        assert settings.sampler_seed == 11
