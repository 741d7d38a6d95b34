"""
Unit tests for ConnectionConfig.

Tests environment defaults, validation and client keyword arguments.
"""

import pytest

from mdb_odm.config import ConnectionConfig, Credential, ReadPref
from mdb_odm.exceptions import ConfigurationError

ENV_VARS = (
    "MONGO_URI",
    "MONGO_HOST",
    "MONGO_PORT",
    "DB_NAME",
    "MONGO_COLLECTION",
    "MONGO_CONNECT_TIMEOUT_MS",
    "MONGO_MAX_POOL_SIZE",
    "MONGO_MIN_POOL_SIZE",
    "MONGO_SOCKET_TIMEOUT_MS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.mark.unit
class TestDefaults:
    """Test defaults and environment variables."""

    def test_defaults(self):
        config = ConnectionConfig()
        assert config.uri == "mongodb://localhost:27017"
        assert config.database == ""
        assert config.connect_timeout_ms == 30000
        assert config.max_pool_size == 100
        assert config.min_pool_size == 0
        assert config.socket_timeout_ms == 300000

    def test_host_and_port_build_uri(self, monkeypatch):
        monkeypatch.setenv("MONGO_HOST", "db")
        monkeypatch.setenv("MONGO_PORT", "27018")
        assert ConnectionConfig().uri == "mongodb://db:27018"

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("MONGO_URI", "mongodb+srv://cluster.example.net")
        monkeypatch.setenv("DB_NAME", "app")
        monkeypatch.setenv("MONGO_COLLECTION", "users")
        monkeypatch.setenv("MONGO_MAX_POOL_SIZE", "20")

        config = ConnectionConfig()

        assert config.uri == "mongodb+srv://cluster.example.net"
        assert config.database == "app"
        assert config.collection == "users"
        assert config.max_pool_size == 20

    def test_parameters_override_environment(self, monkeypatch):
        monkeypatch.setenv("MONGO_MIN_POOL_SIZE", "5")
        assert ConnectionConfig(min_pool_size=0).min_pool_size == 0

    def test_non_integer_environment(self, monkeypatch):
        monkeypatch.setenv("MONGO_SOCKET_TIMEOUT_MS", "soon")
        with pytest.raises(ConfigurationError) as exc_info:
            ConnectionConfig()
        assert exc_info.value.config_key == "MONGO_SOCKET_TIMEOUT_MS"


@pytest.mark.unit
class TestValidate:
    """Test validate()."""

    def test_valid(self):
        ConnectionConfig(
            database="app",
            read_preference=ReadPref(mode="secondaryPreferred", max_staleness_ms=90000),
            auth=Credential(username="app", password="secret"),
        ).validate()

    @pytest.mark.parametrize(
        "kwargs, key",
        [
            ({"uri": "localhost:27017"}, "uri"),
            ({"connect_timeout_ms": -1}, "connect_timeout_ms"),
            ({"socket_timeout_ms": -1}, "socket_timeout_ms"),
            ({"min_pool_size": 10, "max_pool_size": 5}, "min_pool_size"),
            ({"read_preference": ReadPref(mode="fastest")}, "read_preference.mode"),
            (
                {"read_preference": ReadPref(max_staleness_ms=-1)},
                "read_preference.max_staleness_ms",
            ),
        ],
    )
    def test_invalid(self, kwargs, key):
        with pytest.raises(ConfigurationError) as exc_info:
            ConnectionConfig(**kwargs).validate()
        assert exc_info.value.config_key == key

    def test_unbounded_pool_allows_any_minimum(self):
        ConnectionConfig(min_pool_size=10, max_pool_size=0).validate()

    @pytest.mark.parametrize("value", ["a:b", "a/b", "a@b"])
    def test_reserved_characters_in_credentials(self, value):
        with pytest.raises(ConfigurationError, match="username not supported"):
            ConnectionConfig(auth=Credential(username=value)).validate()
        with pytest.raises(ConfigurationError, match="password not supported"):
            ConnectionConfig(auth=Credential(username="u", password=value)).validate()


@pytest.mark.unit
class TestClientKwargs:
    """Test client_kwargs()."""

    def test_pool_and_timeouts(self):
        kwargs = ConnectionConfig(uri="mongodb://db", max_pool_size=7).client_kwargs()
        assert kwargs == {
            "host": "mongodb://db",
            "connectTimeoutMS": 30000,
            "maxPoolSize": 7,
            "minPoolSize": 0,
            "socketTimeoutMS": 300000,
            "tz_aware": True,
        }

    def test_dates_read_back_timezone_aware(self):
        assert ConnectionConfig().client_kwargs()["tz_aware"] is True

    def test_uri_options_win(self):
        config = ConnectionConfig(uri="mongodb://db/?maxpoolsize=3&readPreference=nearest",
                                  read_preference=ReadPref(mode="secondary"))
        kwargs = config.client_kwargs()
        assert "maxPoolSize" not in kwargs
        assert "readPreference" not in kwargs
        assert kwargs["minPoolSize"] == 0

    def test_read_preference_staleness_in_seconds(self):
        kwargs = ConnectionConfig(
            read_preference=ReadPref(mode="secondary", max_staleness_ms=120000)
        ).client_kwargs()
        assert kwargs["readPreference"] == "secondary"
        assert kwargs["maxStalenessSeconds"] == 120

    def test_credentials(self):
        kwargs = ConnectionConfig(
            auth=Credential(
                username="app",
                password="pw",
                auth_source="admin",
                auth_mechanism="SCRAM-SHA-256",
            )
        ).client_kwargs()
        assert kwargs["username"] == "app"
        assert kwargs["password"] == "pw"
        assert kwargs["authSource"] == "admin"
        assert kwargs["authMechanism"] == "SCRAM-SHA-256"

    def test_empty_password_only_when_set(self):
        assert "password" not in ConnectionConfig(auth=Credential(username="k")).client_kwargs()
        kwargs = ConnectionConfig(
            auth=Credential(username="k", auth_mechanism="GSSAPI", password_set=True)
        ).client_kwargs()
        assert kwargs["password"] == ""
