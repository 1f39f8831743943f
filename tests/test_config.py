import pytest

from order_relay.config.config import ConfigurationError, ProxyConfig, load_catalog, load_config

ENV_VARS = (
    "API_BASE_URL",
    "API_PATH",
    "UPSTREAM_TIMEOUT_MS",
    "UPSTREAM_RETRIES",
    "UPSTREAM_BACKOFF_MS",
    "APP_USERNAME",
    "APP_PASSWORD",
    "APP_ENV",
    "CATALOG_PATH",
)


@pytest.fixture
def env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("APP_USERNAME", "admin")
    monkeypatch.setenv("APP_PASSWORD", "s3cret")
    return monkeypatch


def test_defaults(env):
    cfg = load_config()

    assert cfg.proxy == ProxyConfig(api_base_url=None, api_path="/order", timeout_ms=20000, retries=2, backoff_ms=400)
    assert cfg.username == "admin"
    assert cfg.production is False
    assert cfg.catalog["products"]
    assert cfg.catalog["users"]


def test_overrides(env):
    env.setenv("API_BASE_URL", "https://up.example/prod")
    env.setenv("API_PATH", "/submit")
    env.setenv("UPSTREAM_TIMEOUT_MS", "5000")
    env.setenv("UPSTREAM_RETRIES", "0")
    env.setenv("UPSTREAM_BACKOFF_MS", "0")
    env.setenv("APP_ENV", "production")

    cfg = load_config()

    assert cfg.proxy.default_destination() == "https://up.example/prod/submit"
    assert (cfg.proxy.timeout_ms, cfg.proxy.retries, cfg.proxy.backoff_ms) == (5000, 0, 0)
    assert cfg.production is True


def test_missing_credentials(env):
    env.delenv("APP_PASSWORD")

    with pytest.raises(ConfigurationError, match="APP_PASSWORD"):
        load_config()


@pytest.mark.parametrize(
    "name,value",
    [("UPSTREAM_TIMEOUT_MS", "0"), ("UPSTREAM_RETRIES", "-1"), ("UPSTREAM_BACKOFF_MS", "soon")],
)
def test_invalid_numbers(env, name, value):
    env.setenv(name, value)

    with pytest.raises(ConfigurationError, match=name):
        load_config()


def test_config_is_immutable(env):
    cfg = load_config()

    with pytest.raises(AttributeError):
        cfg.proxy.retries = 5


def test_no_base_url_means_no_default_destination():
    assert ProxyConfig().default_destination() is None


def test_catalog_path_override(env, tmp_path):
    path = tmp_path / "rows.yaml"
    path.write_text("products:\n  - {product_id: 1, name: One}\n")
    env.setenv("CATALOG_PATH", str(path))

    cfg = load_config()

    assert cfg.catalog == {"products": [{"product_id": 1, "name": "One"}], "users": []}


def test_unreadable_catalog(tmp_path):
    with pytest.raises(ConfigurationError):
        load_catalog(str(tmp_path / "missing.yaml"))


def test_catalog_tables_must_be_lists(tmp_path):
    path = tmp_path / "rows.yaml"
    path.write_text("products: {product_id: 1}\n")

    with pytest.raises(ConfigurationError, match="products"):
        load_catalog(str(path))
