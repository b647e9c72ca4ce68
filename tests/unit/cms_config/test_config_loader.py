"""Unit tests for cms_config.config_loader module."""

import asyncio
from unittest.mock import AsyncMock, Mock, patch

import pytest

from src.backend_client.errors import TransportError
from src.cms_config.config_loader import (
    ConfigLoader,
    ConfigState,
    get_config_url,
    parse_config,
)
from src.cms_config.errors import ConfigLoadError, ConfigValidationError
from tests.fixtures.sample_configs import (
    SAMPLE_ADMIN_HTML,
    SAMPLE_CONFIG_YAML,
    get_sample_config,
)
from tests.helpers.http_helpers import make_response


def yaml_response(text=SAMPLE_CONFIG_YAML, status_code=200, content_type="text/yaml"):
    return make_response(status_code=status_code, text=text, headers={"Content-Type": content_type})


class TestGetConfigUrl:
    """Test cases for get_config_url."""

    def test_default_without_document(self):
        assert get_config_url() == "config.yml"

    def test_link_in_document_overrides_default(self):
        assert get_config_url(SAMPLE_ADMIN_HTML) == "/admin/site-config.yml"

    def test_link_without_yaml_type_ignored(self):
        html = '<link href="/custom.yml" type="text/plain" rel="cms-config-url">'

        assert get_config_url(html) == "config.yml"

    def test_application_x_yaml_accepted(self):
        html = '<link href="/custom.yml" type="application/x-yaml" rel="cms-config-url">'

        assert get_config_url(html) == "/custom.yml"


class TestParseConfig:
    """Test cases for parse_config."""

    def test_parses_mapping(self):
        config = parse_config(SAMPLE_CONFIG_YAML)

        assert config == get_sample_config()

    def test_empty_document(self):
        assert parse_config("") == {}

    def test_invalid_yaml(self):
        with pytest.raises(ConfigLoadError, match="Invalid YAML syntax"):
            parse_config("backend: [unclosed", url="config.yml")

    def test_non_mapping_document(self):
        with pytest.raises(ConfigLoadError, match="YAML dictionary"):
            parse_config("- a\n- b\n")

    def test_environment_overlay_hoisted(self):
        text = (
            "backend:\n  name: gitlab\n"
            "site_url: https://example.com\n"
            "staging:\n  site_url: https://staging.example.com\n"
        )

        config = parse_config(text, environment="staging")

        assert config["site_url"] == "https://staging.example.com"
        assert config["backend"] == {"name": "gitlab"}

    def test_environment_without_overlay(self):
        config = parse_config("site_url: https://example.com\n", environment="staging")

        assert config == {"site_url": "https://example.com"}


class TestLoad:
    """Test cases for ConfigLoader.load."""

    @pytest.mark.asyncio
    @patch("src.cms_config.config_loader.perform_request", new_callable=AsyncMock)
    async def test_load_publishes_config(self, mock_perform):
        mock_perform.return_value = yaml_response()
        loader = ConfigLoader(base_url="https://example.com/admin/")

        config = await loader.load()

        assert loader.state == ConfigState.LOADED
        assert loader.error is None
        assert config["publish_mode"] == "simple"
        assert config["public_folder"] == "/static/uploads"
        assert config["collections"][0]["folder"] == "content/posts"
        assert loader.config == config

    @pytest.mark.asyncio
    @patch("src.cms_config.config_loader.perform_request", new_callable=AsyncMock)
    async def test_request_is_rooted_and_timestamped(self, mock_perform):
        mock_perform.return_value = yaml_response()
        loader = ConfigLoader(document_html=SAMPLE_ADMIN_HTML, base_url="https://example.com",
                              cookies={"session": "s1"})

        await loader.load()

        req = mock_perform.call_args.args[0]
        assert req.url == "https://example.com/admin/site-config.yml"
        assert "ts" in req.params
        assert "yaml" in req.headers["Accept"]
        assert mock_perform.call_args.kwargs["cookies"] == {"session": "s1"}

    @pytest.mark.asyncio
    @patch("src.cms_config.config_loader.perform_request", new_callable=AsyncMock)
    async def test_http_error_fails_load(self, mock_perform):
        mock_perform.return_value = yaml_response(text="Not Found", status_code=404)
        loader = ConfigLoader()

        with pytest.raises(ConfigLoadError) as exc_info:
            await loader.load()

        assert exc_info.value.status == 404
        assert "Failed to load config.yml (404)" in str(exc_info.value)
        assert loader.state == ConfigState.FAILED
        assert loader.error is exc_info.value
        assert loader.config is None

    @pytest.mark.asyncio
    @patch("src.cms_config.config_loader.perform_request", new_callable=AsyncMock)
    async def test_transport_error_fails_load(self, mock_perform):
        mock_perform.side_effect = TransportError("config.yml", "connection refused")

        with pytest.raises(ConfigLoadError, match="connection refused"):
            await ConfigLoader().load()

    @pytest.mark.asyncio
    @patch("src.cms_config.config_loader.perform_request", new_callable=AsyncMock)
    async def test_invalid_config_fails_validation(self, mock_perform):
        mock_perform.return_value = yaml_response(text="backend:\n  name: gitlab\n")
        loader = ConfigLoader()

        with pytest.raises(ConfigValidationError):
            await loader.load()

        assert loader.state == ConfigState.FAILED

    @pytest.mark.asyncio
    @patch("src.cms_config.config_loader.perform_request", new_callable=AsyncMock)
    async def test_failed_reload_keeps_previous_config(self, mock_perform):
        """A failing load never replaces the published configuration."""
        mock_perform.return_value = yaml_response()
        loader = ConfigLoader()
        first = await loader.load()

        mock_perform.return_value = yaml_response(text="backend: [unclosed")
        with pytest.raises(ConfigLoadError):
            await loader.load()

        assert loader.config == first
        assert loader.state == ConfigState.FAILED

    @pytest.mark.asyncio
    @patch("src.cms_config.config_loader.perform_request", new_callable=AsyncMock)
    async def test_environment_overlay_applied(self, mock_perform):
        text = SAMPLE_CONFIG_YAML + "staging:\n  site_url: https://staging.example.com\n"
        mock_perform.return_value = yaml_response(text=text)

        config = await ConfigLoader(environment="staging").load()

        assert config["site_url"] == "https://staging.example.com"
        assert config["display_url"] == "https://staging.example.com"

    @pytest.mark.asyncio
    @patch("src.cms_config.config_loader.perform_request", new_callable=AsyncMock)
    async def test_non_yaml_content_type_still_parsed(self, mock_perform):
        mock_perform.return_value = yaml_response(content_type="text/plain")

        config = await ConfigLoader().load()

        assert config["backend"]["name"] == "test-repo"

    @pytest.mark.asyncio
    @patch("src.cms_config.config_loader.perform_request", new_callable=AsyncMock)
    async def test_snapshots_are_independent(self, mock_perform):
        mock_perform.return_value = yaml_response()
        loader = ConfigLoader()
        config = await loader.load()

        config["collections"].clear()

        assert len(loader.config["collections"]) == 2

    @pytest.mark.asyncio
    @patch("src.cms_config.config_loader.perform_request", new_callable=AsyncMock)
    async def test_reload_derives_defaults_from_new_file(self, mock_perform):
        mock_perform.return_value = yaml_response()
        loader = ConfigLoader()
        await loader.load()

        text = SAMPLE_CONFIG_YAML.replace("static/uploads", "static/img").replace(
            "https://example.com", "https://new.example.com")
        mock_perform.return_value = yaml_response(text=text)
        config = await loader.load()

        assert config["public_folder"] == "/static/img"
        assert config["display_url"] == "https://new.example.com"

    @pytest.mark.asyncio
    @patch("src.cms_config.config_loader.perform_request", new_callable=AsyncMock)
    async def test_reload_missing_file_fails_without_preloaded(self, mock_perform):
        """A published config does not count as preloaded on the next load."""
        mock_perform.return_value = yaml_response()
        loader = ConfigLoader()
        first = await loader.load()

        mock_perform.return_value = yaml_response(text="Not Found", status_code=404)
        with pytest.raises(ConfigLoadError) as exc_info:
            await loader.load()

        assert exc_info.value.status == 404
        assert loader.state == ConfigState.FAILED
        assert loader.config == first


class TestPreloadedConfig:
    """Test cases for preloaded and injected configurations."""

    @pytest.mark.asyncio
    @patch("src.cms_config.config_loader.perform_request", new_callable=AsyncMock)
    async def test_file_merged_over_preloaded(self, mock_perform):
        mock_perform.return_value = yaml_response()
        preloaded = {"backend": {"name": "gitlab", "repo": "acme/site"}, "locale": "de"}

        config = await ConfigLoader(preloaded_config=preloaded).load()

        assert config["backend"] == {"name": "test-repo", "repo": "acme/site"}
        assert config["locale"] == "de"

    @pytest.mark.asyncio
    @patch("src.cms_config.config_loader.perform_request", new_callable=AsyncMock)
    async def test_load_config_file_false_skips_fetch(self, mock_perform):
        preloaded = dict(get_sample_config(), load_config_file=False)

        config = await ConfigLoader(preloaded_config=preloaded).load()

        mock_perform.assert_not_called()
        assert config["collections"][0]["name"] == "posts"

    @pytest.mark.asyncio
    @patch("src.cms_config.config_loader.perform_request", new_callable=AsyncMock)
    async def test_missing_file_tolerated_with_preloaded(self, mock_perform):
        """A substantial preloaded config survives a missing file."""
        mock_perform.return_value = yaml_response(text="Not Found", status_code=404)

        config = await ConfigLoader(preloaded_config=get_sample_config()).load()

        assert config["backend"]["name"] == "test-repo"

    @pytest.mark.asyncio
    @patch("src.cms_config.config_loader.perform_request", new_callable=AsyncMock)
    async def test_single_key_preload_does_not_tolerate_missing_file(self, mock_perform):
        mock_perform.return_value = yaml_response(text="Not Found", status_code=404)

        with pytest.raises(ConfigLoadError):
            await ConfigLoader(preloaded_config={"backend": {"name": "test-repo"}}).load()

    @pytest.mark.asyncio
    @patch("src.cms_config.config_loader.perform_request", new_callable=AsyncMock)
    async def test_injected_config_skips_fetch(self, mock_perform):
        config = await ConfigLoader(injected_config=get_sample_config()).load()

        mock_perform.assert_not_called()
        assert config["publish_mode"] == "simple"


class TestMergeAndNotify:
    """Test cases for merge_config, subscribers and authenticate_user."""

    @pytest.mark.asyncio
    async def test_merge_config_republishes(self):
        loader = ConfigLoader(injected_config=get_sample_config())
        await loader.load()

        config = await loader.merge_config({"locale": "fr"})

        assert config["locale"] == "fr"
        assert loader.config["locale"] == "fr"
        assert config["collections"][0]["name"] == "posts"

    @pytest.mark.asyncio
    async def test_invalid_merge_keeps_previous_config(self):
        loader = ConfigLoader(injected_config=get_sample_config())
        first = await loader.load()

        with pytest.raises(ConfigValidationError):
            await loader.merge_config({"publish_mode": "instant"})

        assert loader.config == first

    @pytest.mark.asyncio
    async def test_subscribers_notified_with_snapshot(self):
        loader = ConfigLoader(injected_config=get_sample_config())
        sync_callback = Mock()
        async_callback = AsyncMock()
        loader.subscribe(sync_callback)
        loader.subscribe(async_callback)

        config = await loader.load()

        sync_callback.assert_called_once_with(config)
        async_callback.assert_awaited_once_with(config)

    @pytest.mark.asyncio
    async def test_authenticate_user_called_after_lock_released(self):
        seen = {}

        def authenticate_user(config):
            seen["locked"] = loader.lock.locked
            seen["config"] = config

        loader = ConfigLoader(injected_config=get_sample_config(), authenticate_user=authenticate_user)
        config = await loader.load()

        assert seen == {"locked": False, "config": config}

    @pytest.mark.asyncio
    @patch("src.cms_config.config_loader.perform_request", new_callable=AsyncMock)
    async def test_concurrent_loads_are_serialized(self, mock_perform):
        active = 0
        peak = 0

        async def slow_fetch(*args, **kwargs):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0)
            active -= 1
            return yaml_response()

        mock_perform.side_effect = slow_fetch
        loader = ConfigLoader()

        await asyncio.gather(loader.load(), loader.load(), loader.load())

        assert peak == 1
        assert mock_perform.await_count == 3
