"""Tests for client configuration."""

from pathlib import Path

import pytest

from xpkit.config import AuthOptions, ClientOptions, find_env_file, load_options
from xpkit.errors import ValidationError


class TestClientOptions:
    """Tests for the options dataclasses."""

    def test_defaults(self) -> None:
        options = ClientOptions(base_url="xpkit.test", auth=AuthOptions())
        assert options.logging is False
        assert options.auth.access_token is None
        assert options.auth.client_id == ""

    def test_immutable(self) -> None:
        options = ClientOptions(base_url="xpkit.test", auth=AuthOptions())
        with pytest.raises(AttributeError):
            options.base_url = "other.test"  # type: ignore[misc]

    def test_from_dict(self) -> None:
        options = ClientOptions.from_dict(
            {
                "base_url": "xpkit.test",
                "logging": True,
                "auth": {"client_id": "id", "client_secret": "secret"},
            }
        )
        assert options.base_url == "xpkit.test"
        assert options.logging is True
        assert options.auth == AuthOptions(client_id="id", client_secret="secret")

    def test_from_dict_requires_base_url(self) -> None:
        with pytest.raises(KeyError):
            ClientOptions.from_dict({"auth": {}})


class TestFindEnvFile:
    """Tests for find_env_file."""

    def test_explicit_path_exists(self, tmp_path: Path) -> None:
        env_file = tmp_path / "custom.env"
        env_file.write_text("XPKIT_BASE_URL=xpkit.test\n")
        assert find_env_file(env_file) == env_file

    def test_explicit_path_not_exists(self, tmp_path: Path) -> None:
        assert find_env_file(tmp_path / "missing.env") is None

    def test_default_in_cwd(self, clean_env: None) -> None:
        Path(".env").write_text("XPKIT_BASE_URL=xpkit.test\n")
        assert find_env_file() == Path(".env")

    def test_none_found(self, clean_env: None) -> None:
        assert find_env_file() is None


class TestLoadOptions:
    """Tests for load_options."""

    def test_client_credentials(self, clean_env: None, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("XPKIT_BASE_URL", "xpkit.test")
        monkeypatch.setenv("XPKIT_CLIENT_ID", "id")
        monkeypatch.setenv("XPKIT_CLIENT_SECRET", "secret")

        options = load_options()

        assert options.base_url == "xpkit.test"
        assert options.auth.client_id == "id"
        assert options.auth.client_secret == "secret"
        assert options.auth.access_token is None
        assert options.logging is False

    def test_access_token_only(self, clean_env: None, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("XPKIT_BASE_URL", "xpkit.test")
        monkeypatch.setenv("XPKIT_ACCESS_TOKEN", "external")

        assert load_options().auth.access_token == "external"

    @pytest.mark.parametrize("value", ["1", "true", "YES", "on"])
    def test_logging_flag(
        self, clean_env: None, monkeypatch: pytest.MonkeyPatch, value: str
    ) -> None:
        monkeypatch.setenv("XPKIT_BASE_URL", "xpkit.test")
        monkeypatch.setenv("XPKIT_ACCESS_TOKEN", "external")
        monkeypatch.setenv("XPKIT_LOGGING", value)

        assert load_options().logging is True

    def test_from_env_file(self, clean_env: None, tmp_path: Path) -> None:
        """Test that variables are read from an explicit .env file."""
        env_file = tmp_path / "xpkit.env"
        env_file.write_text(
            "XPKIT_BASE_URL=xpkit.test\nXPKIT_CLIENT_ID=id\nXPKIT_CLIENT_SECRET=secret\n"
        )

        options = load_options(env_file)

        assert options.auth.client_secret == "secret"

    def test_environment_wins_over_env_file(
        self, clean_env: None, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        Path(".env").write_text("XPKIT_BASE_URL=from-file.test\nXPKIT_ACCESS_TOKEN=t\n")
        monkeypatch.setenv("XPKIT_BASE_URL", "from-env.test")

        assert load_options().base_url == "from-env.test"

    def test_missing_base_url(self, clean_env: None, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("XPKIT_ACCESS_TOKEN", "external")
        with pytest.raises(ValidationError, match="XPKIT_BASE_URL"):
            load_options()

    def test_missing_secret(self, clean_env: None, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("XPKIT_BASE_URL", "xpkit.test")
        monkeypatch.setenv("XPKIT_CLIENT_ID", "id")
        with pytest.raises(ValidationError, match="XPKIT_CLIENT_SECRET"):
            load_options()

    def test_client_id_enough_without_secret_requirement(
        self, clean_env: None, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("XPKIT_BASE_URL", "xpkit.test")
        monkeypatch.setenv("XPKIT_CLIENT_ID", "id")

        assert load_options(require_secret=False).auth.client_id == "id"

    def test_client_id_still_required(
        self, clean_env: None, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("XPKIT_BASE_URL", "xpkit.test")
        with pytest.raises(ValidationError, match="XPKIT_CLIENT_ID"):
            load_options(require_secret=False)
