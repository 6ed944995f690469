from __future__ import annotations

import pytest

from scuttle.credentials import CredentialError, CredentialStore, EnvCredentials, StaticCredentials
from scuttle.providers.digitalocean import DigitalOceanCloud

pytestmark = [pytest.mark.unit]


class TestStaticCredentials:
    def test_lookup(self):
        assert StaticCredentials({"a": "s"}).get_secret("a") == "s"

    @pytest.mark.parametrize("secrets", [{}, {"a": ""}])
    def test_missing_or_empty_raises(self, secrets):
        with pytest.raises(CredentialError) as exc:
            StaticCredentials(secrets).get_secret("a")
        assert exc.value.credential_id == "a"

    def test_satisfies_protocol(self):
        assert isinstance(StaticCredentials(), CredentialStore)
        assert isinstance(EnvCredentials(environ={}), CredentialStore)


class TestEnvCredentials:
    def test_env_name(self):
        assert EnvCredentials(environ={}).env_name("do-token.prod") == "SCUTTLE_CREDENTIAL_DO_TOKEN_PROD"

    def test_specific_variable(self):
        env = {"SCUTTLE_CREDENTIAL_DO_TOKEN": "specific", "DIGITALOCEAN_TOKEN": "generic"}
        assert EnvCredentials(environ=env).get_secret("do-token") == "specific"

    def test_falls_back_to_digitalocean_token(self):
        env = {"DIGITALOCEAN_TOKEN": "generic"}
        assert EnvCredentials(environ=env).get_secret("do-token") == "generic"

    def test_fallback_disabled(self):
        env = {"DIGITALOCEAN_TOKEN": "generic"}
        with pytest.raises(CredentialError, match="SCUTTLE_CREDENTIAL_DO_TOKEN"):
            EnvCredentials(fallback=False, environ=env).get_secret("do-token")

    def test_empty_id_raises(self):
        with pytest.raises(CredentialError):
            EnvCredentials(environ={"DIGITALOCEAN_TOKEN": "x"}).get_secret("")

    def test_reads_process_environment(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("SCUTTLE_CREDENTIAL_CI", "from-env")
        assert EnvCredentials().get_secret("ci") == "from-env"


class TestCloudAuthToken:
    def test_uses_cloud_credential_id(self):
        cloud = DigitalOceanCloud(name="do-east", credential_id="do-token")
        assert cloud.auth_token(StaticCredentials({"do-token": "tok"})) == "tok"

    @pytest.mark.parametrize(
        "kwargs",
        [{"name": ""}, {"request_timeout": 0}],
    )
    def test_invalid_cloud(self, kwargs):
        with pytest.raises(ValueError):
            DigitalOceanCloud(**{"name": "x", "credential_id": "c", **kwargs})
