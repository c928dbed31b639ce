import pytest
from botocore.exceptions import ClientError

import airfieldwatch.config as config


class FakeSSM:
    def __init__(self, value=None, error=None):
        self.value = value
        self.error = error
        self.calls = 0

    def get_parameter(self, Name, WithDecryption):
        self.calls += 1
        if self.error:
            raise self.error
        return {"Parameter": {"Name": Name, "Value": self.value}}


@pytest.fixture(autouse=True)
def clear_password_cache():
    config.get_adsb_password.cache_clear()
    yield
    config.get_adsb_password.cache_clear()


def test_password_is_read_once(monkeypatch):
    fake = FakeSSM(value="s3cret")
    monkeypatch.setattr(config, "_ssm_client", fake)

    assert config.get_adsb_password("/airfieldwatch/adsb/password") == "s3cret"
    assert config.get_adsb_password("/airfieldwatch/adsb/password") == "s3cret"
    assert fake.calls == 1


def test_empty_password_raises(monkeypatch):
    monkeypatch.setattr(config, "_ssm_client", FakeSSM(value=""))

    with pytest.raises(RuntimeError):
        config.get_adsb_password("/airfieldwatch/adsb/password")


def test_ssm_error_raises_runtime_error(monkeypatch):
    error = ClientError({"Error": {"Code": "ParameterNotFound", "Message": "nope"}}, "GetParameter")
    monkeypatch.setattr(config, "_ssm_client", FakeSSM(error=error))

    with pytest.raises(RuntimeError):
        config.get_adsb_password("/airfieldwatch/adsb/password")


def test_boolean_parsing(monkeypatch):
    monkeypatch.setenv("AIRFIELDWATCH_FLAG", "Yes")
    assert config._get_bool("AIRFIELDWATCH_FLAG") is True
    monkeypatch.setenv("AIRFIELDWATCH_FLAG", "off")
    assert config._get_bool("AIRFIELDWATCH_FLAG", default=True) is False
    monkeypatch.delenv("AIRFIELDWATCH_FLAG")
    assert config._get_bool("AIRFIELDWATCH_FLAG", default=True) is True


def test_settings_defaults():
    settings = config.Settings()

    assert settings.airport_code == "EGPK"
    assert settings.approach_radius_m == 50_000
    assert settings.retention_days == 30
