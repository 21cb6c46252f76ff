from bucketloc.settings import ClientSettings, load_settings


def test_settings_from_toml_and_environment(tmp_path):
    path = tmp_path / "settings.toml"
    path.write_text(
        '[client]\nendpoint = "http://localhost:9000"\nsignature_version = "v2"\ntimeout_seconds = 5\n',
        encoding="utf-8",
    )
    settings = ClientSettings.from_mapping(
        load_settings(path),
        {"BUCKETLOC_ACCESS_KEY": "AKID", "BUCKETLOC_SECRET_KEY": "SECRET"},
    )
    assert settings.endpoint == "http://localhost:9000"
    assert settings.signature_version == "v2"
    assert settings.timeout_seconds == 5.0
    assert not settings.anonymous


def test_missing_credentials_mean_anonymous():
    settings = ClientSettings.from_mapping({}, {"BUCKETLOC_ACCESS_KEY": "AKID"})
    assert settings.anonymous
    assert settings.endpoint == "https://s3.amazonaws.com"
