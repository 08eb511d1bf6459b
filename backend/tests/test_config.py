import pytest
from ims.config.pagination import DEFAULT_LIMIT, MAX_LIMIT, normalize_pagination, page_of
from ims.config.settings import env_flag, load_settings, password_policy_from_config


def test_normalize_pagination_defaults_and_clamping():
    assert normalize_pagination(None, None) == (DEFAULT_LIMIT, 0)
    assert normalize_pagination('500', '-3') == (MAX_LIMIT, 0)
    assert normalize_pagination('0', '5') == (1, 5)
    with pytest.raises(ValueError):
        normalize_pagination('ten', None)


def test_page_overrides_offset():
    assert normalize_pagination('10', '99', '3') == (10, 20)
    assert normalize_pagination(None, None, '0') == (DEFAULT_LIMIT, 0)
    assert page_of(20, 10) == 3
    with pytest.raises(ValueError):
        normalize_pagination(None, None, 'first')


def test_env_flag(monkeypatch):
    monkeypatch.setenv('IMS_TEST_FLAG', 'Yes')
    assert env_flag('IMS_TEST_FLAG') is True
    monkeypatch.setenv('IMS_TEST_FLAG', 'off')
    assert env_flag('IMS_TEST_FLAG', True) is False
    monkeypatch.delenv('IMS_TEST_FLAG')
    assert env_flag('IMS_TEST_FLAG', True) is True


def test_load_settings_overrides_and_env(monkeypatch):
    monkeypatch.setenv('LOW_STOCK_DEFAULT_REORDER_POINT', '7')
    monkeypatch.setenv('PASSWORD_REQUIRE_SYMBOLS', 'true')
    settings = load_settings({'IMS_ENV': 'staging'})
    assert settings['LOW_STOCK_DEFAULT_REORDER_POINT'] == 7
    assert settings['IMS_ENV'] == 'staging'
    assert password_policy_from_config(settings).require_symbols is True


def test_load_settings_rejects_bad_values(monkeypatch):
    with pytest.raises(ValueError):
        load_settings({'IMS_ENV': 'qa'})
    monkeypatch.setenv('RECENT_ACTIVITY_LIMIT', 'many')
    with pytest.raises(ValueError):
        load_settings()
