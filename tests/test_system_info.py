from __future__ import annotations

from datetime import datetime
from importlib.metadata import PackageNotFoundError

from filedrop.routers import system as system_router
from filedrop.services import system_info


def test_version_prefers_configured_value(monkeypatch):
    monkeypatch.setattr(system_info.settings, 'app_version', '9.9.9')

    assert system_router.version() == {'version': '9.9.9'}


def test_version_falls_back_to_unknown(monkeypatch):
    def _missing(_name: str):
        raise PackageNotFoundError(_name)

    monkeypatch.setattr(system_info.settings, 'app_version', None)
    monkeypatch.setattr(system_info, 'version', _missing)

    assert system_info.get_version() == 'unknown'


def test_health_reports_ok_with_timestamp():
    payload = system_router.health_check()

    assert payload['status'] == 'ok'
    assert datetime.fromisoformat(payload['timestamp']).tzinfo is not None
