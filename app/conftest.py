"""
Shared pytest configuration for the Django apps.

- Auto-marks tests as unit / integration / e2e by file name
- Resets process-wide real-time state between tests
- Points file storage at a per-test temporary directory
"""

import pytest
from asgiref.sync import async_to_sync


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_consumers.py → e2e (full socket sessions)
    - test_views.py, test_services.py, test_tasks.py, etc. → integration
    - test_models.py, test_events.py, test_realtime.py, etc. → unit
    - Unmatched files → integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    e2e_patterns = ["test_consumers.py"]

    integration_patterns = [
        "test_views.py",
        "test_services.py",
        "test_tasks.py",
        "test_authorization.py",
        "test_uploads.py",
    ]

    unit_patterns = [
        "test_models.py",
        "test_serializers.py",
        "test_events.py",
        "test_realtime.py",
    ]

    for item in items:
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration", "e2e"}:
            continue

        filename = str(item.fspath).split("/")[-1]

        if any(pattern in filename for pattern in e2e_patterns):
            item.add_marker(pytest.mark.e2e)
        elif any(pattern in filename for pattern in integration_patterns):
            item.add_marker(pytest.mark.integration)
        elif any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            item.add_marker(pytest.mark.integration)


@pytest.fixture(autouse=True)
def reset_realtime_state():
    """Forget live connections and channel layer groups after each test."""
    yield

    from channels.layers import get_channel_layer
    from django.apps import apps

    apps.get_app_config("chat").connection_registry.clear()
    layer = get_channel_layer()
    if hasattr(layer, "flush"):
        async_to_sync(layer.flush)()


@pytest.fixture(autouse=True)
def media_storage(settings, tmp_path):
    """Store uploads under a temporary MEDIA_ROOT."""
    settings.MEDIA_ROOT = str(tmp_path / "media")
    return settings.MEDIA_ROOT
