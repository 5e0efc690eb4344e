from __future__ import annotations

import pytest

from smellscope.detectors.registry import set_extra_detectors


@pytest.fixture(autouse=True)
def _reset_detector_registry_plugins() -> None:
    set_extra_detectors([])
