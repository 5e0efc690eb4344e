from __future__ import annotations

import pytest

from smellscope.config import ConfigError, ConfigLayer
from smellscope.detectors.cohesion import UtilityFunction
from smellscope.engine.stack import DetectorStack, StackOrderError

SCHEMA = UtilityFunction.meta.default_config


def _layer(**values) -> ConfigLayer:
    return ConfigLayer(values, schema=SCHEMA)


def test_defaults_apply_without_layers() -> None:
    stack = DetectorStack(UtilityFunction())
    assert stack.value("max_helper_calls") == 0
    assert stack.value("enabled") is True
    assert stack.is_active() is True
    assert dict(stack.effective_config()) == dict(SCHEMA)


def test_innermost_layer_defining_a_key_wins() -> None:
    outer = _layer(max_helper_calls=1)
    stack = DetectorStack(UtilityFunction(), [outer])
    assert stack.value("max_helper_calls") == 1

    inner = _layer(max_helper_calls=3)
    stack.push(inner)
    assert stack.value("max_helper_calls") == 3
    assert stack.effective_config()["max_helper_calls"] == 3

    # A layer that doesn't define the key falls through to outer layers.
    unrelated = _layer(enabled=True)
    stack.push(unrelated)
    assert stack.value("max_helper_calls") == 3

    stack.pop(unrelated)
    stack.pop(inner)
    assert stack.value("max_helper_calls") == 1


def test_exclude_and_force_follow_nesting() -> None:
    stack = DetectorStack(UtilityFunction())

    excluded = ConfigLayer({"exclude": ("UtilityFunction",)})
    forced = ConfigLayer({"force": ("UtilityFunction",)})
    excluded_again = ConfigLayer({"exclude": ("UtilityFunction",)})

    with stack.pushed([excluded]):
        assert stack.is_active() is False
        with stack.pushed([forced]):
            assert stack.is_active() is True
            with stack.pushed([excluded_again]):
                assert stack.is_active() is False
            assert stack.is_active() is True
        assert stack.is_active() is False
    assert stack.is_active() is True


def test_force_wins_within_the_same_layer() -> None:
    stack = DetectorStack(UtilityFunction(), [ConfigLayer({"exclude": ("UtilityFunction",), "force": ("UtilityFunction",)})])
    assert stack.is_excluded() is False


def test_exclusions_of_other_detectors_are_ignored() -> None:
    stack = DetectorStack(UtilityFunction(), [ConfigLayer({"exclude": ("DataClump",)})])
    assert stack.is_active() is True


def test_disabled_detector_is_inactive() -> None:
    stack = DetectorStack(UtilityFunction(), [_layer(enabled=False)])
    assert stack.is_active() is False


def test_pop_out_of_order_is_rejected() -> None:
    stack = DetectorStack(UtilityFunction())
    first = _layer(max_helper_calls=1)
    second = _layer(max_helper_calls=2)
    stack.push(first)
    stack.push(second)

    with pytest.raises(StackOrderError):
        stack.pop(first)
    assert stack.depth == 2


def test_base_layers_cannot_be_popped() -> None:
    base = _layer(max_helper_calls=1)
    stack = DetectorStack(UtilityFunction(), [base])
    with pytest.raises(StackOrderError):
        stack.pop(base)


def test_pushed_restores_depth_when_block_raises() -> None:
    stack = DetectorStack(UtilityFunction())
    with pytest.raises(RuntimeError, match="inside scope"):
        with stack.pushed([_layer(max_helper_calls=1), _layer(max_helper_calls=2)]):
            assert stack.depth == 2
            raise RuntimeError("inside scope")
    assert stack.depth == 0


def test_layers_validate_values_against_the_schema() -> None:
    with pytest.raises(ConfigError, match="must be an integer"):
        ConfigLayer({"max_helper_calls": "many"}, schema=SCHEMA)
    with pytest.raises(ConfigError, match="must be an integer"):
        ConfigLayer({"max_helper_calls": True}, schema=SCHEMA)
    with pytest.raises(ConfigError, match=">= 0"):
        ConfigLayer({"max_helper_calls": -1}, schema=SCHEMA)
    with pytest.raises(ConfigError, match="not a recognized option"):
        ConfigLayer({"max_params": 3}, schema=SCHEMA)
    with pytest.raises(ConfigError, match="must be a boolean"):
        ConfigLayer({"enabled": "yes"})
    with pytest.raises(ConfigError, match="list of strings"):
        ConfigLayer({"exclude": "UtilityFunction"})


def test_layer_values_are_read_only() -> None:
    layer = _layer(max_helper_calls=1)
    with pytest.raises(TypeError):
        layer.values["max_helper_calls"] = 5  # type: ignore[index]
