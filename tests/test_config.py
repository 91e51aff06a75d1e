"""Tests for interaction configuration."""

import pytest
import yaml

from handgrab.classifier import GestureClassifier
from handgrab.config import InteractionConfig
from handgrab.landmarks import Handedness


class TestDefaults:
    def test_documented_defaults(self):
        cfg = InteractionConfig()
        assert cfg.hold_ms == 80
        assert cfg.pinch_ratio == 0.35
        assert cfg.xr_pinch_distance == 0.025
        assert cfg.place_distance == 1.2
        assert cfg.drag_accepts_raw_pinch is False
        assert cfg.priority == (Handedness.RIGHT, Handedness.LEFT)

    def test_classifier_from_config(self):
        cfg = InteractionConfig(pinch_ratio=0.5, extension_cos=-0.5)
        classifier = GestureClassifier.from_config(cfg)
        assert classifier.pinch_ratio == 0.5
        assert classifier.extension_cos == -0.5


class TestHandPriority:
    def test_left_first(self):
        cfg = InteractionConfig(hand_priority=["Left", "Right"])
        assert cfg.hand_priority == ["Left", "Right"]
        assert cfg.priority == (Handedness.LEFT, Handedness.RIGHT)

    def test_accepts_handedness_values(self):
        cfg = InteractionConfig(hand_priority=[Handedness.LEFT, Handedness.RIGHT])
        assert cfg.hand_priority == ["Left", "Right"]

    @pytest.mark.parametrize("priority", [
        ["Right"],
        ["Right", "Right"],
        [],
        ["Left", "Lft"],
        ["left", "right"],
    ])
    def test_must_name_both_hands(self, priority):
        with pytest.raises(ValueError):
            InteractionConfig(hand_priority=priority)


class TestValidation:
    @pytest.mark.parametrize("field,value", [
        ("hold_ms", -1),
        ("pinch_ratio", 0),
        ("xr_pinch_distance", -0.01),
        ("extension_cos", 1.5),
        ("place_distance", 0),
    ])
    def test_invalid_values(self, field, value):
        with pytest.raises(ValueError):
            InteractionConfig(**{field: value})

    def test_zero_hold_allowed(self):
        assert InteractionConfig(hold_ms=0).hold_ms == 0

    def test_misspelled_hand_in_yaml(self, tmp_path):
        path = tmp_path / "handgrab.yml"
        path.write_text("hand_priority: [Left, Lft]\n")
        with pytest.raises(ValueError, match="hand_priority"):
            InteractionConfig.from_yaml(path)

    def test_unknown_keys_rejected(self):
        with pytest.raises(ValueError, match="hold_time"):
            InteractionConfig.from_dict({"hold_time": 100})


class TestYaml:
    def test_round_trip(self, tmp_path):
        cfg = InteractionConfig(hold_ms=120, hand_priority=["Left", "Right"], flip_x=True)
        path = tmp_path / "handgrab.yml"
        cfg.to_yaml(path)
        assert InteractionConfig.from_yaml(path) == cfg

    def test_partial_file_uses_defaults(self, tmp_path):
        path = tmp_path / "handgrab.yml"
        path.write_text("hold_ms: 40\n")
        cfg = InteractionConfig.from_yaml(path)
        assert cfg.hold_ms == 40
        assert cfg.pinch_ratio == 0.35

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yml"
        path.write_text("")
        assert InteractionConfig.from_yaml(path) == InteractionConfig()

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "list.yml"
        path.write_text("- hold_ms\n")
        with pytest.raises(ValueError):
            InteractionConfig.from_yaml(path)

    def test_dump_is_loadable(self):
        data = yaml.safe_load(InteractionConfig().dump())
        assert data["hand_priority"] == ["Right", "Left"]
        assert InteractionConfig.from_dict(data) == InteractionConfig()
