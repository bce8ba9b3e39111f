"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
camera:
  device_id: 0
  resolution: [640, 480]
  fps: 30
  sensor_orientation: 90

detector:
  model: "models/detect.pb"
  labels: "models/labelmap.txt"
  input_size: 300

alarm:
  target_label: "toothbrush"
  min_confidence: 0.65

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "camera": {
            "device_id": 0,
            "resolution": [640, 480],
            "fps": 30,
            "sensor_orientation": 90,
        },
        "detector": {
            "model": "models/detect.pb",
            "labels": "models/labelmap.txt",
            "input_size": 300,
        },
        "tracking": {
            "min_size": 16.0,
            "min_confidence": 0.0,
        },
        "alarm": {
            "target_label": "toothbrush",
            "min_confidence": 0.65,
            "action": "dismiss",
            "snooze_minutes": 10,
        },
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }
