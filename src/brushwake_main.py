"""
Detection session entry point.

Opens the camera, runs the object detector on the live preview and dismisses
the ringing alarm as soon as the target object is in view.

Usage:
    python src/brushwake_main.py --config config/config.yaml --display --alarm-id 3

Arguments:
    --config: Path to configuration file
    --display: Show the preview window with the detection overlay
    --alarm-id: Identifier of the alarm to dismiss
    --source: Camera index or video file overriding camera.device_id
"""

import os
import sys
import argparse
import logging
from typing import Any, Dict, Optional, Tuple

import yaml

from alarm.controller import AlarmController, InMemoryAlarmController
from alarm.trigger import ACTION_DISMISS, ACTION_SNOOZE, TargetTrigger
from detection.classifier import OpenCVDnnClassifier
from brushwake_errors import ClassifierInitError, ConfigurationError
from models.config import Config
from observation.opencv_source import OpenCVSource, OpenCVSourceConfig
from ops.logging import setup_logging
from overlay.renderer import OverlayRenderer
from pipeline.engine import DetectionSession, SessionConfig
from tracking.tracker import MultiBoxTracker


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)
    """
    try:
        base_path = os.path.join(os.path.dirname(config_path), "default.yaml")
        base_cfg: Dict[str, Any] = {}
        if os.path.exists(base_path):
            with open(base_path, "r") as f:
                base_cfg = yaml.safe_load(f) or {}

        local_overrides_path = os.path.join(os.path.dirname(config_path), "config.yaml")
        local_cfg: Dict[str, Any] = {}
        if os.path.exists(local_overrides_path):
            with open(local_overrides_path, "r") as f:
                local_cfg = yaml.safe_load(f) or {}

        merged = _deep_merge(base_cfg, local_cfg)

        if os.path.exists(config_path) and os.path.abspath(config_path) != os.path.abspath(local_overrides_path):
            with open(config_path, "r") as f:
                explicit_cfg = yaml.safe_load(f) or {}
            merged = _deep_merge(merged, explicit_cfg)

        return merged
    except (OSError, yaml.YAMLError) as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    required_sections = ['camera', 'detector', 'alarm', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    camera = config.get('camera', {})
    if 'device_id' not in camera:
        return False, "Missing camera.device_id"
    if not isinstance(camera['device_id'], (int, str)):
        return False, "camera.device_id must be an integer (index) or string (path/URL)"
    if isinstance(camera['device_id'], int) and camera['device_id'] < 0:
        return False, "camera.device_id integer must be non-negative"

    if 'resolution' not in camera:
        return False, "Missing camera.resolution"
    if not isinstance(camera['resolution'], list) or len(camera['resolution']) != 2:
        return False, "camera.resolution must be a list of [width, height]"
    if not all(isinstance(x, int) and x > 0 for x in camera['resolution']):
        return False, "camera.resolution values must be positive integers"

    if 'fps' in camera:
        if not isinstance(camera['fps'], int) or camera['fps'] <= 0:
            return False, "camera.fps must be a positive integer"

    orientation = camera.get('sensor_orientation', 0)
    if not isinstance(orientation, int) or orientation % 90 != 0:
        return False, "camera.sensor_orientation must be a multiple of 90"

    detector = config.get('detector', {})
    if not isinstance(detector.get('model'), str) or not detector.get('model'):
        return False, "detector.model is required"
    if not isinstance(detector.get('labels'), str) or not detector.get('labels'):
        return False, "detector.labels is required"
    input_size = detector.get('input_size', 300)
    if not isinstance(input_size, int) or input_size <= 0:
        return False, "detector.input_size must be a positive integer"

    tracking = config.get('tracking', {}) or {}
    if 'min_size' in tracking:
        if not _is_number(tracking['min_size']) or tracking['min_size'] < 0:
            return False, "tracking.min_size must be a non-negative number"
    if 'min_confidence' in tracking:
        mc = tracking['min_confidence']
        if not _is_number(mc) or not (0 <= mc <= 1):
            return False, "tracking.min_confidence must be between 0 and 1"

    alarm = config.get('alarm', {})
    if not isinstance(alarm.get('target_label'), str) or not alarm.get('target_label'):
        return False, "alarm.target_label is required"
    if 'min_confidence' in alarm:
        mc = alarm['min_confidence']
        if not _is_number(mc) or not (0 <= mc <= 1):
            return False, "alarm.min_confidence must be between 0 and 1"
    if alarm.get('action', ACTION_DISMISS) not in (ACTION_DISMISS, ACTION_SNOOZE):
        return False, f"alarm.action must be one of: {ACTION_DISMISS}, {ACTION_SNOOZE}"
    if 'snooze_minutes' in alarm:
        if not isinstance(alarm['snooze_minutes'], int) or alarm['snooze_minutes'] <= 0:
            return False, "alarm.snooze_minutes must be a positive integer"

    valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
    if config['log_level'] not in valid_log_levels:
        return False, f"log_level must be one of: {', '.join(valid_log_levels)}"

    return True, None


def create_session_from_config(
    config: Config,
    classifier,
    alarm: AlarmController,
    alarm_id: int,
    display: bool = False,
) -> DetectionSession:
    """
    Factory: wire tracker, renderer, trigger and session from typed config.
    """
    renderer = OverlayRenderer(
        stroke_width=config.overlay.stroke_width,
        text_scale=config.overlay.text_scale,
        label_filter=config.overlay.label_filter,
        debug_rects=config.overlay.debug_rects,
    )
    tracker = MultiBoxTracker(
        crop_size=config.detector.input_size,
        maintain_aspect=config.detector.maintain_aspect,
        min_size=config.tracking.min_size,
        min_confidence=config.tracking.min_confidence,
        renderer=renderer,
    )
    trigger = TargetTrigger(
        alarm,
        alarm_id,
        target_label=config.alarm.target_label,
        min_confidence=config.alarm.min_confidence,
        action=config.alarm.action,
        snooze_minutes=config.alarm.snooze_minutes,
    )
    width, height = config.camera.resolution
    rotated = config.camera.sensor_orientation % 180 == 90
    session_config = SessionConfig(
        sensor_orientation=config.camera.sensor_orientation,
        display=display,
        canvas_size=(height, width) if rotated else (width, height),
    )
    return DetectionSession(classifier, tracker, trigger, session_config)


def main():
    """Main application function."""
    parser = argparse.ArgumentParser(description='Dismiss an alarm by showing the camera a target object')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--display', action='store_true',
                        help='Show the preview window')
    parser.add_argument('--alarm-id', type=int, default=0,
                        help='Identifier of the ringing alarm')
    parser.add_argument('--source', type=str, default=None,
                        help='Camera index or video file (overrides camera.device_id)')
    parser.add_argument('--debug-rects', action='store_true',
                        help='Draw every detection box, not only tracked ones')
    args = parser.parse_args()

    raw_config = load_config(args.config)
    if args.source is not None:
        raw_config.setdefault('camera', {})['device_id'] = (
            int(args.source) if args.source.isdigit() else args.source
        )
    if args.debug_rects:
        raw_config.setdefault('overlay', {})['debug_rects'] = True

    is_valid, error_msg = validate_config(raw_config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    setup_logging(raw_config['log_path'], raw_config['log_level'])
    config = Config.from_dict(raw_config)

    logging.info("Starting detection session")

    try:
        classifier = OpenCVDnnClassifier(
            config.detector.model,
            config.detector.labels,
            input_size=config.detector.input_size,
            config_path=config.detector.model_config,
        )
        classifier.set_num_threads(config.detector.num_threads)
    except ClassifierInitError as e:
        logging.error(f"Classifier could not be initialized: {e}")
        sys.exit(1)

    alarm = InMemoryAlarmController()
    alarm.ring(args.alarm_id)

    session = create_session_from_config(config, classifier, alarm, args.alarm_id, display=args.display)
    source = OpenCVSource(OpenCVSourceConfig.from_camera_config(config.camera.to_dict(), source_id="camera"))

    try:
        session.run(source)
    except (ConfigurationError, RuntimeError) as e:
        logging.error(f"Session failed: {e}")
        sys.exit(1)

    if session.trigger.fired:
        logging.info(f"{config.alarm.target_label} detected, alarm {args.alarm_id}: {alarm.state(args.alarm_id).value}")
    sys.exit(0 if session.trigger.fired else 2)


if __name__ == "__main__":
    main()
