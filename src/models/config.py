"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


@dataclass
class CameraConfig:
    """Camera configuration."""
    device_id: Union[int, str] = 0
    resolution: List[int] = field(default_factory=lambda: [640, 480])
    fps: int = 30
    sensor_orientation: int = 90

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CameraConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            device_id=d.get("device_id", 0),
            resolution=d.get("resolution", [640, 480]),
            fps=d.get("fps", 30),
            sensor_orientation=d.get("sensor_orientation", 90),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "device_id": self.device_id,
            "resolution": self.resolution,
            "fps": self.fps,
            "sensor_orientation": self.sensor_orientation,
        }


@dataclass
class DetectorConfig:
    """Object detection model configuration."""
    model: str = "models/detect.pb"
    model_config: Optional[str] = None
    labels: str = "models/labelmap.txt"
    input_size: int = 300
    maintain_aspect: bool = False
    num_threads: int = 4

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DetectorConfig":
        return cls(
            model=d.get("model", "models/detect.pb"),
            model_config=d.get("model_config"),
            labels=d.get("labels", "models/labelmap.txt"),
            input_size=d.get("input_size", 300),
            maintain_aspect=d.get("maintain_aspect", False),
            num_threads=d.get("num_threads", 4),
        )

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "model": self.model,
            "labels": self.labels,
            "input_size": self.input_size,
            "maintain_aspect": self.maintain_aspect,
            "num_threads": self.num_threads,
        }
        if self.model_config is not None:
            d["model_config"] = self.model_config
        return d


@dataclass
class TrackingConfig:
    """Tracker configuration."""
    min_size: float = 16.0
    min_confidence: float = 0.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TrackingConfig":
        return cls(
            min_size=d.get("min_size", 16.0),
            min_confidence=d.get("min_confidence", 0.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "min_size": self.min_size,
            "min_confidence": self.min_confidence,
        }


@dataclass
class OverlayConfig:
    """Overlay drawing configuration."""
    stroke_width: int = 10
    text_scale: float = 0.8
    label_filter: Optional[List[str]] = None
    debug_rects: bool = False

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "OverlayConfig":
        return cls(
            stroke_width=d.get("stroke_width", 10),
            text_scale=d.get("text_scale", 0.8),
            label_filter=d.get("label_filter"),
            debug_rects=d.get("debug_rects", False),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "stroke_width": self.stroke_width,
            "text_scale": self.text_scale,
            "debug_rects": self.debug_rects,
        }
        if self.label_filter is not None:
            d["label_filter"] = self.label_filter
        return d


@dataclass
class AlarmConfig:
    """Alarm trigger configuration."""
    target_label: str = "toothbrush"
    min_confidence: float = 0.65
    action: str = "dismiss"
    snooze_minutes: int = 10

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "AlarmConfig":
        return cls(
            target_label=d.get("target_label", "toothbrush"),
            min_confidence=d.get("min_confidence", 0.65),
            action=d.get("action", "dismiss"),
            snooze_minutes=d.get("snooze_minutes", 10),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target_label": self.target_label,
            "min_confidence": self.min_confidence,
            "action": self.action,
            "snooze_minutes": self.snooze_minutes,
        }


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    camera: CameraConfig = field(default_factory=CameraConfig)
    detector: DetectorConfig = field(default_factory=DetectorConfig)
    tracking: TrackingConfig = field(default_factory=TrackingConfig)
    overlay: OverlayConfig = field(default_factory=OverlayConfig)
    alarm: AlarmConfig = field(default_factory=AlarmConfig)
    log_path: str = "logs/brushwake.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            camera=CameraConfig.from_dict(d.get("camera", {}) or {}),
            detector=DetectorConfig.from_dict(d.get("detector", {}) or {}),
            tracking=TrackingConfig.from_dict(d.get("tracking", {}) or {}),
            overlay=OverlayConfig.from_dict(d.get("overlay", {}) or {}),
            alarm=AlarmConfig.from_dict(d.get("alarm", {}) or {}),
            log_path=d.get("log_path", "logs/brushwake.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or logging)."""
        return {
            "camera": self.camera.to_dict(),
            "detector": self.detector.to_dict(),
            "tracking": self.tracking.to_dict(),
            "overlay": self.overlay.to_dict(),
            "alarm": self.alarm.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
