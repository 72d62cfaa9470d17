"""Snapshot models for settings, telemetry and auxiliary reports."""

from .color import Color
from .lighting import (
    Controller,
    DataSource,
    Effect,
    EFFECT_CLASSES,
    LightingSettings,
    SoundEffect,
    SourceControl,
)
from .reports import AmbientColor, DeviceStrings, SoundData
from .sensors import SensorSnapshot
from .settings import (
    AlarmSettings,
    DisplaySettings,
    SensorSettings,
    Settings,
    SystemSettings,
)
