"""
Configuration for the Voice Bot Dashboard.

Timing settings and script bundles are plain JSON files validated with
strict pydantic models. Paths come from an explicit argument or from the
environment (a .env file next to the project is honoured):

    VOICEBOT_SETTINGS_PATH   PlaybackSettings JSON (optional)
    VOICEBOT_SCRIPT_PATH     ScriptBundle JSON (optional)

When neither is given the built-in defaults and shared content are used.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional, TypeVar

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, model_validator

from .models import MAX_EMOTION_TAGS, ScriptedTurn, SentimentSnapshot
from .shared_content import CONVERSATION_SCRIPT, SENTIMENT_PROGRESSION


__all__ = [
    "PlaybackSettings",
    "ScriptBundle",
    "load_playback_settings",
    "load_script_bundle",
    "resolve_optional_path",
]


_env_path = Path(__file__).parent.parent / ".env"
load_dotenv(_env_path)

logger = logging.getLogger(__name__)

SETTINGS_PATH_ENV = "VOICEBOT_SETTINGS_PATH"
SCRIPT_PATH_ENV = "VOICEBOT_SCRIPT_PATH"

ModelT = TypeVar("ModelT", bound=BaseModel)


class PlaybackSettings(BaseModel):
    """Timing constants for playback, reveal and sentiment tracking (ms)."""

    ai_waveform_ms: int = Field(default=1500, ge=0)
    customer_waveform_ms: int = Field(default=1200, ge=0)
    content_settle_ms: int = Field(default=600, ge=0)
    ai_typing_speed_ms: float = Field(default=40.0, gt=0)
    customer_typing_speed_ms: float = Field(default=60.0, gt=0)
    reveal_start_delay_ms: int = Field(default=300, ge=0)
    typing_estimate_factor: float = Field(default=1.2, gt=0)
    typing_estimate_pad_ms: int = Field(default=300, ge=0)
    completion_buffer_ms: int = Field(default=500, ge=0)

    sentiment_interval_ms: int = Field(default=4000, gt=0)
    sentiment_history_size: int = Field(default=8, ge=1)
    emotion_slots: int = Field(default=MAX_EMOTION_TAGS, ge=1, le=MAX_EMOTION_TAGS)
    default_emotion_pool: tuple[str, ...] = Field(
        default=("Attentive", "Focused", "Engaged", "Responsive"),
    )

    ticket_generation_delay_ms: int = Field(default=15000, ge=0)

    random_seed: Optional[int] = None

    model_config = {"frozen": True, "extra": "forbid"}

    @model_validator(mode="after")
    def validate_emotion_pool(self) -> "PlaybackSettings":
        if len(self.default_emotion_pool) != len(set(self.default_emotion_pool)):
            raise ValueError("default_emotion_pool must have unique names")
        return self


class ScriptBundle(BaseModel):
    """The two fixed scripts replayed by the dashboard."""

    conversation: tuple[ScriptedTurn, ...] = Field(..., min_length=1)
    sentiment: tuple[SentimentSnapshot, ...] = Field(..., min_length=1)

    model_config = {"frozen": True, "extra": "forbid"}

    @classmethod
    def default(cls) -> "ScriptBundle":
        return cls(conversation=CONVERSATION_SCRIPT, sentiment=SENTIMENT_PROGRESSION)


def resolve_optional_path(explicit_path: Optional[str], env_var: str) -> Optional[Path]:
    """Resolve an explicit path or the env var, or None when both are unset."""
    raw_path = (explicit_path or os.environ.get(env_var) or "").strip()
    if not raw_path:
        return None
    return Path(raw_path).expanduser()


def _load_json_model(path: Path, model: type[ModelT], label: str) -> ModelT:
    resolved_path = path.resolve()
    if not resolved_path.exists():
        raise RuntimeError(f"{label} file not found at '{resolved_path}'.")

    try:
        with open(resolved_path, "r", encoding="utf-8") as config_file:
            raw = json.load(config_file)
    except OSError as exc:
        raise RuntimeError(f"Failed to read {label} '{resolved_path}': {exc}") from exc
    except json.JSONDecodeError as exc:
        raise RuntimeError(f"{label} at '{resolved_path}' is not valid JSON: {exc}") from exc

    try:
        loaded = model.model_validate(raw)
    except ValidationError as exc:
        raise RuntimeError(f"{label} validation failed for '{resolved_path}': {exc}") from exc

    logger.info("Loaded %s from %s", label, resolved_path)
    return loaded


def load_playback_settings(settings_path: Optional[str] = None) -> PlaybackSettings:
    """Load PlaybackSettings from JSON, or defaults when no path is configured."""
    path = resolve_optional_path(settings_path, SETTINGS_PATH_ENV)
    if path is None:
        return PlaybackSettings()
    return _load_json_model(path, PlaybackSettings, "Playback settings")


def load_script_bundle(script_path: Optional[str] = None) -> ScriptBundle:
    """Load a ScriptBundle from JSON, or the built-in scripts when no path is configured."""
    path = resolve_optional_path(script_path, SCRIPT_PATH_ENV)
    if path is None:
        return ScriptBundle.default()
    return _load_json_model(path, ScriptBundle, "Script bundle")
