"""
Engine configuration.

Defaults live on the dataclass; `EngineConfig.from_env()` overrides them
from environment variables (main.py loads .env first).
"""

import os
from dataclasses import dataclass
from typing import Dict, Optional, Tuple


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


@dataclass
class EngineConfig:
    """Configuration for the action engine and video analysis"""
    # Action timeouts
    element_timeout_ms: int = 5000
    navigation_timeout_ms: int = 30000

    # Browser sessions
    headless: bool = True
    recording_headless: bool = False
    viewport_width: int = 1280
    viewport_height: int = 720
    user_agent: Optional[str] = None
    max_concurrent_sessions: int = 2
    # Relative paths of screenshot actions resolve under this directory
    screenshot_dir: str = "screenshots"

    # Video analysis
    analysis_max_attempts: int = 3
    analysis_backoff_base_seconds: float = 1.0
    analysis_timeout_seconds: float = 10.0
    default_video_duration_seconds: float = 80.0
    allowed_video_domains: Tuple[str, ...] = ("loom.com",)
    loom_oembed_url: str = "https://www.loom.com/v1/oembed"

    # Recording
    placeholder_url: str = "https://example.com"

    @property
    def viewport(self) -> Dict[str, int]:
        return {"width": self.viewport_width, "height": self.viewport_height}

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Build a config from environment variables"""
        defaults = cls()
        domains = os.getenv("ALLOWED_VIDEO_DOMAINS", "")
        return cls(
            element_timeout_ms=_env_int("ELEMENT_TIMEOUT_MS", defaults.element_timeout_ms),
            navigation_timeout_ms=_env_int("NAVIGATION_TIMEOUT_MS", defaults.navigation_timeout_ms),
            headless=_env_bool("HEADLESS", defaults.headless),
            recording_headless=_env_bool("RECORDING_HEADLESS", defaults.recording_headless),
            viewport_width=_env_int("VIEWPORT_WIDTH", defaults.viewport_width),
            viewport_height=_env_int("VIEWPORT_HEIGHT", defaults.viewport_height),
            user_agent=os.getenv("USER_AGENT") or None,
            max_concurrent_sessions=_env_int("MAX_CONCURRENT_SESSIONS", defaults.max_concurrent_sessions),
            screenshot_dir=os.getenv("SCREENSHOT_DIR") or defaults.screenshot_dir,
            analysis_max_attempts=_env_int("ANALYSIS_MAX_ATTEMPTS", defaults.analysis_max_attempts),
            analysis_backoff_base_seconds=_env_float(
                "ANALYSIS_BACKOFF_BASE_SECONDS", defaults.analysis_backoff_base_seconds
            ),
            analysis_timeout_seconds=_env_float("ANALYSIS_TIMEOUT_SECONDS", defaults.analysis_timeout_seconds),
            default_video_duration_seconds=_env_float(
                "DEFAULT_VIDEO_DURATION_SECONDS", defaults.default_video_duration_seconds
            ),
            allowed_video_domains=tuple(
                d.strip().lower() for d in domains.split(",") if d.strip()
            ) or defaults.allowed_video_domains,
            loom_oembed_url=os.getenv("LOOM_OEMBED_URL", defaults.loom_oembed_url),
            placeholder_url=os.getenv("PLACEHOLDER_URL", defaults.placeholder_url),
        )
