"""Playback configuration.

Defaults come from the scenario's ``behavior`` and ``timebase`` blocks;
callers (the engine, the CLI) may override any of them:

    behavior:
      preloadMs: 300        # mount this long before domLifetime starts
      cleanupDelayMs: 500   # keep ended cues mounted this long
      maxMountedCues: 50    # evict inactive cues above this count
      snapToFrame: false    # snap tick times to timebase.fps
"""

from pydantic import BaseModel, ConfigDict, Field

from .models import ResolvedScenario


class PlaybackConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    preload_ms: float = Field(default=300, ge=0, allow_inf_nan=False)
    cleanup_delay_ms: float = Field(default=500, ge=0, allow_inf_nan=False)
    max_mounted_cues: int = Field(default=50, gt=0)
    snap_to_frame: bool = False
    fps: float | None = Field(default=None, gt=0, allow_inf_nan=False)

    @property
    def preload_lookahead(self) -> float:
        return self.preload_ms / 1000

    @property
    def cleanup_delay(self) -> float:
        return self.cleanup_delay_ms / 1000

    @property
    def snap_fps(self) -> float | None:
        """Frame rate to snap to, or None when snapping is off."""
        return self.fps if self.snap_to_frame else None

    @classmethod
    def from_scenario(cls, scenario: ResolvedScenario, **overrides) -> "PlaybackConfig":
        """Document settings first, then non-None caller overrides."""
        behavior = scenario.behavior
        values = {
            "preload_ms": behavior.preload_ms,
            "cleanup_delay_ms": behavior.cleanup_delay_ms,
            "max_mounted_cues": behavior.max_mounted_cues,
            "snap_to_frame": behavior.snap_to_frame,
            "fps": scenario.timebase.fps,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
