from polywhale.detector.aging import AgingScheduler, run_periodic
from polywhale.detector.delta import DeltaDetector, DetectorStats
from polywhale.detector.levels import LevelKey, LevelState, TrackedLevel

__all__ = [
    "AgingScheduler",
    "DeltaDetector",
    "DetectorStats",
    "LevelKey",
    "LevelState",
    "TrackedLevel",
    "run_periodic",
]
