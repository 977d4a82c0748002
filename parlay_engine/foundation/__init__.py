"""
Foundation Module

Policy objects and configuration loading shared by every engine component.
"""

from parlay_engine.foundation.model_config import (
    ConfigError,
    EngineId,
    Classification,
    EngineWeight,
    ScoreBand,
    ConsensusThresholds,
    ParlayRiskPolicy,
    EnsemblePolicy,
    GradeBand,
    CalibrationPolicy,
    BlendWeights,
    BlendPolicy,
    KellyMode,
    KellyPolicy,
    EngineConfig,
    get_engine_weights,
    get_default_ensemble_policy,
    get_default_calibration_policy,
    get_default_blend_policy,
    get_default_kelly_policy,
    get_default_config,
)

from parlay_engine.foundation.config_loader import (
    CONFIG_ENV_VAR,
    apply_overrides,
    load_config,
)

__all__ = [
    "ConfigError",
    "EngineId",
    "Classification",
    "EngineWeight",
    "ScoreBand",
    "ConsensusThresholds",
    "ParlayRiskPolicy",
    "EnsemblePolicy",
    "GradeBand",
    "CalibrationPolicy",
    "BlendWeights",
    "BlendPolicy",
    "KellyMode",
    "KellyPolicy",
    "EngineConfig",
    "get_engine_weights",
    "get_default_ensemble_policy",
    "get_default_calibration_policy",
    "get_default_blend_policy",
    "get_default_kelly_policy",
    "get_default_config",
    "CONFIG_ENV_VAR",
    "apply_overrides",
    "load_config",
]
