"""
Policy Override Loader

Builds an EngineConfig from the stock policies plus optional YAML overrides.

The override file path comes from the explicit argument, else the
PARLAY_ENGINE_CONFIG environment variable (a .env file is honoured). A missing
file falls back to the defaults with a warning; a malformed file or an invalid
value raises ConfigError.

Usage Example:
    from parlay_engine.foundation.config_loader import load_config

    config = load_config("config/engine.yaml")
    result = analyze_parlay(request, config=config)

Override file layout (every key optional):
    ensemble:
      weights: {sharp: 1.0, trap: 0.8}
      thresholds: {strong_pick: 45}
      score_bands:
        pvs: {agree_at: 60, disagree_at: 40}
      risk: {extreme_at: 5}
    calibration: {bin_width: 0.05, min_scope_samples: 10}
    blend:
      weights: {book: 0.2, ai: 0.3, correlation: 0.5}
      warning_penalties: {same_game: 6}
    kelly: {default_multiplier: 0.25, default_max_bet_percent: 0.03}
"""

from __future__ import annotations
import dataclasses
import logging
import math
import os
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from parlay_engine.foundation.model_config import (
    BlendPolicy,
    BlendWeights,
    CalibrationPolicy,
    ConfigError,
    ConsensusThresholds,
    EngineConfig,
    EngineId,
    EngineWeight,
    EnsemblePolicy,
    GradeBand,
    KellyPolicy,
    ParlayRiskPolicy,
    ScoreBand,
    get_default_config,
)

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "PARLAY_ENGINE_CONFIG"


def _replace(obj, overrides: Dict[str, Any], section: str):
    """dataclasses.replace with unknown keys reported as ConfigError."""
    if not isinstance(overrides, dict):
        raise ConfigError(f"Section '{section}' must be a mapping, got {type(overrides).__name__}")
    known = {f.name for f in dataclasses.fields(obj)}
    unknown = set(overrides) - known
    if unknown:
        raise ConfigError(f"Unknown keys in '{section}': {sorted(unknown)}")
    try:
        return dataclasses.replace(obj, **overrides)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value in '{section}': {e}") from e


def _engine_id(name: str, section: str) -> EngineId:
    try:
        return EngineId(name)
    except ValueError:
        raise ConfigError(f"Unknown engine '{name}' in '{section}'") from None


def _apply_ensemble(policy: EnsemblePolicy, data: Dict[str, Any]) -> EnsemblePolicy:
    data = dict(data)
    updates: Dict[str, Any] = {}

    weight_overrides = data.pop("weights", None)
    if weight_overrides:
        by_engine = {w.engine: w for w in policy.weights}
        for name, weight in weight_overrides.items():
            engine = _engine_id(name, "ensemble.weights")
            by_engine[engine] = EngineWeight(engine, float(weight), by_engine[engine].display_name)
        updates["weights"] = tuple(by_engine[e] for e in EngineId)

    band_overrides = data.pop("score_bands", None)
    if band_overrides:
        bands = dict(policy.score_bands)
        for name, band in band_overrides.items():
            engine = _engine_id(name, "ensemble.score_bands")
            base = bands.get(engine)
            if base is None:
                bands[engine] = ScoreBand(**band)
            else:
                bands[engine] = _replace(base, band, f"ensemble.score_bands.{name}")
        updates["score_bands"] = bands

    if "thresholds" in data:
        updates["thresholds"] = _replace(policy.thresholds, data.pop("thresholds"), "ensemble.thresholds")
    if "risk" in data:
        updates["risk"] = _replace(policy.risk, data.pop("risk"), "ensemble.risk")

    updates.update(data)
    return _replace(policy, updates, "ensemble")


def _apply_calibration(policy: CalibrationPolicy, data: Dict[str, Any]) -> CalibrationPolicy:
    data = dict(data)
    scale = data.pop("grade_scale", None)
    if scale is not None:
        try:
            bands = [GradeBand(**b) for b in scale]
        except TypeError as e:
            raise ConfigError(f"Invalid grade_scale entry: {e}") from e
        # The last band is always open-ended
        last = bands[-1]
        bands[-1] = GradeBand(math.inf, last.grade, last.label, last.color)
        data["grade_scale"] = tuple(bands)
    return _replace(policy, data, "calibration")


def _apply_blend(policy: BlendPolicy, data: Dict[str, Any]) -> BlendPolicy:
    data = dict(data)
    if "weights" in data:
        data["weights"] = _replace(BlendWeights(), data["weights"], "blend.weights")
    if "warning_penalties" in data:
        merged = dict(policy.warning_penalties)
        merged.update(data["warning_penalties"] or {})
        data["warning_penalties"] = merged
    return _replace(policy, data, "blend")


def apply_overrides(config: EngineConfig, overrides: Dict[str, Any]) -> EngineConfig:
    """
    Layer an overrides mapping on top of a config.

    Args:
        config: Base configuration
        overrides: Parsed override document

    Returns:
        New EngineConfig; the base is left unchanged

    Raises:
        ConfigError: On unknown sections/keys or values that break a policy invariant
    """
    if not overrides:
        return config
    if not isinstance(overrides, dict):
        raise ConfigError("Override document must be a mapping")
    unknown = set(overrides) - {"ensemble", "calibration", "blend", "kelly"}
    if unknown:
        raise ConfigError(f"Unknown config sections: {sorted(unknown)}")

    ensemble = config.ensemble
    calibration = config.calibration
    blend = config.blend
    kelly: KellyPolicy = config.kelly
    try:
        if "ensemble" in overrides:
            ensemble = _apply_ensemble(ensemble, overrides["ensemble"] or {})
        if "calibration" in overrides:
            calibration = _apply_calibration(calibration, overrides["calibration"] or {})
        if "blend" in overrides:
            blend = _apply_blend(blend, overrides["blend"] or {})
        if "kelly" in overrides:
            kelly = _replace(kelly, overrides["kelly"] or {}, "kelly")
    except ConfigError:
        raise
    except (TypeError, ValueError, AttributeError) as e:
        raise ConfigError(f"Invalid configuration override: {e}") from e

    return EngineConfig(ensemble=ensemble, calibration=calibration, blend=blend, kelly=kelly)


def resolve_config_path(path: Optional[str] = None) -> Optional[str]:
    """Explicit path, else the PARLAY_ENGINE_CONFIG environment variable (after .env)."""
    if path:
        return path
    load_dotenv()
    return os.getenv(CONFIG_ENV_VAR) or None


def load_config(path: Optional[str] = None) -> EngineConfig:
    """
    Load the engine configuration.

    Args:
        path: Optional YAML override file

    Returns:
        EngineConfig with overrides applied
    """
    resolved = resolve_config_path(path)
    config = get_default_config()
    if not resolved:
        return config

    if not os.path.exists(resolved):
        logger.warning(f"Config file {resolved} not found, using default policies")
        return config

    try:
        with open(resolved, "r") as f:
            overrides = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Malformed YAML in {resolved}: {e}") from e

    config = apply_overrides(config, overrides or {})
    logger.info(f"Loaded policy overrides from {resolved}")
    return config
