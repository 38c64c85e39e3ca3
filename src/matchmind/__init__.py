"""
matchmind: football match-outcome simulation and signal arbitration.

This package turns team power ratings and match context into outcome
probabilities, corrects over-confident headline predictions, and arbitrates
the competing signals into one recommendation.
"""

from importlib.metadata import PackageNotFoundError, version

try:  # pragma: no cover - exercised in packaging workflows
    __version__ = version("matchmind")
except PackageNotFoundError:  # pragma: no cover - local editable installs
    __version__ = "0.0.0"

_EXPORTS = {
    # Simulation
    "TesseractSimulator": ".prediction.simulation",
    "PlayerOverlay": ".prediction.players",
    "simulate_fixtures": ".prediction.batch",
    # Correction and arbitration
    "BiasCorrector": ".prediction.bias",
    "MastermindEngine": ".prediction.arbitration",
    "ContextEnhancer": ".prediction.enhancement",
    "MatchPipeline": ".prediction.pipeline",
    # Value objects
    "OracleAnalysis": ".prediction.models",
    "SimulationContext": ".prediction.models",
    "ContextFactor": ".prediction.models",
    "OutlierScenario": ".prediction.models",
    # Configuration
    "load_prediction_config": ".prediction.configuration",
    "get_settings": ".config",
    "update_settings": ".config",
    "reset_settings": ".config",
    "load_runtime_config": ".config",
    "configure_runtime_logging": ".config",
}

__all__ = sorted(_EXPORTS)


def __getattr__(name: str) -> object:  # pragma: no cover - thin lazy importer
    from importlib import import_module

    target_module = _EXPORTS.get(name)
    if not target_module:
        raise AttributeError(f"module {__name__} has no attribute {name}")
    module = import_module(target_module, __name__)
    attr = getattr(module, name)
    globals()[name] = attr
    return attr


def __dir__() -> list[str]:  # pragma: no cover - trivial
    return sorted(list(globals().keys()) + __all__)
