"""Engine-wide tuning knobs.

Every cap here bounds a long-running algorithm; none of them changes results on inputs
that finish inside the cap. The module-level DEFAULT_CONFIG is read once at import from
SYMCORE_<FIELD> environment variables (e.g. SYMCORE_NTT_THRESHOLD=64).
"""

from __future__ import annotations
import logging
import os
from dataclasses import dataclass, fields

logger = logging.getLogger(__name__)


def _env(name: str, default, cast):
    key = f"SYMCORE_{name.upper()}"
    raw = os.getenv(key)
    if raw is None:
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"{key}={raw!r} is not a valid {cast.__name__}") from None


@dataclass(frozen=True)
class CASConfig:
    """Iteration caps and thresholds shared by the engines."""

    # Multivariate gcd
    heuristic_gcd_retries: int = 6
    heuristic_gcd_max_terms: int = 64
    zippel_max_primes: int = 16
    zippel_max_eval_points: int = 64

    # Finite field
    ntt_threshold: int = 32

    # Rewriting / simplification
    rewrite_max_iterations: int = 100
    simplify_max_passes: int = 10

    # Calculus
    integration_max_depth: int = 6
    limit_max_lhopital: int = 4

    # Numeric root finding
    newton_tolerance: float = 1e-12
    newton_max_iterations: int = 200
    root_search_lower: float = -100.0
    root_search_upper: float = 100.0
    root_search_samples: int = 1000

    # Exact arithmetic guards
    max_exponent_bits: int = 1_000_000
    factorial_limit: int = 1000

    @classmethod
    def from_env(cls) -> "CASConfig":
        """Create config from SYMCORE_* environment variables."""
        values = {}
        for f in fields(cls):
            default = f.default
            values[f.name] = _env(f.name, default, type(default))
        return cls(**values)

    def validate(self) -> list[str]:
        """Return a list of warnings for suspicious settings."""
        warnings = []
        if self.heuristic_gcd_retries < 1:
            warnings.append("heuristic_gcd_retries < 1 disables the heuristic gcd path")
        if self.zippel_max_primes < 2:
            warnings.append("zippel_max_primes < 2 prevents CRT stabilisation")
        if self.ntt_threshold < 2:
            warnings.append("ntt_threshold < 2 sends trivial products through the NTT")
        if self.root_search_lower >= self.root_search_upper:
            warnings.append("root search interval is empty")
        return warnings


def load_config() -> CASConfig:
    """CASConfig.from_env(), logging every validation warning."""
    config = CASConfig.from_env()
    for warning in config.validate():
        logger.warning("config: %s", warning)
    return config


DEFAULT_CONFIG = load_config()
