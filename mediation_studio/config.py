"""
Shared defaults for the mediation engines.

Every engine reads its fallback values from here so that the Bayesian,
bootstrap and SEM summaries stay comparable when called with no options.
"""

# ---------------------------------------------------------------------------
# Interval and centrality defaults
# ---------------------------------------------------------------------------

DEFAULT_CI_LEVEL: float = 0.95
DEFAULT_CENTRALITY: str = "median"
DEFAULT_CI_METHOD: str = "ETI"

CENTRALITIES: tuple[str, ...] = ("median", "mean", "MAP")
CI_METHODS: tuple[str, ...] = ("ETI", "HDI")

# Grid resolution for the kernel density used by the MAP estimate
MAP_GRID_POINTS: int = 2048

# ---------------------------------------------------------------------------
# Bootstrap (frequentist comparison)
# ---------------------------------------------------------------------------

DEFAULT_N_BOOT: int = 5000
MIN_N_BOOT: int = 100
MIN_VALID_BOOT: int = 10
BOOT_SEED: int = 20240101

# ---------------------------------------------------------------------------
# Quasi-Bayesian draws from OLS fits
# ---------------------------------------------------------------------------

DEFAULT_N_DRAWS: int = 4000
DRAW_SEED: int = 20240301
INTERCEPT_NAME: str = "Intercept"
SIGMA_NAME: str = "sigma"

# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

ROUND_DIGITS: int = 6

# Display order and labels of the effects table
EFFECT_LABELS: dict[str, str] = {
    "direct":              "Direct Effect (ADE)",
    "indirect":            "Indirect Effect (ACME)",
    "mediator":            "Mediator Effect",
    "total":               "Total Effect",
    "proportion_mediated": "Proportion Mediated",
}
