"""
mediation_studio: causal mediation summaries from posterior draws.

Public API surface:

    Posterior draws:
        PosteriorModel, parse_formula, fit_model, load_dataset

    Summaries:
        point_estimate, credible_interval, describe

    Mediation:
        mediation (posterior draws), bootstrap_mediation, sem_mediation

    Output:
        to_dataframe, format_mediation, compare_mediation
"""

from .bayes_mediation import infer_roles, mediation
from .bootstrap_mediation import bootstrap_mediation
from .models import fit_model, load_dataset
from .posterior import PosteriorModel, parse_formula
from .report import compare_mediation, format_mediation, to_dataframe
from .sem_mediation import sem_mediation
from .summary import credible_interval, describe, point_estimate

__version__ = "0.1.0"

__all__ = [
    # posterior draws
    "PosteriorModel",
    "parse_formula",
    "fit_model",
    "load_dataset",
    # summaries
    "point_estimate",
    "credible_interval",
    "describe",
    # mediation
    "mediation",
    "infer_roles",
    "bootstrap_mediation",
    "sem_mediation",
    # output
    "to_dataframe",
    "format_mediation",
    "compare_mediation",
]
