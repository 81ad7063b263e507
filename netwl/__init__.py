"""
netwl — Wang-Landau sampling of random graph ensembles
=======================================================

Large-deviation Monte Carlo for random networks: reversible Markov chains
over Erdős–Rényi, small-world and configuration-model graphs, Metropolis
and (adaptive) Wang-Landau sampling of an order parameter, entropic
sampling, gluing of overlapping windows into one normalized density of
states, and heatmaps correlating two order parameters.

Log densities are natural logs unless a function says otherwise; glued
results are log10.
"""

__version__ = "0.1.0"
__author__ = "netwl developers"

from .histogram import Histogram
from .graph import Graph, SwGraph
from .ensembles import (
    MarkovChain,
    ErEnsembleC,
    ErEnsembleM,
    SwEnsemble,
    ConfigurationModel,
)
from .metropolis import (
    MetropolisState,
    MetropolisSave,
    metropolis,
    metropolis_while,
    continue_metropolis,
    continue_metropolis_while,
)
from .wang_landau import (
    WangLandau,
    WangLandauAdaptive,
    WangLandauMode,
    WangLandauStatus,
    WangLandauResult,
)
from .entropic import EntropicSampling
from .glue import glue_wl, GlueResult
from .parallel import run_window, run_windows
from .bootstrap import bootstrap, BootstrapResult
from .heatmap import Heatmap, FloatHeatmap
from . import exceptions, observables

__all__ = [
    "Histogram",
    "Graph",
    "SwGraph",
    "MarkovChain",
    "ErEnsembleC",
    "ErEnsembleM",
    "SwEnsemble",
    "ConfigurationModel",
    "MetropolisState",
    "MetropolisSave",
    "metropolis",
    "metropolis_while",
    "continue_metropolis",
    "continue_metropolis_while",
    "WangLandau",
    "WangLandauAdaptive",
    "WangLandauMode",
    "WangLandauStatus",
    "WangLandauResult",
    "EntropicSampling",
    "glue_wl",
    "GlueResult",
    "run_window",
    "run_windows",
    "bootstrap",
    "BootstrapResult",
    "Heatmap",
    "FloatHeatmap",
    "exceptions",
    "observables",
]
