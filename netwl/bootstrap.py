"""
Bootstrap error estimate for a scalar reduction of sampled data.
"""

from __future__ import annotations

import numpy as np
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Sequence, Union

from .persistence import npz_path


@dataclass
class BootstrapResult:
    """Bootstrap statistics of a reduction.

    Attributes
    ----------
    mean : float
        Mean of the reduced replicates.
    variance : float
        Population variance (``ddof=0``) of the reduced replicates.
    std : float
        ``sqrt(variance)``.
    replicates : np.ndarray
        The reduced value of every replicate, shape ``(n_samples,)``.
    """

    mean: float
    variance: float
    std: float
    replicates: np.ndarray

    @property
    def n_samples(self) -> int:
        return len(self.replicates)

    def save(self, path: Union[str, Path]) -> None:
        """Save to a single ``.npz`` file."""
        np.savez_compressed(
            str(Path(path)),
            mean=np.array(self.mean),
            variance=np.array(self.variance),
            std=np.array(self.std),
            replicates=self.replicates,
        )

    @classmethod
    def load(cls, path: Union[str, Path]) -> "BootstrapResult":
        with np.load(str(npz_path(path)), allow_pickle=False) as f:
            return cls(
                mean=float(f["mean"]),
                variance=float(f["variance"]),
                std=float(f["std"]),
                replicates=f["replicates"],
            )


def bootstrap(
    data: Union[Sequence, np.ndarray],
    reduction: Callable[[np.ndarray], float] = np.mean,
    n_samples: int = 200,
    seed: Optional[Union[int, np.random.Generator]] = None,
    verbose: bool = False,
) -> BootstrapResult:
    """Estimate the uncertainty of ``reduction(data)`` by resampling.

    Each replicate draws ``len(data)`` entries of *data* with replacement
    and applies *reduction* to them.

    Parameters
    ----------
    data : array-like
        Samples along the first axis.
    reduction : callable
        Maps a resampled array to a scalar.
    n_samples : int
        Number of bootstrap replicates, at least 1.
    seed : int or Generator, optional
        Random seed for reproducibility.
    verbose : bool
        If True, print progress.

    Returns
    -------
    BootstrapResult
    """
    data = np.asarray(data)
    if len(data) == 0:
        raise ValueError("Cannot bootstrap an empty data set.")
    if n_samples < 1:
        raise ValueError(f"n_samples has to be at least 1, got {n_samples}.")

    rng = np.random.default_rng(seed)
    n = len(data)
    replicates = np.empty(n_samples, dtype=np.float64)
    for b in range(n_samples):
        if verbose and (b + 1) % 50 == 0:
            print(f"  Bootstrap replicate {b+1}/{n_samples}")
        idx = rng.integers(0, n, size=n)
        replicates[b] = reduction(data[idx])

    mean = float(replicates.mean())
    variance = float(replicates.var())
    return BootstrapResult(
        mean=mean,
        variance=variance,
        std=float(np.sqrt(variance)),
        replicates=replicates,
    )
