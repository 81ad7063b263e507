"""
Run independent Wang-Landau windows side by side.

Each window owns its ensemble, histogram and random sources, so windows are
run in separate workers without any shared state; the collected results are
then handed to :func:`netwl.glue.glue_wl`.
"""

from __future__ import annotations

from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor
from typing import List, Optional, Sequence

from .wang_landau import WangLandau, WangLandauResult

_INIT = ("greedy", "interval", "mixed")


def run_window(
    sampler: WangLandau,
    init: str = "greedy",
    step_limit: Optional[int] = None,
    overlap: int = 3,
    verbose: bool = False,
) -> WangLandauResult:
    """Initialize *sampler* with the chosen heuristic and run it to the end.

    Parameters
    ----------
    sampler : WangLandau
        Sampler of one window; mutated in place.
    init : str
        ``"greedy"``, ``"interval"`` or ``"mixed"``.
    step_limit : int, optional
        Step limit of the initialization.
    overlap : int
        Overlap parameter of the interval and mixed heuristics.
    verbose : bool
        If True, print sampling progress.

    Returns
    -------
    WangLandauResult
    """
    if init == "greedy":
        sampler.init_greedy_heuristic(step_limit=step_limit)
    elif init == "interval":
        sampler.init_interval_heuristic(overlap=overlap, step_limit=step_limit)
    elif init == "mixed":
        sampler.init_mixed_heuristic(overlap=overlap, step_limit=step_limit)
    else:
        raise ValueError(f"init has to be one of {_INIT}, got {init!r}.")
    return sampler.run(verbose=verbose)


def run_windows(
    samplers: Sequence[WangLandau],
    max_workers: Optional[int] = None,
    use_processes: bool = True,
    init: str = "greedy",
    step_limit: Optional[int] = None,
    overlap: int = 3,
) -> List[WangLandauResult]:
    """Run every sampler to completion, one worker per window.

    With ``use_processes=True`` the samplers are pickled into worker
    processes, so any custom ``energy_fn`` has to be a module-level function.
    The samplers passed in are left untouched in that case; with threads
    they are advanced in place.

    Returns
    -------
    list of WangLandauResult
        In the order of *samplers*.  The first worker error is re-raised.
    """
    if init not in _INIT:
        raise ValueError(f"init has to be one of {_INIT}, got {init!r}.")
    executor_cls = ProcessPoolExecutor if use_processes else ThreadPoolExecutor
    with executor_cls(max_workers=max_workers) as executor:
        futures = [
            executor.submit(run_window, sampler, init, step_limit, overlap)
            for sampler in samplers
        ]
        return [f.result() for f in futures]
