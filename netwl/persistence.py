"""
Helpers shared by the ``.npz`` save/load methods.

Random generators are stored as the JSON text of
``rng.bit_generator.state``, so a restored generator continues the exact
same stream.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Union

import numpy as np


def rng_to_json(rng: np.random.Generator) -> str:
    return json.dumps(rng.bit_generator.state)


def rng_from_json(text: str) -> np.random.Generator:
    state = json.loads(text)
    bit_generator = getattr(np.random, state["bit_generator"])()
    bit_generator.state = state
    return np.random.Generator(bit_generator)


def npz_path(path: Union[str, Path]) -> Path:
    """Path with a ``.npz`` suffix added if it has none."""
    path = Path(path)
    if not path.suffix:
        path = path.with_suffix(".npz")
    return path


def as_str(value) -> str:
    """Decode a 0-d string array read back from an ``.npz`` file."""
    return str(np.asarray(value)[()])
