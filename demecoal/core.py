#
# Copyright (C) 2015-2024 University of Oxford
#
# This file is part of demecoal.
#
# demecoal is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# demecoal is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with demecoal.  If not, see <http://www.gnu.org/licenses/>.
#
"""
Core functions used throughout demecoal.
"""
from __future__ import annotations

import numbers
import os
import random
from typing import Any
from typing import Dict
from typing import Union

import numpy as np

__version__ = "0.1.0"


# Some machinery here for generating default random seeds. We need a map
# indexed by process ID here because we cannot use a global variable
# to store the state across multiple processes. Copy-on-write semantics
# for child processes means that they inherit the state of the parent
# process, so if we just keep a global variable without indexing by
# PID, child processes will share the same random generator as the
# parent.

_seed_rng_map: Dict[int, random.Random] = {}


def get_seed_rng() -> Union[random.Random, None]:
    return _seed_rng_map.get(os.getpid(), None)


def clear_seed_rng():
    _seed_rng_map.pop(os.getpid(), None)


def get_random_seed() -> int:
    global _seed_rng_map
    pid = os.getpid()
    if pid not in _seed_rng_map:
        # Seeded from the system source of randomness, so that unseeded
        # replicates in different processes do not collide.
        _seed_rng_map[pid] = random.Random()
    return _seed_rng_map[pid].randint(1, 2**32 - 1)


def parse_random_seed(seed: Any) -> int:
    """
    Parse the specified random seed value. If no seed is provided, generate a
    high-quality random seed.
    """
    if seed is None:
        seed = get_random_seed()
    if isinstance(seed, np.ndarray):
        seed = seed[0]
    seed = int(seed)
    if seed < 0:
        raise ValueError("Random seed must be non-negative")
    return seed


def isinteger(value: Any) -> bool:
    """
    Returns True if the specified value can be converted losslessly to an
    integer.
    """
    if isinstance(value, numbers.Number):
        # Mypy doesn't realise we've done an isinstance here.
        return int(value) == float(value)  # type: ignore
    return False


def check_random_generator(rng: Any) -> np.random.Generator:
    """
    Checks that the specified value is a numpy random Generator, which is
    the single source of randomness shared by every stage of a simulation.
    """
    if not isinstance(rng, np.random.Generator):
        raise TypeError("A numpy.random.Generator instance is required")
    return rng
