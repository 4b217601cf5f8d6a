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
Common code for the demecoal test cases.
"""
import numpy as np

import demecoal


def island_history(num_demes=2, size=10, num_times=5, migrants=1):
    """
    Returns a history of num_demes demes of constant size over num_times
    time steps, in which each deme receives ``migrants`` individuals from
    every other deme at each step and the rest from itself.
    """
    demes = list(range(num_demes))
    sizes = np.full((num_times, num_demes), size)
    flows = np.full((num_times - 1, num_demes, num_demes), migrants)
    for j in range(num_demes):
        flows[:, j, j] = size - migrants * (num_demes - 1)
    return demecoal.History.from_arrays(demes, sizes, flows)


def total_value(forest):
    """
    Returns the sum of the node values of a forest of descendant counts.
    """
    return sum(sum(nodes) for _, nodes in forest)
