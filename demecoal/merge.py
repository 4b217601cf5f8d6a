#
# Copyright (C) 2018-2024 University of Oxford
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
Merge algorithms operating in place on a buffer of nodes.

Both algorithms work on the active range ``nodes[0:size]`` of a mutable
sequence and never resize it. The new active length is returned; slots
at or beyond it hold stale values which the caller must ignore (or
truncate itself).

The combining operator is called as ``op(parent, child)`` and returns the
updated parent. A parent is started from ``init`` and the first child of its
block, so ``op`` only needs to give the same result whichever child is
folded first: the active range is shuffled beforehand and the slot that
ends up holding a parent carries no meaning.
"""
import operator

import numpy as np

from . import exceptions
from . import occupancy


def _active_size(nodes, size):
    if size is None:
        return len(nodes)
    size = int(size)
    if size < 0 or size > len(nodes):
        raise ValueError(f"Active size {size} out of range for {len(nodes)} nodes")
    return size


def _shuffle(nodes, size, rng):
    permutation = rng.permutation(size)
    nodes[:size] = [nodes[j] for j in permutation]


def binary_merge(nodes, rng, *, init=0, op=operator.add, size=None):
    """
    Merges two randomly chosen nodes of the active range into a single
    parent and returns the new active length, which is one less than before.

    :param nodes: The mutable sequence of nodes.
    :param numpy.random.Generator rng: The source of randomness.
    :param init: The value at which the parent is initialised.
    :param op: The binary operator branching a child onto its parent.
    :param int size: The active length of ``nodes``. Defaults to ``len(nodes)``.
    :return: The new active length.
    """
    last = _active_size(nodes, size)
    if last < 2:
        raise exceptions.InvalidSizeError("Binary merge requires at least 2 nodes")
    _shuffle(nodes, last, rng)
    last -= 1
    nodes[0] = op(op(init, nodes[0]), nodes[last])
    return last


def simultaneous_multiple_merge(
    nodes, spectrum, rng, *, init=0, op=operator.add, size=None
):
    """
    Merges randomly chosen nodes of the active range according to the
    specified occupancy spectrum, in which ``spectrum[j]`` is the number of
    parents formed from exactly ``j`` children. Returns the new active
    length, which is the number of parents in the spectrum.

    After the call, the parents of the blocks of size two or more occupy the
    leading slots of the buffer, followed by the lineages that did not
    coalesce. The ``n - k`` children absorbed into a parent are taken from
    the tail of the active range.
    """
    first = 0
    last = _active_size(nodes, size)
    spectrum = np.asarray(spectrum)
    if np.any(spectrum < 0):
        raise exceptions.InvalidPartitionError(
            "Occupancy spectrum entries must be non-negative"
        )
    if occupancy.num_children(spectrum) != last:
        raise exceptions.InvalidPartitionError(
            f"Occupancy spectrum describes {occupancy.num_children(spectrum)} "
            f"children but {last} nodes are active"
        )
    _shuffle(nodes, last, rng)
    for block_size in range(2, spectrum.shape[0]):
        for _ in range(spectrum[block_size]):
            parent = op(init, nodes[first])
            for _ in range(block_size - 1):
                last -= 1
                parent = op(parent, nodes[last])
            nodes[first] = parent
            first += 1
    return last
