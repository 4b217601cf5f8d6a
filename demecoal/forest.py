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
The forest of active lineages indexed by their current position.
"""
from __future__ import annotations

from typing import Any
from typing import Dict
from typing import List


def _count_leaf(position):
    return 1


class Forest:
    """
    A mapping from positions (demes) to the nodes currently resident
    there. Each node belongs to exactly one position; positions holding no
    nodes are dropped.

    Iterating over a forest yields ``(position, nodes)`` pairs in insertion
    order of the positions.
    """

    def __init__(self):
        self._trees: Dict[Any, List[Any]] = {}

    @staticmethod
    def from_counts(counts, leaf=None) -> Forest:
        """
        Returns a new forest with ``counts[x]`` leaf nodes at each position
        ``x``. Each leaf is created by calling ``leaf(x)``; by default it
        is ``1``, the number of sampled descendants counted by the default
        :class:`.Combiner`.
        """
        if leaf is None:
            leaf = _count_leaf
        forest = Forest()
        for position, count in dict(counts).items():
            if int(count) != count or count < 0:
                raise ValueError(
                    f"Lineage count at {position!r} must be a non-negative integer"
                )
            for _ in range(int(count)):
                forest.insert(position, leaf(position))
        return forest

    def insert(self, position, node):
        self._trees.setdefault(position, []).append(node)

    def extend(self, position, nodes):
        nodes = list(nodes)
        if len(nodes) > 0:
            self._trees.setdefault(position, []).extend(nodes)

    def pop(self, position):
        """
        Removes the specified position and returns the list of its nodes.
        """
        return self._trees.pop(position)

    def positions(self):
        return list(self._trees.keys())

    def trees_at(self, position):
        return list(self._trees.get(position, []))

    def __getitem__(self, position):
        return self._trees[position]

    def __contains__(self, position):
        return position in self._trees

    def __iter__(self):
        return iter(list(self._trees.items()))

    def __len__(self):
        return len(self._trees)

    def __eq__(self, other):
        if not isinstance(other, Forest):
            return NotImplemented
        return self._trees == other._trees

    def __repr__(self):
        return f"Forest({self._trees!r})"

    def __str__(self):
        lines = []
        for position, nodes in self._trees.items():
            lines.append(f"{position}\t -> \t{nodes}")
        return "\n".join(lines)

    @property
    def num_trees(self):
        return sum(len(nodes) for nodes in self._trees.values())

    @property
    def num_positions(self):
        return len(self._trees)

    @property
    def max_trees_per_position(self):
        return max((len(nodes) for nodes in self._trees.values()), default=0)

    def copy(self) -> Forest:
        forest = Forest()
        for position, nodes in self._trees.items():
            forest.extend(position, nodes)
        return forest
