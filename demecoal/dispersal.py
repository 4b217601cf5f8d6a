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
Dispersal models giving the distribution of the deme a lineage moves to.

A dispersal model provides ``key(deme, time)``, the transition kernel key
under which its distribution for that deme and time is cached, and
``distribution(history, deme, time)``, which builds that distribution.
"""
from __future__ import annotations

import math

import numpy as np

from . import exceptions
from . import kernel


class GaussianKernel:
    """
    Gaussian dispersal density of distance with scale ``a``.
    """

    def __init__(self, a):
        if a <= 0:
            raise ValueError("Gaussian kernel scale must be positive")
        self.a = a

    def __repr__(self):
        return f"GaussianKernel(a={self.a})"

    def pdf(self, r):
        r = np.asarray(r, dtype=np.float64)
        if np.any(r < 0):
            raise ValueError("Distances must be non-negative")
        a = self.a
        return 1 / (math.pi * a * a) * np.exp(-(r * r) / (a * a))


class LogisticKernel:
    """
    Fat tailed logistic dispersal density of distance with scale ``a``
    and shape ``b``.
    """

    def __init__(self, a, b):
        if a <= 0:
            raise ValueError("Logistic kernel scale must be positive")
        if b <= 2:
            raise ValueError("Logistic kernel shape must be greater than 2")
        self.a = a
        self.b = b

    def __repr__(self):
        return f"LogisticKernel(a={self.a}, b={self.b})"

    def pdf(self, r):
        r = np.asarray(r, dtype=np.float64)
        if np.any(r < 0):
            raise ValueError("Distances must be non-negative")
        a = self.a
        b = self.b
        norm = b / (
            2 * math.pi * a * a * math.gamma(2 / b) * math.gamma(1 - 2 / b)
        )
        return norm / (1 + np.power(r, b) / np.power(a, b))


def _check_destinations(history, destinations):
    if history is None:
        return
    for destination in destinations:
        if not history.has_deme(destination):
            raise exceptions.DemographyInconsistencyError(
                f"Destination {destination!r} is not in the demographic history"
            )


class DistanceDispersal:
    """
    Dispersal weighted by a kernel density of the distance to each
    neighbour. ``neighbours`` is either a mapping or a function from a deme
    to a pair ``(destinations, distances)``. The distribution of a deme does
    not depend on time.
    """

    def __init__(self, neighbours, dispersal_kernel):
        self.neighbours = neighbours
        self.kernel = dispersal_kernel

    @staticmethod
    def from_matrix(demes, distances, dispersal_kernel) -> DistanceDispersal:
        """
        Returns a dispersal model in which every deme can reach every other,
        with ``distances[i, j]`` the distance from ``demes[i]`` to
        ``demes[j]``.
        """
        demes = list(demes)
        distances = np.asarray(distances, dtype=np.float64)
        if distances.shape != (len(demes), len(demes)):
            raise ValueError("Distance matrix must be num_demes x num_demes")
        neighbours = {
            deme: (demes, distances[j]) for j, deme in enumerate(demes)
        }
        return DistanceDispersal(neighbours, dispersal_kernel)

    def _lookup(self, deme):
        if callable(self.neighbours):
            return self.neighbours(deme)
        try:
            return self.neighbours[deme]
        except KeyError:
            raise exceptions.DemographyInconsistencyError(
                f"No neighbours defined for deme {deme!r}"
            ) from None

    def key(self, deme, time):
        return deme

    def distribution(self, history, deme, time):
        destinations, distances = self._lookup(deme)
        destinations = list(destinations)
        _check_destinations(history, destinations)
        weights = self.kernel.pdf(distances)
        if np.sum(weights) == 0:
            raise exceptions.DemographyInconsistencyError(
                f"No neighbour of deme {deme!r} can be reached under {self.kernel}"
            )
        return kernel.DiscreteDistribution(weights, outcomes=destinations)


class BackwardFlowDispersal:
    """
    Backward migration following the flows of a demographic history: a
    lineage in ``deme`` at ``time`` descends from an individual of deme
    ``y`` at ``time - 1`` with probability proportional to the flow from
    ``y`` to ``deme`` over that step.
    """

    def __repr__(self):
        return "BackwardFlowDispersal()"

    def key(self, deme, time):
        return (deme, time)

    def distribution(self, history, deme, time):
        inflows = history.flows_into(deme, time - 1)
        origins = list(inflows.keys())
        counts = [inflows[origin] for origin in origins]
        if any(count < 0 for count in counts):
            raise exceptions.DemographyInconsistencyError(
                f"Negative flow into deme {deme!r} at time {time}"
            )
        if sum(counts) == 0:
            raise exceptions.DemographyInconsistencyError(
                f"Lineages in deme {deme!r} at time {time} but no individuals "
                f"moved there from time {time - 1}"
            )
        _check_destinations(history, origins)
        return kernel.DiscreteDistribution(counts, outcomes=origins)
