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
Discrete distributions and the per-origin transition kernel cache used to
route lineages between demes.
"""
from __future__ import annotations

import logging

import numpy as np

from . import exceptions

logger: logging.Logger = logging.getLogger(__name__)


class DiscreteDistribution:
    """
    A probability distribution over a finite set of outcomes, defined by
    non-negative weights which need not sum to one.

    If ``outcomes`` is None, samples are the integer indexes of the weights.
    Outcomes with zero weight are kept in :attr:`outcomes` but are never
    sampled.
    """

    def __init__(self, weights, outcomes=None):
        weights = np.array(weights, dtype=np.float64)
        if len(weights.shape) != 1 or weights.shape[0] == 0:
            raise ValueError("Weights must be a non-empty one dimensional array")
        if not np.all(np.isfinite(weights)):
            raise ValueError("Weights must be finite")
        if np.any(weights < 0):
            raise ValueError("Weights must be non-negative")
        total = np.sum(weights)
        if total <= 0:
            raise ValueError("Weights must have a positive sum")
        if outcomes is not None:
            outcomes = list(outcomes)
            if len(outcomes) != weights.shape[0]:
                raise ValueError("Must have the same number of outcomes and weights")
        self._weights = weights
        self._outcomes = outcomes
        self._cumulative = np.cumsum(weights)
        self._last = int(np.flatnonzero(weights)[-1])
        self._probabilities = weights / total
        self._probabilities.flags.writeable = False

    def __len__(self):
        return self._weights.shape[0]

    def __repr__(self):
        return (
            f"DiscreteDistribution(weights={self._weights.tolist()}, "
            f"outcomes={self._outcomes})"
        )

    @property
    def probabilities(self):
        return self._probabilities

    @property
    def outcomes(self):
        if self._outcomes is None:
            return list(range(len(self)))
        return list(self._outcomes)

    @property
    def support(self):
        """
        The outcomes that have a positive probability of being sampled.
        """
        outcomes = self.outcomes
        return [outcomes[j] for j in np.flatnonzero(self._weights)]

    def _outcome(self, index):
        if self._outcomes is None:
            return index
        return self._outcomes[index]

    def sample_index(self, rng):
        u = rng.random() * self._cumulative[-1]
        index = int(np.searchsorted(self._cumulative, u, side="right"))
        # u is strictly less than the total in exact arithmetic; guard
        # against rounding landing on a trailing zero-weight entry.
        return min(index, self._last)

    def sample(self, rng):
        """
        Returns a single outcome drawn using the specified
        :class:`numpy.random.Generator`.
        """
        return self._outcome(self.sample_index(rng))


class TransitionKernel:
    """
    A cache mapping an origin key to the :class:`.DiscreteDistribution` of
    the destination reached from it.

    Distributions are built lazily by the caller the first time an origin
    is visited, via :meth:`get_or_build`, and are then reused for the rest
    of the simulation run. A stored distribution is never rebuilt unless
    explicitly overwritten with :meth:`set`.
    """

    def __init__(self):
        self._distributions = {}

    def __len__(self):
        return len(self._distributions)

    def __contains__(self, key):
        return key in self._distributions

    def has_distribution(self, key):
        return key in self._distributions

    def set(self, key, distribution):  # noqa: A003
        if not isinstance(distribution, DiscreteDistribution):
            raise TypeError("A DiscreteDistribution instance is required")
        self._distributions[key] = distribution

    def get(self, key):
        try:
            return self._distributions[key]
        except KeyError:
            raise exceptions.NotFoundError(
                f"No transition distribution registered for {key!r}"
            ) from None

    def get_or_build(self, key, factory):
        """
        Returns the distribution registered for the specified key, calling
        ``factory()`` and storing the result if there is none yet.
        """
        distribution = self._distributions.get(key)
        if distribution is None:
            distribution = factory()
            self.set(key, distribution)
            logger.debug(
                "Built transition distribution for %r over %d outcomes",
                key,
                len(distribution),
            )
        return distribution

    def draw(self, rng, key):
        """
        Samples a destination from the distribution registered for the
        specified key. Raises :class:`.NotFoundError` if there is none.
        """
        return self.get(key).sample(rng)

    __call__ = draw

    def clear(self):
        self._distributions.clear()
