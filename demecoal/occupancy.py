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
Sampling of occupancy spectra, the configurations of simultaneous
multiple mergers among the lineages of a deme.

An occupancy spectrum for ``n`` children is an integer array ``m`` of
length ``n + 1`` where ``m[j]`` is the number of parents that have
exactly ``j`` children. It always satisfies ``sum(j * m[j]) == n``, and
``sum(m[j])`` is the number of parents.
"""
from __future__ import annotations

import logging
import math

import numpy as np

from . import core
from . import exceptions
from . import kernel

logger: logging.Logger = logging.getLogger(__name__)

SPEED = "speed"
MEMORY = "memory"

# Stam's algorithm needs the Dobinski weights over an infinite number of
# urns; the tail beyond this many urns per element is negligible.
_URNS_PER_ELEMENT = 4
_MIN_URNS = 16


def _check_size(n):
    if not core.isinteger(n):
        raise TypeError("The number of lineages must be an integer")
    n = int(n)
    if n <= 0:
        raise exceptions.InvalidSizeError(
            f"Cannot sample a partition of {n} lineages; at least one is required"
        )
    return n


def _check_blocks(n, k):
    if not core.isinteger(k):
        raise TypeError("The number of parents must be an integer")
    k = int(k)
    if k > n:
        raise exceptions.InvalidPartitionError(
            f"Cannot merge {n} lineages into {k} parents"
        )
    if k < 1:
        raise exceptions.InvalidPartitionError("At least one parent is required")
    return k


def _stirling_rows(n, rows=None):
    """
    Returns the rows 0 to n of the triangle of Stirling numbers of the
    second kind, extending the specified list of rows in place if given.
    """
    if rows is None:
        rows = []
    if len(rows) == 0:
        rows.append([1])
    for i in range(len(rows), n + 1):
        previous = rows[i - 1]
        row = [0] * (i + 1)
        for j in range(1, i):
            row[j] = j * previous[j] + previous[j - 1]
        row[i] = 1
        rows.append(row)
    return rows


def stirling2(n, k):
    """
    Returns the Stirling number of the second kind S(n, k), the number of
    ways to partition a set of n elements into k non-empty blocks.
    """
    if n < 0 or k < 0:
        raise ValueError("Stirling numbers are defined for non-negative arguments")
    if k > n:
        return 0
    return _stirling_rows(n)[n][k]


def bell_number(n):
    """
    Returns the Bell number B(n), the number of partitions of a set of n
    elements.
    """
    if n < 0:
        raise ValueError("Bell numbers are defined for non-negative arguments")
    return sum(_stirling_rows(n)[n])


def num_children(spectrum):
    spectrum = np.asarray(spectrum)
    return int(np.dot(np.arange(spectrum.shape[0]), spectrum))


def num_parents(spectrum):
    spectrum = np.asarray(spectrum)
    return int(np.sum(spectrum[1:]))


def restricted_growth_string(labels):
    """
    Relabels the specified sequence of block labels in order of first
    appearance, so that the result uses the contiguous ids 0, 1, ...
    For example, ``[7, 3, 7, 1]`` becomes ``[0, 1, 0, 2]``.
    """
    ids = {}
    rgs = np.zeros(len(labels), dtype=np.int64)
    for j, label in enumerate(labels):
        rgs[j] = ids.setdefault(label, len(ids))
    return rgs


def spectrum_from_blocks(rgs):
    """
    Returns the occupancy spectrum of the set partition encoded by the
    specified restricted growth string.
    """
    rgs = np.asarray(rgs, dtype=np.int64)
    n = _check_size(rgs.shape[0])
    block_sizes = np.bincount(rgs)
    if np.any(block_sizes == 0):
        raise ValueError("Block ids must be contiguous and start at zero")
    return np.bincount(block_sizes, minlength=n + 1)


class OccupancySpectrumSampler:
    """
    Samples occupancy spectra under the uniform random set partition model:
    every set partition of the ``n`` children is equally likely, so that the
    number of parents ``k`` has probability ``S(n, k) / B(n)``.

    In ``"speed"`` mode the Stirling numbers and the per-``n`` distributions
    are cached for the lifetime of the sampler; the cache grows with every
    distinct ``n`` seen. In ``"memory"`` mode they are recomputed on each
    call.
    """

    def __init__(self, mode=SPEED):
        if mode not in (SPEED, MEMORY):
            raise ValueError(f"Sampler mode must be '{SPEED}' or '{MEMORY}'")
        self.mode = mode
        self._rows = []
        self._block_count_distributions = {}
        self._urn_distributions = {}

    def __repr__(self):
        return f"OccupancySpectrumSampler(mode={self.mode!r})"

    @property
    def cached_sizes(self):
        """
        The numbers of children for which a block count distribution is
        currently cached.
        """
        return sorted(self._block_count_distributions.keys())

    def clear(self):
        self._rows = []
        self._block_count_distributions.clear()
        self._urn_distributions.clear()

    def _stirling_table(self, n):
        if self.mode == SPEED:
            return _stirling_rows(n, self._rows)
        return _stirling_rows(n)

    def _block_count_distribution(self, n):
        distribution = self._block_count_distributions.get(n)
        if distribution is None:
            row = self._stirling_table(n)[n]
            bell = sum(row)
            distribution = kernel.DiscreteDistribution([s / bell for s in row])
            if self.mode == SPEED:
                self._block_count_distributions[n] = distribution
        return distribution

    def block_count_probabilities(self, n):
        """
        Returns the array ``p`` of length ``n + 1`` where ``p[k]`` is the
        probability that a uniformly random set partition of ``n`` elements
        has exactly ``k`` blocks.
        """
        n = _check_size(n)
        return self._block_count_distribution(n).probabilities

    def sample_block_count(self, n, rng):
        n = _check_size(n)
        return self._block_count_distribution(n).sample(rng)

    def sample(self, n, rng, k=None):
        """
        Returns the occupancy spectrum of a uniformly random set partition of
        ``n`` children into exactly ``k`` parents. If ``k`` is None, it is
        first drawn from the block count law of ``n``.

        The partition is built by unwinding the recurrence
        ``S(n, k) = k S(n - 1, k) + S(n - 1, k - 1)``: child ``n`` founds its
        own block with probability ``S(n - 1, k - 1) / S(n, k)`` and otherwise
        joins one of the ``k`` blocks of the remaining children uniformly.
        """
        n = _check_size(n)
        if k is None:
            k = self.sample_block_count(n, rng)
        k = _check_blocks(n, k)
        table = self._stirling_table(n)

        new_block = []
        i, j = n, k
        while i > j and j > 1:
            p = table[i - 1][j - 1] / table[i][j]
            founds = bool(rng.random() < p)
            new_block.append(founds)
            if founds:
                j -= 1
            i -= 1
        # The first i children are either all singletons or all together.
        block_sizes = [i] if j == 1 else [1] * i
        for founds in reversed(new_block):
            if founds:
                block_sizes.append(1)
            else:
                block_sizes[rng.integers(len(block_sizes))] += 1
        return np.bincount(block_sizes, minlength=n + 1)

    def sample_by_labels(self, n, k, rng):
        """
        Returns an occupancy spectrum for ``n`` children built from random
        labels: a label count ``K`` is drawn uniformly in ``[1, k]``, each
        child gets a uniform label in ``[1, K]`` and the labels are
        canonicalised into a restricted growth string.

        .. warning::
            This is an approximation. The spectrum always accounts for the
            ``n`` children, but it has at most ``k`` parents and does not
            follow the uniform set partition law. Use :meth:`sample` for
            exact draws.
        """
        n = _check_size(n)
        k = _check_blocks(n, k)
        num_labels = int(rng.integers(1, k + 1))
        labels = rng.integers(1, num_labels + 1, size=n)
        return spectrum_from_blocks(restricted_growth_string(labels))

    def _urn_distribution(self, n):
        distribution = self._urn_distributions.get(n)
        if distribution is None:
            num_urns = max(_MIN_URNS, _URNS_PER_ELEMENT * n)
            urns = np.arange(1, num_urns + 1)
            # Dobinski: P(K) = K^n / (K! e B(n)), normalised in log space.
            log_weights = n * np.log(urns) - np.array(
                [math.lgamma(u + 1) for u in urns]
            )
            weights = np.exp(log_weights - np.max(log_weights))
            distribution = kernel.DiscreteDistribution(weights, outcomes=urns)
            if self.mode == SPEED:
                self._urn_distributions[n] = distribution
        return distribution

    def sample_set_partition(self, n, rng):
        """
        Returns a uniformly random set partition of ``n`` elements as a
        restricted growth string, using Stam's urn algorithm. The Dobinski
        law over the number of urns is truncated to a finite support.
        """
        n = _check_size(n)
        num_urns = int(self._urn_distribution(n).sample(rng))
        labels = rng.integers(1, num_urns + 1, size=n)
        return restricted_growth_string(labels)
