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
Demographic histories: population sizes and migration flows indexed by
deme and discrete time, and a forward simulator producing them.

Times increase forwards. A flow ``(time, origin, destination)`` counts the
individuals of generation ``time + 1`` living in ``destination`` whose
parents lived in ``origin`` at ``time``.
"""
from __future__ import annotations

import collections
import dataclasses
import functools
import logging

import numpy as np

from . import core
from . import exceptions
from . import kernel

logger: logging.Logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class Flow:
    """
    The key of a migration flow record.
    """

    time: int
    origin: object
    destination: object


class DemographicHistory:
    """
    Superclass of demographic histories, defining the read-only interface
    used by the coalescence process. Subclasses must implement
    :attr:`demes`, :meth:`size_at` and :meth:`flow_at`.
    """

    @property
    def demes(self):
        raise NotImplementedError()

    def size_at(self, deme, time):
        """
        Returns the number of individuals in the deme at the given time.
        """
        raise NotImplementedError()

    def flow_at(self, time, origin, destination):
        """
        Returns the number of individuals moving from ``origin`` at ``time``
        to ``destination`` at ``time + 1``.
        """
        raise NotImplementedError()

    def has_deme(self, deme):
        return deme in self.demes

    def flows_into(self, destination, time):
        """
        Returns a dictionary mapping each origin to the number of individuals
        that moved from it at ``time`` into ``destination`` at ``time + 1``.
        Origins with no flow are omitted.
        """
        flows = {}
        for origin in self.demes:
            count = self.flow_at(time, origin, destination)
            if count != 0:
                flows[origin] = count
        return flows


class History(DemographicHistory):
    """
    An in-memory demographic history over a fixed set of demes. Sizes and
    flows that were never set are zero.
    """

    def __init__(self, demes, *, first_time=0):
        self._demes = list(demes)
        if len(self._demes) == 0:
            raise ValueError("At least one deme is required")
        self._deme_set = set(self._demes)
        if len(self._deme_set) != len(self._demes):
            raise ValueError("Deme identifiers must be unique")
        if not core.isinteger(first_time):
            raise TypeError("Times must be integers")
        self.first_time = int(first_time)
        self.last_time = self.first_time
        self._sizes = {}
        self._flows = {}
        self._inflows = collections.defaultdict(dict)

    @staticmethod
    def from_arrays(demes, sizes, flows=None, *, first_time=0) -> History:
        """
        Returns a history built from an array of sizes with shape
        ``(num_times, num_demes)`` and an optional array of flows with shape
        ``(num_times - 1, num_demes, num_demes)``, where ``flows[t, i, j]``
        is the flow from ``demes[i]`` to ``demes[j]`` leaving time
        ``first_time + t``.
        """
        history = History(demes, first_time=first_time)
        num_demes = len(history.demes)
        sizes = np.asarray(sizes)
        if len(sizes.shape) != 2 or sizes.shape[1] != num_demes:
            raise ValueError("Sizes must have shape (num_times, num_demes)")
        for t in range(sizes.shape[0]):
            for j, deme in enumerate(history.demes):
                history.set_size(deme, first_time + t, sizes[t, j])
        if flows is not None:
            flows = np.asarray(flows)
            expected = (sizes.shape[0] - 1, num_demes, num_demes)
            if flows.shape != expected:
                raise ValueError(f"Flows must have shape {expected}")
            for t, i, j in zip(*np.nonzero(flows)):
                history.add_flow(
                    first_time + int(t),
                    history.demes[i],
                    history.demes[j],
                    flows[t, i, j],
                )
        return history

    @property
    def demes(self):
        return list(self._demes)

    @property
    def times(self):
        return range(self.first_time, self.last_time + 1)

    def has_deme(self, deme):
        return deme in self._deme_set

    def _check_deme(self, deme):
        if deme not in self._deme_set:
            raise exceptions.DemographyInconsistencyError(
                f"Deme {deme!r} is not in the demographic history"
            )

    def _check_time(self, time):
        if not core.isinteger(time):
            raise TypeError("Times must be integers")
        time = int(time)
        if time < self.first_time:
            raise ValueError(
                f"Time {time} precedes the start of the history ({self.first_time})"
            )
        return time

    @staticmethod
    def _check_count(count, what):
        if not core.isinteger(count):
            raise TypeError(f"{what} must be an integer")
        count = int(count)
        if count < 0:
            raise ValueError(f"{what} cannot be negative")
        return count

    def set_size(self, deme, time, size):
        self._check_deme(deme)
        time = self._check_time(time)
        self._sizes[(deme, time)] = self._check_count(size, "Population size")
        self.last_time = max(self.last_time, time)

    def add_size(self, deme, time, size):
        self.set_size(deme, time, self.size_at(deme, time) + size)

    def add_flow(self, time, origin, destination, count):
        """
        Adds the specified number of individuals to the flow from ``origin``
        at ``time`` to ``destination`` at ``time + 1``.
        """
        self._check_deme(origin)
        self._check_deme(destination)
        time = self._check_time(time)
        count = self._check_count(count, "Flow")
        key = Flow(time, origin, destination)
        total = self._flows.get(key, 0) + count
        self._flows[key] = total
        self._inflows[(time, destination)][origin] = total
        self.last_time = max(self.last_time, time + 1)

    def size_at(self, deme, time):
        self._check_deme(deme)
        return self._sizes.get((deme, time), 0)

    def flow_at(self, time, origin, destination):
        self._check_deme(origin)
        self._check_deme(destination)
        return self._flows.get(Flow(time, origin, destination), 0)

    def flows_into(self, destination, time):
        self._check_deme(destination)
        inflows = self._inflows.get((time, destination), {})
        return {origin: count for origin, count in inflows.items() if count != 0}

    def flows(self):
        """
        Returns an iterator over the ``(Flow, count)`` records, sorted by time.
        """
        return iter(sorted(self._flows.items(), key=lambda item: item[0].time))

    def total_size(self, time):
        return sum(self._sizes.get((deme, time), 0) for deme in self._demes)

    def __str__(self):
        lines = []
        for flow, count in self.flows():
            lines.append(f"{flow.time}\t{flow.origin}\t{flow.destination}\t{count}")
        return "\n".join(lines)


class BevertonHoltGrowth:
    """
    Density dependent growth: the number of offspring of a deme of size
    ``N`` is Poisson distributed with mean
    ``N (1 + r) / (1 + r N / K)``, where ``r`` is the growth rate and
    ``K`` the carrying capacity. The capacity may be a number or a function
    ``capacity(deme, time)``.
    """

    def __init__(self, growth_rate, capacity):
        if growth_rate < 0:
            raise ValueError("Growth rate must be non-negative")
        if not callable(capacity) and capacity <= 0:
            raise ValueError("Carrying capacity must be positive")
        self.growth_rate = growth_rate
        self.capacity = capacity

    def __repr__(self):
        return (
            f"BevertonHoltGrowth(growth_rate={self.growth_rate}, "
            f"capacity={self.capacity})"
        )

    def expected(self, size, deme=None, time=None):
        capacity = self.capacity
        if callable(capacity):
            capacity = capacity(deme, time)
        if capacity <= 0:
            return 0.0
        r = self.growth_rate
        return size * (1 + r) / (1 + r * size / capacity)

    def __call__(self, rng, deme, time, size):
        return int(rng.poisson(self.expected(size, deme, time)))


def simulate_demography(
    demes,
    initial_sizes,
    growth,
    dispersal,
    *,
    first_time,
    last_time,
    rng,
):
    """
    Simulates the demographic history forwards in time from ``first_time``
    to ``last_time`` and returns it as a :class:`.History`.

    At each time step every occupied deme produces ``growth(rng, deme, time,
    size)`` offspring, which are scattered among the destinations of the
    dispersal distribution from that deme with a multinomial draw. Each
    scattered group is recorded both as a flow and as part of the size of
    its destination at the next time step.

    :param demes: The identifiers of all the demes.
    :param dict initial_sizes: The deme sizes at ``first_time``.
    :param growth: A callable giving the number of offspring of a deme.
    :param dispersal: A dispersal model, such as
        :class:`.DistanceDispersal`, providing the forward distribution of
        destinations from each deme.
    :param numpy.random.Generator rng: The source of randomness.
    """
    core.check_random_generator(rng)
    if last_time < first_time:
        raise ValueError("The last time must not precede the first time")
    history = History(demes, first_time=first_time)
    for deme, size in initial_sizes.items():
        history.set_size(deme, first_time, size)
    transitions = kernel.TransitionKernel()
    logger.info(
        "Simulating demography over %d demes from time %d to %d",
        len(history.demes),
        first_time,
        last_time,
    )
    for time in range(first_time, last_time):
        for deme in history.demes:
            size = history.size_at(deme, time)
            if size == 0:
                continue
            num_offspring = growth(rng, deme, time, size)
            if num_offspring == 0:
                continue
            distribution = transitions.get_or_build(
                dispersal.key(deme, time),
                functools.partial(dispersal.distribution, history, deme, time),
            )
            counts = rng.multinomial(num_offspring, distribution.probabilities)
            for destination, count in zip(distribution.outcomes, counts):
                if count > 0:
                    history.add_flow(time, deme, destination, count)
                    history.add_size(destination, time + 1, count)
        logger.debug("time=%d total size=%d", time + 1, history.total_size(time + 1))
    # Record the horizon even if the population went extinct.
    history.last_time = max(history.last_time, last_time)
    return history
