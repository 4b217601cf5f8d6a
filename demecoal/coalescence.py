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
Module responsible for defining and running coalescence simulations
backwards in time over a demographic history.
"""
from __future__ import annotations

import collections.abc
import enum
import functools
import logging
import operator
from typing import ClassVar

import numpy as np

from . import core
from . import demography as demog
from . import dispersal as disp
from . import exceptions
from . import forest as frst
from . import kernel
from . import merge
from . import occupancy

logger: logging.Logger = logging.getLogger(__name__)


class Combiner:
    """
    The operator branching lineages onto their common ancestors.

    A new parent starts from ``initial(time, deme)`` and each of its
    children is folded in with ``combiner(parent, child)``. Leaves are made
    by ``leaf(position)``; ``leaf`` may be a value or a function of the
    position. The default counts the sampled descendants of each node.
    """

    shareable: ClassVar[bool] = True

    def __init__(self, op=operator.add, init=0, leaf=1):
        self.op = op
        self.init = init
        self._leaf = leaf

    def __repr__(self):
        return f"{self.__class__.__name__}(op={self.op!r}, init={self.init!r})"

    def leaf(self, position):
        if callable(self._leaf):
            return self._leaf(position)
        return self._leaf

    def initial(self, time, deme):
        return self.init

    def __call__(self, parent, child):
        return self.op(parent, child)


class SamplingPositions(Combiner):
    """
    Each node is the tuple of the sampling positions of its descendants.
    """

    def __init__(self):
        super().__init__(op=operator.add, init=(), leaf=lambda position: (position,))


class ParentsModel:
    """
    Superclass of the policies deciding how many distinct parents the
    ``n`` lineages of a deme have at a given time.
    """

    name: ClassVar[str]

    def __repr__(self):
        return f"{self.__class__.__name__}()"

    def num_parents(self, rng, n, deme, time, history):
        raise NotImplementedError()


class WrightFisher(ParentsModel):
    """
    Each lineage picks its parent uniformly among the individuals of its
    deme, so that the number of parents is the number of distinct picks.
    The string ``"wright_fisher"`` can be used to refer to this model.
    """

    name = "wright_fisher"

    def num_parents(self, rng, n, deme, time, history):
        size = history.size_at(deme, time)
        if size < 1:
            raise exceptions.DemographyInconsistencyError(
                f"{n} lineages in deme {deme!r} at time {time} but the "
                f"population size is {size}"
            )
        picks = rng.integers(size, size=n)
        return len(np.unique(picks))


class FixedParents(ParentsModel):
    """
    The lineages of a deme always merge into (at most) ``num_parents``
    parents. With the default of one parent, all the lineages sharing a
    deme coalesce at once. The string ``"fixed"`` can be used to refer to
    this model.
    """

    name = "fixed"

    def __init__(self, num_parents=1):
        if num_parents < 1:
            raise ValueError("Must have at least one parent")
        self.parents = num_parents

    def __repr__(self):
        return f"FixedParents(num_parents={self.parents})"

    def num_parents(self, rng, n, deme, time, history):
        return min(self.parents, n)


class PairwiseCoalescent(ParentsModel):
    """
    At most one pair of lineages coalesces per deme and time step, with
    probability ``n (n - 1) / (2 N)`` capped at one, where ``N`` is the
    size of the deme. The string ``"pairwise"`` can be used to refer to
    this model.
    """

    name = "pairwise"

    def num_parents(self, rng, n, deme, time, history):
        size = history.size_at(deme, time)
        if size < 1:
            raise exceptions.DemographyInconsistencyError(
                f"{n} lineages in deme {deme!r} at time {time} but the "
                f"population size is {size}"
            )
        p = min(1.0, n * (n - 1) / (2 * size))
        if rng.random() < p:
            return n - 1
        return n


class StoppingRule:
    """
    Superclass of the rules deciding whether a simulation stops early,
    evaluated after the merges of each time step.
    """

    name: ClassVar[str]

    def __repr__(self):
        return f"{self.__class__.__name__}()"

    def __call__(self, forest, time):
        raise NotImplementedError()


class UntilMrca(StoppingRule):
    """
    Stop once all lineages have coalesced into a single ancestor.
    """

    name = "mrca"

    def __call__(self, forest, time):
        return forest.num_trees <= 1


class UntilIsolated(StoppingRule):
    """
    Stop once no deme holds more than one lineage.
    """

    name = "isolated"

    def __call__(self, forest, time):
        return forest.max_trees_per_position <= 1


class UntilHorizon(StoppingRule):
    """
    Never stop early: run until the origin time of the history.
    """

    name = "horizon"

    def __call__(self, forest, time):
        return False


def _named_factory(value, kind, superclass, classes, default):
    """
    Returns an instance of ``superclass`` from the specified value:
    ``default()`` if it is None, a new instance of the class with that
    name if it is a string, and the value itself if it is already an
    instance.
    """
    if value is None:
        return default()
    if isinstance(value, str):
        name_map = {cls.name: cls for cls in classes}
        lower_value = value.lower()
        if lower_value not in name_map:
            raise ValueError(
                f"{kind} '{value}' unknown. Choose from {sorted(name_map.keys())}"
            )
        return name_map[lower_value]()
    if not isinstance(value, superclass):
        raise TypeError(f"{kind} must be a string or an instance of {superclass}")
    return value


def _parents_factory(parents):
    return _named_factory(
        parents,
        "Parents model",
        ParentsModel,
        [WrightFisher, FixedParents, PairwiseCoalescent],
        WrightFisher,
    )


def _stopping_rule_factory(stopping_rule):
    return _named_factory(
        stopping_rule,
        "Stopping rule",
        StoppingRule,
        [UntilMrca, UntilIsolated, UntilHorizon],
        UntilMrca,
    )


class ExitReason(enum.IntEnum):
    """
    The different reasons that a coalescence simulation stops.
    """

    COALESCENCE = 0
    """
    The stopping rule fired with a single lineage left.
    """

    STOPPING_RULE = 1
    """
    The stopping rule fired with more than one lineage left.
    """

    HORIZON = 2
    """
    The origin time of the history was reached.
    """


class Simulator:
    """
    Runs the coalescence process over a demographic history, from the
    sampling time back to the origin time.

    At each time step, the lineages sharing a deme merge into the number
    of parents given by the parents model, using a binary merge for a single
    pairwise coalescence and a simultaneous multiple merge otherwise. Then,
    unless the origin time has been reached, every lineage moves to the
    previous time step in a deme drawn from the transition kernel built by
    the dispersal model.

    The forest is mutated in place. All randomness comes from ``rng``, so
    two simulators with identically seeded generators and identical inputs
    give identical results.
    """

    def __init__(
        self,
        *,
        forest,
        history,
        rng,
        sampling_time,
        origin_time,
        combiner=None,
        dispersal=None,
        parents=None,
        sampler=None,
        stopping_rule=None,
    ):
        if not isinstance(forest, frst.Forest):
            raise TypeError("A Forest instance is required")
        if not isinstance(history, demog.DemographicHistory):
            raise TypeError("A DemographicHistory instance is required")
        if origin_time > sampling_time:
            raise ValueError("The origin time must not be after the sampling time")
        self.forest = forest
        self.history = history
        self.rng = core.check_random_generator(rng)
        self.sampling_time = int(sampling_time)
        self.origin_time = int(origin_time)
        self.combiner = Combiner() if combiner is None else combiner
        self.dispersal = disp.BackwardFlowDispersal() if dispersal is None else dispersal
        self.parents = _parents_factory(parents)
        self.sampler = occupancy.OccupancySpectrumSampler() if sampler is None else sampler
        self.stopping_rule = _stopping_rule_factory(stopping_rule)
        self.kernel = kernel.TransitionKernel()
        self.time = self.sampling_time
        self.num_merge_events = 0
        self.num_coalesced_lineages = 0
        self.num_migration_events = 0

    def _check_positions(self):
        for position in self.forest.positions():
            if not self.history.has_deme(position):
                raise exceptions.DemographyInconsistencyError(
                    f"Lineages at {position!r} which is not in the demographic history"
                )

    def _merge_deme(self, deme, nodes):
        n = len(nodes)
        k = self.parents.num_parents(self.rng, n, deme, self.time, self.history)
        if k > n:
            raise exceptions.InvalidPartitionError(
                f"Parents model {self.parents} gave {k} parents for {n} lineages"
            )
        if k == n:
            return
        init = self.combiner.initial(self.time, deme)
        if k == n - 1:
            size = merge.binary_merge(nodes, self.rng, init=init, op=self.combiner)
        else:
            spectrum = self.sampler.sample(n, self.rng, k=k)
            size = merge.simultaneous_multiple_merge(
                nodes, spectrum, self.rng, init=init, op=self.combiner
            )
        del nodes[size:]
        self.num_merge_events += 1
        self.num_coalesced_lineages += n - size

    def merge_step(self):
        """
        Merges the lineages sharing a deme at the current time.
        """
        for deme, nodes in self.forest:
            if len(nodes) >= 2:
                self._merge_deme(deme, nodes)

    def migration_step(self):
        """
        Moves every lineage from the current time to the deme of its
        parent at the previous time step.
        """
        moves = []
        for deme, nodes in self.forest:
            key = self.dispersal.key(deme, self.time)
            self.kernel.get_or_build(
                key,
                functools.partial(
                    self.dispersal.distribution, self.history, deme, self.time
                ),
            )
            for node in nodes:
                destination = self.kernel.draw(self.rng, key)
                if not self.history.has_deme(destination):
                    raise exceptions.DemographyInconsistencyError(
                        f"Lineage moved to {destination!r} which is not in the "
                        "demographic history"
                    )
                if destination != deme:
                    self.num_migration_events += 1
                moves.append((destination, node))
            self.forest.pop(deme)
        for destination, node in moves:
            self.forest.insert(destination, node)
        self.time -= 1

    def run(self, debug_func=None):
        """
        Runs the simulation until the stopping rule fires or the origin time
        has been reached, and returns the :class:`.ExitReason`.
        """
        if self.forest.num_trees == 0:
            raise exceptions.InvalidSizeError("Cannot simulate without lineages")
        self._check_positions()
        logger.info(
            "Running coalescence of %d lineages from time %d to %d",
            self.forest.num_trees,
            self.time,
            self.origin_time,
        )
        while True:
            self.merge_step()
            logger.debug(
                "time=%d lineages=%d demes=%d merges=%d",
                self.time,
                self.forest.num_trees,
                self.forest.num_positions,
                self.num_merge_events,
            )
            if debug_func is not None:
                debug_func(self)
            if self.stopping_rule(self.forest, self.time):
                if self.forest.num_trees == 1:
                    ret = ExitReason.COALESCENCE
                else:
                    ret = ExitReason.STOPPING_RULE
                break
            if self.time <= self.origin_time:
                ret = ExitReason.HORIZON
                break
            self.migration_step()
        logger.info(
            "Completed at time=%d lineages=%d merges=%d migrations=%d reason=%s",
            self.time,
            self.forest.num_trees,
            self.num_merge_events,
            self.num_migration_events,
            ret.name,
        )
        return ret


def _parse_samples(samples, combiner):
    if isinstance(samples, frst.Forest):
        return samples.copy()
    if isinstance(samples, collections.abc.Mapping):
        return frst.Forest.from_counts(samples, leaf=combiner.leaf)
    raise TypeError("Samples must be a Forest or a mapping from deme to count")


def _parse_times(history, sampling_time, origin_time):
    if sampling_time is None:
        if not isinstance(history, demog.History):
            raise ValueError("The sampling time must be specified")
        sampling_time = history.last_time
    if origin_time is None:
        if not isinstance(history, demog.History):
            raise ValueError("The origin time must be specified")
        origin_time = history.first_time
    if not core.isinteger(sampling_time) or not core.isinteger(origin_time):
        raise TypeError("Sampling and origin times must be integers")
    if origin_time > sampling_time:
        raise ValueError("The origin time must not be after the sampling time")
    return int(sampling_time), int(origin_time)


def _parse_sim_coalescence(
    samples,
    history,
    *,
    combiner,
    dispersal,
    parents,
    sampler,
    stopping_rule,
    sampling_time,
    origin_time,
    rng,
):
    sampling_time, origin_time = _parse_times(history, sampling_time, origin_time)
    return Simulator(
        forest=_parse_samples(samples, combiner),
        history=history,
        rng=rng,
        sampling_time=sampling_time,
        origin_time=origin_time,
        combiner=combiner,
        dispersal=dispersal,
        parents=parents,
        sampler=sampler,
        stopping_rule=stopping_rule,
    )


def _wrap_replicates(seeds, build):
    for replicate_index, seed in enumerate(seeds):
        logger.info("Starting replicate %d", replicate_index)
        sim = build(np.random.default_rng(seed))
        sim.run()
        yield sim.forest


def sim_coalescence(
    samples,
    history,
    *,
    combiner=None,
    dispersal=None,
    parents=None,
    sampler=None,
    stopping_rule=None,
    sampling_time=None,
    origin_time=None,
    random_seed=None,
    num_replicates=None,
):
    """
    Simulates the coalescence of the specified samples backwards in time
    over a demographic history and returns the resulting :class:`.Forest`.

    :param samples: Either a :class:`.Forest` of initial lineages, which is
        copied, or a mapping from deme to the number of lineages sampled
        there, whose leaves are made with ``combiner.leaf``.
    :param history: The :class:`.DemographicHistory` to simulate over.
    :param Combiner combiner: The operator merging lineages. Defaults to
        counting the sampled descendants of each node.
    :param dispersal: The backward dispersal model. Defaults to following
        the flows of the history (:class:`.BackwardFlowDispersal`).
    :param parents: The :class:`.ParentsModel` (or its name) giving the
        number of parents of the lineages of a deme. Defaults to
        ``"wright_fisher"``.
    :param OccupancySpectrumSampler sampler: The sampler of multiple merger
        configurations. Defaults to a new sampler in ``"speed"`` mode.
    :param stopping_rule: The :class:`.StoppingRule` (or its name).
        Defaults to ``"mrca"``.
    :param int sampling_time: The time of sampling. Defaults to the last
        time of a :class:`.History`.
    :param int origin_time: The time at which the simulation ends at the
        latest. Defaults to the first time of a :class:`.History`.
    :param int random_seed: The random seed. If this is not specified or
        None, a high-quality random seed is generated.
    :param int num_replicates: If specified, return an iterator over the
        final forests of this many independent replicates, each run with
        its own generator spawned from the seed.
    :return: The final forest, or an iterator over the final forests of
        the replicates.
    """
    seed = core.parse_random_seed(random_seed)
    combiner = Combiner() if combiner is None else combiner
    build = functools.partial(
        _parse_sim_coalescence,
        samples,
        history,
        combiner=combiner,
        dispersal=dispersal,
        parents=parents,
        sampler=sampler,
        stopping_rule=stopping_rule,
        sampling_time=sampling_time,
        origin_time=origin_time,
    )
    if num_replicates is None:
        sim = build(rng=np.random.default_rng(seed))
        sim.run()
        return sim.forest
    if num_replicates < 1:
        raise ValueError("Must have at least one replicate")
    if not combiner.shareable and num_replicates > 1:
        raise ValueError(f"{combiner} records state and cannot be shared by replicates")
    seeds = np.random.SeedSequence(seed).spawn(num_replicates)
    return _wrap_replicates(seeds, lambda rng: build(rng=rng))
