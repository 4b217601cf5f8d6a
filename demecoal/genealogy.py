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
Recording of the simulated genealogy as a tskit tree sequence.
"""
from __future__ import annotations

import dataclasses
import json

import tskit

from . import coalescence
from . import core


@dataclasses.dataclass(frozen=True)
class PendingParent:
    """
    A parent node that has not been added to the node table yet.
    """

    time: float
    population: int


class GenealogyRecorder(coalescence.Combiner):
    """
    A combiner whose nodes are the IDs of nodes in a
    :class:`tskit.TableCollection` of sequence length 1. Each deme is
    a population, leaves are sample nodes at time 0 and the parent formed
    at time step ``t`` is placed ``sampling_time - t + 1`` generations ago.

    A recorder accumulates the nodes and edges of one simulation and so
    cannot be shared between replicates.
    """

    shareable = False

    def __init__(self, demes, sampling_time):
        super().__init__(op=None, init=None)
        self.sampling_time = int(sampling_time)
        self.tables = tskit.TableCollection(sequence_length=1)
        self.tables.time_units = "generations"
        self.tables.populations.metadata_schema = (
            tskit.MetadataSchema.permissive_json()
        )
        self._populations = {}
        for deme in demes:
            if deme in self._populations:
                raise ValueError("Deme identifiers must be unique")
            self._populations[deme] = self.tables.populations.add_row(
                metadata={"name": str(deme)}
            )

    def __repr__(self):
        return (
            f"GenealogyRecorder(num_populations={len(self._populations)}, "
            f"sampling_time={self.sampling_time})"
        )

    def population(self, deme):
        return self._populations[deme]

    def leaf(self, position):
        return self.tables.nodes.add_row(
            flags=tskit.NODE_IS_SAMPLE, time=0, population=self._populations[position]
        )

    def initial(self, time, deme):
        return PendingParent(
            time=self.sampling_time - time + 1, population=self._populations[deme]
        )

    def __call__(self, parent, child):
        if isinstance(parent, PendingParent):
            parent = self.tables.nodes.add_row(
                time=parent.time, population=parent.population
            )
        self.tables.edges.add_row(left=0, right=1, parent=parent, child=child)
        return parent

    def tree_sequence(self, parameters=None):
        """
        Returns the recorded genealogy as a :class:`tskit.TreeSequence`.
        If ``parameters`` is given, it is stored in a provenance record.
        """
        tables = self.tables.copy()
        tables.sort()
        if parameters is not None:
            record = {
                "schema_version": "1",
                "software": {"name": "demecoal", "version": core.__version__},
                "parameters": parameters,
                "environment": tskit.provenance.get_environment(),
            }
            tables.provenances.add_row(json.dumps(record))
        return tables.tree_sequence()
