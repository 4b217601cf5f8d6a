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
Tests for recording the genealogy as a tskit tree sequence.
"""
import json

import numpy as np
import pytest
import tskit

import demecoal
import tests
from demecoal import genealogy


def simulate_genealogy(history, counts, seed=1, **kwargs):
    recorder = demecoal.GenealogyRecorder(history.demes, history.last_time)
    sim = demecoal.Simulator(
        forest=demecoal.Forest.from_counts(counts, leaf=recorder.leaf),
        history=history,
        rng=np.random.default_rng(seed),
        sampling_time=history.last_time,
        origin_time=history.first_time,
        combiner=recorder,
        **kwargs,
    )
    sim.run()
    return sim, recorder


class TestGenealogyRecorder:
    def test_populations(self):
        recorder = demecoal.GenealogyRecorder([(0, 0), (0, 1), "x"], 10)
        assert recorder.population((0, 0)) == 0
        assert recorder.population("x") == 2
        ts = recorder.tree_sequence()
        assert ts.num_populations == 3
        assert ts.population(1).metadata == {"name": "(0, 1)"}
        assert ts.population(2).metadata == {"name": "x"}

    def test_duplicate_demes(self):
        with pytest.raises(ValueError):
            demecoal.GenealogyRecorder(["a", "a"], 10)

    def test_not_shareable(self):
        assert not demecoal.GenealogyRecorder(["a"], 1).shareable

    def test_leaf(self):
        recorder = demecoal.GenealogyRecorder(["a", "b"], 10)
        assert recorder.leaf("b") == 0
        assert recorder.leaf("a") == 1
        node = recorder.tables.nodes[0]
        assert node.time == 0
        assert node.population == 1
        assert node.flags == tskit.NODE_IS_SAMPLE

    def test_initial(self):
        recorder = demecoal.GenealogyRecorder(["a", "b"], 10)
        pending = recorder.initial(7, "b")
        assert pending == genealogy.PendingParent(time=4, population=1)
        assert recorder.tables.nodes.num_rows == 0

    def test_binary_merge(self):
        recorder = demecoal.GenealogyRecorder(["a"], 10)
        nodes = [recorder.leaf("a") for _ in range(3)]
        last = demecoal.binary_merge(
            nodes, np.random.default_rng(1), init=recorder.initial(10, "a"), op=recorder
        )
        assert last == 2
        assert recorder.tables.nodes.num_rows == 4
        assert recorder.tables.edges.num_rows == 2
        parent = nodes[0]
        assert parent == 3
        assert recorder.tables.nodes[parent].time == 1
        assert set(recorder.tables.edges.parent) == {parent}

    def test_multiple_merge(self):
        recorder = demecoal.GenealogyRecorder(["a"], 10)
        nodes = [recorder.leaf("a") for _ in range(5)]
        last = demecoal.simultaneous_multiple_merge(
            nodes,
            [0, 1, 2, 0, 0, 0],
            np.random.default_rng(2),
            init=recorder.initial(9, "a"),
            op=recorder,
        )
        assert last == 3
        assert recorder.tables.nodes.num_rows == 7
        assert recorder.tables.edges.num_rows == 4
        assert nodes[0] != nodes[1]
        assert recorder.tables.nodes[nodes[0]].time == 2
        assert recorder.tables.nodes[nodes[1]].time == 2
        assert nodes[2] < 5

    def test_repr(self):
        recorder = demecoal.GenealogyRecorder(["a", "b"], 10)
        assert repr(recorder) == (
            "GenealogyRecorder(num_populations=2, sampling_time=10)"
        )


class TestTreeSequence:
    def test_single_deme_mrca(self):
        history = tests.island_history(num_demes=1, size=10, num_times=500)
        sim, recorder = simulate_genealogy(history, {0: 10})
        ts = recorder.tree_sequence()
        assert ts.num_samples == 10
        assert ts.num_trees == 1
        tree = ts.first()
        assert tree.num_roots == 1
        assert ts.node(tree.root).time == sim.sampling_time - sim.time + 1
        assert ts.num_edges == ts.num_nodes - 1
        assert ts.num_provenances == 0

    def test_star_tree(self):
        history = tests.island_history(num_demes=2, size=10, num_times=5)
        _, recorder = simulate_genealogy(history, {1: 5}, parents="fixed")
        ts = recorder.tree_sequence()
        tree = ts.first()
        assert tree.num_roots == 1
        assert ts.node(tree.root).time == 1
        assert ts.node(tree.root).population == 1
        assert tree.num_children(tree.root) == 5

    def test_multiple_roots(self):
        history = tests.island_history(num_demes=2, size=1000, num_times=3)
        _, recorder = simulate_genealogy(
            history, {0: 3, 1: 3}, stopping_rule="horizon"
        )
        ts = recorder.tree_sequence()
        assert ts.num_samples == 6
        assert ts.first().num_roots >= 1
        for node in ts.nodes():
            assert node.time <= 3

    def test_samples_keep_populations(self):
        history = tests.island_history(num_demes=3, size=5, num_times=100)
        _, recorder = simulate_genealogy(history, {0: 2, 2: 3})
        ts = recorder.tree_sequence()
        populations = [ts.node(u).population for u in ts.samples()]
        assert sorted(populations) == [0, 0, 2, 2, 2]

    def test_tables_not_modified(self):
        history = tests.island_history(num_demes=1, size=10, num_times=500)
        _, recorder = simulate_genealogy(history, {0: 4})
        num_provenances = recorder.tables.provenances.num_rows
        recorder.tree_sequence({"x": 1})
        assert recorder.tables.provenances.num_rows == num_provenances

    def test_provenance(self):
        history = tests.island_history(num_demes=1, size=10, num_times=500)
        _, recorder = simulate_genealogy(history, {0: 4})
        parameters = {"command": "test", "sample_size": 4}
        ts = recorder.tree_sequence(parameters)
        assert ts.num_provenances == 1
        record = json.loads(ts.provenance(0).record)
        tskit.validate_provenance(record)
        assert record["software"] == {
            "name": "demecoal",
            "version": demecoal.__version__,
        }
        assert record["parameters"] == parameters
