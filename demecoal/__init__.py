# Turn off flake8 and reorder-python-imports for this file.
# flake8: NOQA
# noreorder
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
Demecoal is a spatially explicit coalescence simulator: lineages sampled
over a landscape of demes are merged backwards in time over a demographic
history of population sizes and migration flows.
"""

from demecoal.core import __version__

from demecoal.exceptions import (
    DemecoalException,
    DemographyInconsistencyError,
    InvalidPartitionError,
    InvalidSizeError,
    NotFoundError,
)

from demecoal.occupancy import (
    OccupancySpectrumSampler,
    bell_number,
    num_children,
    num_parents,
    restricted_growth_string,
    spectrum_from_blocks,
    stirling2,
)

from demecoal.merge import binary_merge, simultaneous_multiple_merge
from demecoal.kernel import DiscreteDistribution, TransitionKernel
from demecoal.forest import Forest

from demecoal.demography import (
    BevertonHoltGrowth,
    DemographicHistory,
    Flow,
    History,
    simulate_demography,
)

from demecoal.dispersal import (
    BackwardFlowDispersal,
    DistanceDispersal,
    GaussianKernel,
    LogisticKernel,
)

from demecoal.coalescence import (
    Combiner,
    ExitReason,
    FixedParents,
    PairwiseCoalescent,
    ParentsModel,
    SamplingPositions,
    Simulator,
    StoppingRule,
    UntilHorizon,
    UntilIsolated,
    UntilMrca,
    WrightFisher,
    sim_coalescence,
)

from demecoal.genealogy import GenealogyRecorder

__all__ = [
    "BackwardFlowDispersal",
    "BevertonHoltGrowth",
    "Combiner",
    "DemecoalException",
    "DemographicHistory",
    "DemographyInconsistencyError",
    "DiscreteDistribution",
    "DistanceDispersal",
    "ExitReason",
    "FixedParents",
    "Flow",
    "Forest",
    "GaussianKernel",
    "GenealogyRecorder",
    "History",
    "InvalidPartitionError",
    "InvalidSizeError",
    "LogisticKernel",
    "NotFoundError",
    "OccupancySpectrumSampler",
    "PairwiseCoalescent",
    "ParentsModel",
    "SamplingPositions",
    "Simulator",
    "StoppingRule",
    "TransitionKernel",
    "UntilHorizon",
    "UntilIsolated",
    "UntilMrca",
    "WrightFisher",
    "__version__",
    "bell_number",
    "binary_merge",
    "num_children",
    "num_parents",
    "restricted_growth_string",
    "sim_coalescence",
    "simulate_demography",
    "simultaneous_multiple_merge",
    "spectrum_from_blocks",
    "stirling2",
]
