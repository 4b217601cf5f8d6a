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
Command line interface for demecoal.
"""
import argparse
import logging
import os
import signal
import sys

import daiquiri
import numpy as np

from . import coalescence
from . import core
from . import demography
from . import dispersal
from . import forest
from . import genealogy

logger = logging.getLogger(__name__)


def set_sigpipe_handler():
    if os.name == "posix":
        # Set signal handler for SIGPIPE to quietly kill the program.
        signal.signal(signal.SIGPIPE, signal.SIG_DFL)


def setup_logging(args):
    log_output = daiquiri.output.Stream(
        sys.stderr,
        formatter=daiquiri.formatter.ColorFormatter(fmt="[%(levelname)s] %(message)s"),
    )
    daiquiri.setup(level=args.log_level, outputs=[log_output])


def positive_int(value):
    int_value = int(float(value))
    if int_value <= 0:
        msg = f"{value} is an invalid positive integer value"
        raise argparse.ArgumentTypeError(msg)
    return int_value


def positive_float(value):
    float_value = float(value)
    if float_value <= 0:
        msg = f"{value} is an invalid positive value"
        raise argparse.ArgumentTypeError(msg)
    return float_value


def non_negative_float(value):
    float_value = float(value)
    if float_value < 0:
        msg = f"{value} is an invalid non-negative value"
        raise argparse.ArgumentTypeError(msg)
    return float_value


def lattice(width, height):
    """
    Returns the demes of a width x height lattice as (row, column) tuples
    and the matrix of Euclidean distances between their centres.
    """
    demes = [(i, j) for i in range(height) for j in range(width)]
    coords = np.array(demes, dtype=np.float64)
    diff = coords[:, np.newaxis, :] - coords[np.newaxis, :, :]
    distances = np.sqrt(np.sum(diff**2, axis=2))
    return demes, distances


def sample_lineages(history, time, sample_size, rng):
    """
    Places the sampled lineages among the occupied demes at the given time,
    in proportion to their sizes.
    """
    demes = history.demes
    sizes = np.array([history.size_at(deme, time) for deme in demes], dtype=np.float64)
    if np.sum(sizes) == 0:
        raise ValueError(f"The population is extinct at time {time}")
    counts = rng.multinomial(sample_size, sizes / np.sum(sizes))
    return {deme: int(count) for deme, count in zip(demes, counts) if count > 0}


def run_simulate(args):
    seed = core.parse_random_seed(args.random_seed)
    logger.info("Random seed: %d", seed)
    rng = np.random.default_rng(seed)
    demes, distances = lattice(args.width, args.height)
    spread = dispersal.DistanceDispersal.from_matrix(
        demes, distances, dispersal.GaussianKernel(args.dispersal_scale)
    )
    history = demography.simulate_demography(
        demes,
        {demes[0]: args.initial_size},
        demography.BevertonHoltGrowth(args.growth_rate, args.capacity),
        spread,
        first_time=0,
        last_time=args.generations,
        rng=rng,
    )
    try:
        counts = sample_lineages(history, args.generations, args.sample_size, rng)
    except ValueError as ve:
        sys.exit(f"Error: {ve}")
    recorder = genealogy.GenealogyRecorder(demes, args.generations)
    sim = coalescence.Simulator(
        forest=forest.Forest.from_counts(counts, leaf=recorder.leaf),
        history=history,
        rng=rng,
        sampling_time=args.generations,
        origin_time=0,
        combiner=recorder,
        parents=args.model,
        stopping_rule=args.stopping_rule,
    )
    exit_reason = sim.run()
    parameters = {
        "command": "simulate",
        "sample_size": args.sample_size,
        "width": args.width,
        "height": args.height,
        "generations": args.generations,
        "initial_size": args.initial_size,
        "growth_rate": args.growth_rate,
        "capacity": args.capacity,
        "dispersal_scale": args.dispersal_scale,
        "model": args.model,
        "stopping_rule": args.stopping_rule,
        "random_seed": seed,
        "exit_reason": exit_reason.name,
    }
    recorder.tree_sequence(parameters).dump(args.output_file)


def add_simulate_subcommand(subparsers):
    parser = subparsers.add_parser(
        "simulate",
        help=(
            "Simulate a range expansion over a lattice and the coalescence "
            "of lineages sampled at the end of it"
        ),
    )
    parser.add_argument(
        "sample_size", type=positive_int, help="The number of sampled lineages"
    )
    parser.add_argument("output_file", help="The output tree sequence file")
    parser.add_argument("--width", "-W", type=positive_int, default=5)
    parser.add_argument("--height", "-H", type=positive_int, default=5)
    parser.add_argument(
        "--generations",
        "-g",
        type=positive_int,
        default=50,
        help="The number of generations between introduction and sampling",
    )
    parser.add_argument(
        "--initial-size",
        "-N",
        type=positive_int,
        default=10,
        help="The number of founders introduced in the corner deme",
    )
    parser.add_argument(
        "--growth-rate",
        "-r",
        type=non_negative_float,
        default=2.0,
        help="The growth rate",
    )
    parser.add_argument(
        "--capacity",
        "-K",
        type=positive_float,
        default=100,
        help="The carrying capacity of each deme",
    )
    parser.add_argument(
        "--dispersal-scale",
        "-a",
        type=positive_float,
        default=1.0,
        help="The scale of the Gaussian dispersal kernel, in deme widths",
    )
    parser.add_argument(
        "--model",
        default="wright_fisher",
        choices=["wright_fisher", "fixed", "pairwise"],
        help="The model deciding the number of parents in a deme",
    )
    parser.add_argument(
        "--stopping-rule",
        default="mrca",
        choices=["mrca", "isolated", "horizon"],
    )
    parser.add_argument(
        "--random-seed",
        "-s",
        type=int,
        default=None,
        help="The random seed. If not specified one is chosen randomly",
    )
    parser.add_argument(
        "-l",
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set log-level to the specified value",
    )
    parser.set_defaults(runner=run_simulate)


def get_demecoal_parser():
    top_parser = argparse.ArgumentParser(
        description="Command line interface for demecoal."
    )
    top_parser.add_argument(
        "-V", "--version", action="version", version=f"%(prog)s {core.__version__}"
    )
    subparsers = top_parser.add_subparsers(dest="subcommand")
    subparsers.required = True
    add_simulate_subcommand(subparsers)
    return top_parser


def demecoal_main(arg_list=None):
    set_sigpipe_handler()
    parser = get_demecoal_parser()
    args = parser.parse_args(arg_list)
    setup_logging(args)
    args.runner(args)
