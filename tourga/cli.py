import argparse
import logging
import sys
from typing import List, Optional

from tourga.GA import GAConfig, Simulation
from tourga.utils import PointFileError, plot_tour, read_points_from_file, write_trace_csv

logger = logging.getLogger("tourga")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Search for a short tour over 2-D points with a genetic algorithm")
    parser.add_argument("-f", "--points-filename", required=True, help="File with one `x,y` point per line")
    parser.add_argument("-i", "--iterations", type=int, default=100)
    parser.add_argument("-p", "--population-size", type=int, default=50)
    parser.add_argument("-c", "--crossover-rate", type=float, default=0.9)
    parser.add_argument("-m", "--mutation-rate", type=float, default=0.05)
    parser.add_argument("-s", "--survival-rate", type=float, default=0.5)
    parser.add_argument("-o", "--output", help="Write the per-generation trace CSV here")
    parser.add_argument("--seed", type=int, default=None, help="Seed for a reproducible run")
    parser.add_argument("--plot", help="Save a plot of the best tour to this image file")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Log every new champion")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.WARNING if args.quiet else logging.INFO
    logging.basicConfig(level=level, format="[%(asctime)s] %(levelname)s %(name)s: %(message)s", datefmt="%H:%M:%S")

    try:
        cities = read_points_from_file(args.points_filename)
    except (OSError, PointFileError) as e:
        logger.error("Error reading file: %s", e)
        return 1

    config = GAConfig(
        population_size=args.population_size,
        iterations=args.iterations,
        crossover_rate=args.crossover_rate,
        mutation_rate=args.mutation_rate,
        survival_rate=args.survival_rate,
        seed=args.seed,
        verbose=not args.quiet,
    )
    trace = [] if args.output else None
    try:
        sim = Simulation(cities, config, trace_sink=trace)
    except ValueError as e:
        parser.error(str(e))

    best = sim.run()
    print(f"best order: {best.order}")
    print(f"fitness: {best.fitness:.6g}  length: {best.length(sim.coords):.4f}")

    if args.output:
        try:
            write_trace_csv(args.output, sim.cities, trace)
        except OSError as e:
            logger.error("Could not write trace to %s: %s", args.output, e)
    if args.plot:
        try:
            plot_tour(sim.cities, best.order, save_path=args.plot)
        except (OSError, ValueError) as e:
            logger.error("Could not save plot to %s: %s", args.plot, e)

    return 0


if __name__ == "__main__":
    sys.exit(main())
