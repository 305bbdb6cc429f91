import argparse
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

from tsp_elite.data import load_instance
from tsp_elite.errors import InvalidPermutation, TourError
from tsp_elite.evolutionary import BACKENDS, EvolutionConfig, GeneticSearch


logger = logging.getLogger("tsp_elite.cli")


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="[%(asctime)s] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stdout,
        force=True,
    )


def format_path(tour: List[int]) -> str:
    return ",".join(str(city) for city in tour)


def run(args) -> int:
    t0 = time.perf_counter()
    cfg = EvolutionConfig(
        epochs=args.epochs,
        random_seed=args.seed,
        num_cities=args.cities,
        population_size=args.population,
        elite_fraction=args.elite,
        workers=args.workers,
        backend=args.backend,
    )
    instance = None
    cities = None
    if args.tsplib:
        instance = load_instance(Path(args.tsplib))
        cities = instance.cities
        cfg.num_cities = len(cities)
        logger.info("loaded %s (%d cities) from %s", instance.name, len(cities), instance.path)

    print(
        f"Find shortest path for {cfg.num_cities} cities. "
        f"{cfg.epochs} Epochs. Population Size: {cfg.population_size}",
        flush=True,
    )
    try:
        with GeneticSearch(cfg, cities=cities) as search:
            result = search.run(callback=lambda gen, best: print(f"Fitness: {best:f}", flush=True))
    except InvalidPermutation as exc:
        logger.error("ERROR: %s", exc)
        return 1

    path = instance.to_node_ids(result.tour) if instance is not None else result.tour
    print(format_path(path))
    print(f"Total Distance: {result.distance:f}")
    if instance is not None and instance.optimum:
        gap = (result.distance - instance.optimum) / instance.optimum
        print(f"Optimum: {instance.optimum:f} (gap {gap:.2%})")
    logger.info("done in %.2fs", time.perf_counter() - t0)
    return 0


def build_parser() -> argparse.ArgumentParser:
    defaults = EvolutionConfig()
    parser = argparse.ArgumentParser(description="Elitist genetic algorithm for the TSP")
    parser.add_argument("--log-level", default="INFO")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Search for a short tour")
    run_parser.add_argument("--epochs", type=int, default=defaults.epochs)
    run_parser.add_argument("--seed", type=int, default=defaults.random_seed)
    run_parser.add_argument("--cities", type=int, default=defaults.num_cities)
    run_parser.add_argument("--population", type=int, default=defaults.population_size)
    run_parser.add_argument("--elite", type=float, default=defaults.elite_fraction)
    run_parser.add_argument("--workers", type=int, default=None)
    run_parser.add_argument("--backend", choices=BACKENDS, default=defaults.backend)
    run_parser.add_argument("--tsplib", default=None, help="TSPLIB .tsp file with node coordinates")
    run_parser.set_defaults(func=run)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)
    try:
        return args.func(args)
    except TourError as exc:
        logger.error("%s", exc)
        return 2


if __name__ == "__main__":
    sys.exit(main())
