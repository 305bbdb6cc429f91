import enum
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from .cities import Cities, random_cities
from .errors import ConfigError
from .evaluation import FitnessEvaluator
from .operators import MateDraws, SwapDraws, Workspace, mate, mutate
from .parallel import WorkerPool
from .population import Chromosome, Population, check_valid
from .rng import LCG
from .selection import ElitistSelector, elite_size


logger = logging.getLogger(__name__)

BACKENDS = ("numpy", "torch")


@dataclass
class EvolutionConfig:
    epochs: int = 500
    random_seed: int = 12345
    num_cities: int = 250
    population_size: int = 40000
    elite_fraction: float = 0.1
    workers: Optional[int] = None
    initial_mutations: int = 10
    coord_range: int = 4096
    report_interval: int = 50
    report_offset: int = 1
    backend: str = "numpy"

    def validate(self) -> None:
        if self.epochs < 0:
            raise ConfigError("epochs must be non-negative", {"epochs": self.epochs})
        if self.num_cities < 1:
            raise ConfigError("at least one city is required", {"num_cities": self.num_cities})
        if self.population_size < 1:
            raise ConfigError(
                "population must hold at least one chromosome",
                {"population_size": self.population_size},
            )
        if not 0.0 < self.elite_fraction <= 1.0:
            raise ConfigError(
                "elite fraction must lie in (0, 1]", {"elite_fraction": self.elite_fraction}
            )
        if elite_size(self.population_size, self.elite_fraction) < 1:
            raise ConfigError(
                "elite is empty; raise the population size or the elite fraction",
                {"population_size": self.population_size, "elite_fraction": self.elite_fraction},
            )
        if self.workers is not None and self.workers < 1:
            raise ConfigError("workers must be positive", {"workers": self.workers})
        if self.report_interval < 1:
            raise ConfigError("report interval must be positive", {"report_interval": self.report_interval})
        if self.backend not in BACKENDS:
            raise ConfigError(f"unknown backend {self.backend!r}", {"choices": BACKENDS})


class Phase(enum.Enum):
    INIT = "init"
    EVALUATE = "evaluate"
    SORT = "sort"
    STEP = "step"
    DONE = "done"


@dataclass
class RunResult:
    tour: List[int]
    distance: float
    generations: int
    history: List[Tuple[int, float]] = field(default_factory=list)


ProgressCallback = Callable[[int, float], None]


class GeneticSearch:
    """
    Elitist generational GA over a fixed city set.

    Two populations are kept: ``population`` (sorted, read by crossover) and
    ``scratch`` (written by the next generation). They trade places once per
    generation.
    """

    def __init__(self, config: EvolutionConfig, cities: Cities = None, rng: LCG = None):
        config.validate()
        self.cfg = config
        self.rng = rng or LCG(config.random_seed)
        if cities is None:
            cities = random_cities(self.rng, config.num_cities, config.coord_range)
        self.cities = cities
        self.num_cities = len(cities)
        self.elite = elite_size(config.population_size, config.elite_fraction)
        self.population = Population.identity(config.population_size, self.num_cities)
        self.scratch = Population(config.population_size, self.num_cities)
        self.pool = WorkerPool(config.workers)
        try:
            self.workspace = Workspace(
                config.population_size - self.elite, self.num_cities, self.pool.workers
            )
            self.evaluator = self._build_evaluator()
        except BaseException:
            self.pool.close()
            raise
        self.selector = ElitistSelector(self.pool)
        self.generation = 0
        self.history: List[Tuple[int, float]] = []
        self.phase = Phase.INIT

    def _build_evaluator(self):
        if self.cfg.backend == "torch":
            from .accel import TorchFitnessEvaluator

            return TorchFitnessEvaluator(self.cities)
        return FitnessEvaluator(self.cities, self.pool)

    @property
    def offspring_count(self) -> int:
        return self.cfg.population_size - self.elite

    def initialize(self) -> None:
        size = self.cfg.population_size
        # Start away from the identity tour.
        for _ in range(self.cfg.initial_mutations):
            draws = SwapDraws.from_rng(self.rng, size, self.num_cities)
            mutate(self.population, 0, draws, self.pool)
        self.phase = Phase.EVALUATE
        self.evaluator.evaluate(self.population)
        self.phase = Phase.SORT
        self.selector.sort(self.population, self.scratch)
        self.phase = Phase.STEP
        logger.info(
            "initialized %d chromosomes over %d cities (elite %d), best %.6f",
            size,
            self.num_cities,
            self.elite,
            self.population.best_distance,
        )

    def step(self, callback: Optional[ProgressCallback] = None) -> None:
        if self.phase is Phase.INIT:
            self.initialize()
        t0 = time.perf_counter()
        out = self.offspring_count
        self.scratch.copy_from(self.population, self.elite)
        mate_draws = MateDraws.from_rng(self.rng, out, self.elite, self.num_cities)
        swap_draws = SwapDraws.from_rng(self.rng, out, self.num_cities)
        mate(self.population, self.scratch, self.elite, mate_draws, self.pool, self.workspace)
        mutate(self.scratch, self.elite, swap_draws, self.pool)
        self.population, self.scratch = self.scratch, self.population
        t1 = time.perf_counter()
        self.evaluator.evaluate(self.population)
        t2 = time.perf_counter()
        self.selector.sort(self.population, self.scratch)
        t3 = time.perf_counter()
        logger.debug(
            "generation %d: breed %.3fs evaluate %.3fs sort %.3fs",
            self.generation,
            t1 - t0,
            t2 - t1,
            t3 - t2,
        )
        index = self.generation
        self.generation += 1
        if index % self.cfg.report_interval == self.cfg.report_offset:
            self._report(index, callback)

    def _report(self, index: int, callback: Optional[ProgressCallback]) -> None:
        best = self.population.best_distance
        logger.info("generation %d: best distance %.6f", index, best)
        self.history.append((index, best))
        if callback is not None:
            callback(index, best)
        check_valid(self.population.tours[0], self.num_cities, generation=index)

    def run(self, callback: Optional[ProgressCallback] = None) -> RunResult:
        if self.phase is Phase.INIT:
            self.initialize()
        for _ in range(self.cfg.epochs):
            self.step(callback)
        check_valid(self.population.tours[0], self.num_cities, generation=self.generation)
        self.phase = Phase.DONE
        best = self.best()
        logger.info("finished %d generations, best distance %.6f", self.generation, best.fitness)
        return RunResult(
            tour=best.tour,
            distance=best.fitness,
            generations=self.generation,
            history=list(self.history),
        )

    def best(self) -> Chromosome:
        return self.population[0]

    def close(self) -> None:
        self.pool.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
