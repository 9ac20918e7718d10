import numpy as np
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple
from operator import attrgetter
from tqdm import tqdm
import concurrent.futures
import functools

from .utils import (
    City,
    TraceEntry,
    as_coordinates,
    calculate_fitness,
    create_random_route,
    tour_length,
)
from .operators import random_crossover, swap_mutation

logger = logging.getLogger(__name__)

MIN_POPULATION_SIZE = 4


@dataclass(frozen=True)
class GAConfig:
    population_size: int = 50
    iterations: int = 100
    crossover_rate: float = 0.9
    mutation_rate: float = 0.05
    survival_rate: float = 0.5
    diversity_count: int = 2  # weakest individuals carried over each generation
    seed: Optional[int] = 42
    verbose: bool = True
    update_interval: int = 10
    workers: int = 1

    def validate(self, num_cities: int) -> None:
        """Raise ValueError if the run cannot be carried out with these parameters."""
        if num_cities < 2:
            raise ValueError(f"At least 2 cities are required, got {num_cities}")
        if self.diversity_count < 0:
            raise ValueError(f"diversity_count must be >= 0, got {self.diversity_count}")
        min_size = max(MIN_POPULATION_SIZE, self.diversity_count + 2)
        if self.population_size < min_size:
            raise ValueError(f"population_size must be >= {min_size}, got {self.population_size}")
        if self.iterations < 0:
            raise ValueError(f"iterations must be >= 0, got {self.iterations}")
        for name in ('crossover_rate', 'mutation_rate', 'survival_rate'):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")
        if self.update_interval < 1:
            raise ValueError(f"update_interval must be >= 1, got {self.update_interval}")
        if self.workers < 1:
            raise ValueError(f"workers must be >= 1, got {self.workers}")


@dataclass
class Tour:
    """A route through every city together with its cached fitness."""
    order: List[int]
    fitness: float

    @classmethod
    def new_random(cls, coords: np.ndarray, rng: np.random.Generator) -> "Tour":
        order = create_random_route(len(coords), rng)
        return cls(order, calculate_fitness(order, coords))

    def mutate(self, coords: np.ndarray, rng: np.random.Generator) -> None:
        swap_mutation(self.order, rng)
        self.fitness = calculate_fitness(self.order, coords)

    def breed(self, other: "Tour", coords: np.ndarray, rng: np.random.Generator) -> "Tour":
        order = random_crossover(self.order, other.order, rng)
        return Tour(order, calculate_fitness(order, coords))

    def copy(self) -> "Tour":
        return Tour(list(self.order), self.fitness)

    def length(self, coords: np.ndarray) -> float:
        return tour_length(self.order, coords)


def selection_counts(population_size: int, config: GAConfig) -> Tuple[int, int, int]:
    """
    Split a generation into breeders, elites and offspring.

    Returns:
        (breeding_count, surviving_parent_count, offspring_count)
    """
    breeding_count = max(1, int(population_size * config.crossover_rate))
    surviving_parent_count = int(breeding_count * config.survival_rate)
    # Keep at least one offspring slot and keep elites clear of the weakest slice
    surviving_parent_count = min(surviving_parent_count, population_size - config.diversity_count - 1)
    offspring_count = population_size - surviving_parent_count - config.diversity_count
    return breeding_count, surviving_parent_count, offspring_count


class Simulation:
    def __init__(self, cities: Sequence, config: GAConfig = None, trace_sink=None,
                 rng: np.random.Generator = None):
        """
        Args:
            cities: City coordinates, indexed by position.
            config: Run parameters.
            trace_sink: Optional object with an `append` method receiving a
                TraceEntry for each generation.
            rng: Random number generator; seeded from `config.seed` if omitted.
        """
        self.config = config or GAConfig()
        self.config.validate(len(cities))
        self.cities = [City(float(x), float(y)) for x, y in cities]
        self.coords = as_coordinates(cities)
        self.rng = rng if rng is not None else np.random.default_rng(self.config.seed)
        self.trace_sink = trace_sink

        self.population: List[Tour] = self._create_initial_population()
        self.generation = 0
        self.completed = False
        self.best_tour: Optional[Tour] = None

        self.best_fitness_history = []
        self.avg_fitness_history = []

    def _create_initial_population(self) -> List[Tour]:
        return [Tour.new_random(self.coords, self.rng) for _ in range(self.config.population_size)]

    def find_fittest(self) -> Tour:
        return max(self.population, key=attrgetter('fitness'))

    def _breed_offspring(self, breeding_population: List[Tour], offspring_count: int, executor=None) -> List[Tour]:
        breeding_count = len(breeding_population)
        if executor is None:
            offspring = []
            for i in range(offspring_count):
                mate = breeding_population[int(self.rng.integers(0, breeding_count))]
                offspring.append(breeding_population[i % breeding_count].breed(mate, self.coords, self.rng))
            return offspring

        # Routes are drawn serially from the single generator; only the
        # fitness evaluation is spread over the workers.
        orders = []
        for i in range(offspring_count):
            mate = breeding_population[int(self.rng.integers(0, breeding_count))]
            orders.append(random_crossover(breeding_population[i % breeding_count].order, mate.order, self.rng))
        eval_func = functools.partial(calculate_fitness, coords=self.coords)
        fitness_values = list(executor.map(eval_func, orders))
        return [Tour(order, fitness) for order, fitness in zip(orders, fitness_values)]

    def generate_children(self, executor=None) -> None:
        """Replace the population with the next generation."""
        population_size = len(self.population)
        if population_size != self.config.population_size:
            raise RuntimeError(
                f"Population size drifted to {population_size}, expected {self.config.population_size}"
            )

        fitness_values = np.array([t.fitness for t in self.population])
        sorted_idx = np.argsort(-fitness_values, kind='stable')
        ranked = [self.population[i] for i in sorted_idx]

        breeding_count, surviving_parent_count, offspring_count = selection_counts(population_size, self.config)
        breeding_population = ranked[:breeding_count]
        if not breeding_population:
            raise RuntimeError("Breeding pool is empty")

        offspring = self._breed_offspring(breeding_population, offspring_count, executor)

        next_generation = [t.copy() for t in ranked[:surviving_parent_count]]
        next_generation.extend(offspring)
        # Add a few weak individuals to keep the genetic diversity higher
        next_generation.extend(t.copy() for t in ranked[population_size - self.config.diversity_count:])

        if len(next_generation) != population_size:
            raise RuntimeError(
                f"Next generation has {len(next_generation)} individuals, expected {population_size}"
            )

        for tour in next_generation:
            if self.rng.random() < self.config.mutation_rate:
                tour.mutate(self.coords, self.rng)

        self.population = next_generation
        self.generation += 1

    def run(self) -> Tour:
        """
        Evolve for `config.iterations` generations.

        Returns:
            The fittest tour seen over the whole run, initial population
            included.
        """
        if self.completed:
            raise RuntimeError("Simulation has already been run")

        cfg = self.config
        fittest = self.find_fittest().copy()
        logger.info("Starting %d iterations: %d cities, population %d",
                    cfg.iterations, len(self.coords), cfg.population_size)

        pbar = None
        if cfg.verbose:
            pbar = tqdm(total=cfg.iterations, desc="GA", unit="gen")
        executor = None
        if cfg.workers > 1:
            executor = concurrent.futures.ThreadPoolExecutor(max_workers=cfg.workers)

        try:
            for gen in range(cfg.iterations):
                self.generate_children(executor)

                challenger = self.find_fittest()
                self.best_fitness_history.append(challenger.fitness)
                self.avg_fitness_history.append(float(np.mean([t.fitness for t in self.population])))
                if self.trace_sink is not None:
                    self.trace_sink.append(TraceEntry(gen, challenger.fitness, list(challenger.order)))

                if challenger.fitness > fittest.fitness:
                    fittest = challenger.copy()
                    logger.debug("Generation %d: new best fitness %.6g", gen, fittest.fitness)

                if pbar is not None and (gen + 1) % cfg.update_interval == 0:
                    pbar.update(cfg.update_interval)
                    pbar.set_postfix({'best': f'{fittest.fitness:.6g}'})

            if pbar is not None:
                pbar.update(cfg.iterations - pbar.n)
        finally:
            if pbar is not None:
                pbar.close()
            if executor is not None:
                executor.shutdown()

        self.completed = True
        self.best_tour = fittest
        logger.info("Finished: best fitness %.6g, length %.4f", fittest.fitness, fittest.length(self.coords))
        return fittest

    @property
    def history(self):
        return {
            'best_history': self.best_fitness_history,
            'avg_history': self.avg_fitness_history,
        }


def solve(cities: Sequence, config: GAConfig = None, trace_sink=None) -> Tour:
    """Run a Simulation over `cities` and return the best tour found."""
    return Simulation(cities, config, trace_sink=trace_sink).run()
