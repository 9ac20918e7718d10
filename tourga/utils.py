import numpy as np
import os
import csv
import logging
from typing import List, NamedTuple, Optional, Sequence, Tuple
import matplotlib.pyplot as plt

logger = logging.getLogger(__name__)


class City(NamedTuple):
    x: float
    y: float


class TraceEntry(NamedTuple):
    """Champion of one generation: index, fitness and route."""
    iteration: int
    fitness: float
    order: List[int]


class PointFileError(ValueError):
    """A line of a point file could not be read as `x,y`."""


class TraceFileError(ValueError):
    """A trace CSV does not have the expected layout."""


def as_coordinates(cities: Sequence) -> np.ndarray:
    """
    Stack cities into a read-only (N, 2) float array.

    Args:
        cities: Sequence of City or (x, y) pairs, or an existing array.

    Returns:
        Coordinate array indexed by city.
    """
    coords = np.array(cities, dtype=float).reshape(-1, 2)
    coords.setflags(write=False)
    return coords


def tour_length(order: Sequence[int], coords: np.ndarray) -> float:
    """
    Length of the open path visiting the cities in `order`.

    The closing edge from the last city back to the first is not counted.

    Args:
        order: Route as a sequence of city indices.
        coords: (N, 2) coordinate array.

    Returns:
        Sum of Euclidean distances between consecutive cities.
    """
    if len(order) < 2:
        return 0.0
    points = np.asarray(coords, dtype=float)[np.asarray(order, dtype=int)]
    steps = np.diff(points, axis=0)
    return float(np.hypot(steps[:, 0], steps[:, 1]).sum())


def calculate_fitness(order: Sequence[int], coords: np.ndarray) -> float:
    """
    Fitness of a route: 1 / tour_length.

    Routes with fewer than two cities, or of zero length, score 0.0.
    """
    cost = tour_length(order, coords)
    return 1.0 / cost if cost > 0 else 0.0


def create_random_route(num_cities: int, rng: np.random.Generator) -> list:
    """
    Create a uniformly shuffled permutation of all cities.

    Args:
        num_cities: Number of cities.
        rng: Random number generator.

    Returns:
        A list representing a random route.
    """
    return rng.permutation(num_cities).tolist()


def is_permutation(order: Sequence[int], num_cities: int) -> bool:
    return len(order) == num_cities and sorted(order) == list(range(num_cities))


def positions_from_order(order: Sequence[int]) -> List[int]:
    """Inverse permutation: entry `c` is the position of city `c` in the route."""
    positions = [0] * len(order)
    for pos, city in enumerate(order):
        positions[city] = pos
    return positions


def order_from_positions(positions: Sequence[int]) -> List[int]:
    """Rebuild the route from per-city positions, see `positions_from_order`."""
    if not is_permutation(positions, len(positions)):
        raise ValueError(f"Positions are not a permutation: {list(positions)}")
    order = [0] * len(positions)
    for city, pos in enumerate(positions):
        order[pos] = city
    return order


def read_points_from_file(filename: str) -> List[City]:
    """
    Read cities from a text file with one `x,y` pair per line.

    Blank lines are skipped.

    Args:
        filename: Path of the point file.

    Returns:
        List of cities in file order.

    Raises:
        PointFileError: A line has the wrong number of fields or a
            non-numeric value.
    """
    points = []
    with open(filename, 'r') as f:
        for lineno, line in enumerate(f, start=1):
            if not line.strip():
                continue
            parts = line.split(',')
            if len(parts) != 2:
                raise PointFileError(f"{filename}:{lineno}: invalid line format {line.strip()!r}")
            try:
                x = float(parts[0].strip())
                y = float(parts[1].strip())
            except ValueError:
                raise PointFileError(f"{filename}:{lineno}: invalid number format {line.strip()!r}") from None
            points.append(City(x, y))

    logger.debug("Read %d points from %s", len(points), filename)
    return points


def write_trace_csv(filename: str, cities: Sequence[City], trace: Sequence[TraceEntry]) -> str:
    """
    Save per-generation champions to CSV.

    The header is `iteration,fitness` followed by one `x y` column per city.
    Each row holds the generation index, its best fitness and, for every
    city, the position at which that city appears in the best route.

    Args:
        filename: Output path; missing parent directories are created.
        cities: Cities the routes refer to.
        trace: Entries to write, in order.

    Returns:
        The path written.
    """
    output_dir = os.path.dirname(filename)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)

    with open(filename, 'w', newline='') as f:
        writer = csv.writer(f)
        writer.writerow(['iteration', 'fitness'] + [f"{x} {y}" for x, y in cities])
        for entry in trace:
            writer.writerow([entry.iteration, entry.fitness] + positions_from_order(entry.order))

    logger.info("Trace with %d generations saved to %s", len(trace), filename)
    return filename


def parse_trace_csv(filename: str) -> Tuple[List[City], List[TraceEntry]]:
    """
    Read a trace written by `write_trace_csv`.

    Args:
        filename: Trace CSV path.

    Returns:
        Cities decoded from the header and the entries, with each row's
        per-city positions turned back into a route.
    """
    with open(filename, 'r', newline='') as f:
        reader = csv.reader(f)
        try:
            header = next(reader)
        except StopIteration:
            raise TraceFileError(f"{filename}: empty trace file") from None

        cities = []
        for column in header[2:]:
            parts = column.split()
            if len(parts) != 2:
                raise TraceFileError(f"{filename}: invalid city coordinate format {column!r}")
            try:
                cities.append(City(float(parts[0]), float(parts[1])))
            except ValueError:
                raise TraceFileError(f"{filename}: invalid number format {column!r}") from None

        entries = []
        for row in reader:
            if len(row) != len(header):
                raise TraceFileError(f"{filename}:{reader.line_num}: expected {len(header)} fields, got {len(row)}")
            try:
                positions = [int(v) for v in row[2:]]
                entries.append(TraceEntry(int(row[0]), float(row[1]), order_from_positions(positions)))
            except ValueError as e:
                raise TraceFileError(f"{filename}:{reader.line_num}: {e}") from None

    return cities, entries


def _finish_plot(save_path: Optional[str]):
    if save_path:
        try:
            # Create directory if it doesn't exist
            directory = os.path.dirname(save_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            plt.savefig(save_path, dpi=150, bbox_inches='tight')
        finally:
            plt.close()
    else:
        plt.show()


def plot_tour(cities: Sequence[City], order: Sequence[int], title: Optional[str] = None, save_path: Optional[str] = None):
    """
    Draw a route over the cities as a closed loop.

    Args:
        cities: Cities of the problem.
        order: Route to draw.
        title: Optional plot title.
        save_path: Optional path to save the plot image.
    """
    coords = as_coordinates(cities)
    loop = list(order) + list(order[:1])
    points = coords[loop]

    plt.figure(figsize=(8, 8))
    plt.plot(points[:, 0], points[:, 1], 'r-', linewidth=1.5)
    plt.scatter(coords[:, 0], coords[:, 1], c='b', s=20, zorder=3)

    plt.xlabel('x', fontsize=12)
    plt.ylabel('y', fontsize=12)
    plt.title(title or f"Traveling Salesman Problem (N={len(coords)})", fontsize=14)
    plt.grid(True, alpha=0.3)
    plt.tight_layout()
    _finish_plot(save_path)


def plot_evolution(history, save_path=None):
    """
    Plot fitness evolution over generations

    Args:
        history: Dictionary with 'best_history' and 'avg_history' lists.
        save_path: Optional path to save the plot image.
    """
    plt.figure(figsize=(10, 6))

    generations = range(len(history['best_history']))
    plt.plot(generations, history['best_history'], 'b-', label='Best Fitness', linewidth=2)
    plt.plot(generations, history['avg_history'], 'g--', label='Average Fitness', linewidth=1.5, alpha=0.7)

    plt.xlabel('Generation', fontsize=12)
    plt.ylabel('Fitness (1 / length)', fontsize=12)
    plt.title("GA Evolution", fontsize=14)
    plt.legend()
    plt.grid(True, alpha=0.3)
    plt.tight_layout()
    _finish_plot(save_path)


def plot_trace(filename: str, save_path: Optional[str] = None):
    """Draw the last champion recorded in a trace CSV."""
    cities, entries = parse_trace_csv(filename)
    if not entries:
        raise TraceFileError(f"{filename}: trace has no generations")
    last = entries[-1]
    plot_tour(cities, last.order, title=f"Iteration {last.iteration} (fitness {last.fitness:.6g})", save_path=save_path)
