from .GA import Simulation, GAConfig, Tour, solve, selection_counts
from .utils import (
    City, TraceEntry, PointFileError, TraceFileError,
    calculate_fitness, tour_length, create_random_route,
    read_points_from_file, write_trace_csv, parse_trace_csv,
    positions_from_order, order_from_positions,
    plot_tour, plot_evolution, plot_trace,
)
from .operators import (
    single_point_crossover, uniform_order_crossover, partially_mapped_crossover,
    random_crossover, swap_mutation,
)

__all__ = [
    'Simulation', 'GAConfig', 'Tour', 'solve', 'selection_counts',
    'City', 'TraceEntry', 'PointFileError', 'TraceFileError',
    'calculate_fitness', 'tour_length', 'create_random_route',
    'read_points_from_file', 'write_trace_csv', 'parse_trace_csv',
    'positions_from_order', 'order_from_positions',
    'plot_tour', 'plot_evolution', 'plot_trace',
    'single_point_crossover', 'uniform_order_crossover', 'partially_mapped_crossover',
    'random_crossover', 'swap_mutation',
]
