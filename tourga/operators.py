import numpy as np
from typing import Callable, List, Sequence


def _check_parents(mother: Sequence[int], father: Sequence[int]) -> int:
    size = len(mother)
    if size != len(father):
        raise ValueError(f"Parents differ in length ({size} vs {len(father)})")
    return size


def single_point_crossover(mother: Sequence[int], father: Sequence[int], rng: np.random.Generator) -> List[int]:
    """
    Single-point crossover.

    The head of the child is copied verbatim from the mother up to a random
    cut point; the tail is the father's route with every city already taken
    from the mother filtered out.

    Args:
        mother: First parent route.
        father: Second parent route.
        rng: Random number generator.

    Returns:
        Child route.
    """
    size = _check_parents(mother, father)
    if size == 0:
        return []
    cut = int(rng.integers(0, size))

    head = list(mother[:cut])
    taken = set(head)
    tail = [city for city in father if city not in taken]
    return head + tail


def uniform_order_crossover(mother: Sequence[int], father: Sequence[int], rng: np.random.Generator) -> List[int]:
    """
    Uniform (partial order) crossover.

    Half of the positions, picked at random, keep the mother's city. The
    remaining slots are filled left to right with the father's cities in his
    order, skipping the ones already placed.

    Args:
        mother: First parent route.
        father: Second parent route.
        rng: Random number generator.

    Returns:
        Child route.
    """
    size = _check_parents(mother, father)
    child = [-1] * size

    kept_positions = rng.permutation(size)[: size // 2]
    for pos in kept_positions:
        child[pos] = mother[pos]
    placed = {child[pos] for pos in kept_positions}

    father_pos = 0
    for i in range(size):
        if child[i] != -1:
            continue
        while father[father_pos] in placed:
            father_pos += 1
        child[i] = father[father_pos]
        placed.add(child[i])
        father_pos += 1

    return child


def partially_mapped_crossover(mother: Sequence[int], father: Sequence[int], rng: np.random.Generator) -> List[int]:
    """
    PMX crossover.

    The window [start, end) comes from the mother. Outside the window the
    father's city is used; when it collides with a window city it is
    replaced by following the mother -> father mapping of the window until
    a free city is reached.

    Args:
        mother: First parent route.
        father: Second parent route.
        rng: Random number generator.

    Returns:
        Child route.
    """
    size = _check_parents(mother, father)
    start, end = sorted(int(p) for p in rng.integers(0, size + 1, size=2))

    child = list(father)
    child[start:end] = mother[start:end]
    mapping = {mother[i]: father[i] for i in range(start, end)}

    for i in list(range(start)) + list(range(end, size)):
        city = father[i]
        while city in mapping:
            city = mapping[city]
        child[i] = city

    return child


CROSSOVER_OPERATORS: List[Callable] = [
    single_point_crossover,
    uniform_order_crossover,
    partially_mapped_crossover,
]


def random_crossover(mother: Sequence[int], father: Sequence[int], rng: np.random.Generator) -> List[int]:
    """Breed a child with one of the crossover operators, chosen uniformly."""
    op = CROSSOVER_OPERATORS[int(rng.integers(0, len(CROSSOVER_OPERATORS)))]
    return op(mother, father, rng)


def swap_mutation(individual: list, rng: np.random.Generator) -> list:
    """
    Swap two random cities in the route (the two positions may coincide).

    Args:
        individual: Route to mutate, modified in place.
        rng: Random number generator.

    Returns:
        The mutated route.
    """
    size = len(individual)
    if size == 0:
        raise ValueError("Cannot mutate an empty route")
    idx1, idx2 = rng.integers(0, size, size=2)
    individual[idx1], individual[idx2] = individual[idx2], individual[idx1]
    return individual
