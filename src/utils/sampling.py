import random
from typing import List, Sequence, TypeVar

T = TypeVar("T")


def array_shuffle(arr: List[T], rng=random) -> List[T]:
    """
    Unbiased in-place Fisher-Yates shuffle. Returns the same list so calls
    can be chained. `rng` is anything with a `random()` method.
    """
    cur_idx = len(arr)
    while cur_idx != 0:
        rand_idx = int(rng.random() * cur_idx)
        cur_idx -= 1
        arr[cur_idx], arr[rand_idx] = arr[rand_idx], arr[cur_idx]
    return arr


def sample_without_replacement(options: Sequence[T], count: int, rng=random) -> List[T]:
    """
    Picks `count` distinct positions from `options` by shuffling the index
    list and popping from its end.
    """
    if count > len(options):
        raise ValueError(f"Cannot sample {count} items from {len(options)} options.")
    chosen_idxs = array_shuffle(list(range(len(options))), rng)
    return [options[chosen_idxs.pop()] for _ in range(count)]
