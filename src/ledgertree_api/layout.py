"""Index arithmetic for the flat Merkle node array.

The tree is stored as one dense list. The leaf layer sits at the end, each
layer above it is laid out immediately before its children, and the root is
at index 0. Every layer except the root is padded to an even size by
repeating its last node.

Inside a layer, position ``p`` pairs with ``p ^ 1`` and its parent is at
position ``p >> 1`` of the next layer up. Absolute indices are those
positions plus the layer offset. The heap rule ``parent(i) = (i - 1) >> 1``
only matches this while every layer above the leaves is a power of two wide
(for example 7 leaves, but not 9), so callers must go through the layer
offsets rather than the heap rule.

Everything here is a pure function of the leaf count.
"""
from __future__ import annotations
from typing import Iterator, List, Tuple


def layer_sizes(n: int) -> List[Tuple[int, int]]:
    """Return (real, padded) for each layer, leaf layer first."""
    if n < 0:
        raise ValueError(f"leaf count must be non-negative, got {n}")
    layers: List[Tuple[int, int]] = []
    size = n
    while size:
        if size == 1:
            layers.append((1, 1))
            break
        padded = size + (size & 1)
        layers.append((size, padded))
        size = padded >> 1
    return layers


def node_count(n: int) -> int:
    """Length of the flat node array for `n` leaves."""
    return sum(padded for _, padded in layer_sizes(n))


def layer_offsets(n: int) -> List[int]:
    """Absolute start index of each layer, leaf layer first."""
    offsets = []
    start = node_count(n)
    for _, padded in layer_sizes(n):
        start -= padded
        offsets.append(start)
    return offsets


def leaf_offset(n: int) -> int:
    offsets = layer_offsets(n)
    return offsets[0] if offsets else 0


def proof_length(n: int) -> int:
    """Number of siblings in an inclusion proof (ceil(log2 n) for n >= 1)."""
    return max(len(layer_sizes(n)) - 1, 0)


def auth_path(n: int, index: int) -> Iterator[Tuple[int, int]]:
    """Yield (node, sibling) absolute indices from leaf `index` up to the root.

    The root itself is not yielded, so a single-leaf tree yields nothing.
    """
    if not 0 <= index < n:
        raise IndexError(f"leaf index {index} out of range for {n} leaves")
    pos = index
    offsets = layer_offsets(n)
    for offset in offsets[:-1]:
        yield offset + pos, offset + (pos ^ 1)
        pos >>= 1
