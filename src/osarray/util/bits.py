"""
Fixed-width bitset helpers for request/grant vectors.

Vectors are plain ``int`` values whose width is fixed by the configuration;
bit i belongs to core (or PE) i.
"""


def mask(width: int) -> int:
    """All-ones mask of ``width`` bits."""
    return (1 << width) - 1


def one_hot(index: int, width: int) -> int:
    """One-hot vector with bit ``index`` set."""
    if not 0 <= index < width:
        raise ValueError(f"index {index} outside 0..{width - 1}")
    return 1 << index


def is_one_hot(value: int) -> bool:
    """True for a vector with exactly one bit set."""
    return value > 0 and value & (value - 1) == 0


def bit(value: int, index: int) -> bool:
    """Read bit ``index`` of ``value``."""
    return bool((value >> index) & 1)


def set_bit(value: int, index: int, state: bool) -> int:
    """Return ``value`` with bit ``index`` forced to ``state``."""
    if state:
        return value | (1 << index)
    return value & ~(1 << index)


def check_width(value: int, width: int, name: str = "vector") -> int:
    """Reject negative values and values wider than ``width`` bits."""
    if value < 0 or value > mask(width):
        raise ValueError(f"{name}={value:#x} does not fit in {width} bits")
    return value


def rotate_scan(requests: int, start: int, width: int) -> int | None:
    """
    Round-robin scan.

    Returns the first set bit at or after ``start``, wrapping around, or
    None when no bit is set.
    """
    for offset in range(width):
        index = (start + offset) % width
        if (requests >> index) & 1:
            return index
    return None


def to_bits(value: int, width: int) -> list[int]:
    """LSB-first list of bits."""
    return [(value >> i) & 1 for i in range(width)]


def from_bits(bits) -> int:
    """Inverse of :func:`to_bits`."""
    value = 0
    for i, b in enumerate(bits):
        if b:
            value |= 1 << i
    return value
