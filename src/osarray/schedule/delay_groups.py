"""
DelayGroupTable - Wavefront grouping of the PE grid.

In an output-stationary S x S grid, operands enter at the top-left corner and
propagate one PE per cycle to the right and downward. PE (row, col) therefore
sees its first valid operand pair ``row + col`` cycles after PE (0, 0). PEs on
the same anti-diagonal share that delay and are enabled together:

         col 0  col 1  col 2  col 3
    row 0  [0]    [1]    [2]    [3]
    row 1  [1]    [2]    [3]    [4]
    row 2  [2]    [3]    [4]    [5]
    row 3  [3]    [4]    [5]    [6]

There are 2S - 1 groups. The controller's DISTRIBUTE phase enables group g at
cycle g and keeps it enabled, so the phase lasts exactly 2S - 1 cycles.

PEs are indexed row-major: ``index = row * S + col``.
"""


class DelayGroupTable:
    """
    Lookup between PE coordinates and wavefront delay groups.

    The table is derived from the grid side length at construction, so every
    grid size gets the same anti-diagonal rule.

    Example:
        >>> table = DelayGroupTable(4)
        >>> table.group(1, 2)
        3
        >>> table.group_to_indices(1)
        [(0, 1), (1, 0)]
    """

    def __init__(self, grid_size: int):
        if grid_size < 1:
            raise ValueError(f"grid_size must be positive, got {grid_size}")

        self.grid_size = grid_size
        self.num_groups = 2 * grid_size - 1

        self._members = tuple(
            tuple(
                (row, g - row)
                for row in range(max(0, g - grid_size + 1), min(g, grid_size - 1) + 1)
            )
            for g in range(self.num_groups)
        )
        self._group_of = tuple(sum(divmod(idx, grid_size)) for idx in range(grid_size * grid_size))

    @property
    def num_pes(self) -> int:
        """Number of PEs in the grid."""
        return self.grid_size * self.grid_size

    @property
    def distribute_cycles(self) -> int:
        """Cycles needed to enable every group, one group per cycle."""
        return self.num_groups

    def _check_coords(self, row: int, col: int) -> None:
        s = self.grid_size
        if not (0 <= row < s and 0 <= col < s):
            raise ValueError(f"PE ({row}, {col}) outside a {s}x{s} grid")

    def _check_group(self, group: int) -> None:
        if not 0 <= group < self.num_groups:
            raise ValueError(f"group {group} outside 0..{self.num_groups - 1}")

    def group(self, row: int, col: int) -> int:
        """Delay group of PE (row, col)."""
        self._check_coords(row, col)
        return row + col

    def group_to_indices(self, group: int) -> list[tuple[int, int]]:
        """All (row, col) coordinates in ``group``, row ascending."""
        self._check_group(group)
        return list(self._members[group])

    def pe_index(self, row: int, col: int) -> int:
        """Row-major PE index of (row, col)."""
        self._check_coords(row, col)
        return row * self.grid_size + col

    def coords(self, index: int) -> tuple[int, int]:
        """(row, col) of a row-major PE index."""
        if not 0 <= index < self.num_pes:
            raise ValueError(f"PE index {index} outside 0..{self.num_pes - 1}")
        return divmod(index, self.grid_size)

    def group_of_index(self, index: int) -> int:
        """Delay group of a row-major PE index."""
        self.coords(index)
        return self._group_of[index]

    def pe_indices(self, group: int) -> list[int]:
        """Row-major PE indices in ``group``."""
        return [self.pe_index(row, col) for row, col in self.group_to_indices(group)]

    def enabled_groups(self, cycle: int) -> range:
        """Groups enabled at DISTRIBUTE ``cycle`` (cumulative)."""
        if cycle < 0:
            return range(0)
        return range(min(cycle, self.num_groups - 1) + 1)

    def enabled_mask(self, cycle: int) -> int:
        """Bitmask over PE indices of the PEs enabled at DISTRIBUTE ``cycle``."""
        value = 0
        for idx, group in enumerate(self._group_of):
            if group <= cycle:
                value |= 1 << idx
        return value

    def group_mask(self, group: int) -> int:
        """Bitmask over PE indices of the PEs in ``group`` alone."""
        value = 0
        for idx in self.pe_indices(group):
            value |= 1 << idx
        return value

    def __len__(self) -> int:
        return self.num_groups

    def __iter__(self):
        for g in range(self.num_groups):
            yield self.group_to_indices(g)

    def __repr__(self) -> str:
        return f"DelayGroupTable(grid_size={self.grid_size})"
