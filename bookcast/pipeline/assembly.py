"""Position-stable collection of chunk artifacts for the merge stage."""

from __future__ import annotations

from pathlib import Path


class OrderedResultAssembler:
    """Fixed-size slot array indexed by `global_order_index`.

    Each slot is written once by the task that owns it, so writes from different
    workers never touch the same index and need no lock.
    """

    def __init__(self, total: int) -> None:
        self._slots: list[Path | None] = [None] * total

    def __len__(self) -> int:
        return len(self._slots)

    def store(self, global_order_index: int, artifact_path: Path) -> None:
        """Write one artifact path into its own slot."""

        if not 0 <= global_order_index < len(self._slots):
            raise IndexError(f"Result slot {global_order_index} is out of range.")
        if self._slots[global_order_index] is not None:
            raise RuntimeError(f"Result slot {global_order_index} was already written.")
        self._slots[global_order_index] = artifact_path

    def missing_indices(self) -> list[int]:
        """Return slot indices that have not been written."""

        return [index for index, path in enumerate(self._slots) if path is None]

    def ordered_paths(self) -> list[Path]:
        """Return artifact paths in global order; every slot must be filled."""

        missing = self.missing_indices()
        if missing:
            raise RuntimeError(
                f"Cannot assemble results: {len(missing)} chunk(s) produced no artifact."
            )
        return [path for path in self._slots if path is not None]
