"""
The atomic stored unit: one embedding plus its descriptive payload.
"""

from dataclasses import dataclass
from typing import Any, Dict
import uuid

import numpy as np
import numpy.typing as npt

Vector = npt.NDArray[np.float32]


def new_record_id() -> str:
    """Generate a fresh identifier for a record (UUID4, never reused)."""
    return str(uuid.uuid4())


@dataclass
class VectorRecord:
    """
    A stored embedding with its identifier and optional source information.

    Attributes:
        id: Unique identifier assigned at insertion time
        vector: The embedding (1D float32 array)
        source: Originating file name or chunk label (descriptive only)
        text: Chunk text the embedding was generated from (descriptive only)
    """

    id: str
    vector: Vector
    source: str | None = None
    text: str | None = None

    @property
    def dimension(self) -> int:
        return int(self.vector.shape[0])

    def summary(self) -> Dict[str, Any]:
        """Short description used by store listings (no vector data)."""
        return {"id": self.id, "source": self.source, "text": self.text}

    def __repr__(self) -> str:
        return f"VectorRecord(id={self.id!r}, dim={self.dimension}, source={self.source!r})"
