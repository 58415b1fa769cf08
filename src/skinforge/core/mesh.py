"""Skinned mesh data structures (bones own their vertex weights)."""

from dataclasses import dataclass, field
from typing import Iterable, Iterator, NamedTuple, Optional

import numpy as np
from numpy.typing import NDArray


class VertexWeight(NamedTuple):
    """A single bone -> vertex association: this bone deforms ``vertex_id`` by ``weight``."""
    vertex_id: int
    weight: float


class Influence(NamedTuple):
    """A single vertex -> bone association, derived from VertexWeight entries."""
    bone_index: int
    weight: float


def _identity() -> NDArray[np.float64]:
    return np.eye(4, dtype=np.float64)


@dataclass
class Bone:
    """A named bone with its list of vertex weights.

    vertex_ids: int64 array of referenced vertex indices
    weights: float32 array, parallel to vertex_ids
    offset_matrix: 4x4 mesh-space -> bone-space bind transform (not
        interpreted by the weight processing code)
    """
    name: str
    vertex_ids: NDArray[np.int64] = field(default_factory=lambda: np.empty(0, dtype=np.int64))
    weights: NDArray[np.float32] = field(default_factory=lambda: np.empty(0, dtype=np.float32))
    offset_matrix: NDArray[np.float64] = field(default_factory=_identity)

    def __post_init__(self):
        self.vertex_ids = np.asarray(self.vertex_ids, dtype=np.int64).ravel()
        self.weights = np.asarray(self.weights, dtype=np.float32).ravel()
        if len(self.vertex_ids) != len(self.weights):
            raise ValueError(
                f"Bone '{self.name}': {len(self.vertex_ids)} vertex ids "
                f"but {len(self.weights)} weights"
            )

    @classmethod
    def from_weights(cls, name: str, weights: Iterable[VertexWeight],
                     offset_matrix: Optional[NDArray[np.float64]] = None) -> "Bone":
        pairs = list(weights)
        bone = cls(
            name=name,
            vertex_ids=np.array([p[0] for p in pairs], dtype=np.int64),
            weights=np.array([p[1] for p in pairs], dtype=np.float32),
        )
        if offset_matrix is not None:
            bone.offset_matrix = np.asarray(offset_matrix, dtype=np.float64)
        return bone

    @property
    def num_weights(self) -> int:
        return len(self.vertex_ids)

    @property
    def vertex_weights(self) -> Iterator[VertexWeight]:
        for vid, w in zip(self.vertex_ids.tolist(), self.weights.tolist()):
            yield VertexWeight(vid, w)

    def set_weights(self, vertex_ids: NDArray[np.int64], weights: NDArray[np.float32]) -> None:
        """Replace the whole weight list."""
        self.vertex_ids = np.asarray(vertex_ids, dtype=np.int64).ravel()
        self.weights = np.asarray(weights, dtype=np.float32).ravel()

    def clone(self) -> "Bone":
        return Bone(
            name=self.name,
            vertex_ids=self.vertex_ids.copy(),
            weights=self.weights.copy(),
            offset_matrix=self.offset_matrix.copy(),
        )


@dataclass
class SkinnedMesh:
    """A mesh with vertex positions and the bones deforming it.

    positions: Nx3 flat float32 array (x,y,z per vertex)
    normals: optional Nx3 flat float32 array
    Vertices carry no weight data; influence is recorded on the bones.
    """
    name: str
    positions: NDArray[np.float32]
    normals: Optional[NDArray[np.float32]] = None
    vertex_count: int = 0
    bones: list[Bone] = field(default_factory=list)

    def __post_init__(self):
        if self.vertex_count == 0:
            self.vertex_count = len(self.positions) // 3

    @property
    def num_bones(self) -> int:
        return len(self.bones)

    @property
    def has_bones(self) -> bool:
        return len(self.bones) > 0

    @property
    def num_weights(self) -> int:
        """Total VertexWeight entries across all bones."""
        return sum(b.num_weights for b in self.bones)

    def find_bone(self, name: str) -> Optional[Bone]:
        for bone in self.bones:
            if bone.name == name:
                return bone
        return None

    def clone(self) -> "SkinnedMesh":
        """Create a deep copy."""
        return SkinnedMesh(
            name=self.name,
            positions=self.positions.copy(),
            normals=self.normals.copy() if self.normals is not None else None,
            vertex_count=self.vertex_count,
            bones=[b.clone() for b in self.bones],
        )
