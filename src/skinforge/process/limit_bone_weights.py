"""Bone-influence limiting for skinned meshes.

Runtime skinning formats store a fixed number of bone indices/weights per
vertex (usually 4).  This step keeps the strongest influences of every
vertex, discards the rest, renormalizes the survivors to sum to 1.0 and
rebuilds the per-bone weight lists.  Bones left without any weight are
compacted out of the mesh.

Algorithm:
1. gather: bone -> vertex lists are flattened into one (vertex, bone, weight)
   table sorted by vertex then bone; duplicate (vertex, bone) pairs merge
2. select: influences of over-limit vertices are ordered by weight
   (descending, ties to the lower bone index) and cut to the limit
3. renormalize: surviving weights of each vertex are scaled to sum to 1.0;
   a vertex whose weights sum to zero loses all of its influences
4. rebuild: per-bone lists are rewritten in vertex order, empty bones are
   dropped and the old -> new bone index remap is published

Usage:
    limiter = InfluenceLimiter(max_influences=4)
    stats = limiter.limit(mesh)
    print(stats.vertices_limited, stats.weights_removed)
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

import numpy as np
from numpy.typing import NDArray

from skinforge.constants import (
    DEFAULT_MAX_INFLUENCES,
    REMOVE_EMPTY_BONES,
    WEIGHT_SUM_TOLERANCE,
)
from skinforge.core.config_loader import LimitConfig
from skinforge.core.events import EventBus, EventType
from skinforge.core.mesh import SkinnedMesh
from skinforge.core.scene import Scene
from skinforge.errors import InvalidConfigurationError, MalformedMeshError

logger = logging.getLogger(__name__)


@dataclass
class LimitStats:
    """Outcome of limiting one mesh (or a sum over several)."""
    vertices_limited: int = 0     # vertices whose influence set was truncated
    weights_removed: int = 0      # VertexWeight entries in minus entries out
    degenerate_vertices: int = 0  # vertices dropped because their weights summed to 0
    bones_before: int = 0
    bones_after: int = 0
    # old bone index -> new bone index, -1 for removed bones
    bone_remap: NDArray[np.int64] = field(
        repr=False, default_factory=lambda: np.empty(0, dtype=np.int64),
    )

    @property
    def bones_removed(self) -> int:
        return self.bones_before - self.bones_after

    def merge(self, other: "LimitStats") -> "LimitStats":
        """Sum the counts of two results.  The bone remap is per mesh and is dropped."""
        return LimitStats(
            vertices_limited=self.vertices_limited + other.vertices_limited,
            weights_removed=self.weights_removed + other.weights_removed,
            degenerate_vertices=self.degenerate_vertices + other.degenerate_vertices,
            bones_before=self.bones_before + other.bones_before,
            bones_after=self.bones_after + other.bones_after,
        )


@dataclass
class _InfluenceTable:
    """Per-vertex influence lists stored flat, sorted by (vertex, bone)."""
    vertex: NDArray[np.int64]
    bone: NDArray[np.int64]
    weight: NDArray[np.float64]

    def __len__(self) -> int:
        return len(self.vertex)

    def take(self, mask: NDArray[np.bool_]) -> "_InfluenceTable":
        return _InfluenceTable(self.vertex[mask], self.bone[mask], self.weight[mask])

    def counts(self, vertex_count: int) -> NDArray[np.int64]:
        return np.bincount(self.vertex, minlength=vertex_count)


def _check_max_influences(max_influences: object) -> None:
    if (isinstance(max_influences, bool)
            or not isinstance(max_influences, (int, np.integer))
            or max_influences <= 0):
        raise InvalidConfigurationError(
            f"max_influences must be a positive integer, got {max_influences!r}"
        )


def _validate_mesh(mesh: SkinnedMesh) -> None:
    if mesh.vertex_count <= 0:
        raise MalformedMeshError(f"Mesh '{mesh.name}' has no vertices")

    for idx, bone in enumerate(mesh.bones):
        if len(bone.vertex_ids) != len(bone.weights):
            raise MalformedMeshError(
                f"Bone '{bone.name}' (index {idx}) has {len(bone.vertex_ids)} "
                f"vertex ids but {len(bone.weights)} weights"
            )
        if bone.num_weights == 0:
            continue
        bad = (bone.vertex_ids < 0) | (bone.vertex_ids >= mesh.vertex_count)
        if bad.any():
            vid = int(bone.vertex_ids[np.argmax(bad)])
            raise MalformedMeshError(
                f"Bone '{bone.name}' (index {idx}) references vertex {vid}; "
                f"mesh '{mesh.name}' has {mesh.vertex_count} vertices"
            )
        bad = ~np.isfinite(bone.weights) | (bone.weights < 0.0)
        if bad.any():
            pos = int(np.argmax(bad))
            raise MalformedMeshError(
                f"Bone '{bone.name}' (index {idx}) has weight {bone.weights[pos]} "
                f"for vertex {int(bone.vertex_ids[pos])}; weights must be finite and >= 0"
            )


def _gather(mesh: SkinnedMesh) -> _InfluenceTable:
    """Flatten every bone's weight list into a vertex-sorted influence table."""
    num_bones = mesh.num_bones
    sizes = [b.num_weights for b in mesh.bones]

    vertex = np.concatenate([b.vertex_ids for b in mesh.bones])
    bone = np.repeat(np.arange(num_bones, dtype=np.int64), sizes)
    weight = np.concatenate([b.weights for b in mesh.bones]).astype(np.float64)

    # One key per (vertex, bone) pair; unique() sorts by vertex, then bone
    key = vertex * num_bones + bone
    unique_keys, inverse = np.unique(key, return_inverse=True)
    merged = np.bincount(inverse.ravel(), weights=weight, minlength=len(unique_keys))

    return _InfluenceTable(
        vertex=unique_keys // num_bones,
        bone=unique_keys % num_bones,
        weight=merged,
    )


def _select(table: _InfluenceTable, vertex_count: int,
            max_influences: int) -> tuple[_InfluenceTable, int]:
    """Keep the ``max_influences`` heaviest influences of every vertex.

    Only entries of over-limit vertices are sorted.  Returns the reduced
    table and the number of vertices that were truncated.
    """
    counts = table.counts(vertex_count)
    over = counts > max_influences
    limited = int(np.count_nonzero(over))
    if limited == 0:
        return table, 0

    idx = np.flatnonzero(over[table.vertex])
    # vertex ascending, weight descending, lower bone index first on ties
    order = np.lexsort((table.bone[idx], -table.weight[idx], table.vertex[idx]))
    ranked = idx[order]

    over_counts = counts[over]
    group_start = np.repeat(np.cumsum(over_counts) - over_counts, over_counts)
    rank = np.arange(len(ranked)) - group_start

    keep = np.ones(len(table), dtype=bool)
    keep[ranked[rank >= max_influences]] = False
    return table.take(keep), limited


def _renormalize(table: _InfluenceTable, vertex_count: int) -> tuple[_InfluenceTable, int]:
    """Scale each vertex's weights to sum to 1.0; drop all-zero vertices."""
    sums = np.bincount(table.vertex, weights=table.weight, minlength=vertex_count)
    present = table.counts(vertex_count) > 0
    positive = sums > 0.0
    degenerate = int(np.count_nonzero(present & ~positive))

    # Sums already at 1.0 are left as is so a second pass reproduces the first
    scale = np.where(np.abs(sums - 1.0) <= WEIGHT_SUM_TOLERANCE, 1.0, sums)
    table = table.take(positive[table.vertex])
    table.weight = table.weight / scale[table.vertex]
    return table, degenerate


def _rebuild(mesh: SkinnedMesh, table: _InfluenceTable) -> NDArray[np.int64]:
    """Rewrite every bone's weight list from the table; return per-bone counts."""
    num_bones = mesh.num_bones
    order = np.lexsort((table.vertex, table.bone))
    per_bone = np.bincount(table.bone, minlength=num_bones)
    splits = np.cumsum(per_bone)[:-1]

    vertex_lists = np.split(table.vertex[order], splits)
    weight_lists = np.split(table.weight[order].astype(np.float32), splits)
    for bone, vids, weights in zip(mesh.bones, vertex_lists, weight_lists):
        bone.set_weights(vids, weights)
    return per_bone


class InfluenceLimiter:
    """Limits the number of bones influencing each vertex of a mesh.

    Parameters
    ----------
    max_influences : int
        Maximum number of bones per vertex (default 4).
    remove_empty_bones : bool
        Drop bones left without any weight from the mesh's bone list.
    event_bus : EventBus, optional
        Receives BONES_REMOVED / MESH_LIMITED / STEP_* notifications.
        Holders of bone indices must subscribe to BONES_REMOVED, as
        removal shifts the indices of later bones.
    """

    STEP_NAME = "LimitBoneWeights"

    def __init__(
        self,
        max_influences: int = DEFAULT_MAX_INFLUENCES,
        remove_empty_bones: bool = REMOVE_EMPTY_BONES,
        event_bus: Optional[EventBus] = None,
    ):
        _check_max_influences(max_influences)
        self.max_influences = int(max_influences)
        self.remove_empty_bones = remove_empty_bones
        self.event_bus = event_bus

    @classmethod
    def from_config(cls, config: LimitConfig,
                    event_bus: Optional[EventBus] = None) -> "InfluenceLimiter":
        return cls(
            max_influences=config.max_influences,
            remove_empty_bones=config.remove_empty_bones,
            event_bus=event_bus,
        )

    def limit(self, mesh: SkinnedMesh, max_influences: Optional[int] = None) -> LimitStats:
        """Limit ``mesh`` in place and return what changed.

        Raises InvalidConfigurationError for a non-positive limit and
        MalformedMeshError for out-of-range vertex ids.  Both are checked
        before the mesh is touched.
        """
        k = self.max_influences if max_influences is None else max_influences
        _check_max_influences(k)
        k = int(k)
        _validate_mesh(mesh)

        bones_before = mesh.num_bones
        if bones_before == 0:
            return LimitStats()

        weights_in = mesh.num_weights
        table = _gather(mesh)
        table, limited = _select(table, mesh.vertex_count, k)
        table, degenerate = _renormalize(table, mesh.vertex_count)
        per_bone = _rebuild(mesh, table)

        remap = np.arange(bones_before, dtype=np.int64)
        removed_names: list[str] = []
        if self.remove_empty_bones:
            alive = per_bone > 0
            if not alive.all():
                remap = np.full(bones_before, -1, dtype=np.int64)
                remap[alive] = np.arange(int(np.count_nonzero(alive)), dtype=np.int64)
                removed_names = [b.name for b, a in zip(mesh.bones, alive) if not a]
                mesh.bones[:] = [b for b, a in zip(mesh.bones, alive) if a]

        stats = LimitStats(
            vertices_limited=limited,
            weights_removed=weights_in - mesh.num_weights,
            degenerate_vertices=degenerate,
            bones_before=bones_before,
            bones_after=mesh.num_bones,
            bone_remap=remap,
        )

        logger.info("Removed %d weights. Input bones: %d. Output bones: %d",
                    stats.weights_removed, bones_before, stats.bones_after)
        if degenerate:
            logger.debug("Mesh '%s': %d vertices had zero total weight",
                         mesh.name, degenerate)

        if self.event_bus is not None:
            if removed_names:
                self.event_bus.publish(
                    EventType.BONES_REMOVED, mesh=mesh, remap=remap, removed=removed_names,
                )
            self.event_bus.publish(EventType.MESH_LIMITED, mesh=mesh, stats=stats)
        return stats

    def execute(self, scene: Scene) -> list[LimitStats]:
        """Limit every skinned mesh in the scene; meshes without bones are skipped."""
        logger.debug("%s begin", self.STEP_NAME)
        meshes = scene.collect_skinned()
        if self.event_bus is not None:
            self.event_bus.publish(
                EventType.STEP_STARTED, step=self.STEP_NAME, mesh_count=len(meshes),
            )

        results = []
        total = LimitStats()
        for mesh in meshes:
            stats = self.limit(mesh)
            results.append(stats)
            total = total.merge(stats)

        if self.event_bus is not None:
            self.event_bus.publish(EventType.STEP_FINISHED, step=self.STEP_NAME, stats=total)
        logger.debug("%s end (%d meshes, %d vertices limited)",
                     self.STEP_NAME, len(results), total.vertices_limited)
        return results


def limit_bone_influences(
    mesh: SkinnedMesh,
    max_influences: int = DEFAULT_MAX_INFLUENCES,
    remove_empty_bones: bool = REMOVE_EMPTY_BONES,
) -> LimitStats:
    """Limit ``mesh`` to ``max_influences`` bones per vertex (in place)."""
    limiter = InfluenceLimiter(max_influences, remove_empty_bones=remove_empty_bones)
    return limiter.limit(mesh)
