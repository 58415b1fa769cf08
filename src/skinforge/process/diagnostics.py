"""Influence diagnostics: inspect the per-vertex bone influences of a mesh.

Provides tools to:
1. Rebuild per-vertex influence lists from the bone-owned weight lists
2. Check a mesh against an influence limit and the unit-sum weight rule
3. Generate a per-mesh text report

Usage:
    report = analyze_influences(mesh, max_influences=4)
    if not report.ok:
        print(format_report(report))
"""

from collections import Counter
from dataclasses import dataclass, field

from skinforge.constants import DEFAULT_MAX_INFLUENCES, WEIGHT_SUM_TOLERANCE
from skinforge.core.mesh import Influence, SkinnedMesh
from skinforge.errors import MalformedMeshError


@dataclass
class InfluenceReport:
    """Influence analysis for a single mesh."""
    mesh_name: str
    vertex_count: int
    bone_count: int
    weight_count: int          # VertexWeight entries across all bones
    max_influences: int        # limit the mesh was checked against
    max_degree: int = 0        # most bones seen on a single vertex
    over_limit_count: int = 0  # vertices with more than max_influences bones
    unweighted_count: int = 0  # vertices no bone references
    unnormalized_count: int = 0  # weighted vertices whose sum is off 1.0
    duplicate_count: int = 0   # (vertex, bone) pairs listed more than once
    max_sum_error: float = 0.0
    empty_bones: list[str] = field(default_factory=list)
    degree_histogram: dict[int, int] = field(default_factory=dict)  # bones/vertex -> vertices

    @property
    def ok(self) -> bool:
        return (self.over_limit_count == 0
                and self.unnormalized_count == 0
                and self.duplicate_count == 0)


def gather_influences(mesh: SkinnedMesh) -> list[list[Influence]]:
    """Sort the bone weight lists back into one influence list per vertex."""
    influences: list[list[Influence]] = [[] for _ in range(mesh.vertex_count)]
    for bone_index, bone in enumerate(mesh.bones):
        for vw in bone.vertex_weights:
            if not 0 <= vw.vertex_id < mesh.vertex_count:
                raise MalformedMeshError(
                    f"Bone '{bone.name}' references vertex {vw.vertex_id}; "
                    f"mesh '{mesh.name}' has {mesh.vertex_count} vertices"
                )
            influences[vw.vertex_id].append(Influence(bone_index, vw.weight))
    return influences


def analyze_influences(
    mesh: SkinnedMesh,
    max_influences: int = DEFAULT_MAX_INFLUENCES,
    tolerance: float = WEIGHT_SUM_TOLERANCE,
) -> InfluenceReport:
    """Check every vertex of ``mesh`` against the limit and the unit-sum rule."""
    report = InfluenceReport(
        mesh_name=mesh.name,
        vertex_count=mesh.vertex_count,
        bone_count=mesh.num_bones,
        weight_count=mesh.num_weights,
        max_influences=max_influences,
        empty_bones=[b.name for b in mesh.bones if b.num_weights == 0],
    )

    histogram: Counter = Counter()
    for infl in gather_influences(mesh):
        bones = {i.bone_index for i in infl}
        degree = len(bones)
        histogram[degree] += 1
        report.duplicate_count += len(infl) - degree
        if degree == 0:
            report.unweighted_count += 1
            continue
        report.max_degree = max(report.max_degree, degree)
        if degree > max_influences:
            report.over_limit_count += 1
        error = abs(sum(i.weight for i in infl) - 1.0)
        report.max_sum_error = max(report.max_sum_error, error)
        if error > tolerance:
            report.unnormalized_count += 1

    report.degree_histogram = dict(sorted(histogram.items()))
    return report


def format_report(report: InfluenceReport) -> str:
    """Format an InfluenceReport as a human-readable text block."""
    status = "OK" if report.ok else "FAIL"
    lines = [
        f"=== {report.mesh_name or '<unnamed>'} [{status}] ===",
        f"  vertices: {report.vertex_count}  bones: {report.bone_count}  "
        f"weights: {report.weight_count}",
        f"  limit: {report.max_influences}  max bones/vertex: {report.max_degree}",
        f"  over limit: {report.over_limit_count}  unweighted: {report.unweighted_count}  "
        f"unnormalized: {report.unnormalized_count} (max error {report.max_sum_error:.2e})",
    ]
    if report.duplicate_count:
        lines.append(f"  duplicate entries: {report.duplicate_count}")
    if report.empty_bones:
        lines.append(f"  empty bones: {', '.join(report.empty_bones)}")
    if report.degree_histogram:
        hist = ", ".join(f"{d}: {n}" for d, n in report.degree_histogram.items())
        lines.append(f"  bones/vertex histogram: {hist}")
    return "\n".join(lines)
