"""Tests for influence diagnostics."""

import numpy as np
import pytest

from skinforge.core.mesh import Bone, Influence, SkinnedMesh
from skinforge.errors import MalformedMeshError
from skinforge.process import InfluenceLimiter
from skinforge.process.diagnostics import analyze_influences, format_report, gather_influences


def _make_mesh(vertex_count, bones, name="diag"):
    return SkinnedMesh(
        name=name,
        positions=np.zeros(vertex_count * 3, dtype=np.float32),
        bones=bones,
    )


def _make_crowded_mesh():
    """Vertex 0 in 6 bones at 1/6, vertex 1 in none, vertex 2 in one bone at 1.0."""
    bones = [Bone(name=f"b{i}", vertex_ids=[0], weights=[1.0 / 6]) for i in range(6)]
    bones[0] = Bone(name="b0", vertex_ids=[0, 2], weights=[1.0 / 6, 1.0])
    return _make_mesh(3, bones)


def test_gather_influences():
    mesh = _make_crowded_mesh()
    infl = gather_influences(mesh)
    assert len(infl) == 3
    assert [i.bone_index for i in infl[0]] == [0, 1, 2, 3, 4, 5]
    assert infl[1] == []
    assert infl[2] == [Influence(0, 1.0)]


def test_gather_rejects_out_of_range():
    mesh = _make_mesh(2, [Bone(name="b", vertex_ids=[2], weights=[1.0])])
    with pytest.raises(MalformedMeshError):
        gather_influences(mesh)


def test_report_before_limiting():
    report = analyze_influences(_make_crowded_mesh(), max_influences=4)
    assert report.vertex_count == 3
    assert report.bone_count == 6
    assert report.weight_count == 7
    assert report.max_degree == 6
    assert report.over_limit_count == 1
    assert report.unweighted_count == 1
    assert report.unnormalized_count == 0
    assert report.degree_histogram == {0: 1, 1: 1, 6: 1}
    assert not report.ok


def test_report_after_limiting():
    mesh = _make_crowded_mesh()
    InfluenceLimiter(max_influences=4).limit(mesh)
    report = analyze_influences(mesh, max_influences=4)
    assert report.ok
    assert report.max_degree == 4
    assert report.bone_count == 4
    assert report.max_sum_error < 1e-5


def test_unnormalized_vertices_flagged():
    mesh = _make_mesh(2, [Bone(name="b", vertex_ids=[0, 1], weights=[0.5, 1.0])])
    report = analyze_influences(mesh)
    assert report.unnormalized_count == 1
    assert report.max_sum_error == pytest.approx(0.5)
    assert not report.ok


def test_duplicates_and_empty_bones():
    mesh = _make_mesh(1, [
        Bone(name="twice", vertex_ids=[0, 0], weights=[0.5, 0.5]),
        Bone(name="idle"),
    ])
    report = analyze_influences(mesh)
    assert report.duplicate_count == 1
    assert report.empty_bones == ["idle"]
    assert report.degree_histogram == {1: 1}
    assert not report.ok


def test_format_report():
    report = analyze_influences(_make_crowded_mesh(), max_influences=4)
    text = format_report(report)
    assert "=== diag [FAIL] ===" in text
    assert "over limit: 1" in text
    assert "bones/vertex histogram: 0: 1, 1: 1, 6: 1" in text

    mesh = _make_crowded_mesh()
    InfluenceLimiter().limit(mesh)
    assert "[OK]" in format_report(analyze_influences(mesh))
