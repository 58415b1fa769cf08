"""Tests for skinned mesh data structures."""

import numpy as np
import pytest

from skinforge.core.mesh import Bone, Influence, SkinnedMesh, VertexWeight


def _make_mesh(name="test"):
    return SkinnedMesh(
        name=name,
        positions=np.array([0, 0, 0, 1, 0, 0, 0, 1, 0], dtype=np.float32),
        normals=np.array([0, 0, 1, 0, 0, 1, 0, 0, 1], dtype=np.float32),
        bones=[
            Bone(name="root", vertex_ids=[0, 1], weights=[1.0, 0.5]),
            Bone(name="tip", vertex_ids=[1, 2], weights=[0.5, 1.0]),
        ],
    )


def test_vertex_count_from_positions():
    mesh = _make_mesh()
    assert mesh.vertex_count == 3


def test_explicit_vertex_count():
    mesh = SkinnedMesh(name="m", positions=np.empty(0, dtype=np.float32), vertex_count=500)
    assert mesh.vertex_count == 500
    assert not mesh.has_bones


def test_bone_arrays_converted():
    bone = Bone(name="b", vertex_ids=[3, 1], weights=[0.25, 0.75])
    assert bone.vertex_ids.dtype == np.int64
    assert bone.weights.dtype == np.float32
    assert bone.num_weights == 2
    np.testing.assert_array_equal(bone.offset_matrix, np.eye(4))


def test_bone_length_mismatch():
    with pytest.raises(ValueError):
        Bone(name="b", vertex_ids=[0, 1], weights=[1.0])


def test_from_weights():
    bone = Bone.from_weights("b", [VertexWeight(2, 0.5), VertexWeight(4, 0.25)])
    assert list(bone.vertex_weights) == [VertexWeight(2, 0.5), VertexWeight(4, 0.25)]


def test_from_weights_offset_matrix():
    offset = np.diag([2.0, 2.0, 2.0, 1.0])
    bone = Bone.from_weights("b", [], offset_matrix=offset)
    assert bone.num_weights == 0
    np.testing.assert_array_equal(bone.offset_matrix, offset)


def test_set_weights_replaces_list():
    bone = Bone(name="b", vertex_ids=[0, 1, 2], weights=[0.1, 0.2, 0.3])
    bone.set_weights(np.array([5]), np.array([1.0]))
    assert list(bone.vertex_weights) == [VertexWeight(5, 1.0)]


def test_mesh_counts():
    mesh = _make_mesh()
    assert mesh.has_bones
    assert mesh.num_bones == 2
    assert mesh.num_weights == 4


def test_find_bone():
    mesh = _make_mesh()
    assert mesh.find_bone("tip") is mesh.bones[1]
    assert mesh.find_bone("missing") is None


def test_clone_is_deep():
    mesh = _make_mesh()
    copy = mesh.clone()
    copy.bones[0].weights[0] = 0.0
    copy.bones.pop()
    copy.positions[0] = 9.0
    assert mesh.bones[0].weights[0] == 1.0
    assert mesh.num_bones == 2
    assert mesh.positions[0] == 0.0


def test_influence_fields():
    infl = Influence(bone_index=3, weight=0.5)
    assert infl.bone_index == 3
    assert infl.weight == 0.5
