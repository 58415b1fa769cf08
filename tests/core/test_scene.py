"""Tests for the scene container."""

import numpy as np

from skinforge.core.mesh import Bone, SkinnedMesh
from skinforge.core.scene import Scene


def _make_mesh(name, bones=()):
    return SkinnedMesh(name=name, positions=np.zeros(9, dtype=np.float32), bones=list(bones))


def test_add_chains():
    scene = Scene(name="asset")
    a, b = _make_mesh("a"), _make_mesh("b")
    assert scene.add(a).add(b) is scene
    assert scene.meshes == [a, b]


def test_collect_skinned():
    skinned = _make_mesh("body", [Bone(name="root", vertex_ids=[0], weights=[1.0])])
    scene = Scene(meshes=[_make_mesh("prop"), skinned])
    assert scene.collect_skinned() == [skinned]
