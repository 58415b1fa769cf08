"""Flat scene container handed to processing steps."""

from dataclasses import dataclass, field

from skinforge.core.mesh import SkinnedMesh


@dataclass
class Scene:
    """The meshes of an imported asset, in import order.

    Node hierarchy and bone bindings live with the importer; processing
    steps only see the mesh list.
    """
    name: str = ""
    meshes: list[SkinnedMesh] = field(default_factory=list)

    def add(self, mesh: SkinnedMesh) -> "Scene":
        self.meshes.append(mesh)
        return self

    def collect_skinned(self) -> list[SkinnedMesh]:
        """Return meshes that carry at least one bone."""
        return [m for m in self.meshes if m.has_bones]
