"""CLI for running the bone-influence limiter on a synthetic skinned mesh.

Builds a mesh where every bone weights a contiguous (wrapping) run of
vertices with the same weight, limits it and prints before/after
influence reports.

Usage::

    # Reference mesh: 500 vertices, 30 bones x 250 weights of 1/15 each
    python -m tools.limit_influences_report

    # Other sizes and limits:
    python -m tools.limit_influences_report --vertices 2000 --bones 64 --per-bone 400 --max-influences 8

    # Take the limit from a config file:
    python -m tools.limit_influences_report --config config/limit_bone_weights.json
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import numpy as np

from skinforge.core.config_loader import LimitConfig, load_limit_config
from skinforge.core.mesh import Bone, SkinnedMesh
from skinforge.errors import InfluenceLimitError
from skinforge.process import InfluenceLimiter, analyze_influences, format_report

logger = logging.getLogger(__name__)


def build_cyclic_mesh(
    vertex_count: int = 500,
    bone_count: int = 30,
    weights_per_bone: int = 250,
    weight: float | None = None,
) -> SkinnedMesh:
    """Build a mesh whose bones weight consecutive vertex runs, wrapping at the end.

    With the defaults every vertex is referenced by 15 bones; ``weight``
    defaults to 1/degree so each vertex sums to 1.0 before limiting.
    """
    if weight is None:
        degree = max(1, bone_count * weights_per_bone // vertex_count)
        weight = 1.0 / degree

    positions = np.zeros(vertex_count * 3, dtype=np.float32)
    mesh = SkinnedMesh(name="cyclic", positions=positions, vertex_count=vertex_count)
    cursor = 0
    for i in range(bone_count):
        vids = (cursor + np.arange(weights_per_bone)) % vertex_count
        cursor = (cursor + weights_per_bone) % vertex_count
        mesh.bones.append(Bone(
            name=f"bone_{i:03d}",
            vertex_ids=vids,
            weights=np.full(weights_per_bone, weight, dtype=np.float32),
        ))
    return mesh


# ── CLI ──────────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Limit bone influences on a synthetic mesh and report the result",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--vertices", type=int, default=500,
                        help="Vertex count (default: 500)")
    parser.add_argument("--bones", type=int, default=30,
                        help="Bone count (default: 30)")
    parser.add_argument("--per-bone", type=int, default=250,
                        help="Weights per bone (default: 250)")
    parser.add_argument("--max-influences", type=int, default=None,
                        help="Bones allowed per vertex (default: from config, else 4)")
    parser.add_argument("--keep-empty-bones", action="store_true",
                        help="Do not remove bones left without weights")
    parser.add_argument("--config", type=Path, default=None, metavar="FILE",
                        help="JSON limit config (max_influences, remove_empty_bones)")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable verbose logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.vertices <= 0:
        parser.error("--vertices must be positive")

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(level=log_level, format="%(levelname)s: %(message)s")

    try:
        config = load_limit_config(args.config) if args.config else LimitConfig()
        if args.max_influences is not None:
            config.max_influences = args.max_influences
        if args.keep_empty_bones:
            config.remove_empty_bones = False
        limiter = InfluenceLimiter.from_config(config)

        mesh = build_cyclic_mesh(args.vertices, args.bones, args.per_bone)
        print(format_report(analyze_influences(mesh, config.max_influences)))
        stats = limiter.limit(mesh)
    except (InfluenceLimitError, OSError) as exc:
        logger.error("%s", exc)
        return 1

    print(format_report(analyze_influences(mesh, config.max_influences)))
    print(f"\nvertices limited: {stats.vertices_limited}  "
          f"weights removed: {stats.weights_removed}  "
          f"bones removed: {stats.bones_removed}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
