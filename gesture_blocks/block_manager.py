"""
Block manipulation layer: the set of placed blocks and the gestures' effect on them.
"""

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence

import numpy as np

from .config import MANIPULATION_CONFIG
from .spatial_projector import IDENTITY_QUATERNION, ReticlePose, lerp, look_rotation, slerp

logger = logging.getLogger(__name__)


class BlockMaterial(Enum):
    """Surface materials a block can cycle through."""
    METAL = "metal"
    WOOD = "wood"
    GLASS = "glass"
    PLASTIC = "plastic"


_MATERIAL_ORDER = list(BlockMaterial)


def cycle_material(material: BlockMaterial) -> BlockMaterial:
    """Return the material after ``material``, wrapping around."""
    index = _MATERIAL_ORDER.index(material)
    return _MATERIAL_ORDER[(index + 1) % len(_MATERIAL_ORDER)]


@dataclass
class Block:
    id: str
    material: BlockMaterial
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    orientation: np.ndarray = field(default_factory=lambda: IDENTITY_QUATERNION.copy())
    scale: float = 1.0


@dataclass
class ScaleSession:
    """Block scale and two-finger spread captured when a two-finger pinch starts."""
    base_scale: float = 1.0
    base_normalized: float = 1.0


def compute_scale(session: ScaleSession,
                  normalized: float,
                  min_normalized: float = MANIPULATION_CONFIG['min_normalized_distance']) -> float:
    """
    Scale factor for the current two-finger spread relative to the session baseline.

    Args:
        session: Captured baseline
        normalized: Current normalized index-to-middle tip distance
        min_normalized: Floor applied to both distances

    Returns:
        Unclamped scale factor
    """
    current = max(normalized, min_normalized)
    baseline = max(session.base_normalized, min_normalized)
    return session.base_scale * (current / baseline)


class BlockManager:
    """Holds the placed blocks and the current selection."""

    def __init__(self, config: Optional[Dict] = None):
        settings = dict(MANIPULATION_CONFIG)
        if config:
            unknown = set(config) - set(settings)
            if unknown:
                raise ValueError(f"Unknown manipulation settings: {sorted(unknown)}")
            settings.update(config)

        self.move_lerp = settings['move_lerp']
        self.rotate_slerp = settings['rotate_slerp']
        self.min_scale = settings['min_scale']
        self.max_scale = settings['max_scale']

        self.blocks: List[Block] = []
        self.selected_id: Optional[str] = None

    @property
    def block_count(self) -> int:
        return len(self.blocks)

    @property
    def selected(self) -> Optional[Block]:
        if self.selected_id is None:
            return None
        for block in self.blocks:
            if block.id == self.selected_id:
                return block
        return None

    def select_block(self, block: Optional[Block]):
        self.selected_id = block.id if block is not None else None

    def select_next_block(self) -> Optional[Block]:
        """Select the block after the current selection, wrapping around."""
        if not self.blocks:
            return None
        ids = [block.id for block in self.blocks]
        current_index = ids.index(self.selected_id) if self.selected_id in ids else -1
        next_block = self.blocks[(current_index + 1) % len(self.blocks)]
        self.selected_id = next_block.id
        return next_block

    def spawn_block(self, pose: ReticlePose, material: BlockMaterial = BlockMaterial.METAL) -> Block:
        """Create a block at ``pose`` and select it."""
        block = Block(
            id=uuid.uuid4().hex,
            material=material,
            position=np.array(pose.position, dtype=np.float64),
            orientation=np.array(pose.orientation, dtype=np.float64),
        )
        self.blocks.append(block)
        self.selected_id = block.id
        logger.info("Spawned %s block %s", material.value, block.id)
        return block

    def move_block(self, block: Block, position: Sequence[float], orientation: Sequence[float]):
        """Ease a block toward a target pose."""
        block.position = lerp(block.position, position, self.move_lerp)
        block.orientation = slerp(block.orientation, orientation, self.move_lerp)

    def rotate_block_to_direction(self, block: Block, direction: Sequence[float]):
        """Ease a block's +Z axis toward ``direction``."""
        target = look_rotation(direction)
        block.orientation = slerp(block.orientation, target, self.rotate_slerp)

    def scale_block(self, block: Block, scale_factor: float):
        block.scale = float(np.clip(scale_factor, self.min_scale, self.max_scale))

    def delete_selected(self) -> Optional[Block]:
        selected = self.selected
        if selected is None:
            return None
        self.blocks = [block for block in self.blocks if block.id != selected.id]
        self.selected_id = None
        logger.info("Deleted block %s", selected.id)
        return selected

    def cycle_selected_material(self) -> Optional[BlockMaterial]:
        selected = self.selected
        if selected is None:
            return None
        selected.material = cycle_material(selected.material)
        return selected.material

    def reset(self):
        self.blocks = []
        self.selected_id = None
