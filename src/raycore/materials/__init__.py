"""Materials module.

Materials are opaque to the geometric core: a scene stores them and hands
out integer indices, primitives carry the index as material_id, and hit
records report it back. Shading code outside the core interprets them.

Components:
    material: Material base class, parameter holders and the config registry
"""

from .material import (
    MATERIAL_TYPES,
    CookTorranceMaterial,
    LambertMaterial,
    LambertPhongMaterial,
    Material,
    SolidColorMaterial,
    material_from_config,
)

__all__ = [
    "Material",
    "SolidColorMaterial",
    "LambertMaterial",
    "LambertPhongMaterial",
    "CookTorranceMaterial",
    "MATERIAL_TYPES",
    "material_from_config",
]
