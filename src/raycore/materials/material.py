"""Opaque material parameter holders.

The geometric core never evaluates a material. A scene only stores material
instances and hands out their integer index, which primitives carry as
material_id and hit records report back. Shading code outside the core looks
the material up by that index.

Each material type registers a config name so scenes can be serialised to
plain dictionaries and restored.

Example:
    >>> from raycore.materials.material import LambertMaterial, material_from_config
    >>> mat = LambertMaterial(color=(0.49, 0.57, 0.57), diffuse_reflectance=1.0)
    >>> material_from_config(mat.to_config()) == mat
    True
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, ClassVar


class Material:
    """Base class for materials referenced by index from scene primitives.

    Subclasses are dataclasses that declare a unique config_type.
    """

    config_type: ClassVar[str] = ""

    def to_config(self) -> dict[str, Any]:
        """Export the material as a JSON-friendly dictionary."""
        params = {
            key: list(value) if isinstance(value, tuple) else value
            for key, value in asdict(self).items()
        }
        return {"type": self.config_type, **params}


@dataclass
class SolidColorMaterial(Material):
    """A flat, unlit color.

    Attributes:
        color: RGB color, each component typically in [0, 1].
    """

    config_type: ClassVar[str] = "solid_color"

    color: tuple[float, float, float] = (1.0, 0.0, 0.0)


@dataclass
class LambertMaterial(Material):
    """Parameters of an ideal diffuse surface.

    Attributes:
        color: Diffuse RGB color.
        diffuse_reflectance: Scalar reflectance multiplier in [0, 1].
    """

    config_type: ClassVar[str] = "lambert"

    color: tuple[float, float, float] = (0.5, 0.5, 0.5)
    diffuse_reflectance: float = 1.0

    def __post_init__(self) -> None:
        if not 0.0 <= self.diffuse_reflectance <= 1.0:
            raise ValueError(f"diffuse_reflectance must be in [0, 1], got {self.diffuse_reflectance}")


@dataclass
class LambertPhongMaterial(Material):
    """Parameters of a diffuse surface with a Phong specular lobe.

    Attributes:
        color: Diffuse RGB color.
        diffuse_reflectance: Diffuse multiplier in [0, 1].
        specular_reflectance: Specular multiplier in [0, 1].
        phong_exponent: Shininess of the specular lobe, non-negative.
    """

    config_type: ClassVar[str] = "lambert_phong"

    color: tuple[float, float, float] = (0.5, 0.5, 0.5)
    diffuse_reflectance: float = 1.0
    specular_reflectance: float = 1.0
    phong_exponent: float = 60.0

    def __post_init__(self) -> None:
        for name in ("diffuse_reflectance", "specular_reflectance"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be in [0, 1], got {value}")
        if self.phong_exponent < 0.0:
            raise ValueError(f"phong_exponent must be non-negative, got {self.phong_exponent}")


@dataclass
class CookTorranceMaterial(Material):
    """Parameters of a microfacet (Cook-Torrance) surface.

    Metalness 1 describes a conductor whose albedo tints reflections, 0 a
    dielectric such as plastic.

    Attributes:
        albedo: Base RGB reflectance.
        metalness: Blend between dielectric (0) and metal (1).
        roughness: Microfacet roughness in [0, 1].
    """

    config_type: ClassVar[str] = "cook_torrance"

    albedo: tuple[float, float, float] = (0.75, 0.75, 0.75)
    metalness: float = 0.0
    roughness: float = 1.0

    def __post_init__(self) -> None:
        for name in ("metalness", "roughness"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be in [0, 1], got {value}")


MATERIAL_TYPES: dict[str, type[Material]] = {
    SolidColorMaterial.config_type: SolidColorMaterial,
    LambertMaterial.config_type: LambertMaterial,
    LambertPhongMaterial.config_type: LambertPhongMaterial,
    CookTorranceMaterial.config_type: CookTorranceMaterial,
}


def material_from_config(config: dict[str, Any]) -> Material:
    """Create a material from a dictionary produced by Material.to_config().

    Raises:
        ValueError: If the material type is unknown.
    """
    params = dict(config)
    mat_type = str(params.pop("type", "")).lower()
    cls = MATERIAL_TYPES.get(mat_type)
    if cls is None:
        raise ValueError(f"Unknown material type: {mat_type}")
    for key in ("color", "albedo"):
        if key in params:
            rgb = params[key]
            params[key] = (float(rgb[0]), float(rgb[1]), float(rgb[2]))
    return cls(**params)
