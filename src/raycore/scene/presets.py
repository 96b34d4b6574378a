"""Factory functions for the standard test scenes.

Four small scenes exercise the geometric core:

- Solid color box: two overlapping spheres inside an open box of five planes,
  every surface a flat SolidColorMaterial. No lights.
- Sphere grid: a 3x2 grid of spheres in a box of planes, lit by one point
  light. Used for shadow and direct lighting checks.
- Lambert test: a Lambert and a Lambert-Phong sphere on a floor plane, lit
  from the front and back by two point lights.
- Cook-Torrance: a 3x2 grid of metal and plastic spheres of decreasing
  roughness in a diffuse box, lit by three colored point lights.

Each factory returns a new Scene in setup state together with the camera
position and field of view the scene was laid out for. Camera ray generation
is left to the caller.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from raycore.scene.presets import create_sphere_grid_scene
    >>> scene, view = create_sphere_grid_scene()
    >>> scene.get_sphere_count(), scene.get_plane_count()
    (6, 5)
"""

from collections.abc import Callable
from dataclasses import dataclass

from raycore.materials.material import (
    CookTorranceMaterial,
    LambertMaterial,
    LambertPhongMaterial,
    SolidColorMaterial,
)
from raycore.scene.manager import Scene

# =============================================================================
# Colors
# =============================================================================

RED = (1.0, 0.0, 0.0)
GREEN = (0.0, 1.0, 0.0)
BLUE = (0.0, 0.0, 1.0)
YELLOW = (1.0, 1.0, 0.0)
MAGENTA = (1.0, 0.0, 1.0)
WHITE = (1.0, 1.0, 1.0)


@dataclass
class PresetView:
    """Camera placement a preset scene was designed for.

    Attributes:
        origin: Camera position; the camera looks along +Z.
        fov_degrees: Vertical field of view in degrees.
    """

    origin: tuple[float, float, float] = (0.0, 0.0, 0.0)
    fov_degrees: float = 90.0


# =============================================================================
# Scene Factories
# =============================================================================


def create_solid_color_scene() -> tuple[Scene, PresetView]:
    """Create two spheres inside an open box, all with flat colors.

    The box spans [-75, 75] in X and Y and is closed at z = 125. The red
    sphere uses the scene's default material 0.

    Returns:
        A tuple of (Scene, PresetView).
    """
    scene = Scene()

    # Material 0 is the default red
    mat_red = 0
    mat_blue = scene.add_material(SolidColorMaterial(BLUE))
    mat_yellow = scene.add_material(SolidColorMaterial(YELLOW))
    mat_green = scene.add_material(SolidColorMaterial(GREEN))
    mat_magenta = scene.add_material(SolidColorMaterial(MAGENTA))

    scene.add_sphere(center=(-25.0, 0.0, 100.0), radius=50.0, material_id=mat_red)
    scene.add_sphere(center=(25.0, 0.0, 100.0), radius=50.0, material_id=mat_blue)

    scene.add_plane(origin=(-75.0, 0.0, 0.0), normal=(1.0, 0.0, 0.0), material_id=mat_green)
    scene.add_plane(origin=(75.0, 0.0, 0.0), normal=(-1.0, 0.0, 0.0), material_id=mat_green)
    scene.add_plane(origin=(0.0, -75.0, 0.0), normal=(0.0, 1.0, 0.0), material_id=mat_yellow)
    scene.add_plane(origin=(0.0, 75.0, 0.0), normal=(0.0, -1.0, 0.0), material_id=mat_yellow)
    scene.add_plane(origin=(0.0, 0.0, 125.0), normal=(0.0, 0.0, -1.0), material_id=mat_magenta)

    return scene, PresetView(origin=(0.0, 0.0, 0.0), fov_degrees=90.0)


def create_sphere_grid_scene() -> tuple[Scene, PresetView]:
    """Create a 3x2 grid of spheres in a box, lit by one point light.

    The box spans [-5, 5] in X, [0, 10] in Y and is closed at z = 10. The
    light sits at (0, 5, -5) in front of the spheres.

    Returns:
        A tuple of (Scene, PresetView).
    """
    scene = Scene()

    mat_red = 0
    mat_blue = scene.add_material(SolidColorMaterial(BLUE))
    mat_yellow = scene.add_material(SolidColorMaterial(YELLOW))
    mat_green = scene.add_material(SolidColorMaterial(GREEN))
    mat_magenta = scene.add_material(SolidColorMaterial(MAGENTA))

    scene.add_plane(origin=(-5.0, 0.0, 0.0), normal=(1.0, 0.0, 0.0), material_id=mat_green)
    scene.add_plane(origin=(5.0, 0.0, 0.0), normal=(-1.0, 0.0, 0.0), material_id=mat_green)
    scene.add_plane(origin=(0.0, 0.0, 0.0), normal=(0.0, 1.0, 0.0), material_id=mat_yellow)
    scene.add_plane(origin=(0.0, 10.0, 0.0), normal=(0.0, -1.0, 0.0), material_id=mat_yellow)
    scene.add_plane(origin=(0.0, 0.0, 10.0), normal=(0.0, 0.0, -1.0), material_id=mat_magenta)

    # Two rows of three, alternating colors
    for row, y in enumerate((1.0, 3.0)):
        for col, x in enumerate((-1.75, 0.0, 1.75)):
            material_id = mat_red if (row + col) % 2 == 0 else mat_blue
            scene.add_sphere(center=(x, y, 0.0), radius=0.75, material_id=material_id)

    scene.add_point_light(origin=(0.0, 5.0, -5.0), intensity=70.0, color=WHITE)

    return scene, PresetView(origin=(0.0, 3.0, -9.0), fov_degrees=45.0)


def create_lambert_test_scene() -> tuple[Scene, PresetView]:
    """Create a diffuse and a glossy sphere on a floor, lit from front and back.

    Returns:
        A tuple of (Scene, PresetView).
    """
    scene = Scene()

    mat_red = scene.add_material(LambertMaterial(color=RED, diffuse_reflectance=1.0))
    mat_blue = scene.add_material(
        LambertPhongMaterial(color=BLUE, diffuse_reflectance=1.0, specular_reflectance=1.0, phong_exponent=60.0)
    )
    mat_yellow = scene.add_material(LambertMaterial(color=YELLOW, diffuse_reflectance=1.0))

    scene.add_sphere(center=(-0.75, 1.0, 0.0), radius=1.0, material_id=mat_red)
    scene.add_sphere(center=(0.75, 1.0, 0.0), radius=1.0, material_id=mat_blue)

    scene.add_plane(origin=(0.0, 0.0, 0.0), normal=(0.0, 1.0, 0.0), material_id=mat_yellow)

    scene.add_point_light(origin=(0.0, 5.0, 5.0), intensity=25.0, color=WHITE)
    scene.add_point_light(origin=(0.0, 2.5, -5.0), intensity=25.0, color=WHITE)

    return scene, PresetView(origin=(0.0, 1.0, -5.0), fov_degrees=45.0)


def create_cook_torrance_scene() -> tuple[Scene, PresetView]:
    """Create metal and plastic spheres in a diffuse box with three lights.

    The lower row holds metals, the upper row plastics. Roughness drops from
    1.0 on the left to 0.1 on the right. The box matches the sphere grid.

    Returns:
        A tuple of (Scene, PresetView).
    """
    scene = Scene()

    metal = (0.972, 0.960, 0.915)
    plastic = (0.75, 0.75, 0.75)
    roughness_levels = (1.0, 0.6, 0.1)
    metals = [
        scene.add_material(CookTorranceMaterial(albedo=metal, metalness=1.0, roughness=r))
        for r in roughness_levels
    ]
    plastics = [
        scene.add_material(CookTorranceMaterial(albedo=plastic, metalness=0.0, roughness=r))
        for r in roughness_levels
    ]
    mat_walls = scene.add_material(LambertMaterial(color=(0.49, 0.57, 0.57), diffuse_reflectance=1.0))

    scene.add_plane(origin=(0.0, 0.0, 10.0), normal=(0.0, 0.0, -1.0), material_id=mat_walls)
    scene.add_plane(origin=(0.0, 0.0, 0.0), normal=(0.0, 1.0, 0.0), material_id=mat_walls)
    scene.add_plane(origin=(0.0, 10.0, 0.0), normal=(0.0, -1.0, 0.0), material_id=mat_walls)
    scene.add_plane(origin=(5.0, 0.0, 0.0), normal=(-1.0, 0.0, 0.0), material_id=mat_walls)
    scene.add_plane(origin=(-5.0, 0.0, 0.0), normal=(1.0, 0.0, 0.0), material_id=mat_walls)

    for y, row in ((1.0, metals), (3.0, plastics)):
        for x, material_id in zip((-1.75, 0.0, 1.75), row):
            scene.add_sphere(center=(x, y, 0.0), radius=0.75, material_id=material_id)

    # Warm backlight, warm key light and a cool fill light
    scene.add_point_light(origin=(0.0, 5.0, 5.0), intensity=50.0, color=(1.0, 0.61, 0.45))
    scene.add_point_light(origin=(-2.5, 5.0, -5.0), intensity=70.0, color=(1.0, 0.8, 0.45))
    scene.add_point_light(origin=(2.5, 2.5, -5.0), intensity=50.0, color=(0.34, 0.47, 0.68))

    return scene, PresetView(origin=(0.0, 3.0, -9.0), fov_degrees=45.0)


PRESETS: dict[str, Callable[[], tuple[Scene, PresetView]]] = {
    "solid_color": create_solid_color_scene,
    "sphere_grid": create_sphere_grid_scene,
    "lambert_test": create_lambert_test_scene,
    "cook_torrance": create_cook_torrance_scene,
}
