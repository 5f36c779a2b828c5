"""
Fractal type and color scheme taxonomy.

Two tables here are part of the persisted-model contract:

  - ``FRACTAL_TYPES``  — ordinal source for the ``fractal_type_enc`` feature.
  - ``COLOR_SCHEMES``  — ordinal source for the ``color_scheme_enc`` feature.

Both are **append-only**.  Reordering or inserting in the middle shifts the
encoding of every later identifier and silently invalidates every saved
model; bump ``training.schema_version`` if that is ever unavoidable.

``FractalFamily`` groups types by how their parameter space is explored
(escape-time plane, Julia constant, or scale-free geometry).

This module has NO imports from any other ``fractal_discovery`` package.
"""

from enum import StrEnum


class FractalFamily(StrEnum):
    """Parameter-space family used for bounds and view validation."""

    ESCAPE_TIME = "escape_time"
    """Plane fractals where the view position selects ``c`` (Mandelbrot-like)."""

    JULIA = "julia"
    """Plane fractals parameterised by a fixed complex constant ``c``."""

    GEOMETRIC = "geometric"
    """Self-similar curves, tilings, IFS and L-systems — interesting at any view."""

    OTHER = "other"
    """Attractors, noise fields, plots and 3D types."""


FRACTAL_TYPES: tuple[str, ...] = (
    "amman-tiling", "aperiodic-tilings", "apollonian-gasket", "barnsley-fern",
    "binary-dragon", "biomorphs", "blancmange", "box-variants", "buddhabrot",
    "buffalo", "burning-ship-julia", "burning-ship", "cantor-dust-base-expansion",
    "cantor-dust-circular", "cantor", "carpenter-square", "celtic-mandelbrot",
    "cesaro", "chair-tiling", "chua-attractor", "cross", "de-rham-curve",
    "diffusion-limited-aggregation", "domino-substitution", "dragon-lsystem",
    "fat-cantor", "folded-paper-dragon", "fractal-canopy", "fractal-dimension-plot",
    "fractal-flame", "fractal-islands", "fractal-tree", "gosper-curve",
    "h-tree-generalized", "h-tree", "halley", "hilbert-curve", "hybrid-julia",
    "ifs-maple", "ifs-spiral", "ifs-tree", "julia-snakes", "julia", "koch",
    "lambda-julia", "levy-c-curve", "levy-dragon", "levy-flights",
    "lorenz-attractor", "lsystem-tree-pine", "lyapunov", "magnet", "mandelbrot",
    "menger-carpet", "menger-sponge", "minkowski-sausage", "multibrot-julia",
    "multibrot-octic", "multibrot", "mutant-mandelbrot", "nebulabrot", "nova",
    "peano-curve", "penrose-substitution", "percolation-cluster", "perlin-noise",
    "phoenix-julia", "phoenix-mandelbrot", "pickover-stalks", "pinwheel-tiling",
    "plant", "popcorn", "pythagoras-tree-wide", "quadratic-koch",
    "quadrilateral-subdivision", "random-cantor", "random-midpoint-displacement",
    "rauzy", "recursive-circle-removal", "recursive-polygon-splitting",
    "rhombic-tiling", "rose", "rossler-attractor", "sierpinski-arrowhead",
    "sierpinski-carpet", "sierpinski-gasket", "sierpinski-hexagon",
    "sierpinski-lsystem", "sierpinski-pentagon", "sierpinski-tetrahedron",
    "sierpinski", "simplex-noise", "smith-volterra-cantor", "snowflake-tiling",
    "spider-set", "substitution-tilings", "takagi", "terdragon",
    "triangular-subdivision", "tricorn-julia", "tricorn", "twindragon", "vicsek",
    "weierstrass", "julia3d", "mandelbulb", "menger", "heighway-dragon",
    "sierpinski-curve",
)

COLOR_SCHEMES: tuple[str, ...] = (
    "classic", "fire", "ocean", "rainbow", "rainbow-pastel", "rainbow-dark",
    "rainbow-vibrant", "rainbow-double", "rainbow-shifted", "monochrome",
    "forest", "sunset", "purple", "cyan", "gold", "ice", "neon", "cosmic",
    "aurora", "coral", "autumn", "midnight", "emerald", "rosegold", "electric",
    "vintage", "tropical", "galaxy", "lava", "arctic", "sakura", "volcanic",
    "mint", "sunrise", "steel", "prism", "mystic", "amber",
)

JULIA_TYPES: frozenset[str] = frozenset({
    "julia", "julia-snakes", "multibrot-julia", "burning-ship-julia",
    "tricorn-julia", "phoenix-julia", "lambda-julia", "hybrid-julia", "magnet",
})

ESCAPE_TIME_TYPES: frozenset[str] = frozenset({
    "mandelbrot", "burning-ship", "buffalo", "multibrot", "multibrot-octic",
    "tricorn", "celtic-mandelbrot", "phoenix-mandelbrot", "nova", "halley",
    "spider-set", "lyapunov", "biomorphs", "pickover-stalks",
})

# Types that always render something worth looking at, regardless of view.
GEOMETRIC_TYPES: frozenset[str] = frozenset({
    "sierpinski", "sierpinski-arrowhead", "sierpinski-carpet",
    "sierpinski-pentagon", "sierpinski-hexagon", "sierpinski-gasket", "koch",
    "quadratic-koch", "minkowski-sausage", "cesaro", "vicsek", "cross",
    "box-variants", "h-tree", "h-tree-generalized", "heighway-dragon",
    "hilbert-curve", "sierpinski-curve", "twindragon", "terdragon",
    "binary-dragon", "folded-paper-dragon", "peano-curve", "popcorn", "rose",
    "mutant-mandelbrot", "cantor", "fat-cantor", "smith-volterra-cantor",
    "random-cantor",
})

# Escape-time types whose view check can reuse the Mandelbrot iteration.
MANDELBROT_LIKE_TYPES: frozenset[str] = frozenset({
    "mandelbrot", "burning-ship", "buffalo", "multibrot",
})


def family_of(fractal_type: str) -> FractalFamily:
    """Return the ``FractalFamily`` for a fractal type identifier.

    Unknown identifiers fall into ``FractalFamily.OTHER``.
    """
    if fractal_type in JULIA_TYPES:
        return FractalFamily.JULIA
    if fractal_type in GEOMETRIC_TYPES:
        return FractalFamily.GEOMETRIC
    if fractal_type in ESCAPE_TIME_TYPES:
        return FractalFamily.ESCAPE_TIME
    return FractalFamily.OTHER


def is_julia_type(fractal_type: str) -> bool:
    """True when the type is parameterised by a Julia constant."""
    return fractal_type in JULIA_TYPES
