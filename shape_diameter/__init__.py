# Support point sampling of thin model parts
from shape_diameter.config import (
    Config,
    RaysConfig,
    SampleConfig,
)
from shape_diameter.direction_sampling import (
    Direction,
    create_fibonacci_sphere_samples,
    store_directions_as_mesh,
)
from shape_diameter.normals import (
    NormalType,
    compute_vertex_normals,
    compute_triangle_normals,
)
from shape_diameter.mesh_metrics import (
    triangle_area,
    triangle_areas,
    surface_area,
    min_triangle_side_length,
)
from shape_diameter.edge_collapse import connect_small_triangles
from shape_diameter.ray_index import AccelerationIndex, RayHit, EMBREE_AVAILABLE
from shape_diameter.subdivision import subdivide, EdgeDivideRecord
from shape_diameter.width_estimation import calc_width, calc_widths, NO_WIDTH
from shape_diameter.point_grid import PointGrid, PointGrid3D
from shape_diameter.support_points import PointRadius, generate_support_points
from shape_diameter.declutter import poisson_sphere_from_samples
from shape_diameter.tiny_parts import sample_tiny_parts

__all__ = [
    # Configuration
    'Config',
    'RaysConfig',
    'SampleConfig',
    # Ray directions
    'Direction',
    'create_fibonacci_sphere_samples',
    'store_directions_as_mesh',
    # Normals
    'NormalType',
    'compute_vertex_normals',
    'compute_triangle_normals',
    # Metrics
    'triangle_area',
    'triangle_areas',
    'surface_area',
    'min_triangle_side_length',
    # Mesh preparation
    'connect_small_triangles',
    'subdivide',
    'EdgeDivideRecord',
    # Thickness
    'AccelerationIndex',
    'RayHit',
    'EMBREE_AVAILABLE',
    'calc_width',
    'calc_widths',
    'NO_WIDTH',
    # Support points
    'PointGrid',
    'PointGrid3D',
    'PointRadius',
    'generate_support_points',
    'poisson_sphere_from_samples',
    'sample_tiny_parts',
]
