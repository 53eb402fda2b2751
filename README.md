# noether

Configurable filter chains for point clouds and polygon meshes, and a planner
that orders tool paths into one continuous sequence. Built on numpy and scipy.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Data types

`noether.filtering.data` holds the two containers the filters work on.

- `PointCloud(points, fields)`: `points` is an `(N, 3)` array; `fields` maps a
  name (for example `"normals"`, `"rgb"`, `"intensity"`) to an array with one
  entry per point.
  - `field(name)` returns one field. `"x"`, `"y"` and `"z"` give coordinate
    columns; `"normal_x"`, `"normal_y"` and `"normal_z"` give columns of a
    `"normals"` field; other names look up `fields`. An unknown name raises
    `KeyError`.
  - `select(indices)` returns a new cloud with the given points (indices or a
    boolean mask), fields included.
  - `copy()` returns an independent copy; `len(cloud)` is the point count.
- `PolygonMesh(cloud, polygons)`: a vertex cloud plus polygons given as tuples
  of vertex indices. Indices outside the cloud raise `ValueError`.
  - `to_cloud()` returns a copy of the vertices.
  - `remove_unused_vertices()` returns a mesh without vertices that no polygon
    uses, with polygons renumbered.
  - `copy()` returns an independent copy.

## Filters

Every filter subclasses `noether.filtering.base.FilterBase`. `configure(config)`
loads parameters from a plain mapping (such as a parsed YAML document) and
raises `ConfigurationError` when a required key is missing or has the wrong
type. `filter(data)` returns the filtered data and raises `FilterError` on
failure (`ConfigurationError` is a subclass of `FilterError`). Parameters can
also be passed directly as a params dataclass to the constructor.

Point cloud filters:

| Filter | Module | Configuration keys |
| --- | --- | --- |
| `VoxelGridFilter` | `noether.filtering.voxel_grid` | `leaf_size`; and, only when all are given, `filter_field_name`, `min_limit`, `max_limit`, `filter_limits_negative`, `min_pts_per_voxel` |
| `StatisticalOutlierFilter` | `noether.filtering.statistical_outlier` | `mean_k`, `std_dev_mult` |
| `CropBoxFilter` | `noether.filtering.crop_box` | `min`, `max` (each `x`, `y`, `z`), `transform` (`x`, `y`, `z`, `rx`, `ry`, `rz` in radians); optionally `crop_outside` |
| `PassThroughFilter` | `noether.filtering.pass_through` | `filter_field_name`, `min_limit`, `max_limit`; optionally `negative` |
| `RadiusOutlierFilter` | `noether.filtering.radius_outlier` | `radius`, `min_pts` |
| `MLSSmoothingFilter` | `noether.filtering.mls_smoothing` | `search_radius`, `polynomial_order` |

Mesh filters:

| Filter | Module | Configuration keys |
| --- | --- | --- |
| `CleanData` | `noether.filtering.clean_data` | none |
| `EuclideanClustering` | `noether.filtering.euclidean_clustering` | `tolerance`, `min_cluster_size`, `max_cluster_size` |
| `FillHoles` | `noether.filtering.fill_holes` | `hole_size` |
| `WindowedSincSmoothing` | `noether.filtering.windowed_sinc_smoothing` | `num_iter`, `enable_boundary_smoothing`, `enable_feature_edge_smoothing`, `enable_non_manifold_smoothing`, `enable_normalize_coordinates`, `feature_angle`, `edge_angle`, `pass_band` |

A few behaviours worth knowing:

- `CropBoxFilter` keeps points that, moved by `transform`, fall inside the box
  (bounds inclusive). `crop_outside` is stored but does not change the result.
- `MLSSmoothingFilter` replaces a `"normals"` field, when the cloud has one,
  with the normals of the fitted surfaces.
- `FillHoles` closes each boundary loop whose bounding sphere radius is at most
  `hole_size` with one polygon, orients polygons consistently and adds a
  `"normals"` field of averaged vertex normals.
- `EuclideanClustering` keeps polygons in the retained clusters and then
  removes unused vertices; `extract_clusters(points, tolerance,
  min_cluster_size, max_cluster_size)` is available on its own.
- `fill_holes.boundary_loops(polygons)` returns the closed boundary loops of a
  polygon list.

## Registry, groups and managers

Filters are declared by type name under a base class name
(`noether.filtering.base.CLOUD_FILTER_BASE` or `MESH_FILTER_BASE`). The type
name is the class's module plus qualified name, as returned by
`class_name(cls)`, for example `"noether.filtering.voxel_grid.VoxelGridFilter"`.

Importing `noether.filtering.plugins` declares every built-in filter;
`load_plugins()` returns the declared type names for each base class. Then
`declared_filters(base_name)` lists type names and
`create_filter(base_name, type_name)` builds an unconfigured filter.
`register_filter(base_name, type_name=None)` is a class decorator for declaring
your own filters.

A `FilterGroup(base_class_name)` loads a chain with `init(config)`:

```python
group_config = {
    "group_name": "Default",
    "continue_on_failure": False,
    "verbosity_on": False,
    "filters": [
        {
            "type": "noether.filtering.voxel_grid.VoxelGridFilter",
            "name": "voxel",
            "config": {"leaf_size": 0.1},
        },
        {
            "type": "noether.filtering.statistical_outlier.StatisticalOutlierFilter",
            "name": "outliers",
            "config": {"mean_k": 10, "std_dev_mult": 1.0},
        },
    ],
}
```

`apply_filters(data, filters=None)` runs the named filters in order and returns
the result; `None` or an empty list runs all loaded filters. An unknown name
raises `FilterError`. When a filter fails, the pass stops with `FilterError`
unless `continue_on_failure` is set, in which case the failing filter is
skipped and the pass succeeds if any filter succeeded.

A `FilterManager(base_class_name)` loads several groups listed under
`filter_groups`. `filter_group(name)` returns one; an empty name selects the
group named `Default`, and an unknown name raises `KeyError`.
`MeshFilterManager()` is a manager for the mesh filter base class.

```python
from noether.filtering import plugins
from noether.filtering.base import CLOUD_FILTER_BASE
from noether.filtering.manager import FilterManager

plugins.load_plugins()
manager = FilterManager(CLOUD_FILTER_BASE)
manager.init({"filter_groups": [group_config]})
result = manager.filter_group("").apply_filters(cloud)
```

## Path sequencing

`noether.sequence.SimplePathSequencePlanner` orders tool paths. A path is a
list of segments, a segment a list of poses, and a pose a 4x4 transform or a
3-vector position.

```python
from noether.sequence import SimplePathSequencePlanner

planner = SimplePathSequencePlanner()
planner.set_paths(paths)
planner.link_paths()
ordered = [planner.paths[i] for i in planner.indices]
```

The order starts from the second path (or the only one), then repeatedly takes
the nearest unused path, adds it to whichever end of the order it lies closer
to, and reverses it when that makes the ends meet. `paths` returns the stored
paths, some possibly reversed. `flip_path(path)` and
`find_next_nearest_path(paths, used_indices, last_path, front)` can be used
directly.

## What this package does not do

It reads and writes no mesh or point cloud files, offers no command-line tool,
has no spline surface reconstruction filter, and does not generate tool paths
itself: paths must be supplied to the sequence planner.