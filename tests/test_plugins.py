import numpy as np
import pytest

from noether.filtering.base import CLOUD_FILTER_BASE, MESH_FILTER_BASE, class_name
from noether.filtering.clean_data import CleanData
from noether.filtering.crop_box import CropBoxFilter
from noether.filtering.data import PointCloud, PolygonMesh
from noether.filtering.manager import FilterManager, MeshFilterManager
from noether.filtering.mls_smoothing import MLSSmoothingFilter
from noether.filtering.pass_through import PassThroughFilter
from noether.filtering.plugins import CLOUD_FILTERS, MESH_FILTERS, load_plugins
from noether.filtering.radius_outlier import RadiusOutlierFilter
from noether.filtering.statistical_outlier import StatisticalOutlierFilter
from noether.filtering.voxel_grid import VoxelGridFilter
from noether.filtering.windowed_sinc_smoothing import WindowedSincSmoothing


def voxel_grid_config():
    return {"name": "voxel_grid", "type": class_name(VoxelGridFilter), "config": {"leaf_size": 0.1}}


def statistical_outlier_config():
    return {
        "name": "statistical_outlier",
        "type": class_name(StatisticalOutlierFilter),
        "config": {"mean_k": 10, "std_dev_mult": 1.0},
    }


def crop_box_config():
    return {
        "name": "crop_box",
        "type": class_name(CropBoxFilter),
        "config": {
            "min": {"x": -1.0, "y": -1.0, "z": -1.0},
            "max": {"x": 1.0, "y": 1.0, "z": 1.0},
            "transform": {"x": 0.5, "y": 0.5, "z": 0.5, "rx": 0.1, "ry": 0.1, "rz": 0.1},
            "crop_outside": False,
        },
    }


def pass_through_config():
    return {
        "name": "pass_through",
        "type": class_name(PassThroughFilter),
        "config": {"filter_field_name": "y", "min_limit": -1.0, "max_limit": 1.0, "negative": False},
    }


def radius_outlier_config():
    return {
        "name": "radius_outlier_filter",
        "type": class_name(RadiusOutlierFilter),
        "config": {"radius": 1.0, "min_pts": 5},
    }


def mls_smoothing_config():
    return {
        "name": "mls_smoothing_filter",
        "type": class_name(MLSSmoothingFilter),
        "config": {"search_radius": 0.1, "polynomial_order": 2},
    }


def manager_config(group_name):
    filters = [
        voxel_grid_config(),
        statistical_outlier_config(),
        crop_box_config(),
        pass_through_config(),
        radius_outlier_config(),
        mls_smoothing_config(),
    ]
    group = {
        "group_name": group_name,
        "continue_on_failure": False,
        "verbosity_on": True,
        "filters": filters,
    }
    return {"filter_groups": [group]}


def make_cloud(kind, count=100):
    fields = {
        "xyz": {},
        "xyzrgb": {"rgb": np.zeros((count, 3), dtype=np.uint8)},
        "point_normal": {"normals": np.zeros((count, 3))},
        "xyzi": {"intensity": np.zeros(count)},
    }[kind]
    return PointCloud(np.zeros((count, 3)), fields)


@pytest.mark.parametrize("kind", ["xyz", "xyzrgb", "point_normal", "xyzi"])
def test_filter_manager(kind):
    load_plugins()
    group_name = "test_group"
    manager = FilterManager(CLOUD_FILTER_BASE)
    manager.init(manager_config(group_name))

    group = manager.filter_group(group_name)
    input_cloud = make_cloud(kind)
    output_cloud = group.apply_filters(input_cloud)

    assert len(output_cloud) <= len(input_cloud)


def test_unknown_group_is_reported():
    manager = FilterManager(CLOUD_FILTER_BASE)
    manager.init(manager_config("test_group"))
    with pytest.raises(KeyError):
        manager.filter_group("other_group")


def test_load_plugins_declares_all_filters():
    declared = load_plugins()
    assert {class_name(cls) for cls in CLOUD_FILTERS} <= set(declared[CLOUD_FILTER_BASE])
    assert {class_name(cls) for cls in MESH_FILTERS} <= set(declared[MESH_FILTER_BASE])


def test_mesh_filter_manager_runs_mesh_filters():
    load_plugins()
    n = 4
    points = np.array([(float(i), float(j), 0.0) for j in range(n) for i in range(n)])
    polygons = []
    for j in range(n - 1):
        for i in range(n - 1):
            a = j * n + i
            polygons += [(a, a + 1, a + n + 1), (a, a + n + 1, a + n)]
    mesh = PolygonMesh(PointCloud(points), polygons)

    smoothing = {
        "num_iter": 10,
        "enable_boundary_smoothing": True,
        "enable_feature_edge_smoothing": False,
        "enable_non_manifold_smoothing": True,
        "enable_normalize_coordinates": True,
        "feature_angle": 10.0,
        "edge_angle": 150.0,
        "pass_band": 0.1,
    }
    config = {
        "filter_groups": [
            {
                "group_name": "Default",
                "continue_on_failure": False,
                "verbosity_on": False,
                "filters": [
                    {"name": "clean", "type": class_name(CleanData), "config": {}},
                    {"name": "smooth", "type": class_name(WindowedSincSmoothing), "config": smoothing},
                ],
            }
        ]
    }
    manager = MeshFilterManager()
    manager.init(config)
    out = manager.filter_group().apply_filters(mesh)
    assert len(out.polygons) == len(polygons)
    assert np.allclose(out.cloud.points[:, 2], 0.0)