import numpy as np
import pytest

from noether.filtering.base import (
    CLOUD_FILTER_BASE,
    ConfigurationError,
    FilterError,
    class_name,
    create_filter,
)
from noether.filtering.data import PointCloud
from noether.filtering.statistical_outlier import (
    StatisticalOutlierFilter,
    StatisticalOutlierParams,
)


def grid_with_outlier():
    xs, ys = np.meshgrid(np.arange(5.0), np.arange(5.0))
    grid = np.column_stack([xs.ravel(), ys.ravel(), np.zeros(25)])
    return grid, np.vstack([grid, [[100.0, 100.0, 100.0]]])


def test_configure_sets_params():
    f = StatisticalOutlierFilter()
    f.configure({"mean_k": 10, "std_dev_mult": 1.0})
    assert f.params == StatisticalOutlierParams(mean_k=10, std_dev_mult=1.0)


def test_configure_accepts_integer_multiplier():
    f = StatisticalOutlierFilter()
    f.configure({"mean_k": 4, "std_dev_mult": 2})
    assert f.params.std_dev_mult == 2.0
    assert f.params.mean_k == 4


@pytest.mark.parametrize("config", [{}, {"mean_k": 10}, {"std_dev_mult": 1.0}, None])
def test_configure_missing_fields(config):
    with pytest.raises(ConfigurationError):
        StatisticalOutlierFilter().configure(config)


@pytest.mark.parametrize(
    "config",
    [
        {"mean_k": 2.5, "std_dev_mult": 1.0},
        {"mean_k": True, "std_dev_mult": 1.0},
        {"mean_k": 10, "std_dev_mult": "one"},
    ],
)
def test_configure_bad_types(config):
    with pytest.raises(ConfigurationError):
        StatisticalOutlierFilter().configure(config)


def test_identical_points_are_all_kept():
    cloud = PointCloud(np.zeros((100, 3)))
    out = StatisticalOutlierFilter().filter(cloud)
    assert len(out) == 100


def test_far_outlier_is_removed():
    grid, pts = grid_with_outlier()
    f = StatisticalOutlierFilter(StatisticalOutlierParams(mean_k=4, std_dev_mult=1.0))
    out = f.filter(PointCloud(pts))
    np.testing.assert_array_equal(out.points, grid)


def test_fields_follow_the_kept_points():
    _, pts = grid_with_outlier()
    intensity = np.arange(len(pts), dtype=float)
    f = StatisticalOutlierFilter(StatisticalOutlierParams(mean_k=4, std_dev_mult=1.0))
    out = f.filter(PointCloud(pts, {"intensity": intensity}))
    np.testing.assert_array_equal(out.field("intensity"), intensity[:-1])


def test_non_finite_points_are_removed():
    grid, _ = grid_with_outlier()
    pts = np.vstack([grid, [[np.nan, 0.0, 0.0]]])
    out = StatisticalOutlierFilter(StatisticalOutlierParams(mean_k=4)).filter(PointCloud(pts))
    assert np.isfinite(out.points).all()
    assert len(out) <= len(grid)


def test_empty_cloud():
    out = StatisticalOutlierFilter().filter(PointCloud())
    assert len(out) == 0


def test_single_point_is_kept():
    out = StatisticalOutlierFilter().filter(PointCloud(np.array([[1.0, 2.0, 3.0]])))
    np.testing.assert_array_equal(out.points, [[1.0, 2.0, 3.0]])


def test_non_positive_mean_k_raises():
    f = StatisticalOutlierFilter(StatisticalOutlierParams(mean_k=0))
    with pytest.raises(FilterError):
        f.filter(PointCloud(np.zeros((5, 3))))


def test_output_is_subset_of_input():
    rng = np.random.default_rng(7)
    pts = rng.normal(size=(150, 3))
    out = StatisticalOutlierFilter().filter(PointCloud(pts))
    assert len(out) <= len(pts)
    input_rows = {tuple(row) for row in pts}
    assert all(tuple(row) in input_rows for row in out.points)


def test_created_from_registry():
    f = create_filter(CLOUD_FILTER_BASE, class_name(StatisticalOutlierFilter))
    assert isinstance(f, StatisticalOutlierFilter)
    assert f.params.mean_k == StatisticalOutlierParams().mean_k