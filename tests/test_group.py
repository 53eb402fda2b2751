import numpy as np
import pytest

from noether.filtering.base import (
    ConfigurationError,
    FilterBase,
    FilterError,
    register_filter,
)
from noether.filtering.data import PointCloud
from noether.filtering.group import FilterGroup, FilterInfo, load_filter_infos

BASE = "tests.group.Base"


def _number(config, key):
    if not isinstance(config, dict) or key not in config:
        raise ConfigurationError(f"missing {key}")
    value = config[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"{key} must be a number")
    return float(value)


@register_filter(BASE, "Scale")
class Scale(FilterBase):
    def configure(self, config):
        self.factor = _number(config, "factor")

    def filter(self, data):
        return PointCloud(data.points * self.factor, data.fields)


@register_filter(BASE, "Offset")
class Offset(FilterBase):
    def configure(self, config):
        self.delta = _number(config, "delta")

    def filter(self, data):
        return PointCloud(data.points + self.delta, data.fields)


@register_filter(BASE, "Fail")
class Fail(FilterBase):
    def configure(self, config):
        pass

    def filter(self, data):
        raise FilterError("always fails")


def _group_config(filters, continue_on_failure=False):
    return {
        "continue_on_failure": continue_on_failure,
        "verbosity_on": True,
        "filters": filters,
    }


SCALE = {"type": "Scale", "name": "scale", "config": {"factor": 2.0}}
OFFSET = {"type": "Offset", "name": "offset", "config": {"delta": 1.0}}
FAIL = {"type": "Fail", "name": "fail"}


def _group(filters, continue_on_failure=False):
    group = FilterGroup(BASE)
    group.init(_group_config(filters, continue_on_failure))
    return group


def _cloud():
    return PointCloud([[1.0, 1.0, 1.0], [0.0, 2.0, -1.0]])


def test_load_filter_infos():
    infos = load_filter_infos([SCALE, FAIL])
    assert infos == [
        FilterInfo("Scale", "scale", {"factor": 2.0}),
        FilterInfo("Fail", "fail", None),
    ]


def test_load_filter_infos_requires_a_list():
    with pytest.raises(ConfigurationError):
        load_filter_infos({"type": "Scale", "name": "scale"})


def test_load_filter_infos_rejects_empty_list():
    with pytest.raises(ConfigurationError):
        load_filter_infos([])


def test_load_filter_infos_requires_name():
    with pytest.raises(ConfigurationError):
        load_filter_infos([{"type": "Scale"}])


def test_filters_run_in_configured_order():
    group = _group([SCALE, OFFSET])
    result = group.apply_filters(PointCloud([[1.0, 1.0, 1.0]]))
    np.testing.assert_array_equal(result.points, [[3.0, 3.0, 3.0]])


def test_selected_filters_only():
    cloud = _cloud()
    group = _group([SCALE, OFFSET])
    result = group.apply_filters(cloud, ["offset"])
    np.testing.assert_array_equal(result.points, cloud.points + 1.0)


def test_empty_selection_uses_all_filters():
    cloud = _cloud()
    group = _group([OFFSET])
    result = group.apply_filters(cloud, [])
    np.testing.assert_array_equal(result.points, cloud.points + 1.0)


def test_input_is_not_modified():
    cloud = _cloud()
    before = cloud.points.copy()
    _group([SCALE, OFFSET]).apply_filters(cloud)
    np.testing.assert_array_equal(cloud.points, before)


def test_unknown_filter_name_raises():
    group = _group([SCALE])
    with pytest.raises(FilterError, match="missing"):
        group.apply_filters(_cloud(), ["missing"])


def test_failure_aborts_without_continue():
    group = _group([SCALE, FAIL, OFFSET])
    with pytest.raises(FilterError, match="fail"):
        group.apply_filters(_cloud())


def test_failure_is_skipped_with_continue():
    cloud = _cloud()
    group = _group([FAIL, OFFSET], continue_on_failure=True)
    result = group.apply_filters(cloud)
    np.testing.assert_array_equal(result.points, cloud.points + 1.0)


def test_all_failing_with_continue_raises():
    group = _group([FAIL], continue_on_failure=True)
    with pytest.raises(FilterError):
        group.apply_filters(_cloud())


def test_no_loaded_filters_raises():
    with pytest.raises(FilterError):
        FilterGroup(BASE).apply_filters(_cloud())


def test_missing_required_field_raises():
    config = _group_config([SCALE])
    del config["verbosity_on"]
    with pytest.raises(ConfigurationError, match="verbosity_on"):
        FilterGroup(BASE).init(config)


def test_duplicate_filter_name_raises():
    with pytest.raises(ConfigurationError, match="already been added"):
        _group([SCALE, dict(SCALE)])


def test_unknown_filter_type_raises():
    with pytest.raises(ConfigurationError):
        _group([{"type": "Nope", "name": "nope"}])


def test_bad_filter_configuration_raises():
    with pytest.raises(ConfigurationError):
        _group([{"type": "Scale", "name": "scale", "config": {"factor": "big"}}])


def test_non_boolean_flag_disables_continue():
    group = FilterGroup(BASE)
    group.init(
        {"continue_on_failure": "yes", "verbosity_on": True, "filters": [FAIL, OFFSET]}
    )
    assert group.continue_on_failure is False
    with pytest.raises(FilterError):
        group.apply_filters(_cloud())