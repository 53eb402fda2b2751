import pytest

from noether.filtering.base import (
    ConfigurationError,
    FilterBase,
    FilterError,
    class_name,
    create_filter,
    declared_filters,
    register_filter,
)

BASE = "tests.base.Base"


@register_filter(BASE)
class Identity(FilterBase):
    def configure(self, config):
        if config is None:
            raise ConfigurationError("configuration required")

    def filter(self, data):
        return data


@register_filter(BASE, "custom_name")
class Negate(FilterBase):
    def configure(self, config):
        pass

    def filter(self, data):
        return -data


def test_class_name_for_class_and_instance():
    expected = f"{Identity.__module__}.Identity"
    assert class_name(Identity) == expected
    assert class_name(Identity()) == expected


def test_name_property_matches_class_name():
    assert Negate().name == class_name(Negate)


def test_create_filter_by_default_name():
    first = create_filter(BASE, class_name(Identity))
    second = create_filter(BASE, class_name(Identity))
    assert isinstance(first, Identity)
    assert first is not second
    assert first.filter(7) == 7


def test_create_filter_by_custom_name():
    created = create_filter(BASE, "custom_name")
    assert created.filter(3) == -3


def test_declared_filters_sorted():
    names = declared_filters(BASE)
    assert names == sorted(names)
    assert set(names) == {class_name(Identity), "custom_name"}


def test_declared_filters_of_unknown_base_is_empty():
    assert declared_filters("tests.base.Nothing") == []


def test_create_unknown_type_raises():
    with pytest.raises(FilterError):
        create_filter(BASE, "missing")


def test_create_under_unknown_base_raises():
    with pytest.raises(FilterError):
        create_filter("tests.base.Nothing", "custom_name")


def test_reregistering_same_class_is_allowed():
    assert register_filter(BASE, "custom_name")(Negate) is Negate
    assert declared_filters(BASE).count("custom_name") == 1


def test_conflicting_registration_raises():
    with pytest.raises(ValueError):
        register_filter(BASE, "custom_name")(Identity)


def test_registering_non_filter_raises():
    with pytest.raises(TypeError):
        register_filter(BASE, "bad")(dict)


def test_filter_base_is_abstract():
    with pytest.raises(TypeError):
        FilterBase()


def test_configuration_error_is_a_filter_error():
    created = create_filter(BASE, class_name(Identity))
    with pytest.raises(FilterError) as info:
        created.configure(None)
    assert isinstance(info.value, ConfigurationError)
    assert "configuration required" in str(info.value)