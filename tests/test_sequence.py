import numpy as np
import pytest

from noether.sequence import (
    SimplePathSequencePlanner,
    find_next_nearest_path,
    flip_path,
)

SPACING = 1.0
LENGTH = 10.0


def raster(rows=4):
    return [
        [[np.array([x, r * SPACING, 0.0]) for x in (0.0, LENGTH / 2, LENGTH)]]
        for r in range(rows)
    ]


def as_transforms(paths):
    result = []
    for path in paths:
        new_path = []
        for segment in path:
            poses = []
            for point in segment:
                pose = np.eye(4)
                pose[:3, 3] = point
                poses.append(pose)
            new_path.append(poses)
        result.append(new_path)
    return result


def start(path):
    pose = np.asarray(path[0][0])
    return pose[:3, 3] if pose.shape == (4, 4) else pose


def end(path):
    pose = np.asarray(path[-1][-1])
    return pose[:3, 3] if pose.shape == (4, 4) else pose


def linked(paths):
    planner = SimplePathSequencePlanner()
    planner.set_paths(paths)
    planner.link_paths()
    return planner


def test_raster_is_linked_into_a_continuous_path():
    planner = linked(raster())
    paths = planner.paths
    indices = planner.indices
    assert sorted(indices) == list(range(4))
    hops = [np.linalg.norm(end(paths[a]) - start(paths[b])) for a, b in zip(indices, indices[1:])]
    assert np.allclose(hops, SPACING)


def test_raster_order_and_alternating_directions():
    planner = linked(raster())
    paths = planner.paths
    assert planner.indices == [3, 2, 1, 0]
    directions = [np.sign(end(paths[i])[0] - start(paths[i])[0]) for i in planner.indices]
    assert all(a == -b for a, b in zip(directions, directions[1:]))


def test_transform_poses_give_the_same_order():
    plain = linked(raster())
    transforms = linked(as_transforms(raster()))
    assert transforms.indices == plain.indices
    for a, b in zip(plain.paths, transforms.paths):
        assert np.allclose(start(a), start(b))
        assert np.allclose(end(a), end(b))


def test_empty_and_single_path():
    assert linked([]).indices == []
    single = raster(1)
    planner = linked(single)
    assert planner.indices == [0]
    assert np.allclose(start(planner.paths[0]), start(single[0]))


def test_set_paths_clears_indices():
    planner = linked(raster())
    planner.set_paths(raster(2))
    assert planner.indices == []
    assert len(planner.paths) == 2


def test_paths_property_returns_a_copy():
    planner = linked(raster())
    returned = planner.paths
    returned.clear()
    assert len(planner.paths) == 4


def test_flip_path_round_trip():
    path = [[np.array([0.0, 0.0, 0.0]), np.array([1.0, 0.0, 0.0])], [np.array([2.0, 0.0, 0.0])]]
    flipped = flip_path(path)
    assert np.allclose(start(flipped), end(path))
    assert np.allclose(end(flipped), start(path))
    again = flip_path(flipped)
    assert all(
        np.allclose(p, q) for seg_a, seg_b in zip(again, path) for p, q in zip(seg_a, seg_b)
    )


def test_find_next_nearest_path():
    paths = raster()
    assert find_next_nearest_path(paths, [0, 1], 1, False) == 2
    assert find_next_nearest_path(paths, range(4), 1, True) is None


def test_invalid_poses_are_rejected():
    planner = SimplePathSequencePlanner()
    with pytest.raises(ValueError):
        planner.set_paths([[[np.zeros(2)]]])
    with pytest.raises(ValueError):
        planner.set_paths([[[]]])