import pytest
from tune_finder.tools.trajectory_buffer import TrajectoryBuffer


@pytest.mark.parametrize("capacity", [1, 2, 5, 100])
def test_overflow_hard_resets(capacity):
    buffer = TrajectoryBuffer(capacity)
    for i in range(capacity + 1):
        buffer.append(float(i))

    assert len(buffer) == 1
    assert buffer.points == [float(capacity)]
    assert buffer.overflow_count == 1

def test_fills_up_to_capacity():
    buffer = TrajectoryBuffer(3)
    lengths = [buffer.append(f) for f in (100.0, 200.0, 300.0)]

    assert lengths == [1, 2, 3]
    assert buffer.is_full
    assert buffer.points == [100.0, 200.0, 300.0]

def test_never_exceeds_capacity():
    buffer = TrajectoryBuffer(4)
    for i in range(50):
        buffer.append(i)
        assert len(buffer) <= 4

def test_reset_empties():
    buffer = TrajectoryBuffer(10)
    buffer.append(440.0)
    buffer.reset()
    assert len(buffer) == 0
    assert buffer.points == []

def test_points_is_a_copy():
    buffer = TrajectoryBuffer(10)
    buffer.append(440.0)
    points = buffer.points
    points.append(1.0)
    assert buffer.points == [440.0]

def test_zero_points_are_kept():
    buffer = TrajectoryBuffer(10)
    buffer.append(0.0)
    buffer.append(523.25)
    assert buffer.points == [0.0, 523.25]

def test_duration():
    buffer = TrajectoryBuffer(10)
    for _ in range(7):
        buffer.append(1.0)
    assert buffer.duration_ms(100) == 700

def test_invalid_capacity():
    with pytest.raises(ValueError):
        TrajectoryBuffer(0)
