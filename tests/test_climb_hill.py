"""Tests for the hill-climbing system (climb_hill.py) and the shared
single-trajectory machinery in system.py."""

import numpy as np
import pytest

from climb_hill import MAX_X, MAX_Y, MIN_X, MIN_Y, ClimbHillSystem
from system import SimulationConfig


class TestMetricAndSampling:
    def test_distance_symmetric_and_zero_on_self(self, hill):
        for _ in range(50):
            a = hill.random_state()
            b = hill.random_state()
            assert hill.distance(a, b) == pytest.approx(hill.distance(b, a))
            assert hill.distance(a, a) == 0.0

    def test_distance_ignores_height(self, hill):
        a = np.array([0.0, 0.0, 5.0])
        b = np.array([3.0, 4.0, -7.0])
        assert hill.distance(a, b) == pytest.approx(5.0)

    def test_random_state_within_bounds_and_height_set(self, hill):
        for _ in range(200):
            s = hill.random_state()
            assert MIN_X <= s[0] <= MAX_X
            assert MIN_Y <= s[1] <= MAX_Y
            assert s[2] == pytest.approx(hill.hill_height(s))

    def test_random_state_fills_given_buffer(self, hill):
        out = np.zeros(3)
        assert hill.random_state(out) is out

    def test_random_control_bounds(self, hill):
        for _ in range(100):
            c = hill.random_control()
            assert -np.pi <= c[0] <= np.pi
            assert c[1] == 0.5

    def test_random_particles_in_disk(self, hill, make_state):
        center = make_state(hill, 0.2, -0.3)
        out = np.zeros(3)
        for _ in range(100):
            hill.random_particles(out, center, 0.05)
            assert hill.distance(out, center) <= 0.05 + 1e-12
            assert out[2] == pytest.approx(hill.hill_height(out))

    def test_random_particle_set_shape(self, hill, make_state):
        particles = hill.random_particle_set(make_state(hill, 0.0, 0.0), 0.1)
        assert particles.shape == (8, 3)

    def test_seeded_systems_reproduce(self):
        a = ClimbHillSystem(config=SimulationConfig(seed=3))
        b = ClimbHillSystem(config=SimulationConfig(seed=3))
        np.testing.assert_array_equal(a.random_state(), b.random_state())


class TestBoundsAndValidity:
    def test_enforce_bounds_clamps(self, hill):
        s = np.array([2.0, -3.0, 0.0])
        assert hill.enforce_bounds(s) is True
        assert s[0] == MAX_X and s[1] == MIN_Y

    def test_enforce_bounds_idempotent(self, hill):
        rng = np.random.default_rng(0)
        for _ in range(50):
            s = np.append(rng.uniform(-3, 3, size=2), 0.0)
            once = s.copy()
            hill.enforce_bounds(once)
            twice = once.copy()
            assert hill.enforce_bounds(twice) is False
            np.testing.assert_array_equal(once, twice)

    def test_interior_state_untouched(self, hill):
        s = np.array([0.1, 0.2, 0.0])
        assert hill.enforce_bounds(s) is False
        np.testing.assert_array_equal(s, [0.1, 0.2, 0.0])

    def test_valid_state_strict_interior(self, hill):
        assert hill.valid_state(np.array([0.0, 0.0, 0.0]))
        assert not hill.valid_state(np.array([MAX_X, 0.0, 0.0]))
        assert not hill.valid_state(np.array([0.0, MIN_Y, 0.0]))

    def test_valid_state_defaults_to_scratch(self, hill):
        hill.scratch().state[:] = [MIN_X, 0.0, 0.0]
        assert not hill.valid_state()
        hill.scratch().state[:] = [0.0, 0.0, 0.0]
        assert hill.valid_state()


class TestHillHelpers:
    def test_origin(self, hill):
        origin = np.zeros(3)
        assert hill.hill_height(origin) == pytest.approx(0.0)
        assert hill.hill_gradient_x(origin) == pytest.approx(1.0)
        assert hill.hill_gradient_y(origin) == pytest.approx(3.0)


class TestPropagate:
    def test_single_step_scenario(self, hill, make_state):
        start = make_state(hill, 0.0, 0.0)
        result = np.zeros(3)
        outcome = hill.propagate(start, np.array([0.0, 0.5]), 1, 1, result)
        assert outcome.valid is True
        assert outcome.duration == pytest.approx(0.01)
        assert result[0] == pytest.approx(0.0025)
        assert result[1] == pytest.approx(0.0)
        assert result[2] == pytest.approx(hill.hill_height(result))

    def test_zero_steps_is_identity(self, hill, make_state):
        start = make_state(hill, 0.4, -0.2)
        result = np.zeros(3)
        outcome = hill.propagate(start, np.array([1.0, 0.5]), 0, 0, result)
        assert outcome.valid is True
        assert outcome.duration == 0.0
        np.testing.assert_array_equal(result[:2], start[:2])

    def test_step_count_within_bounds(self, hill, make_state):
        start = make_state(hill, 0.0, 0.0)
        result = np.zeros(3)
        for _ in range(30):
            outcome = hill.propagate(start, np.array([0.3, 0.5]), 2, 5, result)
            steps = round(outcome.duration / 0.01)
            assert 2 <= steps <= 5

    def test_hitting_wall_invalidates_but_completes(self, hill, make_state):
        start = make_state(hill, 1.45, 0.0)
        result = np.zeros(3)
        outcome = hill.propagate(start, np.array([0.0, 0.5]), 100, 100, result)
        assert outcome.valid is False
        assert outcome.duration == pytest.approx(1.0)
        assert result[0] == MAX_X

    def test_downhill_is_faster_than_uphill(self, hill, make_state):
        start = make_state(hill, 0.0, 0.0)
        up = np.zeros(3)
        down = np.zeros(3)
        hill.propagate(start, np.array([np.pi / 2, 0.5]), 10, 10, up)
        hill.propagate(start, np.array([-np.pi / 2, 0.5]), 10, 10, down)
        assert abs(down[1] - start[1]) > abs(up[1] - start[1])
