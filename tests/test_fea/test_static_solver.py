"""Tests for the linear static solver state machine."""
from __future__ import annotations

import numpy as np
import pytest
import scipy.sparse as sp

from linear_deformation.fea.errors import FactorizationError
from linear_deformation.fea.static_solver import LinearStaticSolver, SolverState


def _spd_tridiagonal(n: int) -> sp.csr_matrix:
    main = 2.0 * np.ones(n)
    off = -1.0 * np.ones(n - 1)
    return sp.diags([off, main, off], [-1, 0, 1], format="csr")


class TestStateMachine:
    def test_initial_state(self):
        solver = LinearStaticSolver(_spd_tridiagonal(3), np.ones(3))
        assert solver.state is SolverState.ASSEMBLED

    def test_transitions(self):
        solver = LinearStaticSolver(_spd_tridiagonal(3), np.ones(3))
        solver.factorize()
        assert solver.state is SolverState.FACTORIZED
        solver.solve()
        assert solver.state is SolverState.SOLVED

    def test_solve_before_factorize(self):
        solver = LinearStaticSolver(_spd_tridiagonal(3), np.ones(3))
        with pytest.raises(RuntimeError):
            solver.solve()

    def test_factorize_is_chainable(self):
        U = LinearStaticSolver(_spd_tridiagonal(2), [1.0, 0.0]).factorize().solve()
        np.testing.assert_allclose(U, [2.0 / 3.0, 1.0 / 3.0])


class TestSolve:
    def test_matches_dense_solution(self):
        rng = np.random.default_rng(0)
        A = rng.standard_normal((30, 30))
        K = sp.csr_matrix(A @ A.T + 30.0 * np.eye(30))
        F = rng.standard_normal(30)
        U = LinearStaticSolver(K, F).factorize().solve()
        np.testing.assert_allclose(U, np.linalg.solve(K.toarray(), F), rtol=1e-10)

    def test_resolve_is_bitwise_identical(self):
        K = _spd_tridiagonal(50)
        F = np.linspace(-1.0, 1.0, 50)
        solver = LinearStaticSolver(K, F).factorize()
        U1 = solver.solve()
        U2 = solver.solve()
        assert np.array_equal(U1, U2)

    def test_returned_vector_is_a_copy(self):
        solver = LinearStaticSolver(_spd_tridiagonal(3), np.ones(3)).factorize()
        U = solver.solve()
        U[:] = 0.0
        assert solver.elastic_work() > 0.0

    def test_elastic_work(self):
        K = sp.csr_matrix(np.array([[4.0]]))
        solver = LinearStaticSolver(K, [2.0]).factorize()
        U = solver.solve()
        assert U[0] == pytest.approx(0.5)
        assert solver.elastic_work(U) == pytest.approx(0.5)

    def test_elastic_work_needs_solution(self):
        solver = LinearStaticSolver(_spd_tridiagonal(3), np.ones(3))
        with pytest.raises(RuntimeError):
            solver.elastic_work()

    def test_empty_system(self):
        solver = LinearStaticSolver(sp.csr_matrix((0, 0)), np.zeros(0))
        U = solver.factorize().solve()
        assert U.shape == (0,)
        assert solver.elastic_work(U) == 0.0


class TestFactorizationErrors:
    def test_singular_free_free_stiffness(self):
        K = sp.csr_matrix(np.array([[1.0, -1.0], [-1.0, 1.0]]))
        with pytest.raises(FactorizationError):
            LinearStaticSolver(K, [1.0, -1.0]).factorize()

    def test_indefinite_matrix(self):
        K = sp.csr_matrix(np.diag([2.0, -1.0, 3.0]))
        with pytest.raises(FactorizationError, match="not positive definite"):
            LinearStaticSolver(K, np.ones(3)).factorize()

    def test_zero_matrix(self):
        with pytest.raises(FactorizationError):
            LinearStaticSolver(sp.csr_matrix((2, 2)), np.ones(2)).factorize()

    def test_state_unchanged_after_failure(self):
        solver = LinearStaticSolver(sp.csr_matrix(np.diag([1.0, -1.0])), np.ones(2))
        with pytest.raises(FactorizationError):
            solver.factorize()
        assert solver.state is SolverState.ASSEMBLED

    def test_stiff_then_soft_chain_is_accepted(self):
        """Springs k1 = 1e13 and k2 = 1 in series: positive definite."""
        k1, k2 = 1e13, 1.0
        K = sp.csr_matrix(np.array([[k1 + k2, -k2], [-k2, k2]]))
        solver = LinearStaticSolver(K, [0.0, 1.0])
        U = solver.factorize().solve()
        assert solver.state is SolverState.SOLVED
        np.testing.assert_allclose(U, [1.0 / k1, 1.0 / k1 + 1.0 / k2], rtol=1e-6)

    def test_soft_spring_left_floating_is_rejected(self):
        # same contrast, but the soft end has no support
        K = sp.csr_matrix(np.array([
            [1e13, -1e13, 0.0],
            [-1e13, 1e13 + 1.0, -1.0],
            [0.0, -1.0, 1.0],
        ]))
        with pytest.raises(FactorizationError):
            LinearStaticSolver(K, np.zeros(3)).factorize()

    def test_shape_mismatch(self):
        with pytest.raises(ValueError):
            LinearStaticSolver(_spd_tridiagonal(3), np.ones(2))
