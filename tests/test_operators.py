"""
Unit tests for the crossover (mate) and swap mutation operators.
"""

import unittest
from unittest import mock

import numpy as np

from tsp_elite.errors import AllocationFailure
from tsp_elite.operators import (
    MateDraws,
    SwapDraws,
    Workspace,
    mate,
    mutate,
    order_crossover,
    swap_mutation,
)
from tsp_elite.parallel import WorkerPool
from tsp_elite.population import Population, is_permutation
from tsp_elite.rng import LCG


def random_population(size, n, seed=0):
    gen = np.random.default_rng(seed)
    pop = Population(size, n)
    for i in range(size):
        pop.tours[i] = gen.permutation(n)
    return pop


class TestOrderCrossover(unittest.TestCase):
    def setUp(self):
        gen = np.random.default_rng(7)
        self.n = 12
        self.parent_a = gen.permutation(self.n).tolist()
        self.parent_b = gen.permutation(self.n).tolist()

    def test_child_properties_for_every_cut(self):
        for pos in range(self.n + 1):
            child = order_crossover(self.parent_a, self.parent_b, pos)
            self.assertTrue(is_permutation(child, self.n))
            self.assertEqual(child[:pos], self.parent_a[:pos])
            placed = set(self.parent_a[:pos])
            self.assertEqual(child[pos:], [c for c in self.parent_b if c not in placed])

    def test_cut_at_zero_copies_parent_b(self):
        self.assertEqual(order_crossover(self.parent_a, self.parent_b, 0), self.parent_b)

    def test_cut_at_end_copies_parent_a(self):
        self.assertEqual(order_crossover(self.parent_a, self.parent_b, self.n), self.parent_a)

    def test_hand_worked_example(self):
        a = [0, 1, 2, 3, 4]
        b = [4, 3, 2, 1, 0]
        self.assertEqual(order_crossover(a, b, 2), [0, 1, 4, 3, 2])

    def test_same_parent_gives_parent(self):
        for pos in (0, 3, self.n):
            self.assertEqual(order_crossover(self.parent_a, self.parent_a, pos), self.parent_a)


class TestMate(unittest.TestCase):
    def setUp(self):
        self.n = 20
        self.size = 50
        self.elite = 5
        self.source = random_population(self.size, self.n, seed=3)

    def _draws(self, seed=11):
        return MateDraws.from_rng(LCG(seed), self.size - self.elite, self.elite, self.n)

    def test_draw_ranges(self):
        draws = self._draws()
        self.assertEqual(len(draws), self.size - self.elite)
        self.assertTrue((draws.parent_a < self.elite).all())
        self.assertTrue((draws.parent_b < self.elite).all())
        self.assertTrue(((draws.pos >= 0) & (draws.pos < self.n)).all())

    def test_draw_order_is_a_b_pos_per_child(self):
        rng = LCG(11)
        raw = [rng.next() for _ in range(6)]
        draws = self._draws(11)
        self.assertEqual(int(draws.parent_a[0]), raw[0] % self.elite)
        self.assertEqual(int(draws.parent_b[0]), raw[1] % self.elite)
        self.assertEqual(int(draws.pos[0]), raw[2] % self.n)
        self.assertEqual(int(draws.parent_a[1]), raw[3] % self.elite)

    def test_children_match_single_crossover(self):
        draws = self._draws()
        target = Population(self.size, self.n)
        target.tours[:] = -1
        mate(self.source, target, self.elite, draws)
        for m in range(len(draws)):
            expected = order_crossover(
                self.source.tours[draws.parent_a[m]].tolist(),
                self.source.tours[draws.parent_b[m]].tolist(),
                int(draws.pos[m]),
            )
            self.assertEqual(target.tours[self.elite + m].tolist(), expected)
        # Elite rows of the target are untouched.
        self.assertTrue((target.tours[: self.elite] == -1).all())

    def test_worker_count_does_not_change_children(self):
        draws = self._draws()
        results = []
        for workers in (1, 2, 4, 7):
            target = Population(self.size, self.n)
            with WorkerPool(workers) as pool:
                workspace = Workspace(len(draws), self.n, pool.workers)
                mate(self.source, target, self.elite, draws, pool, workspace)
            results.append(target.tours[self.elite:].copy())
        for other in results[1:]:
            np.testing.assert_array_equal(results[0], other)

    def test_workspace_reuse_across_calls(self):
        draws = self._draws()
        with WorkerPool(3) as pool:
            workspace = Workspace(len(draws), self.n, pool.workers)
            first = Population(self.size, self.n)
            second = Population(self.size, self.n)
            mate(self.source, first, self.elite, draws, pool, workspace)
            mate(self.source, second, self.elite, draws, pool, workspace)
        np.testing.assert_array_equal(first.tours[self.elite:], second.tours[self.elite:])

    def test_source_and_target_must_differ(self):
        with self.assertRaises(ValueError):
            mate(self.source, self.source, self.elite, self._draws())


class TestMutation(unittest.TestCase):
    def test_swap_is_a_transposition(self):
        n = 15
        pop = random_population(30, n, seed=5)
        before = pop.tours.copy()
        draws = SwapDraws.from_rng(LCG(8), 30, n)
        mutate(pop, 0, draws)
        for m in range(30):
            a, b = int(draws.a_pos[m]), int(draws.b_pos[m])
            self.assertEqual(sorted(pop.tours[m].tolist()), sorted(before[m].tolist()))
            changed = np.flatnonzero(pop.tours[m] != before[m])
            if a == b:
                self.assertEqual(changed.size, 0)
            else:
                self.assertEqual(sorted(changed.tolist()), sorted([a, b]))
                self.assertEqual(pop.tours[m, a], before[m, b])
                self.assertEqual(pop.tours[m, b], before[m, a])

    def test_equal_positions_are_a_no_op(self):
        pop = Population.identity(2, 6)
        draws = SwapDraws(a_pos=np.array([3, 0]), b_pos=np.array([3, 5]))
        mutate(pop, 0, draws)
        self.assertEqual(pop.tours[0].tolist(), [0, 1, 2, 3, 4, 5])
        self.assertEqual(pop.tours[1].tolist(), [5, 1, 2, 3, 4, 0])

    def test_rows_before_start_are_untouched(self):
        pop = Population.identity(10, 8)
        draws = SwapDraws.from_rng(LCG(3), 6, 8)
        mutate(pop, 4, draws, WorkerPool(3))
        for m in range(4):
            self.assertEqual(pop.tours[m].tolist(), list(range(8)))

    def test_worker_count_does_not_change_result(self):
        draws = SwapDraws.from_rng(LCG(21), 40, 9)
        single = random_population(40, 9, seed=2)
        multi = random_population(40, 9, seed=2)
        mutate(single, 0, draws, WorkerPool(1))
        with WorkerPool(4) as pool:
            mutate(multi, 0, draws, pool)
        np.testing.assert_array_equal(single.tours, multi.tours)

    def test_swap_mutation_helper(self):
        self.assertEqual(swap_mutation([0, 1, 2, 3], 0, 3), [3, 1, 2, 0])
        self.assertEqual(swap_mutation([0, 1, 2, 3], 2, 2), [0, 1, 2, 3])


class TestWorkspace(unittest.TestCase):
    def test_masks_cover_largest_chunk(self):
        ws = Workspace(10, 6, 3)
        self.assertEqual(ws.seen(0, 4).shape, (4, 6))
        self.assertFalse(ws.seen(2, 4).any())

    def test_out_of_memory_is_allocation_failure(self):
        with mock.patch.object(np, "zeros", side_effect=MemoryError):
            with self.assertRaises(AllocationFailure) as ctx:
                Workspace(1000, 250, 4)
        self.assertEqual(ctx.exception.details["workers"], 4)


if __name__ == "__main__":
    unittest.main()
