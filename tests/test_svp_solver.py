import numpy as np
import pytest

from svp_planning import svp_solver, utils, policy
from svp_planning.svp_solver import SVPOptions, SVPSolver, ConfigurationError
from svp_planning.modeling.mdp import TabularMDP, ModelContractError
from svp_planning.modeling.pendulum import InvertedPendulum

from conftest import ListMDP


@pytest.mark.parametrize('kwargs', [dict(p=0.0), dict(p=-0.1), dict(p=1.2),
									dict(discount=1.0), dict(discount=-0.1),
									dict(maxiter=0), dict(tol=-1.0), dict(n_workers=0)])
def test_invalid_options(kwargs):
	with pytest.raises(ConfigurationError):
		SVPOptions(**kwargs)


def test_init_q_shape_mismatch(two_state_mdp):
	solver = SVPSolver(two_state_mdp, SVPOptions(verbose=False))
	with pytest.raises(ConfigurationError):
		solver.run(init_q=np.zeros((3, 2)))


def test_empty_model():
	mdp = TabularMDP(np.zeros((0, 2, 1), dtype=int), np.ones((0, 2, 1)), np.zeros((0, 2)))
	with pytest.raises(ConfigurationError):
		SVPSolver(mdp, SVPOptions(verbose=False))


def test_sampling_fraction():
	rng = np.random.RandomState(0)
	masks = [svp_solver.sample_observation_mask((2500, 1000), 0.4, rng) for _ in range(5)]
	for mask in masks:
		assert mask.shape == (2500, 1000)
		assert abs(np.mean(mask) - 0.4) < 0.005
	# A new mask at every draw
	assert not np.array_equal(masks[0], masks[1])


def test_full_observation_matches_value_iteration(random_mdp):
	options = SVPOptions(p=1.0, discount=0.95, maxiter=30, tol=0.0, verbose=False)
	q_svp = SVPSolver(random_mdp, options, seed=1).run()
	q_vi, history = svp_solver.value_iteration(random_mdp, 0.95, 30)
	assert len(history) == 30
	np.testing.assert_allclose(q_svp, q_vi, atol=1e-10)


def test_full_observation_with_python_model(list_mdp):
	options = SVPOptions(p=1.0, discount=0.8, maxiter=15, tol=0.0, verbose=False)
	q_svp = SVPSolver(list_mdp, options).run()
	q_vi, _ = svp_solver.value_iteration(list_mdp, 0.8, 15)
	np.testing.assert_allclose(q_svp, q_vi, atol=1e-10)


def test_exact_backups_contract(random_mdp):
	gamma = 0.9
	_, history = svp_solver.value_iteration(random_mdp, gamma, 50)
	for prev, curr in zip(history[:-1], history[1:]):
		assert curr <= gamma * prev + 1e-12


def test_two_state_closed_form(two_state_mdp):
	q_star = np.array([[10.0, 8.0], [8.0, 10.0]])
	options = SVPOptions(p=1.0, discount=0.9, maxiter=99, tol=1e-6, verbose=False)
	solver = SVPSolver(two_state_mdp, options, seed=0)
	q = solver.run()
	assert solver.n_iter < 100
	np.testing.assert_allclose(q, q_star, atol=1e-3)


def test_constant_reward_converges_when_subsampled():
	n_state, n_act = 20, 10
	rng = np.random.RandomState(2)
	next_idx = rng.randint(0, n_state, size=(n_state, n_act, 2))
	next_prob = np.full((n_state, n_act, 2), 0.5)
	mdp = TabularMDP(next_idx, next_prob, np.full((n_state, n_act), 0.5))
	options = SVPOptions(p=0.3, discount=0.9, maxiter=500, tol=1e-8, verbose=False)
	solver = SVPSolver(mdp, options, seed=3)
	q = solver.run()
	assert solver.converged
	np.testing.assert_allclose(q, 5.0, atol=1e-6)
	assert solver.n_backups < n_state * n_act * solver.n_iter


def test_subsampled_run_is_reproducible(random_mdp):
	options = SVPOptions(p=0.5, discount=0.9, maxiter=20, tol=0.0, verbose=False)
	q_1 = SVPSolver(random_mdp, options, seed=7).run()
	q_2 = SVPSolver(random_mdp, options, seed=7).run()
	np.testing.assert_array_equal(q_1, q_2)
	assert q_1.shape == (12, 4)
	assert np.all(np.isfinite(q_1))
	lo, hi = -1 / 0.1, 1 / 0.1
	assert q_1.min() >= lo and q_1.max() <= hi


def test_iterates_are_read_only(two_state_mdp):
	q = SVPSolver(two_state_mdp, SVPOptions(maxiter=3, verbose=False)).run()
	with pytest.raises(ValueError):
		q[0, 0] = 1.0


def test_parallel_backup_matches_sequential(random_mdp):
	q = np.random.RandomState(5).normal(size=(12, 4))
	states, actions = np.divmod(np.arange(48), 4)
	seq = svp_solver.bellman_backup(random_mdp, q, states, actions, 0.9)
	par = svp_solver.bellman_backup(random_mdp, q, states, actions, 0.9, n_workers=4)
	np.testing.assert_array_equal(seq, par)


def test_backup_of_no_pair(random_mdp):
	assert svp_solver.bellman_backup(random_mdp, np.zeros((12, 4)), [], [], 0.9).shape == (0,)


def test_bad_distribution_identifies_pair():
	trans = [[[(0, 1.0)], [(1, 1.0)]], [[(1, 0.7)], [(0, 1.0)]]]
	mdp = ListMDP(trans, [[0.0, 0.0], [0.0, 0.0]])
	solver = SVPSolver(mdp, SVPOptions(p=1.0, verbose=False))
	with pytest.raises(ModelContractError) as err:
		solver.run()
	assert (err.value.state, err.value.action) == (1, 0)


def test_non_finite_reward_identifies_pair():
	trans = [[[(0, 1.0)], [(1, 1.0)]], [[(1, 1.0)], [(0, 1.0)]]]
	mdp = ListMDP(trans, [[0.0, np.inf], [0.0, 0.0]])
	with pytest.raises(ModelContractError) as err:
		svp_solver.bellman_backup(mdp, np.zeros((2, 2)), [0, 1], [1, 0], 0.9)
	assert (err.value.state, err.value.action) == (0, 1)


def test_save_path(two_state_mdp, tmp_path):
	prefix = str(tmp_path / 'run')
	options = SVPOptions(p=1.0, maxiter=5, verbose=False, save_path=prefix)
	solver = SVPSolver(two_state_mdp, options)
	q = solver.run()
	np.testing.assert_allclose(utils.load_q_matrix(prefix + '_q.csv'), q)
	stats = utils.load_stats(prefix + '_stats.json')
	assert stats['n_iter'] == 5
	assert len(stats['history']) == 5


def test_verbose_output(two_state_mdp, capsys):
	SVPSolver(two_state_mdp, SVPOptions(p=1.0, maxiter=2, verbose=True)).run()
	out = capsys.readouterr().out
	assert '[Iter 1]' in out
	assert 'Total solving time' in out


@pytest.fixture(scope='module')
def small_pendulum():
	return InvertedPendulum(n_theta=15, n_thetadot=15, n_u=9)


def test_subsampled_pendulum_close_to_value_iteration(small_pendulum):
	gamma = 0.8
	q_vi, _ = svp_solver.value_iteration(small_pendulum, gamma, 80)
	options = SVPOptions(p=0.7, discount=gamma, maxiter=80, tol=0.0, verbose=False)
	solver = SVPSolver(small_pendulum, options, seed=11)
	q_svp = solver.run()
	scale = np.max(np.abs(q_vi))
	assert np.max(np.abs(q_svp - q_vi)) < 0.1 * scale
	assert np.mean(np.abs(q_svp - q_vi)) < 0.02 * scale

	pol_svp = policy.extract_policy(q_svp)
	pol_vi = policy.extract_policy(q_vi)
	assert np.mean(pol_svp == pol_vi) >= 0.7
	# Acting greedily w.r.t. the estimate loses little w.r.t. the optimal Q
	loss = np.max(q_vi, axis=1) - q_vi[np.arange(q_vi.shape[0]), pol_svp]
	assert np.max(loss) < 0.02 * scale
	assert solver.n_backups < 0.8 * q_vi.size * solver.n_iter


@pytest.mark.parametrize('seed', range(5))
def test_non_finite_reward_detected_before_planning(seed):
	trans = [[[(0, 1.0)], [(1, 1.0)]], [[(1, 1.0)], [(0, 1.0)]]]
	mdp = ListMDP(trans, [[1.0, np.nan], [1.0, 1.0]])
	solver = SVPSolver(mdp, SVPOptions(p=0.3, maxiter=50, verbose=False), seed=seed)
	with pytest.raises(ModelContractError) as err:
		solver.run()
	assert (err.value.state, err.value.action) == (0, 1)


def test_default_options_not_shared(two_state_mdp):
	solver_1 = SVPSolver(two_state_mdp)
	solver_2 = SVPSolver(two_state_mdp)
	assert solver_1._options is not solver_2._options
	solver_1._options.p = 1.0
	assert solver_2._options.p == 0.4


@pytest.mark.parametrize('discount, maxiter', [(1.0, 10), (-0.5, 10), (0.9, 0)])
def test_value_iteration_invalid_arguments(two_state_mdp, discount, maxiter):
	with pytest.raises(ConfigurationError):
		svp_solver.value_iteration(two_state_mdp, discount, maxiter)
