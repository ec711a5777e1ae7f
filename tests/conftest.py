import numpy as np
import pytest

from svp_planning.modeling.mdp import MDP, TabularMDP


class ListMDP(MDP):
	""" MDP defined by plain python dictionaries, goes through the default
		batch methods of the base class
	"""
	def __init__(self, trans, rew):
		self._trans = trans
		self._rew = rew

	@property
	def n_state(self):
		return len(self._rew)

	@property
	def n_act(self):
		return len(self._rew[0])

	def transition(self, state, action):
		return self._trans[state][action]

	def reward(self, state, action):
		return self._rew[state][action]


@pytest.fixture
def two_state_mdp():
	# a0 stays, a1 switches state; +1 for staying in 0 or leaving 1, -1 otherwise
	next_idx = np.array([[0, 1], [1, 0]])
	next_prob = np.ones((2, 2))
	rewards = np.array([[1.0, -1.0], [-1.0, 1.0]])
	return TabularMDP(next_idx, next_prob, rewards)


@pytest.fixture
def random_mdp():
	rng = np.random.RandomState(3)
	n_state, n_act, n_supp = 12, 4, 3
	next_idx = rng.randint(0, n_state, size=(n_state, n_act, n_supp))
	next_prob = rng.random_sample((n_state, n_act, n_supp))
	next_prob /= next_prob.sum(axis=2, keepdims=True)
	rewards = rng.uniform(-1, 1, size=(n_state, n_act))
	return TabularMDP(next_idx, next_prob, rewards)


@pytest.fixture
def list_mdp():
	trans = [[[(0, 0.5), (1, 0.5)], [(2, 1.0)]],
			[[(1, 1.0)], [(0, 0.2), (2, 0.8)]],
			[[(2, 0.9), (0, 0.1)], [(1, 1.0)]]]
	rew = [[0.0, 1.0], [-0.5, 0.3], [2.0, -1.0]]
	return ListMDP(trans, rew)
