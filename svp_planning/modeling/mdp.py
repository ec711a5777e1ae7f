'''
mdp.py
An MDP Consists of:
S - A finite set of states, indexed 0 ... n_state-1
A - A finite set of actions, indexed 0 ... n_act-1
T(s_prime | s, a) - A transition function
R(s, a) - A reward function
The discount factor is not part of the model, it is given to the solver.
'''

from abc import ABC, abstractmethod

import numpy as np

# Tolerance on the sum of a transition distribution
PROB_SUM_TOL = 1e-6


class ModelContractError(RuntimeError):
	""" Raised when a model returns a transition distribution that is not a
		probability distribution or a reward that is not finite
	"""
	def __init__(self, state, action, msg):
		self.state = state
		self.action = action
		super().__init__('[State {}, Action {}] : {}'.format(state, action, msg))


class MDP(ABC):
	""" An abstract class modelling a discretized MDP.
		The solver only interacts with a model through this interface,
		so any problem (pendulum, gridworld, ...) can be solved as long as
		it exposes the number of states and actions, the transition
		distribution and the reward of every state-action pair.
	"""

	@property
	@abstractmethod
	def n_state(self):
		""" Getter method. Return the number of states in the MDP
		"""
		pass

	@property
	@abstractmethod
	def n_act(self):
		""" Getter method. Return the number of actions in the MDP
		"""
		pass

	@abstractmethod
	def transition(self, state, action):
		""" Return the distribution over next states as a list
			[(next_state_1, prob_1), (next_state_2, prob_2), ...]
		"""
		pass

	@abstractmethod
	def reward(self, state, action):
		""" Return the scalar reward of taking action in state
		"""
		pass

	@property
	def state_count(self):
		return self.n_state

	@property
	def action_count(self):
		return self.n_act

	def batch_transition(self, states, actions):
		""" Return the transition distributions of the pairs (states[k], actions[k])
			as two padded arrays next_idx, next_prob of shape (k, K), where K is
			the largest support size. Padding entries have probability 0.
		"""
		distr = [self.transition(int(s), int(a)) for s, a in zip(states, actions)]
		max_supp = max([len(d) for d in distr] + [1])
		next_idx = np.zeros((len(distr), max_supp), dtype=np.int64)
		next_prob = np.zeros((len(distr), max_supp))
		for k, d in enumerate(distr):
			for j, (n_s, prob) in enumerate(d):
				next_idx[k, j] = n_s
				next_prob[k, j] = prob
		return next_idx, next_prob

	def batch_reward(self, states, actions):
		""" Return the rewards of the pairs (states[k], actions[k])
		"""
		return np.array([self.reward(int(s), int(a)) for s, a in zip(states, actions)], dtype=np.float64)

	@property
	def reward_range(self):
		""" Return (R_min, R_max) over all the state-action pairs.
			Raise a ModelContractError if a reward is not finite
		"""
		states, actions = np.divmod(np.arange(self.n_state * self.n_act), self.n_act)
		return finite_reward_range(np.asarray(self.batch_reward(states, actions), dtype=np.float64), self.n_act)


class TabularMDP(MDP):
	""" An MDP whose transition and reward functions are stored as arrays
		:param next_idx : (S, A, K) integer array of successor states
		:param next_prob : (S, A, K) array of the corresponding probabilities
		:param rewards : (S, A) array of rewards
	"""
	def __init__(self, next_idx, next_prob, rewards):
		next_idx = np.asarray(next_idx)
		next_prob = np.asarray(next_prob, dtype=np.float64)
		rewards = np.asarray(rewards, dtype=np.float64)
		if next_idx.ndim == 2:
			next_idx = next_idx[:, :, None]
			next_prob = next_prob[:, :, None] if next_prob.ndim == 2 else next_prob
		if rewards.ndim != 2:
			raise ValueError('rewards should be a (n_state, n_act) array')
		if next_idx.shape != next_prob.shape or next_idx.shape[:2] != rewards.shape:
			raise ValueError('Inconsistent shapes: next_idx {}, next_prob {}, rewards {}'.format(
								next_idx.shape, next_prob.shape, rewards.shape))
		self._next_idx = next_idx.astype(np.int64)
		self._next_prob = next_prob
		self._rewards = rewards

	@property
	def n_state(self):
		return self._rewards.shape[0]

	@property
	def n_act(self):
		return self._rewards.shape[1]

	@property
	def rewards(self):
		return self._rewards

	def transition(self, state, action):
		return [(int(n_s), float(p)) for n_s, p in zip(self._next_idx[state, action],
													self._next_prob[state, action]) if p > 0]

	def reward(self, state, action):
		return float(self._rewards[state, action])

	def batch_transition(self, states, actions):
		return self._next_idx[states, actions], self._next_prob[states, actions]

	def batch_reward(self, states, actions):
		return self._rewards[states, actions]

	@property
	def reward_range(self):
		return finite_reward_range(self._rewards, self.n_act)


def finite_reward_range(rewards, n_act):
	""" (min, max) of the rewards, indexed row-major by (state, action)
	"""
	rew = np.ravel(rewards)
	bad_rew = ~np.isfinite(rew)
	if np.any(bad_rew):
		state, action = divmod(int(np.argmax(bad_rew)), n_act)
		raise ModelContractError(state, action, 'Reward should be finite')
	return float(np.min(rew)), float(np.max(rew))


def check_model_batch(states, actions, next_idx, next_prob, rewards, n_state, atol=PROB_SUM_TOL):
	""" Check that the transition distributions and rewards returned by a model
		for the pairs (states[k], actions[k]) satisfy the MDP contract.
		Raise a ModelContractError identifying the first offending pair.
	"""
	bad_sum = np.abs(np.sum(next_prob, axis=1) - 1.0) > atol
	bad_prob = np.any(next_prob < 0, axis=1) | ~np.all(np.isfinite(next_prob), axis=1)
	bad_idx = np.any(((next_idx < 0) | (next_idx >= n_state)) & (next_prob > 0), axis=1)
	bad_rew = ~np.isfinite(rewards)
	for err, msg in ((bad_prob, 'Transition probabilities should be finite and non-negative'),
					(bad_sum, 'Transition probabilities should sum to 1'),
					(bad_idx, 'Next state outside of [0, {})'.format(n_state)),
					(bad_rew, 'Reward should be finite')):
		if np.any(err):
			k = int(np.argmax(err))
			raise ModelContractError(int(states[k]), int(actions[k]), msg)
