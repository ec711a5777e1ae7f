import numpy as np


def extract_policy(q):
	""" Greedy deterministic policy: policy[s] = argmax_a q[s, a].
		On ties the lowest action index is picked.
	"""
	q = np.asarray(q)
	if q.ndim != 2:
		raise ValueError('Q should be a (n_state, n_act) matrix, got shape {}'.format(q.shape))
	return np.argmax(q, axis=1)


def greedy_values(q):
	return np.max(np.asarray(q), axis=1)


def policy_to_actions(policy, action_values):
	""" Map the action index chosen at each state to its real value,
		e.g. the torque of the pendulum
	"""
	return np.asarray(action_values)[np.asarray(policy)]
