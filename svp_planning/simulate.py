import numpy as np


def simulate_policy(mdp, policy, init_state, horizon, seed=None, most_likely=False, rng=None):
	""" Roll a deterministic policy forward under the model dynamics
		:param mdp : the model, its true transition and reward functions are used
		:param policy : array such that policy[s] is the action picked in state s
		:param init_state : the initial state index
		:param horizon : the number of steps
		:param seed : seed of the random generator used to sample the next states
		:param most_likely : if True, go to the most probable next state instead of sampling
		:return : the visited states (horizon+1 of them), the actions and the rewards
	"""
	rng = np.random.RandomState(seed) if rng is None else rng
	state = int(init_state)
	states, actions, rewards = [state], list(), list()
	for _ in range(horizon):
		act = int(policy[state])
		actions.append(act)
		rewards.append(mdp.reward(state, act))
		distr = mdp.transition(state, act)
		next_states = np.array([n_s for n_s, _ in distr])
		probs = np.array([p for _, p in distr])
		if most_likely or next_states.shape[0] == 1:
			state = int(next_states[np.argmax(probs)])
		else:
			state = int(rng.choice(next_states, p=probs / np.sum(probs)))
		states.append(state)
	return states, actions, rewards


def simulate_policy_runs(mdp, policy, init_states, horizon, seed=None, most_likely=False):
	""" Simulate the policy from each initial state
		Return the list of state-action sequences and the list of reward sequences
	"""
	rng = np.random.RandomState(seed)
	res_traj = list()
	rew_list = list()
	for init_state in init_states:
		states, actions, rewards = simulate_policy(mdp, policy, init_state, horizon,
												most_likely=most_likely, rng=rng)
		res_traj.append(list(zip(states[:-1], actions)))
		rew_list.append(rewards)
	return res_traj, rew_list


def discounted_return(rewards, discount):
	return float(sum(r * discount ** i for i, r in enumerate(rewards)))
