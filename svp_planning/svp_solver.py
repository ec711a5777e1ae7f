import time
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from .modeling.mdp import check_model_batch, PROB_SUM_TOL
from .matrix_estimation import complete_matrix, ETA, SV_TOL
from . import utils


class ConfigurationError(RuntimeError):
	pass


#Class for setting up options for the planning problem
class SVPOptions:
	def __init__(self, p=0.4, discount=0.9, maxiter=100, tol=1e-4,
					eta=ETA, sv_tol=SV_TOL, clip=True, n_workers=1,
					verbose=True, save_path=None):
		"""
		:param p: probability of observing each state-action pair at an iteration type: float
		:param discount: discount factor type: float
		:param maxiter: max number of iterations type: integer
		:param tol: stop when the max absolute change of Q is below tol type: float
		:param eta: slack on the singular value threshold of the matrix estimation
		:param sv_tol: relative numerical tolerance on the singular values
		:param clip: clamp the estimate into the range implied by the rewards
		:param n_workers: number of threads for the Bellman backups
		:param verbose: Enable some logging
		:param save_path: if not None, prefix of the files where the final Q and stats are saved
		"""
		self.p = p
		self.discount = discount
		self.maxiter = maxiter
		self.tol = tol
		self.eta = eta
		self.sv_tol = sv_tol
		self.clip = clip
		self.n_workers = n_workers
		self.verbose = verbose
		self.save_path = save_path
		if not (p > 0 and p <= 1):
			raise ConfigurationError("observation probability should be in (0, 1]")
		if not (discount >= 0 and discount < 1):
			raise ConfigurationError("discount factor should be between 0 and 1")
		if maxiter <= 0:
			raise ConfigurationError("maxiter should be larger than 0")
		if not tol >= 0:
			raise ConfigurationError("tol should be non-negative")
		if eta < 0 or sv_tol < 0:
			raise ConfigurationError("eta and sv_tol should be non-negative")
		if n_workers < 1:
			raise ConfigurationError("n_workers should be at least 1")


def sample_observation_mask(shape, p, rng):
	""" Each entry is observed independently with probability p
	"""
	return rng.random_sample(shape) < p


def bellman_backup(mdp, q, states, actions, discount, n_workers=1):
	""" Exact one-step Bellman backup of the pairs (states[k], actions[k])
		sum_s' P(s'|s,a) * (r(s,a) + discount * max_a' q(s',a'))
		q is only read. With n_workers > 1 the pairs are split in contiguous
		chunks evaluated on a thread pool, which gives the same result.
	"""
	states = np.asarray(states, dtype=np.int64)
	actions = np.asarray(actions, dtype=np.int64)
	if states.shape[0] == 0:
		return np.zeros(0)
	v_next = np.max(q, axis=1)

	def backup_chunk(chunk):
		s_c, a_c = chunk
		next_idx, next_prob = mdp.batch_transition(s_c, a_c)
		rew = np.asarray(mdp.batch_reward(s_c, a_c), dtype=np.float64)
		next_idx = np.asarray(next_idx).reshape(s_c.shape[0], -1)
		next_prob = np.asarray(next_prob, dtype=np.float64).reshape(s_c.shape[0], -1)
		check_model_batch(s_c, a_c, next_idx, next_prob, rew, q.shape[0], PROB_SUM_TOL)
		safe_idx = np.where(next_prob > 0, next_idx, 0)
		return np.sum(next_prob * (rew[:, None] + discount * v_next[safe_idx]), axis=1)

	if n_workers == 1 or states.shape[0] < 2 * n_workers:
		return backup_chunk((states, actions))
	chunks = list(zip(np.array_split(states, n_workers), np.array_split(actions, n_workers)))
	with ThreadPoolExecutor(max_workers=n_workers) as executor:
		res = list(executor.map(backup_chunk, chunks))
	return np.concatenate(res)


def value_iteration(mdp, discount, maxiter, tol=0.0, init_q=None, verbose=False):
	""" Standard value iteration, every pair is backed up at every iteration
		Return the final Q and the max absolute change at each iteration
	"""
	if not (discount >= 0 and discount < 1):
		raise ConfigurationError("discount factor should be between 0 and 1")
	if maxiter <= 0:
		raise ConfigurationError("maxiter should be larger than 0")
	n_state, n_act = mdp.n_state, mdp.n_act
	q = np.zeros((n_state, n_act)) if init_q is None else np.array(init_q, dtype=np.float64)
	states, actions = np.divmod(np.arange(n_state * n_act), n_act)
	history = list()
	for i in range(maxiter):
		q_new = bellman_backup(mdp, q, states, actions, discount).reshape(n_state, n_act)
		diff = float(np.max(np.abs(q_new - q)))
		history.append(diff)
		q = q_new
		if verbose:
			print("[Iter {}]: Max diff {}".format(i, diff))
		if diff < tol:
			break
	return q, history


class SVPSolver:
	""" Structured value-based planning: at each iteration only a random
		subset of the state-action pairs is backed up and the full Q
		matrix is recovered from this subset by matrix estimation.
	"""
	def __init__(self, mdp, options=None, seed=None):
		if mdp.n_state < 1 or mdp.n_act < 1:
			raise ConfigurationError("The model should have at least one state and one action")
		self._mdp = mdp
		self._options = SVPOptions() if options is None else options
		self._rng = np.random.RandomState(seed)
		self._reset_stats()

	def _reset_stats(self):
		self.history = list()             # Max absolute change of Q at each iteration
		self.n_iter = 0
		self.converged = False
		self.n_backups = 0                # Total number of Bellman backups
		self.total_solve_time = 0         # Total time elapsed
		self.total_backup_time = 0        # Total time for the Bellman backups
		self.total_estimation_time = 0    # Total time for the matrix estimation

	def q_bounds(self, init_q):
		""" Range of attainable Q values when starting from init_q
		"""
		r_min, r_max = self._mdp.reward_range
		gamma = self._options.discount
		lo, hi = min(0.0, r_min) / (1 - gamma), max(0.0, r_max) / (1 - gamma)
		return min(lo, float(np.min(init_q))), max(hi, float(np.max(init_q)))

	def run(self, init_q=None):
		""" Run the planning loop and return the last estimated Q matrix.
			Every iterate is a read-only array.
			:param init_q : initial Q matrix, zeros by default
		"""
		opt = self._options
		shape = (self._mdp.n_state, self._mdp.n_act)
		if init_q is None:
			init_q = np.zeros(shape)
		init_q = np.array(init_q, dtype=np.float64)
		if init_q.shape != shape:
			raise ConfigurationError("init_q has shape {} but the model is {}".format(init_q.shape, shape))
		# Also checks that every reward is finite
		bounds = self.q_bounds(init_q)
		if not opt.clip:
			bounds = None
		self._reset_stats()

		q = init_q
		q.setflags(write=False)
		curr_time = time.time()
		for i in range(opt.maxiter):
			# Pick the pairs to back up
			mask = sample_observation_mask(shape, opt.p, self._rng)
			states, actions = np.nonzero(mask)

			t_b = time.time()
			values = bellman_backup(self._mdp, q, states, actions, opt.discount, opt.n_workers)
			self.total_backup_time += time.time() - t_b

			t_e = time.time()
			q_new = complete_matrix(states, actions, values, opt.p, shape,
									eta=opt.eta, sv_tol=opt.sv_tol, bounds=bounds)
			q_new.setflags(write=False)
			self.total_estimation_time += time.time() - t_e

			diff = float(np.max(np.abs(q_new - q)))
			self.history.append(diff)
			self.n_backups += states.shape[0]
			self.n_iter = i + 1
			q = q_new
			if opt.verbose:
				print("[Iter {}]: Backed up {} pairs, Max diff {}".format(i, states.shape[0], diff))
			if diff < opt.tol:
				self.converged = True
				break
		self.total_solve_time += time.time() - curr_time

		if opt.verbose:
			print('[Total solving time : {}]'.format(self.total_solve_time))
			print('[Backup time : {}s, Estimation time : {}s]'.format(self.total_backup_time,
																	self.total_estimation_time))
			print('[Converged : {} after {} iterations]'.format(self.converged, self.n_iter))
		if opt.save_path is not None:
			utils.save_q_matrix(opt.save_path + '_q.csv', q)
			utils.save_stats(opt.save_path + '_stats.json', self.stats())
		return q

	def stats(self):
		opt = self._options
		return {'p' : opt.p, 'discount' : opt.discount, 'maxiter' : opt.maxiter, 'tol' : opt.tol,
				'n_state' : self._mdp.n_state, 'n_act' : self._mdp.n_act,
				'n_iter' : self.n_iter, 'converged' : self.converged,
				'n_backups' : self.n_backups, 'history' : self.history,
				'total_solve_time' : self.total_solve_time,
				'total_backup_time' : self.total_backup_time,
				'total_estimation_time' : self.total_estimation_time}
