'''
pendulum.py
Discretized inverted pendulum. The state is the pair (angle, angular velocity)
on a regular grid, the action is a torque on a regular grid. The continuous
dynamics are integrated with one Euler step and the next state is spread on
the 4 surrounding grid points by bilinear interpolation.
'''

import numpy as np

from .mdp import TabularMDP

# Physical parameters
GRAVITY = 9.81
LENGTH = 1.0
MASS = 1.0
DAMPING = 0.1
DT = 0.1

# Discretization bounds
THETA_MAX = np.pi
THETADOT_MAX = 10.0
U_MAX = 1.0

# Reward weights
W_THETA = 1.0
W_THETADOT = 0.1
W_U = 0.001


def wrap_angle(x):
	return np.arctan2(np.sin(x), np.cos(x))


class InvertedPendulum(TabularMDP):
	""" Inverted pendulum balanced around the upright position theta = 0.
		States are flattened row-major: s = i * n_thetadot + j where i indexes
		the angle grid and j the angular velocity grid.
	"""
	def __init__(self, n_theta=50, n_thetadot=50, n_u=1000, dt=DT,
					gravity=GRAVITY, length=LENGTH, mass=MASS, damping=DAMPING):
		""" Build the grids, then the transition and reward arrays
			:param n_theta : number of grid points for the angle
			:param n_thetadot : number of grid points for the angular velocity
			:param n_u : number of torque values
			:param dt : integration step
		"""
		if n_theta < 2 or n_thetadot < 2 or n_u < 1:
			raise ValueError('The state grid needs at least 2 points per dimension and 1 action')
		self.dt = dt
		self.gravity = gravity
		self.length = length
		self.mass = mass
		self.damping = damping

		# 1. Construct the state space
		self.theta_grid = np.linspace(-THETA_MAX, THETA_MAX, n_theta)
		self.thetadot_grid = np.linspace(-THETADOT_MAX, THETADOT_MAX, n_thetadot)

		# 2. Construct the action space
		self.action_values = np.linspace(-U_MAX, U_MAX, n_u)

		# 3. Construct the transition and reward functions
		next_idx, next_prob = self._construct_transition_function()
		rewards = self._construct_reward_function()
		super().__init__(next_idx, next_prob, rewards)

	def state_values(self, state):
		""" Return the (theta, thetadot) pair of a state index
		"""
		i, j = divmod(int(state), self.thetadot_grid.shape[0])
		return self.theta_grid[i], self.thetadot_grid[j]

	def state_index(self, theta, thetadot):
		""" Return the index of the grid state closest to (theta, thetadot)
		"""
		i = int(np.argmin(np.abs(self.theta_grid - wrap_angle(theta))))
		j = int(np.argmin(np.abs(self.thetadot_grid - thetadot)))
		return i * self.thetadot_grid.shape[0] + j

	def step(self, theta, thetadot, u):
		""" One Euler step of the continuous dynamics, vectorized over the inputs
		"""
		thetaddot = (self.gravity / self.length) * np.sin(theta) \
						+ u / (self.mass * self.length ** 2) - self.damping * thetadot
		theta_next = wrap_angle(theta + self.dt * thetadot)
		thetadot_next = np.clip(thetadot + self.dt * thetaddot,
								self.thetadot_grid[0], self.thetadot_grid[-1])
		return theta_next, thetadot_next

	def _construct_transition_function(self):
		n_theta, n_thetadot = self.theta_grid.shape[0], self.thetadot_grid.shape[0]
		theta, thetadot, u = np.meshgrid(self.theta_grid, self.thetadot_grid,
											self.action_values, indexing='ij')
		theta_n, thetadot_n = self.step(theta, thetadot, u)

		# Fractional position of the next state on each grid
		i_low, w_i = self._interp_coeff(theta_n, self.theta_grid)
		j_low, w_j = self._interp_coeff(thetadot_n, self.thetadot_grid)

		# The 4 corners of the cell containing the next state
		next_idx = np.stack([i_low * n_thetadot + j_low,
							i_low * n_thetadot + j_low + 1,
							(i_low + 1) * n_thetadot + j_low,
							(i_low + 1) * n_thetadot + j_low + 1], axis=-1)
		next_prob = np.stack([(1 - w_i) * (1 - w_j),
							(1 - w_i) * w_j,
							w_i * (1 - w_j),
							w_i * w_j], axis=-1)
		n_state = n_theta * n_thetadot
		return next_idx.reshape(n_state, -1, 4).astype(np.int32), next_prob.reshape(n_state, -1, 4)

	@staticmethod
	def _interp_coeff(x, grid):
		step = grid[1] - grid[0]
		pos = np.clip((x - grid[0]) / step, 0, grid.shape[0] - 1)
		low = np.minimum(np.floor(pos).astype(np.int64), grid.shape[0] - 2)
		return low, pos - low

	def _construct_reward_function(self):
		theta, thetadot, u = np.meshgrid(self.theta_grid, self.thetadot_grid,
											self.action_values, indexing='ij')
		rew = -(W_THETA * theta ** 2 + W_THETADOT * thetadot ** 2 + W_U * u ** 2)
		return rew.reshape(-1, self.action_values.shape[0])
