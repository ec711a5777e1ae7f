#!/usr/bin/env python
# coding: utf-8

import matplotlib.pyplot as plt
import numpy as np

from svp_planning import svp_solver, policy, simulate, plot_result
from svp_planning.modeling.pendulum import InvertedPendulum


# Build the discretized pendulum
pendulum = InvertedPendulum(n_theta=50, n_thetadot=50, n_u=1000)

# Options for the solver
discount = 0.9
maxiter = 200
options_svp = svp_solver.SVPOptions(p=0.4, discount=discount, maxiter=maxiter, tol=1e-3,
                                    verbose=True, save_path='pendulum_svp')
options_full = svp_solver.SVPOptions(p=1.0, discount=discount, maxiter=maxiter, tol=1e-3,
                                     verbose=False)

# Plan with subsampled backups and with all the backups
solver_svp = svp_solver.SVPSolver(pendulum, options=options_svp, seed=201)
q_svp = solver_svp.run()
solver_full = svp_solver.SVPSolver(pendulum, options=options_full, seed=201)
q_full = solver_full.run()
print('[Max error of SVP w.r.t. value iteration : {}]'.format(np.max(np.abs(q_svp - q_full))))
print('[Number of backups SVP : {}, value iteration : {}]'.format(solver_svp.n_backups, solver_full.n_backups))

# Greedy policies
pol_svp = policy.extract_policy(q_svp)
pol_full = policy.extract_policy(q_full)
print('[Fraction of states with the same action : {}]'.format(np.mean(pol_svp == pol_full)))

# Check that the learned policy brings the pendulum up
init_state = pendulum.state_index(np.pi / 4, 0.0)
for name, pol in (('SVP', pol_svp), ('Value iteration', pol_full)):
    states, actions, rewards = simulate.simulate_policy(pendulum, pol, init_state, 100, seed=201)
    theta_end, thetadot_end = pendulum.state_values(states[-1])
    print('[{}] Discounted return : {}, final state : ({}, {})'.format(
            name, simulate.discounted_return(rewards, discount), theta_end, thetadot_end))

# Convergence of both schemes
res = plot_result.collect_result('SVP p=0.4', solver_svp.history, color='red')
plot_result.collect_result('Value iteration', solver_full.history, color='blue',
                           linestyle='dashed', save_result=res)
fig = plt.figure()
plot_result.plot_convergence(fig, res)
plt.show()
