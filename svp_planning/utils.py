import json

import numpy as np


def save_q_matrix(path, q):
	""" Save Q as a plain csv file, rows are states and columns are actions
	"""
	np.savetxt(path, np.asarray(q), delimiter=',')


def load_q_matrix(path):
	return np.loadtxt(path, delimiter=',', ndmin=2)


def _to_builtin(val):
	if isinstance(val, dict):
		return {str(k) : _to_builtin(v) for k, v in val.items()}
	if isinstance(val, (list, tuple)):
		return [_to_builtin(v) for v in val]
	if isinstance(val, np.ndarray):
		return val.tolist()
	if isinstance(val, np.generic):
		return val.item()
	return val


def save_stats(path, stats):
	""" Save a dictionary of statistics of a run as a json file
	"""
	with open(path, 'w') as f:
		json.dump(_to_builtin(stats), f, indent=4, sort_keys=True)


def load_stats(path):
	with open(path, 'r') as f:
		return json.load(f)
