import numpy as np

# Default slack on the noise level used by the singular value threshold
ETA = 0.02
# Singular values below SV_TOL * largest singular value are always dropped
SV_TOL = 1e-10


class InvalidParameterError(ValueError):
	pass


class ShapeMismatchError(ValueError):
	pass


def estimate(sparse_entries, observation_rate, shape, eta=ETA, sv_tol=SV_TOL, bounds=None):
	""" Reconstruct a full matrix from a randomly observed subset of its entries
		:param sparse_entries : iterable of (row, col, value) triples or a (k, 3) array
		:param observation_rate : the probability with which each entry was observed
		:param shape : the (n_rows, n_cols) shape of the matrix to reconstruct
		:param eta : slack on the threshold of the singular values
		:param sv_tol : relative numerical tolerance on the singular values
		:param bounds : None or (lo, hi), the estimate is clamped into [lo, hi]
	"""
	entries = np.asarray(list(sparse_entries) if not isinstance(sparse_entries, np.ndarray) \
							else sparse_entries, dtype=np.float64).reshape(-1, 3)
	rows, cols = entries[:, 0], entries[:, 1]
	if np.any(rows != np.round(rows)) or np.any(cols != np.round(cols)):
		raise ShapeMismatchError('Observed coordinates should be integers')
	return complete_matrix(rows.astype(np.int64), cols.astype(np.int64), entries[:, 2],
							observation_rate, shape, eta=eta, sv_tol=sv_tol, bounds=bounds)


def complete_matrix(rows, cols, values, observation_rate, shape, eta=ETA, sv_tol=SV_TOL, bounds=None):
	""" Universal singular value thresholding on the observed entries
		values[k] = M[rows[k], cols[k]]. Each row is centered on the mean of
		its observed entries, the residuals are rescaled by 1/observation_rate,
		and the singular values of the resulting matrix below the expected
		spectral norm of the sampling noise are discarded. The unobserved
		entries receive their row mean plus the kept components, the observed
		entries keep their value. Rows without any observation use the mean
		of all the observed entries.
		The result is deterministic and always a finite (n_rows, n_cols) array.
	"""
	if not (observation_rate > 0 and observation_rate <= 1):
		raise InvalidParameterError('observation rate should be in (0, 1], got {}'.format(observation_rate))
	n_rows, n_cols = int(shape[0]), int(shape[1])
	if n_rows <= 0 or n_cols <= 0:
		raise ShapeMismatchError('Invalid matrix shape {}'.format(shape))
	rows = np.asarray(rows, dtype=np.int64).ravel()
	cols = np.asarray(cols, dtype=np.int64).ravel()
	values = np.asarray(values, dtype=np.float64).ravel()
	if not (rows.shape == cols.shape == values.shape):
		raise ShapeMismatchError('rows, cols and values should have the same length')
	if np.any(rows < 0) or np.any(rows >= n_rows) or np.any(cols < 0) or np.any(cols >= n_cols):
		raise ShapeMismatchError('Observed coordinates outside of a {}x{} matrix'.format(n_rows, n_cols))
	if not np.all(np.isfinite(values)):
		raise InvalidParameterError('Observed values should be finite')

	# Nothing observed -> rank-0 estimate
	if values.shape[0] == 0:
		return _clamp(np.zeros((n_rows, n_cols)), bounds)

	mask = np.zeros((n_rows, n_cols), dtype=bool)
	mask[rows, cols] = True
	obs_mat = np.zeros((n_rows, n_cols))
	obs_mat[rows, cols] = values

	# Every entry observed -> nothing to reconstruct
	if np.all(mask):
		return _clamp(obs_mat, bounds)

	# Duplicated coordinates keep the last value written
	count = np.sum(mask, axis=1)
	row_mean = np.where(count > 0, np.sum(obs_mat, axis=1) / np.maximum(count, 1), np.mean(obs_mat[mask]))
	centered = np.where(mask, obs_mat - row_mean[:, None], 0.0)

	u_mat, sv, vt_mat = np.linalg.svd(centered / observation_rate, full_matrices=False)
	thresh = singular_value_threshold(centered[mask], observation_rate, (n_rows, n_cols), eta)
	keep = (sv > thresh) & (sv > sv_tol * sv[0])
	est = (u_mat[:, keep] * sv[keep]) @ vt_mat[keep, :] + row_mean[:, None]
	est[mask] = obs_mat[mask]
	return _clamp(est, bounds)


def singular_value_threshold(centered_values, observation_rate, shape, eta=ETA):
	""" (1 + eta) * sigma * (sqrt(n_rows) + sqrt(n_cols)), where sigma^2 =
		(1-p)/p * mean(centered_values^2) is the variance of an entry of the
		rescaled observation matrix around the true matrix
	"""
	p = observation_rate
	sigma = np.sqrt((1 - p) / p * np.mean(np.square(centered_values)))
	return (1 + eta) * sigma * (np.sqrt(shape[0]) + np.sqrt(shape[1]))


def _clamp(mat, bounds):
	if bounds is None:
		return mat
	return np.clip(mat, bounds[0], bounds[1])
