import matplotlib.pyplot as plt
import numpy as np

from svp_planning import utils


def collect_result(label, history, color='red', linestyle='solid', linesize=3,
					markertype=None, markersize=None, save_result=None):
	""" Store the convergence history of a run together with its plotting style
		:param label : The label associated to this data
		:param history : the max absolute change of Q at each iteration, or the
						path of a {name}_stats.json file written by the solver
		:param color : The color of this plot
		:param linestyle : The style of the lines
		:param linesize : Specify the size of each line in the plot
		:param markertype : If marker are used, it specifies the type of the marker
		:param markersize : specify the size of the markers
		:param save_result : A dictionary where the result is saved under the key label
	"""
	if isinstance(history, str):
		history = utils.load_stats(history)['history']
	save_result = dict() if save_result is None else save_result
	save_result[label] = (np.array(history, dtype=np.float64), color, linestyle,
							linesize, markertype, markersize)
	return save_result


def plot_convergence(fig, dict_result):
	""" Plot on the figure the max change of Q at each iteration
		:param fig : An instance of plt figure to draw the data on, a new one if None
		:param dict_result : The results of collect_result
	"""
	fig = plt.figure() if fig is None else fig
	ax = fig.gca()
	for label, (history, color, linestyle, linesize, markertype, markersize) in dict_result.items():
		axis_x = np.arange(1, history.shape[0] + 1)
		ax.plot(axis_x, history, color=color, label=label, linestyle=linestyle,
					linewidth=linesize, marker=markertype, markersize=markersize)
	ax.set_yscale('log')
	ax.set_xlabel('Iteration')
	ax.set_ylabel(r'$\max |Q^{(t+1)} - Q^{(t)}|$')
	ax.legend()
	return ax
