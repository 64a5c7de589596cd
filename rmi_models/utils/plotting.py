"""
===============================================================================
PLOTTING
===============================================================================
Visual check of a trained model: true position vs. predicted position over
the training keys, with the model's error bound drawn as a band.

Usage:
    from rmi_models.utils.plotting import plot_model_fit

    plot_model_fit(model, data, "fit.png")
===============================================================================
"""

from pathlib import Path

import numpy as np
import matplotlib.pyplot as plt


def model_predictions(model, data) -> np.ndarray:
    """Float predictions of `model` for every training key."""
    if hasattr(model, "predict_many"):
        return np.asarray(model.predict_many(data.keys), dtype=np.float64)
    return np.array([model.predict_to_float(k) for k in data.keys], dtype=np.float64)


def plot_model_fit(model, data, path=None, title: str = None):
    """Plot predictions against true positions; saves to `path` when given."""
    xs = data.keys_as_float()
    pred = model_predictions(model, data)

    fig, ax = plt.subplots(figsize=(10, 4))
    ax.plot(xs, data.positions, '.', markersize=1, label="position")
    ax.plot(xs, pred, '-', linewidth=1, label="prediction")

    bound = model.error_bound()
    if bound is not None and bound > 0:
        ax.fill_between(xs, pred - bound, pred + bound, alpha=0.2, label=f"±{bound}")

    ax.set_title(title or f"{model.function_name()} fit ({len(data):,} keys)")
    ax.set_xlabel("Key")
    ax.set_ylabel("Position")
    ax.legend(loc="upper left")
    fig.tight_layout()

    if path is not None:
        path = Path(path)
        fig.savefig(path)
        plt.close(fig)
        return path
    return fig
