"""Training-curve figure, written headlessly after a run."""

from __future__ import annotations

from pathlib import Path
from typing import List, Mapping


class PlotAdapter:
    """Trainer callback that records the epoch loss and plots it on ``close``.

    With ``enable_plots=False`` every call is a no-op and matplotlib is never
    imported.
    """

    filename = "loss.png"

    def __init__(self, run_dir: str | Path, enable_plots: bool = False):
        self.enable_plots = enable_plots
        self.run_dir = Path(run_dir)
        self.epochs: List[int] = []
        self.losses: List[float] = []

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        if self.enable_plots and "loss" in metrics:
            self.epochs.append(int(epoch))
            self.losses.append(float(metrics["loss"]))

    def close(self) -> Path | None:
        """Write the figure and return its path, or ``None`` when disabled."""

        if not self.enable_plots or not self.epochs:
            return None
        import matplotlib

        matplotlib.use("Agg", force=True)
        import matplotlib.pyplot as plt

        fig, ax = plt.subplots(figsize=(6, 4))
        ax.plot(self.epochs, self.losses, marker="o")
        ax.set_xlabel("Epoch")
        ax.set_ylabel("Mean squared output error")
        ax.set_xticks(self.epochs)
        ax.set_title(f"Training loss (final {self.losses[-1]:.4f})")
        fig.tight_layout()

        self.run_dir.mkdir(parents=True, exist_ok=True)
        plot_path = self.run_dir / self.filename
        fig.savefig(plot_path)
        plt.close(fig)
        return plot_path

    __call__ = on_epoch


__all__ = ["PlotAdapter"]
