"""
===========================================================
pipeline.py
Author: Veronica Scerra
Last Updated: 2026-03-18
===========================================================

Description:
    End-to-end delay-adjusted CFR analysis:
      1) fit the onset-to-death gamma distribution to each
         line list (the first one drives the estimates),
      2) estimate the CFR for every outbreak snapshot in the
         data directory with that fixed distribution,
      3) save the tables and draw the figures.

Example Usage:
    python -m cfrmodels.pipeline --data-dir data --out-dir out

    from cfrmodels.pipeline import PipelineConfig, run_pipeline
    result = run_pipeline(PipelineConfig(data_dir=Path("data")))
    result.estimates

Notes:
    - Directory convention: data/ (inputs), out/ (tables),
      figures/ (PNG files).
    - The delay distribution is estimated once from early
      line-list data and reused for all later snapshots. This
      is a modelling assumption: later snapshots do not update
      the delay.
-----------------------------------------------------------
License: MIT
===========================================================
"""
from __future__ import annotations
import argparse
import sys
import warnings
import matplotlib.pyplot as plt
import pandas as pd
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from cfrdata.linelist import IMPERIAL, LINTON, LineListConfig, load_delay_samples
from cfrdata.loaders import SnapshotConfig, load_snapshots

from .delay import DelayDistribution, DelayDistributionFitter
from .snapshots import OnError, OutbreakSnapshot, SnapshotProcessor, estimates_to_frame
from .utils.plotting import plot_cfr_estimates, plot_delay_distributions, plot_snapshot_counts
from .utils.reporting import delay_fits_table, format_estimates, save_estimates


def _default_linelists() -> Dict[str, Tuple[str, LineListConfig]]:
    return {
        "linton": ("linton_supp_tableS1_S2_8Feb2020.csv", LINTON),
        "imperial": ("hubei_early_deaths_2020_07_02.csv", IMPERIAL),
    }


@dataclass
class PipelineConfig:
    data_dir: Path = Path("data")
    out_dir: Path = Path("out")
    figures_dir: Path = Path("figures")
    # name -> (file name in data_dir, column config)
    linelists: Dict[str, Tuple[str, LineListConfig]] = field(default_factory=_default_linelists)
    delay_source: str = "linton"
    snapshots: SnapshotConfig = field(default_factory=SnapshotConfig)
    confidence_level: float = 0.95
    ci_method: str = "profile"
    on_error: OnError = "raise"
    make_plots: bool = True
    verbose: bool = True


@dataclass
class PipelineResult:
    delay: DelayDistribution
    delay_fits: pd.DataFrame
    estimates: pd.DataFrame
    snapshots: List[OutbreakSnapshot]
    outputs: Dict[str, Path]


def fit_delays(config: PipelineConfig) -> Dict[str, Tuple[DelayDistribution, Dict]]:
    """Fit the gamma delay distribution to every configured line list that exists"""
    if config.delay_source not in config.linelists:
        raise ValueError(
            f"delay_source '{config.delay_source}' is not one of {list(config.linelists)}"
        )
    fitter = DelayDistributionFitter()
    fits = {}
    for name, (filename, linelist_config) in config.linelists.items():
        path = Path(config.data_dir) / filename
        if not path.exists():
            if name == config.delay_source:
                raise FileNotFoundError(f"Line list for the delay distribution not found: {path}")
            warnings.warn(f"Line list '{name}' not found at {path}; skipping")
            continue
        delay, info = fitter.fit_with_info(load_delay_samples(path, linelist_config))
        fits[name] = (delay, info)
        if config.verbose:
            print(f"Delay fit [{name}]: shape={delay.shape:.3f} rate={delay.rate:.3f} "
                  f"mean={delay.mean:.1f}d median={delay.median:.1f}d (n={info['n_samples']})")
    return fits


def _draw_figures(config: PipelineConfig,
                  fits: Dict[str, Tuple[DelayDistribution, Dict]],
                  snapshots: List[OutbreakSnapshot],
                  estimates: pd.DataFrame) -> Dict[str, Path]:
    figures_dir = Path(config.figures_dir)
    figures_dir.mkdir(parents=True, exist_ok=True)
    paths = {"delay_figure": figures_dir / "ncov_dist.png"}

    plot_delay_distributions({name: d for name, (d, _) in fits.items()},
                             save_path=str(paths["delay_figure"]), show=False)
    plt.close("all")

    if snapshots:
        paths["cases_figure"] = figures_dir / "ncov_cases.png"
        plot_snapshot_counts(snapshots[-1], save_path=str(paths["cases_figure"]), show=False)
        plt.close("all")

        paths["cfr_figure"] = figures_dir / "ncov_cfr.png"
        plot_cfr_estimates(estimates, save_path=str(paths["cfr_figure"]), show=False)
        plt.close("all")
    return paths


def run_pipeline(config: Optional[PipelineConfig] = None) -> PipelineResult:
    config = config or PipelineConfig()

    fits = fit_delays(config)
    delay = fits[config.delay_source][0]

    snapshots = load_snapshots(config.data_dir, config.snapshots)
    if not snapshots:
        warnings.warn(f"No '{config.snapshots.pattern}' files found in {config.data_dir}")

    processor = SnapshotProcessor(
        delay,
        on_error=config.on_error,
        confidence_level=config.confidence_level,
        ci_method=config.ci_method,
    )
    results = processor.process_all(snapshots)
    estimates = estimates_to_frame(results)
    if config.verbose and len(estimates):
        print(format_estimates(estimates))

    fits_table = delay_fits_table(fits)
    outputs = save_estimates(estimates, config.out_dir)
    outputs["delay_fits"] = Path(config.out_dir) / "delay_fits.csv"
    fits_table.to_csv(outputs["delay_fits"], index=False)

    if config.make_plots:
        outputs.update(_draw_figures(config, fits, snapshots, estimates))

    if config.verbose:
        for label, path in outputs.items():
            print(f"Saved {label}: {path}")

    return PipelineResult(
        delay=delay,
        delay_fits=fits_table,
        estimates=estimates,
        snapshots=snapshots,
        outputs=outputs,
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="cfrmodels.pipeline",
        description="Delay-adjusted case fatality ratio from outbreak snapshots",
    )
    parser.add_argument("--data-dir", type=Path, default=Path("data"))
    parser.add_argument("--out-dir", type=Path, default=Path("out"))
    parser.add_argument("--figures-dir", type=Path, default=Path("figures"))
    args = parser.parse_args(argv)

    config = PipelineConfig(
        data_dir=args.data_dir,
        out_dir=args.out_dir,
        figures_dir=args.figures_dir,
    )
    try:
        run_pipeline(config)
    except (FileNotFoundError, ValueError, RuntimeError) as e:
        print(f"FAILED: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
