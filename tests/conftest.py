from __future__ import annotations

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from cfrmodels.delay import DelayDistribution
from cfrmodels.expected_deaths import expected_deaths

TRUE_CFR = 0.05


@pytest.fixture
def delay() -> DelayDistribution:
    # mean 5 days
    return DelayDistribution(shape=4.0, rate=0.8)


@pytest.fixture
def scenario(delay) -> tuple[np.ndarray, np.ndarray]:
    """Ten onsets a day for a week, zero-padded to 20 days, with noise-free deaths."""
    onsets = np.array([10] * 7 + [0] * 13, dtype=float)
    deaths = expected_deaths(TRUE_CFR, delay, onsets)
    return onsets, deaths


def _linelist_rows(delays: list[int]) -> pd.DataFrame:
    onset = pd.Timestamp("2020-01-10")
    return pd.DataFrame({
        "Onset": [onset.strftime("%d/%m/%Y")] * len(delays),
        "Death": [(onset + pd.Timedelta(days=d)).strftime("%d/%m/%Y") for d in delays],
    })


@pytest.fixture
def linelist_delays() -> list[int]:
    return [8, 12, 14, 9, 20, 17, 11, 15, 13, 22, 10, 16, 19, 7, 14, 12]


@pytest.fixture
def data_dir(tmp_path, linelist_delays):
    """A data directory laid out the way the pipeline expects."""
    d = tmp_path / "data"
    d.mkdir()

    _linelist_rows(linelist_delays).to_csv(d / "linton_supp_tableS1_S2_8Feb2020.csv", index=False)

    imperial = _linelist_rows([9, 13, 16, 11, 18, 21, 10, 14])
    imperial.columns = ["date_onset", "date_death"]
    imperial.to_csv(d / "hubei_early_deaths_2020_07_02.csv", index=False)

    begin = pd.Timestamp("2020-01-20")
    for report, n_days in [("20200214", 26), ("20200221", 33)]:
        dates = pd.date_range(begin, periods=n_days, freq="D")
        cases = np.r_[np.arange(1, n_days - 5), np.zeros(6)].astype(int)
        deaths = np.zeros(n_days, dtype=int)
        deaths[-8] = 1
        deaths[-3] = 1
        pd.DataFrame({
            "date": dates.strftime("%Y-%m-%d"),
            "cases": cases,
            "deaths": deaths,
        }).to_csv(d / f"ncov_cases_{report}.csv", index=False)
    return d
