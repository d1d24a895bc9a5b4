from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from cfrdata.linelist import load_delay_samples
from cfrmodels.delay import fit_delay_distribution
from cfrmodels.pipeline import PipelineConfig, fit_delays, main, run_pipeline


def _config(data_dir, tmp_path, **kwargs) -> PipelineConfig:
    return PipelineConfig(
        data_dir=data_dir,
        out_dir=tmp_path / "out",
        figures_dir=tmp_path / "figures",
        verbose=False,
        **kwargs,
    )


class TestRunPipeline:
    def test_outputs(self, data_dir, tmp_path):
        result = run_pipeline(_config(data_dir, tmp_path))

        out = tmp_path / "out"
        figures = tmp_path / "figures"
        for path in (out / "cfr.csv", out / "cfr.pkl", out / "delay_fits.csv",
                     figures / "ncov_dist.png", figures / "ncov_cases.png", figures / "ncov_cfr.png"):
            assert path.exists(), path

        est = result.estimates
        assert list(est["date"]) == list(pd.to_datetime(["2020-02-14", "2020-02-21"]))
        assert np.all(est["lower"] <= est["mle"])
        assert np.all(est["mle"] <= est["upper"])
        assert est["error"].isna().all()
        assert list(result.delay_fits["source"]) == ["linton", "imperial"]

    def test_delay_comes_from_linton(self, data_dir, tmp_path):
        result = run_pipeline(_config(data_dir, tmp_path, make_plots=False))
        samples = load_delay_samples(data_dir / "linton_supp_tableS1_S2_8Feb2020.csv")
        expected = fit_delay_distribution(samples)
        assert result.delay.shape == pytest.approx(expected.shape, rel=1e-6)
        assert result.delay.rate == pytest.approx(expected.rate, rel=1e-6)

    def test_no_figures_when_disabled(self, data_dir, tmp_path):
        result = run_pipeline(_config(data_dir, tmp_path, make_plots=False))
        assert not (tmp_path / "figures").exists()
        assert set(result.outputs) == {"csv", "pickle", "delay_fits"}

    def test_saved_table_matches_result(self, data_dir, tmp_path):
        result = run_pipeline(_config(data_dir, tmp_path, make_plots=False))
        saved = pd.read_pickle(tmp_path / "out" / "cfr.pkl")
        pd.testing.assert_frame_equal(saved, result.estimates)


class TestFitDelays:
    def test_optional_linelist_missing(self, data_dir, tmp_path):
        (data_dir / "hubei_early_deaths_2020_07_02.csv").unlink()
        with pytest.warns(UserWarning, match="imperial"):
            fits = fit_delays(_config(data_dir, tmp_path))
        assert list(fits) == ["linton"]

    def test_delay_source_missing(self, data_dir, tmp_path):
        (data_dir / "linton_supp_tableS1_S2_8Feb2020.csv").unlink()
        with pytest.raises(FileNotFoundError):
            fit_delays(_config(data_dir, tmp_path))

    def test_unknown_delay_source(self, data_dir, tmp_path):
        with pytest.raises(ValueError):
            fit_delays(_config(data_dir, tmp_path, delay_source="who"))

    def test_imperial_as_delay_source(self, data_dir, tmp_path):
        config = _config(data_dir, tmp_path, delay_source="imperial", make_plots=False)
        result = run_pipeline(config)
        assert result.delay.mean == pytest.approx(np.mean([9, 13, 16, 11, 18, 21, 10, 14]), rel=1e-4)


class TestMain:
    def test_success(self, data_dir, tmp_path):
        code = main([
            "--data-dir", str(data_dir),
            "--out-dir", str(tmp_path / "out"),
            "--figures-dir", str(tmp_path / "figures"),
        ])
        assert code == 0
        assert (tmp_path / "out" / "cfr.csv").exists()

    def test_missing_data(self, tmp_path, capsys):
        (tmp_path / "empty").mkdir()
        code = main(["--data-dir", str(tmp_path / "empty"), "--out-dir", str(tmp_path / "out")])
        assert code == 1
        assert "FAILED" in capsys.readouterr().err
