import matchengine.services.calibration as c


def test_percentile_summary_deterministic():
    out = c.percentile_summary([0.1, 0.2, 0.3, 0.4, 0.5])
    assert out["p50"] == 0.3
    assert out["p90"] == 0.46


def test_percentile_summary_empty():
    assert c.percentile_summary([]) == {"p10": None, "p25": None, "p50": None, "p75": None, "p90": None}


def test_score_distribution_buckets():
    out = c.score_distribution([0.0, 19.9, 20.0, 99.0, 100.0])
    assert [b["range"] for b in out] == ["0-20", "20-40", "40-60", "60-80", "80-100"]
    assert [b["count"] for b in out] == [2, 1, 0, 0, 2]


def test_summarize_scores():
    assert c.summarize_scores([40.0, 10.0, 30.0, 20.0]) == {"average": 25.0, "median": 30.0, "min": 10.0, "max": 40.0}
    assert c.summarize_scores([]) == {"average": 0.0, "median": 0.0, "min": 0.0, "max": 0.0}


def test_compute_calibration_report_counts():
    report = c.compute_calibration_report([80.0, 60.0, 40.0], {"u1": 80.0, "u2": 80.0, "u3": 60.0}, [80.0])
    assert report["pair_score_distribution"]["count"] == 3
    assert report["per_user_best_distribution"]["count"] == 3
    assert report["assigned_distribution"]["count"] == 1
    assert "stability_proxy" in report
    assert report["stability_proxy"]["best_score_p50"] == 80.0
    assert report["stability_proxy"]["best_score_iqr"] == 10.0
