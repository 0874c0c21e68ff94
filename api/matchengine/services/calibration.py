from typing import Any

SCORE_BUCKETS = ("0-20", "20-40", "40-60", "60-80", "80-100")


def _percentile(values: list[float], p: float) -> float | None:
    if not values:
        return None
    vals = sorted(values)
    if len(vals) == 1:
        return round(vals[0], 6)
    pos = (len(vals) - 1) * p
    lo = int(pos)
    hi = min(lo + 1, len(vals) - 1)
    frac = pos - lo
    v = vals[lo] * (1 - frac) + vals[hi] * frac
    return round(v, 6)


def percentile_summary(values: list[float]) -> dict[str, float | None]:
    return {
        "p10": _percentile(values, 0.10),
        "p25": _percentile(values, 0.25),
        "p50": _percentile(values, 0.50),
        "p75": _percentile(values, 0.75),
        "p90": _percentile(values, 0.90),
    }


def score_distribution(scores: list[float]) -> list[dict[str, Any]]:
    counts = [0] * len(SCORE_BUCKETS)
    for score in scores:
        # 100 falls in the top bucket.
        idx = min(int(score // 20), len(SCORE_BUCKETS) - 1)
        counts[max(idx, 0)] += 1
    return [{"range": label, "count": count} for label, count in zip(SCORE_BUCKETS, counts)]


def summarize_scores(scores: list[float]) -> dict[str, float]:
    if not scores:
        return {"average": 0.0, "median": 0.0, "min": 0.0, "max": 0.0}
    vals = sorted(scores)
    return {
        "average": round(sum(vals) / len(vals), 6),
        "median": vals[len(vals) // 2],
        "min": vals[0],
        "max": vals[-1],
    }


def stability_proxy(best_scores: list[float]) -> dict[str, float | None]:
    proxy = {
        "best_score_p50": _percentile(best_scores, 0.50),
        "best_score_iqr": None,
        "best_score_std_approx": None,
    }
    p25 = _percentile(best_scores, 0.25)
    p75 = _percentile(best_scores, 0.75)
    if p25 is not None and p75 is not None:
        proxy["best_score_iqr"] = round(p75 - p25, 6)
        # Robust std approximation from IQR under near-normal assumption.
        proxy["best_score_std_approx"] = round((p75 - p25) / 1.349, 6)
    return proxy


def compute_calibration_report(pair_scores: list[float], best_by_user: dict[str, float], match_scores: list[float]) -> dict[str, Any]:
    best = list(best_by_user.values())
    return {
        "pair_score_distribution": {
            "count": len(pair_scores),
            "percentiles": percentile_summary(pair_scores),
        },
        "per_user_best_distribution": {
            "count": len(best),
            "percentiles": percentile_summary(best),
        },
        "assigned_distribution": {
            "count": len(match_scores),
            "percentiles": percentile_summary(match_scores),
        },
        "stability_proxy": stability_proxy(best),
    }

