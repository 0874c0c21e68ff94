import logging
import uuid
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from fastapi.encoders import jsonable_encoder

from ..auth.admin_deps import get_current_admin
from ..config import ConfigurationError, MatchingConfig
from ..schemas import CompareRequest, DryRunRequest, DryRunResponse, snapshot_payloads
from ..services.pipeline import compare_runs, run_matching_from_payloads

logger = logging.getLogger(__name__)

router = APIRouter()


def _json(data: Any) -> Any:
    return jsonable_encoder(data)


def _detail(*, message: str, hint: str | None = None, trace_id: str | None = None) -> dict[str, Any]:
    return {
        "success": False,
        "message": message,
        "hint": hint,
        "trace_id": trace_id or str(uuid.uuid4()),
    }


def _production_config() -> MatchingConfig:
    from .. import main as m

    return m.MATCHING_CONFIG


def _with_overrides(base: MatchingConfig, overrides: dict[str, Any]) -> MatchingConfig:
    try:
        return base.with_overrides(overrides)
    except ConfigurationError as exc:
        raise HTTPException(
            status_code=400,
            detail=_detail(message="Invalid matching configuration overrides", hint=str(exc)),
        )


@router.get("/admin/matching/config")
def admin_matching_config(admin_user: dict[str, Any] = Depends(get_current_admin)) -> dict[str, Any]:
    _ = admin_user
    return _json(_production_config().model_dump(mode="json"))


@router.post("/admin/matching/dry-run", response_model=DryRunResponse, response_model_exclude_none=True)
def admin_matching_dry_run(payload: DryRunRequest, admin_user: dict[str, Any] = Depends(get_current_admin)) -> dict[str, Any]:
    _ = admin_user
    cfg = _with_overrides(_production_config(), payload.config_overrides)
    try:
        result = run_matching_from_payloads(snapshot_payloads(payload.users), cfg, workers=payload.workers)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=_detail(message=str(exc)))
    logger.info("[admin] dry run users=%d matches=%d", len(payload.users), len(result.matches))
    return _json(result.to_dict(include_pairs=payload.include_pair_scores))


@router.post("/admin/matching/compare")
def admin_matching_compare(payload: CompareRequest, admin_user: dict[str, Any] = Depends(get_current_admin)) -> dict[str, Any]:
    _ = admin_user
    base = _production_config()
    baseline = _with_overrides(base, payload.baseline_overrides)
    candidate = _with_overrides(base, payload.candidate_overrides)
    try:
        report = compare_runs(snapshot_payloads(payload.users), baseline, candidate)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=_detail(message=str(exc)))
    return _json(report)
